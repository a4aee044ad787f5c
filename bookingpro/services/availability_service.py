"""Availability service - slot generation and reservation.

Handles:
- Slot grid generation from a company's business hours
- Per-day availability with reservations excluded
- Slot reservation guarded by the (company, date, time) unique constraint
"""

import logging
from collections import OrderedDict
from datetime import date, time, timedelta
from typing import Iterable, NamedTuple

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from bookingpro.core.errors import CompanyUnavailable, SlotConflict
from bookingpro.core.structured_logging import build_log_context
from bookingpro.db.enums import CompanyStatus
from bookingpro.db.models import Company, Reservation

logger = logging.getLogger(__name__)


# =============================================================================
# Types
# =============================================================================

class SlotAvailability(NamedTuple):
    """One slot on a day's grid."""
    time: str  # "HH:MM"
    formatted: str  # "9:00 AM"
    available: bool


class DayAvailability(NamedTuple):
    """All slots for one bookable date."""
    date: date
    day_name: str  # "Mon"
    day_number: int
    full_date: str  # "Monday, January 5, 2026"
    slots: list[SlotAvailability]


# =============================================================================
# Formatting
# =============================================================================

def format_slot_time(value: time) -> str:
    """24h "HH:MM" key for a slot."""
    return value.strftime("%H:%M")


def format_display_time(value: time) -> str:
    """12h display form without a leading zero, e.g. "9:00 AM"."""
    hour = value.hour % 12 or 12
    suffix = "AM" if value.hour < 12 else "PM"
    return f"{hour}:{value.minute:02d} {suffix}"


def format_full_date(value: date) -> str:
    return f"{value.strftime('%A')}, {value.strftime('%B')} {value.day}, {value.year}"


def parse_slot_time(value: str | time) -> time:
    """Parse "HH:MM" (or "HH:MM:SS") into a time."""
    if isinstance(value, time):
        return value.replace(second=0, microsecond=0)
    parts = str(value).strip().split(":")
    if len(parts) not in (2, 3):
        raise ValueError(f"Invalid time: {value!r}")
    return time(int(parts[0]), int(parts[1]))


def parse_slot_date(value: str | date) -> date:
    if isinstance(value, date):
        return value
    return date.fromisoformat(str(value).strip())


# =============================================================================
# Slot Calculation
# =============================================================================

def _to_minutes(value: time) -> int:
    return value.hour * 60 + value.minute


def generate_slot_times(company: Company) -> list[time]:
    """
    Slot start times for one available day.

    Steps by time_slot_duration from opening; a slot that would run past
    closing is dropped.
    """
    duration = company.time_slot_duration
    if duration <= 0:
        return []

    start = _to_minutes(company.available_hours_start)
    end = _to_minutes(company.available_hours_end)

    slots: list[time] = []
    current = start
    while current + duration <= end:
        slots.append(time(current // 60, current % 60))
        current += duration
    return slots


def is_available_day(company: Company, day: date) -> bool:
    # ISO weekday: Monday=1, Sunday=7
    return day.isoweekday() in set(company.available_days or [])


def is_bookable_slot(company: Company, slot_date: date, slot_time: time) -> bool:
    """Whether the time falls on the company's slot grid for an available day."""
    if not is_available_day(company, slot_date):
        return False
    return slot_time.replace(second=0, microsecond=0) in generate_slot_times(company)


def _get_reserved_slots(
    db: Session,
    company_ids: Iterable[int],
    date_from: date,
    date_to: date,
) -> set[tuple[int, date, time]]:
    """All reserved (company, date, time) keys in the range, one query."""
    rows = db.query(
        Reservation.company_id, Reservation.slot_date, Reservation.slot_time
    ).filter(
        Reservation.company_id.in_(list(company_ids)),
        Reservation.slot_date >= date_from,
        Reservation.slot_date <= date_to,
    ).all()
    return {
        (row.company_id, row.slot_date, row.slot_time.replace(second=0, microsecond=0))
        for row in rows
    }


def _build_company_days(
    company: Company,
    date_from: date,
    date_to: date,
    reserved: set[tuple[int, date, time]],
) -> "OrderedDict[date, DayAvailability]":
    result: OrderedDict[date, DayAvailability] = OrderedDict()
    slot_times = generate_slot_times(company)
    if not slot_times:
        return result

    current = date_from
    while current <= date_to:
        if is_available_day(company, current):
            slots = [
                SlotAvailability(
                    time=format_slot_time(slot_time),
                    formatted=format_display_time(slot_time),
                    available=(company.id, current, slot_time) not in reserved,
                )
                for slot_time in slot_times
            ]
            result[current] = DayAvailability(
                date=current,
                day_name=current.strftime("%a"),
                day_number=current.day,
                full_date=format_full_date(current),
                slots=slots,
            )
        current += timedelta(days=1)
    return result


def get_availability(
    db: Session,
    company: Company | None,
    date_from: date,
    date_to: date | None = None,
) -> "OrderedDict[date, DayAvailability]":
    """
    Calculate availability for one company, ascending by date.

    date_to defaults to date_from + company.advance_booking_days.
    An empty range (date_from > date_to) yields an empty result.
    """
    if company is None or not company.is_active:
        raise CompanyUnavailable(company.id if company else None)

    if date_to is None:
        date_to = date_from + timedelta(days=company.advance_booking_days)
    if date_from > date_to:
        return OrderedDict()

    reserved = _get_reserved_slots(db, [company.id], date_from, date_to)
    return _build_company_days(company, date_from, date_to, reserved)


def get_availability_for_companies(
    db: Session,
    company_ids: Iterable[int],
    date_from: date,
    date_to: date,
) -> dict[int, "OrderedDict[date, DayAvailability]"]:
    """
    Availability for several companies at once.

    Unknown or inactive companies are left out of the result.
    """
    requested = list(dict.fromkeys(company_ids))
    if not requested:
        return {}

    companies = db.query(Company).filter(
        Company.id.in_(requested),
        Company.status == CompanyStatus.ACTIVE.value,
    ).all()
    by_id = {c.id: c for c in companies}

    missing = [cid for cid in requested if cid not in by_id]
    if missing:
        logger.info(
            "availability_companies_skipped",
            extra={"company_ids": missing, **build_log_context(action="availability")},
        )

    if date_from > date_to:
        return {cid: OrderedDict() for cid in requested if cid in by_id}

    reserved = _get_reserved_slots(db, by_id.keys(), date_from, date_to)
    return {
        cid: _build_company_days(by_id[cid], date_from, date_to, reserved)
        for cid in requested
        if cid in by_id
    }


# =============================================================================
# Reservation
# =============================================================================

def book_slot(
    db: Session,
    company_id: int,
    slot_date: date,
    slot_time: time,
    booking_id: int,
    commit: bool = True,
) -> Reservation:
    """
    Reserve a slot for a booking.

    Relies solely on the unique constraint: the insert either wins or raises.
    Re-reserving a slot already held by the same booking returns the
    existing reservation. Any other holder means SlotConflict.

    With commit=False the reservation is only flushed; on conflict the whole
    session transaction is rolled back, so callers must treat it as failed.
    """
    slot_time = slot_time.replace(second=0, microsecond=0)
    reservation = Reservation(
        company_id=company_id,
        slot_date=slot_date,
        slot_time=slot_time,
        booking_id=booking_id,
    )
    db.add(reservation)
    try:
        db.flush()
    except IntegrityError:
        db.rollback()
        existing = db.query(Reservation).filter(
            Reservation.company_id == company_id,
            Reservation.slot_date == slot_date,
            Reservation.slot_time == slot_time,
        ).first()
        if existing and existing.booking_id == booking_id:
            return existing
        logger.info(
            "slot_conflict",
            extra=build_log_context(
                company_id=company_id, booking_id=booking_id, action="book_slot"
            ),
        )
        raise SlotConflict(company_id, slot_date, slot_time)

    if commit:
        db.commit()
        db.refresh(reservation)
    return reservation


def release_booking_slots(db: Session, booking_id: int) -> int:
    """Delete all reservations held by a booking. Returns the count removed."""
    deleted = db.query(Reservation).filter(
        Reservation.booking_id == booking_id
    ).delete(synchronize_session=False)
    db.commit()
    return deleted
