"""SQLAlchemy ORM models for companies, reservations, bookings, leads and conversion metrics."""

from __future__ import annotations

from datetime import date, datetime, time

from sqlalchemy import (
    JSON,
    Boolean,
    CheckConstraint,
    Date,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    Time,
    UniqueConstraint,
    text,
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column, relationship

from bookingpro.db.base import Base
from bookingpro.db.enums import (
    DEFAULT_BOOKING_STATUS,
    DEFAULT_LEAD_STATUS,
    DEFAULT_LEAD_TYPE,
    CompanyStatus,
)
from bookingpro.db.types import utcnow

# JSONB on PostgreSQL, plain JSON elsewhere (SQLite for local runs/tests)
JSONType = JSON().with_variant(JSONB(), "postgresql")


# =============================================================================
# Companies & Scheduling
# =============================================================================

class Company(Base):
    """
    A provider company customers can book with.

    Business hours are the same for every available weekday.
    Uses ISO weekdays: Monday=1, Sunday=7.
    """
    __tablename__ = "companies"
    __table_args__ = (
        UniqueConstraint("name", name="uq_company_name"),
        CheckConstraint("available_hours_start < available_hours_end", name="ck_company_hours"),
        CheckConstraint("time_slot_duration > 0", name="ck_company_slot_duration"),
        Index("idx_companies_status", "status"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    phone: Mapped[str | None] = mapped_column(String(50), nullable=True)
    email: Mapped[str | None] = mapped_column(String(255), nullable=True)
    address: Mapped[str | None] = mapped_column(Text, nullable=True)

    # Schedule configuration
    available_days: Mapped[list[int]] = mapped_column(
        JSONType, default=lambda: [1, 2, 3, 4, 5], nullable=False
    )
    available_hours_start: Mapped[time] = mapped_column(Time, default=time(9, 0), nullable=False)
    available_hours_end: Mapped[time] = mapped_column(Time, default=time(17, 0), nullable=False)
    time_slot_duration: Mapped[int] = mapped_column(Integer, default=30, nullable=False)
    max_bookings_per_day: Mapped[int] = mapped_column(Integer, default=10, nullable=False)
    advance_booking_days: Mapped[int] = mapped_column(Integer, default=30, nullable=False)

    status: Mapped[str] = mapped_column(
        String(20),
        default=CompanyStatus.ACTIVE.value,
        server_default=text(f"'{CompanyStatus.ACTIVE.value}'"),
        nullable=False,
    )

    created_at: Mapped[datetime] = mapped_column(default=utcnow, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(default=utcnow, onupdate=utcnow, nullable=False)

    @property
    def is_active(self) -> bool:
        return self.status == CompanyStatus.ACTIVE.value


class Reservation(Base):
    """
    A claimed slot.

    The unique constraint on (company_id, date, time) is the only guard
    against double-booking: concurrent inserts have exactly one winner.
    """
    __tablename__ = "reservations"
    __table_args__ = (
        UniqueConstraint("company_id", "slot_date", "slot_time", name="uq_reservation_slot"),
        Index("idx_reservations_booking", "booking_id"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    company_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("companies.id", ondelete="CASCADE"), nullable=False
    )
    slot_date: Mapped[date] = mapped_column(Date, nullable=False)
    slot_time: Mapped[time] = mapped_column(Time, nullable=False)
    booking_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("bookings.id", ondelete="CASCADE"), nullable=False
    )
    created_at: Mapped[datetime] = mapped_column(default=utcnow, nullable=False)

    company: Mapped["Company"] = relationship()


# =============================================================================
# Bookings
# =============================================================================

class Booking(Base):
    """
    A confirmed submission. Created exactly once per successful submit.

    Multi-company submissions keep every appointment in `appointments`;
    the first appointment is mirrored into company_id/appointment_date/time.
    """
    __tablename__ = "bookings"
    __table_args__ = (
        UniqueConstraint("reference", name="uq_booking_reference"),
        Index("idx_bookings_company_date", "company_id", "appointment_date"),
        Index("idx_bookings_session", "session_id"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    reference: Mapped[str] = mapped_column(String(32), nullable=False)

    service_type: Mapped[str] = mapped_column(String(100), nullable=False)

    # Customer
    customer_name: Mapped[str] = mapped_column(String(255), nullable=False)
    customer_email: Mapped[str] = mapped_column(String(255), nullable=False)
    customer_phone: Mapped[str] = mapped_column(String(50), nullable=False)
    customer_address: Mapped[str] = mapped_column(Text, nullable=False)
    city: Mapped[str | None] = mapped_column(String(100), nullable=True)
    state: Mapped[str | None] = mapped_column(String(50), nullable=True)
    zip_code: Mapped[str | None] = mapped_column(String(20), nullable=True)

    # Appointment
    company_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("companies.id", ondelete="RESTRICT"), nullable=False
    )
    company_name: Mapped[str] = mapped_column(String(255), nullable=False)
    appointment_date: Mapped[date] = mapped_column(Date, nullable=False)
    appointment_time: Mapped[time] = mapped_column(Time, nullable=False)
    appointments: Mapped[list[dict]] = mapped_column(JSONType, default=list, nullable=False)

    service_details: Mapped[dict] = mapped_column(JSONType, default=dict, nullable=False)
    marketing_source: Mapped[dict] = mapped_column(JSONType, default=dict, nullable=False)
    session_id: Mapped[str | None] = mapped_column(String(100), nullable=True)

    status: Mapped[str] = mapped_column(
        String(20),
        default=DEFAULT_BOOKING_STATUS.value,
        server_default=text(f"'{DEFAULT_BOOKING_STATUS.value}'"),
        nullable=False,
    )
    created_at: Mapped[datetime] = mapped_column(default=utcnow, nullable=False)

    company: Mapped["Company"] = relationship()
    reservations: Mapped[list["Reservation"]] = relationship(
        cascade="all, delete-orphan", passive_deletes=True
    )


# =============================================================================
# Leads
# =============================================================================

class Lead(Base):
    """
    A prospective customer's in-progress or completed form interaction.

    Linked to a Booking only by booking_id (no foreign key): conversion
    tracking must tolerate lost session continuity and deleted bookings.
    """
    __tablename__ = "leads"
    __table_args__ = (
        Index("idx_leads_session", "session_id"),
        Index("idx_leads_created", "created_at"),
        Index("idx_leads_status_created", "status", "created_at"),
        CheckConstraint(
            "completion_percentage >= 0 AND completion_percentage <= 100",
            name="ck_lead_completion",
        ),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    session_id: Mapped[str] = mapped_column(String(100), nullable=False)

    # Captured customer fields
    customer_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    customer_email: Mapped[str | None] = mapped_column(String(255), nullable=True)
    customer_phone: Mapped[str | None] = mapped_column(String(50), nullable=True)
    customer_address: Mapped[str | None] = mapped_column(Text, nullable=True)
    city: Mapped[str | None] = mapped_column(String(100), nullable=True)
    state: Mapped[str | None] = mapped_column(String(50), nullable=True)
    zip_code: Mapped[str | None] = mapped_column(String(20), nullable=True)

    # Service / proposed appointment
    service_type: Mapped[str | None] = mapped_column(String(100), nullable=True)
    company_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    company_id: Mapped[int | None] = mapped_column(Integer, nullable=True)
    booking_date: Mapped[str | None] = mapped_column(String(20), nullable=True)
    booking_time: Mapped[str | None] = mapped_column(String(20), nullable=True)

    # All normalized fields ever captured (incl. service-specific attributes)
    form_data: Mapped[dict] = mapped_column(JSONType, default=dict, nullable=False)
    final_form_data: Mapped[dict | None] = mapped_column(JSONType, nullable=True)

    # Funnel state
    completion_percentage: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    lead_score: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    lead_type: Mapped[str] = mapped_column(
        String(20), default=DEFAULT_LEAD_TYPE.value, nullable=False
    )
    status: Mapped[str] = mapped_column(
        String(20), default=DEFAULT_LEAD_STATUS.value, nullable=False
    )
    is_complete: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    failure_reason: Mapped[str | None] = mapped_column(Text, nullable=True)

    # Conversion
    converted_to_booking: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    booking_id: Mapped[int | None] = mapped_column(Integer, nullable=True)
    conversion_timestamp: Mapped[datetime | None] = mapped_column(nullable=True)
    conversion_session_id: Mapped[str | None] = mapped_column(String(100), nullable=True)

    # Marketing attribution
    utm_source: Mapped[str | None] = mapped_column(String(255), nullable=True)
    utm_medium: Mapped[str | None] = mapped_column(String(255), nullable=True)
    utm_campaign: Mapped[str | None] = mapped_column(String(255), nullable=True)
    utm_term: Mapped[str | None] = mapped_column(String(255), nullable=True)
    utm_content: Mapped[str | None] = mapped_column(String(255), nullable=True)
    gclid: Mapped[str | None] = mapped_column(String(255), nullable=True)
    referrer: Mapped[str | None] = mapped_column(Text, nullable=True)
    traffic_source: Mapped[str | None] = mapped_column(String(100), nullable=True)

    created_at: Mapped[datetime] = mapped_column(default=utcnow, nullable=False)
    last_updated: Mapped[datetime] = mapped_column(default=utcnow, nullable=False)


# =============================================================================
# Conversion Metrics
# =============================================================================

class ConversionMetric(Base):
    """
    Rolling log of conversion metrics (most recent N rows are kept).
    """
    __tablename__ = "conversion_metrics"
    __table_args__ = (
        Index("idx_conversion_metrics_created", "created_at"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    lead_id: Mapped[int | None] = mapped_column(Integer, nullable=True)
    booking_id: Mapped[int | None] = mapped_column(Integer, nullable=True)
    session_id: Mapped[str | None] = mapped_column(String(100), nullable=True)
    service_type: Mapped[str] = mapped_column(String(100), default="unknown", nullable=False)
    utm_source: Mapped[str] = mapped_column(String(255), default="unknown", nullable=False)

    time_to_conversion_minutes: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    time_to_conversion_hours: Mapped[float] = mapped_column(default=0.0, nullable=False)
    time_to_conversion_days: Mapped[float] = mapped_column(default=0.0, nullable=False)

    completion_percentage: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    lead_score: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    conversion_value: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    is_retroactive: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    created_at: Mapped[datetime] = mapped_column(default=utcnow, nullable=False)
