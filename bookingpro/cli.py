"""CLI tools for BookingPro administration."""

from datetime import time

import click
from sqlalchemy.exc import SQLAlchemyError

from bookingpro.core.errors import BookingProError
from bookingpro.db.session import SessionLocal
from bookingpro.services import company_service, conversion_service, lead_service
from bookingpro.services.availability_service import generate_slot_times


def _parse_hhmm(value: str) -> time:
    try:
        hours, minutes = value.strip().split(":")
        return time(int(hours), int(minutes))
    except ValueError:
        raise click.BadParameter(f"expected HH:MM, got {value!r}")


@click.group()
def cli():
    """BookingPro CLI tools."""
    pass


@cli.command()
@click.option("--name", required=True, help="Company name (unique)")
@click.option("--phone", default=None, help="Contact phone")
@click.option("--email", default=None, help="Contact email")
@click.option("--days", default="1,2,3,4,5", help="ISO weekdays, comma separated (Mon=1)")
@click.option("--start", default="09:00", help="Opening time HH:MM")
@click.option("--end", default="17:00", help="Closing time HH:MM")
@click.option("--slot-minutes", default=30, help="Slot length in minutes")
@click.option("--advance-days", default=30, help="How far ahead customers may book")
def create_company(
    name: str,
    phone: str | None,
    email: str | None,
    days: str,
    start: str,
    end: str,
    slot_minutes: int,
    advance_days: int,
):
    """
    Create a provider company.

    Example:
        python -m bookingpro.cli create-company --name "Top Roofing" --days 1,2,3,4,5,6
    """
    try:
        available_days = [int(d) for d in days.split(",") if d.strip()]
    except ValueError:
        raise click.BadParameter(f"expected comma separated weekdays, got {days!r}")

    db = SessionLocal()
    try:
        if company_service.get_company_by_name(db, name):
            click.echo(f"❌ Company '{name}' already exists")
            raise SystemExit(1)

        company = company_service.create_company(
            db,
            name=name,
            phone=phone,
            email=email,
            available_days=available_days,
            available_hours_start=_parse_hhmm(start),
            available_hours_end=_parse_hhmm(end),
            time_slot_duration=slot_minutes,
            advance_booking_days=advance_days,
        )
        slots = len(generate_slot_times(company))
        click.echo(f"✓ Created company: {company.name}")
        click.echo(f"  ID: {company.id}")
        click.echo(f"  Slots per day: {slots}")
    except (BookingProError, SQLAlchemyError) as e:
        db.rollback()
        click.echo(f"❌ Error: {e}")
        raise SystemExit(1)
    finally:
        db.close()


@cli.command()
@click.option("--retention-days", default=None, type=int, help="Override LEAD_RETENTION_DAYS")
def cleanup_leads(retention_days: int | None):
    """Abandon stale leads and delete unconverted leads past retention."""
    db = SessionLocal()
    try:
        abandoned = lead_service.expire_stale_leads(db)
        deleted = lead_service.cleanup_expired_leads(db, retention_days=retention_days)
        click.echo(f"✓ Abandoned {abandoned} stale leads")
        click.echo(f"✓ Deleted {deleted} expired leads")
    finally:
        db.close()


@cli.command()
@click.option("--days", default=30, help="Reporting window in days")
def conversion_stats(days: int):
    """Print lead-to-booking conversion statistics."""
    db = SessionLocal()
    try:
        stats = conversion_service.get_conversion_stats(db, days)
        click.echo(f"Period: last {stats.period_days} days")
        click.echo(f"  Leads: {stats.total_leads}")
        click.echo(f"  Converted: {stats.converted_leads}")
        click.echo(f"  Conversion rate: {stats.conversion_rate}%")
        click.echo(f"  Avg time to conversion: {stats.avg_conversion_time_minutes} min")
    finally:
        db.close()


if __name__ == "__main__":
    cli()
