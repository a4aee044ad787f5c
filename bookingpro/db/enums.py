"""Enum definitions for application constants."""

from enum import Enum


class CompanyStatus(str, Enum):
    """Provider company status."""

    ACTIVE = "active"
    INACTIVE = "inactive"


class BookingStatus(str, Enum):
    """
    Booking lifecycle status.

    Flow: pending → confirmed → completed
              ↘ cancelled
              ↘ no_show

    Only the initial pending state is set by the core; later transitions are
    admin-driven.
    """

    PENDING = "pending"
    CONFIRMED = "confirmed"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    NO_SHOW = "no_show"


class LeadStatus(str, Enum):
    """
    Lead lifecycle state, keyed by session.

    Flow: new → capturing → converting → converted
                    ↘ abandoned (stale, unconverted)
                    ↘ failed (processing error recorded)
    """

    NEW = "new"
    CAPTURING = "capturing"
    CONVERTING = "converting"
    CONVERTED = "converted"
    ABANDONED = "abandoned"
    FAILED = "failed"

    @classmethod
    def unconverted(cls) -> list[str]:
        """States removed by the retention sweep."""
        return [cls.NEW.value, cls.CAPTURING.value, cls.ABANDONED.value]

    @classmethod
    def in_conversion(cls) -> list[str]:
        return [cls.CONVERTING.value, cls.CONVERTED.value]


class LeadType(str, Enum):
    """Reporting classification of a lead row."""

    PROCESSING = "Processing"
    COMPLETE = "Complete"
    FAILED = "Failed"
    RETROACTIVE = "retroactive"


DEFAULT_BOOKING_STATUS = BookingStatus.PENDING
DEFAULT_LEAD_STATUS = LeadStatus.NEW
DEFAULT_LEAD_TYPE = LeadType.PROCESSING
