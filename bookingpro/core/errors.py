"""Domain errors raised by the booking and lead services."""


class BookingProError(Exception):
    """Base exception for booking/lead service errors."""

    pass


class ValidationError(BookingProError):
    """Missing or malformed required input (user-correctable)."""

    def __init__(self, field: str, reason: str | None = None):
        self.field = field
        self.reason = reason or f"Missing required field: {field}"
        super().__init__(field)

    def __str__(self) -> str:
        return self.reason


class InvalidEmail(ValidationError):
    """Email address failed format validation."""

    def __init__(self, email: str | None = None):
        super().__init__("email", "Invalid email address.")
        self.email = email


class CompanyUnavailable(BookingProError):
    """Company is unknown or inactive."""

    def __init__(self, company: int | str | None):
        self.company = company
        super().__init__(f"Company unavailable: {company}")


class SlotConflict(BookingProError):
    """Reservation race lost - the user must pick another slot."""

    def __init__(self, company_id: int, slot_date, slot_time):
        self.company_id = company_id
        self.slot_date = slot_date
        self.slot_time = slot_time
        super().__init__("Selected time slot is no longer available")


class PersistenceError(BookingProError):
    """Storage layer failure."""

    pass


class DuplicateSuppressed(BookingProError):
    """Duplicate request inside the dedup window (treat as success-no-op)."""

    def __init__(self, session_id: str, action: str):
        self.session_id = session_id
        self.action = action
        super().__init__(f"Duplicate {action} request suppressed")
