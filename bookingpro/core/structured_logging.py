"""Structured logging helpers (PII-safe)."""

from typing import Any


def build_log_context(
    *,
    session_id: str | None = None,
    company_id: int | None = None,
    booking_id: int | None = None,
    lead_id: int | None = None,
    action: str | None = None,
    route: str | None = None,
) -> dict[str, Any]:
    """Return a PII-safe log context dict (identifiers only, never customer fields)."""
    context: dict[str, Any] = {}
    if session_id:
        context["session_id"] = session_id
    if company_id is not None:
        context["company_id"] = company_id
    if booking_id is not None:
        context["booking_id"] = booking_id
    if lead_id is not None:
        context["lead_id"] = lead_id
    if action:
        context["action"] = action
    if route:
        context["route"] = route
    return context
