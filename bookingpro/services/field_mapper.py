"""Field mapper - normalizes heterogeneous form keys to one canonical schema.

Every known raw key variant maps to exactly one canonical field name. For each
canonical field the first non-empty variant (in declaration order) wins.
Unknown keys are passed through unchanged so new service-specific fields are
never lost.
"""

from __future__ import annotations

import math
from collections.abc import Mapping
from typing import Any

from bookingpro.core.constants import SERVICE_FIELDS


# canonical field -> raw key variants, in priority order
FIELD_MAPPINGS: dict[str, tuple[str, ...]] = {
    # Customer
    "customer_name": ("full_name", "customer_name", "name"),
    "customer_email": ("email", "customer_email", "email_address"),
    "customer_phone": ("phone", "customer_phone", "phone_number"),
    "customer_address": ("address", "customer_address", "street_address"),
    # Service
    "service_type": ("service", "service_type", "selected_service"),
    "service_details": ("service_details", "specifications", "_specifications", "description"),
    # Location
    "zip_code": (
        "zip_code", "zipcode", "postal_code",
        "bathroom_zip", "roof_zip", "windows_zip", "siding_zip",
        "kitchen_zip", "decks_zip", "adu_zip",
    ),
    "city": ("city",),
    "state": ("state",),
    # Booking
    "booking_date": ("selected_date", "booking_date", "appointment_date"),
    "booking_time": ("selected_time", "booking_time", "appointment_time"),
    "company_name": ("company", "company_name"),
    "company_id": ("company_id", "_company_id"),
    "appointments": ("appointments",),
    # Lead tracking
    "session_id": ("session_id",),
    "form_step": ("form_step",),
    "completion_percentage": ("completion_percentage",),
    "lead_type": ("lead_type",),
    "is_complete": ("is_complete",),
    "converted_to_booking": ("converted_to_booking",),
    "booking_post_id": ("booking_post_id", "booking_id"),
    "conversion_timestamp": ("conversion_timestamp",),
    # UTM / marketing
    "utm_source": ("utm_source",),
    "utm_medium": ("utm_medium",),
    "utm_campaign": ("utm_campaign",),
    "utm_term": ("utm_term",),
    "utm_content": ("utm_content",),
    "gclid": ("gclid",),
    "referrer": ("referrer",),
    "traffic_source": ("traffic_source",),
    "marketing_source": ("marketing_source", "source_data"),
    # Roof
    "roof_action": ("roof_action", "_roof_action"),
    "roof_material": ("roof_material", "_roof_material"),
    "roof_zip": ("roof_zip",),
    # Windows
    "windows_action": ("windows_action", "_windows_action"),
    "windows_replace_qty": ("windows_replace_qty", "_windows_replace_qty"),
    "windows_repair_needed": ("windows_repair_needed", "_windows_repair_needed"),
    "windows_zip": ("windows_zip",),
    # Bathroom
    "bathroom_option": ("bathroom_option", "_bathroom_option"),
    "bathroom_zip": ("bathroom_zip",),
    # Siding
    "siding_option": ("siding_option", "_siding_option"),
    "siding_material": ("siding_material", "_siding_material"),
    "siding_zip": ("siding_zip",),
    # Kitchen
    "kitchen_action": ("kitchen_action", "_kitchen_action"),
    "kitchen_component": ("kitchen_component", "_kitchen_component"),
    "kitchen_zip": ("kitchen_zip",),
    # Decks
    "decks_action": ("decks_action", "_decks_action"),
    "decks_material": ("decks_material", "_decks_material"),
    "decks_zip": ("decks_zip",),
    # ADU
    "adu_action": ("adu_action", "_adu_action"),
    "adu_type": ("adu_type", "_adu_type"),
    "adu_zip": ("adu_zip",),
    # Request meta
    "capture_timestamp": ("capture_timestamp", "created_at", "_created_at"),
    "last_updated": ("last_updated",),
    "user_agent": ("user_agent",),
    "ip_address": ("ip_address",),
    "page_url": ("page_url",),
    "lead_status": ("lead_status",),
    "created_date": ("created_date",),
    "lead_score": ("lead_score",),
}

# raw variant -> canonical name; a variant listed under several canonical
# fields (e.g. roof_zip) resolves to the first declaration
_VARIANT_INDEX: dict[str, str] = {}
for _canonical, _variants in FIELD_MAPPINGS.items():
    for _variant in _variants:
        _VARIANT_INDEX.setdefault(_variant, _canonical)

# Required for a complete booking, before service-specific fields
COMPLETION_FIELDS = (
    "customer_name",
    "customer_email",
    "customer_phone",
    "zip_code",
    "service_type",
    "company_name",
)

# Any one of these marks a meaningful interaction worth tracking
MEANINGFUL_FIELDS = (
    "customer_email",
    "customer_phone",
    "customer_name",
    "zip_code",
    "service_type",
    "utm_source",
    "utm_medium",
    "utm_campaign",
    "gclid",
    "referrer",
)


def is_empty_value(value: object) -> bool:
    """Treat None, blank strings and empty collections as empty; False/0 are values."""
    if value is None:
        return True
    if isinstance(value, str):
        return value.strip() == ""
    if isinstance(value, (int, float, bool)):
        return False
    if isinstance(value, (dict, list, tuple, set)):
        return len(value) == 0
    return False


def canonical_field_name(field_name: str) -> str:
    """Canonical name for any known variant, or the name itself."""
    return _VARIANT_INDEX.get(field_name, field_name)


def normalize(raw: Mapping[str, Any] | None) -> dict[str, Any]:
    """Map raw form data to canonical field names.

    Pure function: never raises, never mutates its input.
    """
    if not raw:
        return {}

    normalized: dict[str, Any] = {}
    for canonical, variants in FIELD_MAPPINGS.items():
        for variant in variants:
            value = raw.get(variant)
            if not is_empty_value(value):
                normalized[canonical] = value
                break

    for key, value in raw.items():
        if key in _VARIANT_INDEX or key in normalized:
            continue
        normalized[key] = value

    return normalized


def get_service_fields(service_type: str | None) -> tuple[str, ...]:
    """Service-specific canonical fields for a service type."""
    if not service_type:
        return ()
    return SERVICE_FIELDS.get(service_type, ())


def is_valid_lead_data(data: Mapping[str, Any] | None) -> bool:
    """Whether the payload holds any meaningful interaction.

    Deliberately loose: a single UTM parameter, a referrer or a session id is
    enough.
    """
    mapped = normalize(data)
    if any(not is_empty_value(mapped.get(field)) for field in MEANINGFUL_FIELDS):
        return True
    return not is_empty_value(mapped.get("session_id"))


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def calculate_completion_percentage(
    data: Mapping[str, Any] | None,
    service_type: str | None = None,
) -> int:
    """Percentage of required fields filled, rounded half up.

    Normalization is idempotent, so already-normalized data may be passed.
    """
    mapped = normalize(data)
    required = COMPLETION_FIELDS + get_service_fields(service_type)
    filled = sum(1 for field in required if not is_empty_value(mapped.get(field)))
    return round_half_up(filled / len(required) * 100)
