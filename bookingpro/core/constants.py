"""Application constants."""

import re

# Marketing attribution parameters carried through the funnel
UTM_PARAMETERS = (
    "utm_source",
    "utm_medium",
    "utm_campaign",
    "utm_term",
    "utm_content",
    "gclid",
    "referrer",
)

# Raw form keys that must be present on a booking submission (checked in order)
BOOKING_REQUIRED_FIELDS = (
    "service",
    "full_name",
    "email",
    "phone",
    "address",
    "company",
    "selected_date",
    "selected_time",
)

EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")

# Service-specific canonical fields, per service type
SERVICE_FIELDS: dict[str, tuple[str, ...]] = {
    "Roof": ("roof_action", "roof_material", "roof_zip"),
    "Windows": ("windows_action", "windows_replace_qty", "windows_repair_needed", "windows_zip"),
    "Bathroom": ("bathroom_option", "bathroom_zip"),
    "Siding": ("siding_option", "siding_material", "siding_zip"),
    "Kitchen": ("kitchen_action", "kitchen_component", "kitchen_zip"),
    "Decks": ("decks_action", "decks_material", "decks_zip"),
    "ADU": ("adu_action", "adu_type", "adu_zip"),
}

# Estimated deal value per service type (USD)
SERVICE_VALUES: dict[str, int] = {
    "Roof": 15000,
    "Windows": 8000,
    "Bathroom": 12000,
    "Kitchen": 18000,
    "Siding": 10000,
    "Decks": 5000,
    "ADU": 25000,
}

# Base lead score per service type
SERVICE_LEAD_SCORES: dict[str, int] = {
    "Roof": 90,
    "ADU": 95,
    "Kitchen": 85,
    "Bathroom": 80,
    "Siding": 75,
    "Windows": 70,
    "Decks": 60,
}
DEFAULT_LEAD_SCORE = 50

# Dedup action for final submissions
DEDUP_ACTION_SUBMIT = "submit"
