"""Marketing attribution and lead scoring.

The HTTP layer resolves UTM parameters (query string, cookies); this module
only consumes the already-resolved mapping carried in the form payload.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any
from urllib.parse import parse_qs, urlparse

from bookingpro.core.constants import (
    DEFAULT_LEAD_SCORE,
    SERVICE_LEAD_SCORES,
    UTM_PARAMETERS,
)
from bookingpro.services.field_mapper import is_empty_value


def extract_marketing_source(data: Mapping[str, Any]) -> dict[str, str]:
    """Collect non-empty UTM parameters, filling gaps from the referrer query string."""
    source = {
        param: str(data[param]).strip()
        for param in UTM_PARAMETERS
        if not is_empty_value(data.get(param))
    }

    nested = data.get("marketing_source")
    if isinstance(nested, Mapping):
        for param in UTM_PARAMETERS:
            if param not in source and not is_empty_value(nested.get(param)):
                source[param] = str(nested[param]).strip()

    referrer = source.get("referrer")
    if referrer:
        query = parse_qs(urlparse(referrer).query)
        for param in UTM_PARAMETERS:
            if param not in source and query.get(param):
                source[param] = query[param][0]

    return source


def determine_traffic_source(data: Mapping[str, Any]) -> str:
    """Classify traffic from UTM source/medium, then the referrer."""
    utm_source = str(data.get("utm_source") or "").lower()
    utm_medium = str(data.get("utm_medium") or "").lower()
    referrer = str(data.get("referrer") or "").lower()

    if utm_source:
        if "google" in utm_source:
            return "Google Ads" if "cpc" in utm_medium else "Google Organic"
        if "facebook" in utm_source:
            return "Facebook"
        if "bing" in utm_source:
            return "Bing"
        return utm_source[:1].upper() + utm_source[1:]

    if referrer:
        if "google" in referrer:
            return "Google Organic"
        if "facebook" in referrer:
            return "Facebook"
        if "bing" in referrer:
            return "Bing"
        return "Referral"

    return "Direct"


def calculate_lead_score(data: Mapping[str, Any], completion_percentage: int) -> int:
    """
    Score a lead 0-100.

    - Base score by service type (unknown services score 50)
    - UTM source bonus: google +20, facebook +15, any other +10
    - Up to +20 for form completion
    - +10 each for email and phone
    """
    service = data.get("service_type") or ""
    score = float(SERVICE_LEAD_SCORES.get(service, DEFAULT_LEAD_SCORE))

    utm_source = str(data.get("utm_source") or "").lower()
    if "google" in utm_source:
        score += 20
    elif "facebook" in utm_source:
        score += 15
    elif utm_source:
        score += 10

    score += (completion_percentage / 100) * 20

    if not is_empty_value(data.get("customer_email")):
        score += 10
    if not is_empty_value(data.get("customer_phone")):
        score += 10

    return int(min(100, score))
