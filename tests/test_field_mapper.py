"""
Tests for form field normalization and lead heuristics.

Coverage:
- Variant precedence and pass-through of unknown keys
- Meaningful-data heuristic
- Completion percentage
"""

from bookingpro.services import field_mapper
from bookingpro.services.field_mapper import (
    calculate_completion_percentage,
    canonical_field_name,
    is_empty_value,
    is_valid_lead_data,
    normalize,
)


class TestNormalize:
    """Tests for normalize()."""

    def test_maps_variants_to_canonical_names(self):
        result = normalize({
            "full_name": "Jane Doe",
            "email_address": "jane@example.com",
            "phone_number": "5551234567",
            "selected_date": "2026-01-05",
            "selected_time": "09:00",
            "company": "Acme",
        })
        assert result["customer_name"] == "Jane Doe"
        assert result["customer_email"] == "jane@example.com"
        assert result["customer_phone"] == "5551234567"
        assert result["booking_date"] == "2026-01-05"
        assert result["booking_time"] == "09:00"
        assert result["company_name"] == "Acme"

    def test_first_non_empty_variant_wins(self):
        result = normalize({
            "full_name": "",
            "customer_name": "Second",
            "name": "Third",
        })
        assert result["customer_name"] == "Second"

    def test_declaration_order_beats_payload_order(self):
        result = normalize({"name": "Later", "full_name": "First"})
        assert result["customer_name"] == "First"

    def test_service_zip_maps_to_zip_code(self):
        result = normalize({"roof_zip": "90210"})
        assert result["zip_code"] == "90210"
        assert result["roof_zip"] == "90210"

    def test_unknown_keys_pass_through(self):
        result = normalize({"favorite_color": "blue", "email": "a@b.co"})
        assert result["favorite_color"] == "blue"
        assert "email" not in result

    def test_empty_and_none_input(self):
        assert normalize(None) == {}
        assert normalize({}) == {}

    def test_does_not_mutate_input(self):
        raw = {"full_name": "Jane"}
        normalize(raw)
        assert raw == {"full_name": "Jane"}

    def test_idempotent(self):
        once = normalize({"full_name": "Jane", "service": "Roof", "x": 1})
        assert normalize(once) == once

    def test_canonical_field_name(self):
        assert canonical_field_name("email_address") == "customer_email"
        assert canonical_field_name("_roof_material") == "roof_material"
        assert canonical_field_name("unmapped") == "unmapped"


class TestEmptyValues:
    def test_zero_and_false_are_values(self):
        assert not is_empty_value(0)
        assert not is_empty_value(False)

    def test_blank_and_empty_collections(self):
        assert is_empty_value(None)
        assert is_empty_value("   ")
        assert is_empty_value([])
        assert is_empty_value({})


class TestValidLeadData:
    """Tests for the meaningful-interaction heuristic."""

    def test_utm_only_payload_is_valid(self):
        assert is_valid_lead_data({"utm_source": "google"})

    def test_referrer_only_payload_is_valid(self):
        assert is_valid_lead_data({"referrer": "https://example.com"})

    def test_session_only_payload_is_valid(self):
        assert is_valid_lead_data({"session_id": "abc"})

    def test_noise_is_not_valid(self):
        assert not is_valid_lead_data({"form_step": "2", "email": ""})
        assert not is_valid_lead_data(None)


class TestCompletionPercentage:
    """Tests for calculate_completion_percentage()."""

    def test_generic_fields_only(self):
        data = {"full_name": "Jane", "email": "j@x.co", "phone": "555"}
        assert calculate_completion_percentage(data) == 50

    def test_service_fields_extend_required_set(self):
        data = {
            "full_name": "Jane",
            "email": "j@x.co",
            "phone": "555",
            "zip_code": "90210",
            "service": "Roof",
            "company": "Acme",
        }
        # 6 generic + 3 roof fields required; zip_code does not fill roof_zip
        assert calculate_completion_percentage(data, "Roof") == 67

    def test_complete_service_submission(self):
        data = {
            "full_name": "Jane",
            "email": "j@x.co",
            "phone": "555",
            "roof_zip": "90210",
            "service": "Roof",
            "company": "Acme",
            "roof_action": "Replace",
            "roof_material": "Metal",
        }
        assert calculate_completion_percentage(data, "Roof") == 100

    def test_rounds_half_up(self):
        assert field_mapper.round_half_up(12.5) == 13
        assert field_mapper.round_half_up(12.4) == 12

    def test_empty_data(self):
        assert calculate_completion_percentage({}) == 0


class TestServiceFields:

    def test_known_service(self):
        assert field_mapper.get_service_fields("Bathroom") == ("bathroom_option", "bathroom_zip")

    def test_unknown_or_missing_service(self):
        assert field_mapper.get_service_fields("Pool") == ()
        assert field_mapper.get_service_fields(None) == ()
