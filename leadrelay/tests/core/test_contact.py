"""Tests for contact extraction and CRM parameter mapping."""

import pytest

from leadrelay.core.contact import extract_contact, get_field_value, to_crm_params
from leadrelay.core.models import ContactRecord, FormField, InboundEvent


def make_event(*fields: tuple[str, str], visitor_id: str = "v-1") -> InboundEvent:
    """Build a pre-chat event with the given (name, value) fields."""
    return InboundEvent(
        event="prechat:formsubmission",
        visitor_id=visitor_id,
        property_url="https://example.com/pricing",
        fields=tuple(FormField(name, value) for name, value in fields),
    )


class TestFieldLookup:
    """Tests for case-insensitive field lookup."""

    @pytest.mark.parametrize("name", ["Email", "EMAIL", "email", "eMaIl"])
    def test_lookup_ignores_case(self, name: str) -> None:
        event = make_event((name, "a@b.com"))
        assert get_field_value(event, "Email") == "a@b.com"

    def test_missing_field_is_empty_string(self) -> None:
        event = make_event(("Email", "a@b.com"))
        assert get_field_value(event, "Country") == ""

    def test_first_match_wins(self) -> None:
        event = make_event(("Email", "first@b.com"), ("email", "second@b.com"))
        assert get_field_value(event, "Email") == "first@b.com"


class TestExtractContact:
    """Tests for building a ContactRecord from an event."""

    def test_email_and_phone(self) -> None:
        event = make_event(("Email", "a@b.com"), ("Phone Number", "555"))

        contact = extract_contact(event)

        assert contact is not None
        assert contact.email == "a@b.com"
        assert contact.phone == "555"
        assert contact.country == ""

    def test_carries_visitor_and_url(self) -> None:
        event = make_event(("Email", "a@b.com"), ("Country", "PT"), visitor_id="v-42")

        contact = extract_contact(event)

        assert contact is not None
        assert contact.country == "PT"
        assert contact.visitor_id == "v-42"
        assert contact.property_url == "https://example.com/pricing"

    def test_missing_email_returns_none(self) -> None:
        event = make_event(("Phone Number", "555"))
        assert extract_contact(event) is None

    def test_blank_email_returns_none(self) -> None:
        event = make_event(("Email", "   "))
        assert extract_contact(event) is None

    def test_contact_record_rejects_empty_email(self) -> None:
        with pytest.raises(ValueError, match="email"):
            ContactRecord(email="")


class TestInboundEventParsing:
    """Tests for InboundEvent.from_payload."""

    def test_parses_widget_payload(self) -> None:
        event = InboundEvent.from_payload(
            {
                "event": "prechat:formsubmission",
                "visitor_id": "abc",
                "property_url": "https://example.com",
                "fields": [
                    {"name": "Email", "value": "a@b.com"},
                    {"name": "Phone Number", "value": 555},
                ],
            }
        )

        assert event.event == "prechat:formsubmission"
        assert event.visitor_id == "abc"
        assert event.fields == (
            FormField("Email", "a@b.com"),
            FormField("Phone Number", "555"),
        )

    def test_skips_malformed_fields(self) -> None:
        event = InboundEvent.from_payload(
            {
                "event": "prechat:formsubmission",
                "fields": ["junk", {"value": "no name"}, {"name": "Email", "value": None}],
            }
        )

        assert event.fields == (FormField("Email", ""),)
        assert event.visitor_id == ""

    def test_missing_fields_key(self) -> None:
        event = InboundEvent.from_payload({"event": "prechat:formsubmission"})
        assert event.fields == ()


class TestCrmParams:
    """Tests for mapping contacts onto CRM parameter names."""

    @pytest.fixture
    def contact(self) -> ContactRecord:
        return ContactRecord(
            email="a@b.com",
            phone="555",
            country="PT",
            visitor_id="v-1",
            property_url="https://example.com",
        )

    def test_default_custom_field_names(self, contact: ContactRecord) -> None:
        params = to_crm_params(contact)

        assert params == {
            "email": "a@b.com",
            "phone": "555",
            "country": "PT",
            "custom1": "v-1",
            "custom2": "https://example.com",
        }

    def test_customfield_prefix(self, contact: ContactRecord) -> None:
        params = to_crm_params(contact, custom_field_prefix="customfield")

        assert params["customfield1"] == "v-1"
        assert params["customfield2"] == "https://example.com"
        assert "custom1" not in params

    def test_list_id_only_when_configured(self, contact: ContactRecord) -> None:
        assert "listid" not in to_crm_params(contact)
        assert to_crm_params(contact, list_id="77")["listid"] == "77"
