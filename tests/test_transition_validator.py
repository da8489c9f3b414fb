from __future__ import annotations

from datetime import date, datetime, timezone
from decimal import Decimal

import pytest

from estate_crm.errors import ValidationError
from estate_crm.leads import registry
from estate_crm.leads.registry import LeadStatus
from estate_crm.leads.schemas import Lead
from estate_crm.leads.validator import TransitionValidator

COMPLETE_BAG = {
    "scheduleDate": "2024-05-10T10:30:00+00:00",
    "bookingUnderName": "Asha Rao",
    "bookDate": "2024-05-01",
    "agreementValue": 5000000,
    "chooseProperty": "p1",
    "tokenDone": True,
}


@pytest.fixture()
def validator() -> TransitionValidator:
    return TransitionValidator()


@pytest.fixture()
def lead() -> Lead:
    return Lead(first_name="Asha", last_name="Rao", phone="9876543210", assigned_to="agent-1")


def test_book_with_blank_name_and_false_token_reports_exactly_two_errors(
    validator: TransitionValidator, lead: Lead
) -> None:
    result = validator.validate(
        lead,
        "book",
        None,
        {
            "bookingUnderName": "",
            "bookDate": "2024-05-01",
            "agreementValue": 5000000,
            "chooseProperty": "p1",
            "tokenDone": False,
        },
    )

    assert result.accepted is False
    assert len(result.errors) == 2
    assert set(result.errors) == {
        ValidationError("booking_under_name", "missing"),
        ValidationError("token_done", "missing"),
    }


def test_callback_with_sub_status_and_no_fields_is_accepted(validator: TransitionValidator, lead: Lead) -> None:
    result = validator.validate(lead, "callback", "interested", {})

    assert result.accepted is True
    assert result.fields["status"] == LeadStatus.CALLBACK
    assert result.fields["sub_status"] == "interested"
    for name in registry.field_catalog():
        assert name in result.fields
        assert result.fields[name] is None


@pytest.mark.parametrize(
    ("status", "sub_status"),
    [(status.value, sub) for status in LeadStatus for sub in registry.sub_statuses_of(status)],
)
def test_catalog_sub_statuses_are_accepted(
    validator: TransitionValidator, lead: Lead, status: str, sub_status: str
) -> None:
    result = validator.validate(lead, status, sub_status, COMPLETE_BAG)

    assert result.accepted is True, result.errors


@pytest.mark.parametrize("status", [status.value for status in LeadStatus])
def test_foreign_sub_status_is_rejected(validator: TransitionValidator, lead: Lead, status: str) -> None:
    result = validator.validate(lead, status, "not_a_sub_status", COMPLETE_BAG)

    assert result.errors == [ValidationError("sub_status", "invalid_sub_status")]


def test_sub_status_from_another_status_is_rejected(validator: TransitionValidator, lead: Lead) -> None:
    result = validator.validate(lead, "drop", "interested", {})

    assert ValidationError("sub_status", "invalid_sub_status") in result.errors


def test_unknown_status_is_a_validation_error(validator: TransitionValidator, lead: Lead) -> None:
    result = validator.validate(lead, "archived", None, {})

    assert result.errors == [ValidationError("status", "unknown_status")]


def test_whitespace_only_value_counts_as_missing(validator: TransitionValidator, lead: Lead) -> None:
    result = validator.validate(lead, "schedule_meeting", "f2f", {"scheduleDate": "   "})

    assert result.errors == [ValidationError("schedule_date", "missing")]


def test_unparseable_value_is_invalid_not_missing(validator: TransitionValidator, lead: Lead) -> None:
    bag = {**COMPLETE_BAG, "bookDate": "first of may"}

    result = validator.validate(lead, "book", None, bag)

    assert result.errors == [ValidationError("book_date", "invalid")]


def test_values_are_coerced_to_declared_types(validator: TransitionValidator, lead: Lead) -> None:
    result = validator.validate(lead, "book", None, {**COMPLETE_BAG, "tokenDone": "true"})

    assert result.accepted is True
    assert result.fields["book_date"] == date(2024, 5, 1)
    assert result.fields["agreement_value"] == Decimal("5000000")
    assert result.fields["token_done"] is True
    assert result.fields["schedule_date"] == datetime(2024, 5, 10, 10, 30, tzinfo=timezone.utc)


def test_values_already_on_the_lead_satisfy_requirements(validator: TransitionValidator, lead: Lead) -> None:
    scheduled = lead.model_copy(update={"schedule_date": datetime(2024, 5, 10, tzinfo=timezone.utc)})

    result = validator.validate(scheduled, "schedule_site_visit", "first_visit", {})

    assert result.accepted is True
    assert result.fields["schedule_date"] == datetime(2024, 5, 10, tzinfo=timezone.utc)


def test_revalidating_a_normalized_lead_yields_no_new_errors(validator: TransitionValidator, lead: Lead) -> None:
    first = validator.validate(lead, "book", None, COMPLETE_BAG)
    assert first.accepted is True

    normalized = lead.model_copy(update=first.fields)
    second = validator.validate(normalized, "book", None, {})

    assert second.errors == []
    assert second.fields == first.fields


def test_intake_requires_identity_fields(validator: TransitionValidator) -> None:
    result = validator.validate_intake({"phone": "  ", "city": "Pune"})

    assert set(result.errors) == {
        ValidationError("first_name", "missing"),
        ValidationError("last_name", "missing"),
        ValidationError("phone", "missing"),
    }


def test_intake_defaults_to_new_and_accepts_camel_case(validator: TransitionValidator) -> None:
    result = validator.validate_intake(
        {"firstName": " Asha ", "lastName": "Rao", "phone": "9876543210", "propertyType": "commercial"}
    )

    assert result.accepted is True
    assert result.fields["first_name"] == "Asha"
    assert result.fields["status"] == LeadStatus.NEW
    assert result.fields["property_type"] == "commercial"


def test_intake_applies_initial_status_requirements(validator: TransitionValidator) -> None:
    result = validator.validate_intake(
        {"first_name": "Asha", "last_name": "Rao", "phone": "9876543210", "status": "schedule_meeting"}
    )

    assert result.errors == [ValidationError("schedule_date", "missing")]


def test_intake_rejects_unknown_enum_values(validator: TransitionValidator) -> None:
    result = validator.validate_intake(
        {"first_name": "Asha", "last_name": "Rao", "phone": "9876543210", "source": "carrier_pigeon"}
    )

    assert result.errors == [ValidationError("source", "invalid")]
