from __future__ import annotations

import pytest

from estate_crm.leads import registry
from estate_crm.leads.registry import LeadStatus


@pytest.mark.parametrize("status", list(LeadStatus))
def test_required_fields_are_part_of_the_field_catalog(status: LeadStatus) -> None:
    assert registry.required_fields_of(status) <= registry.field_catalog()


@pytest.mark.parametrize("status", ["bogus", "", None, 42])
def test_unknown_status_lookups_never_raise(status: object) -> None:
    assert registry.is_known(status) is False
    assert registry.sub_statuses_of(status) == ()
    assert registry.required_fields_of(status) == frozenset()
    assert registry.boolean_true_fields_of(status) == frozenset()
    assert registry.is_soft_terminal(status) is False


def test_label_falls_back_to_raw_id() -> None:
    assert registry.label_of("schedule_site_visit") == "Schedule Site Visit"
    assert registry.label_of("mystery") == "mystery"


def test_book_requires_every_booking_field_and_a_true_token() -> None:
    assert registry.required_fields_of("book") == frozenset(
        {"booking_under_name", "book_date", "agreement_value", "choose_property", "token_done"}
    )
    assert registry.boolean_true_fields_of(LeadStatus.BOOK) == frozenset({"token_done"})


def test_meeting_and_site_visit_require_schedule_date() -> None:
    assert registry.required_fields_of("schedule_meeting") == frozenset({"schedule_date"})
    assert registry.required_fields_of("schedule_site_visit") == frozenset({"schedule_date"})
    assert registry.required_fields_of("callback") == frozenset()


def test_sub_statuses_keep_catalog_order() -> None:
    assert registry.sub_statuses_of("schedule_site_visit") == ("cold", "warm", "hot", "first_visit", "revisit")
    assert registry.sub_statuses_of("callback")[0] == "interested"
    assert registry.sub_statuses_of("new") == ()


def test_soft_terminal_statuses() -> None:
    assert {status for status in LeadStatus if registry.is_soft_terminal(status)} == {
        LeadStatus.BOOK,
        LeadStatus.NOT_INTERESTED,
        LeadStatus.DROP,
    }


def test_snapshot_is_versioned_and_covers_every_status() -> None:
    snapshot = registry.snapshot()

    assert snapshot["version"] == registry.CATALOG_VERSION
    assert [item["value"] for item in snapshot["statuses"]] == list(registry.statuses())
    book = next(item for item in snapshot["statuses"] if item["value"] == "book")
    assert book["soft_terminal"] is True
    assert "token_done" in book["required_fields"]
    assert snapshot["fields"] == sorted(registry.field_catalog())


def test_camel_case_field_ids_are_canonicalized() -> None:
    assert registry.canonical_field_id("bookingUnderName") == "booking_under_name"
    assert registry.canonical_field_id("tokenDone") == "token_done"
    assert registry.canonical_field_id("book_date") == "book_date"
