"""Single source of truth for lead statuses, sub-statuses and required fields.

Every consumer (validators, serving layers, import adapters) reads the table
through this module or through :func:`snapshot`; nothing else keeps a copy.
"""

from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from enum import StrEnum
from typing import Any

CATALOG_VERSION = "2024.1"


class LeadStatus(StrEnum):
    NEW = "new"
    CALLBACK = "callback"
    SCHEDULE_MEETING = "schedule_meeting"
    SCHEDULE_SITE_VISIT = "schedule_site_visit"
    EXPRESSION_OF_INTEREST = "expression_of_interest"
    NEGOTIATION = "negotiation"
    BOOK = "book"
    NOT_INTERESTED = "not_interested"
    DROP = "drop"


class Priority(StrEnum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    URGENT = "urgent"


class LeadSource(StrEnum):
    WEBSITE = "website"
    WHATSAPP = "whatsapp"
    FACEBOOK = "facebook"
    INSTAGRAM = "instagram"
    GOOGLE_ADS = "google_ads"
    REFERRAL = "referral"
    WALK_IN = "walk_in"
    COLD_CALL = "cold_call"
    OTHER = "other"


class PropertyType(StrEnum):
    RESIDENTIAL = "residential"
    COMMERCIAL = "commercial"
    INDUSTRIAL = "industrial"
    LAND = "land"


class Purpose(StrEnum):
    BUY = "buy"
    RENT = "rent"
    LEASE = "lease"


SCHEDULE_DATE = "schedule_date"
BOOKING_UNDER_NAME = "booking_under_name"
BOOK_DATE = "book_date"
AGREEMENT_VALUE = "agreement_value"
CHOOSE_PROPERTY = "choose_property"
TOKEN_DONE = "token_done"

# Booking only counts once the token payment is confirmed, so presence of the
# key alone does not satisfy the requirement.
BOOLEAN_TRUE_REQUIRED: dict[str, frozenset[str]] = {
    LeadStatus.BOOK.value: frozenset({TOKEN_DONE}),
}

CONDITIONAL_FIELD_TYPES: dict[str, Any] = {
    SCHEDULE_DATE: datetime,
    BOOKING_UNDER_NAME: str,
    BOOK_DATE: date,
    AGREEMENT_VALUE: Decimal,
    CHOOSE_PROPERTY: str,
    TOKEN_DONE: bool,
}

IDENTITY_FIELDS: tuple[str, ...] = ("first_name", "last_name", "phone")

INTAKE_FIELDS: tuple[str, ...] = (
    "first_name",
    "last_name",
    "phone",
    "country_code",
    "email",
    "city",
    "budget",
    "property_type",
    "purpose",
    "source",
    "priority",
    "assigned_to",
)

FIELD_ALIASES: dict[str, str] = {
    "scheduleDate": SCHEDULE_DATE,
    "bookingUnderName": BOOKING_UNDER_NAME,
    "bookDate": BOOK_DATE,
    "agreementValue": AGREEMENT_VALUE,
    "chooseProperty": CHOOSE_PROPERTY,
    "tokenDone": TOKEN_DONE,
    "firstName": "first_name",
    "lastName": "last_name",
    "countryCode": "country_code",
    "propertyType": "property_type",
    "type": "property_type",
    "assignedAgent": "assigned_to",
    "assignedTo": "assigned_to",
    "subStatus": "sub_status",
}

_STATUS_LABELS: dict[str, str] = {
    LeadStatus.NEW: "New",
    LeadStatus.CALLBACK: "Callback",
    LeadStatus.SCHEDULE_MEETING: "Schedule Meeting",
    LeadStatus.SCHEDULE_SITE_VISIT: "Schedule Site Visit",
    LeadStatus.EXPRESSION_OF_INTEREST: "Expression of Interest",
    LeadStatus.NEGOTIATION: "Negotiation",
    LeadStatus.BOOK: "Book",
    LeadStatus.NOT_INTERESTED: "Not Interested",
    LeadStatus.DROP: "Drop",
}

_SUB_STATUSES: dict[str, tuple[str, ...]] = {
    LeadStatus.CALLBACK: (
        "interested",
        "called",
        "disconnected",
        "switch_off",
        "call_waiting",
        "to_schedule_meeting",
        "follow_up",
        "plan",
        "postpone",
        "to_schedule_site_visit",
        "need_more_info",
        "not_answered",
        "not_reachable",
        "busy",
    ),
    LeadStatus.SCHEDULE_MEETING: ("re", "f2f", "first_f2f", "cold_client", "warm_client", "hot_client"),
    LeadStatus.SCHEDULE_SITE_VISIT: ("cold", "warm", "hot", "first_visit", "revisit"),
    LeadStatus.NOT_INTERESTED: ("different_location", "different_requirements", "unmatched", "budget"),
    LeadStatus.DROP: (
        "broker",
        "fake_lead",
        "already_booked",
        "wrong_invalid_number",
        "not_looking",
        "purchased_from_others",
    ),
}

_REQUIRED_FIELDS: dict[str, frozenset[str]] = {
    LeadStatus.SCHEDULE_MEETING: frozenset({SCHEDULE_DATE}),
    LeadStatus.SCHEDULE_SITE_VISIT: frozenset({SCHEDULE_DATE}),
    LeadStatus.BOOK: frozenset({BOOKING_UNDER_NAME, BOOK_DATE, AGREEMENT_VALUE, CHOOSE_PROPERTY, TOKEN_DONE}),
}

SOFT_TERMINAL_STATUSES = frozenset({LeadStatus.BOOK, LeadStatus.NOT_INTERESTED, LeadStatus.DROP})
_KNOWN_STATUSES = frozenset(item.value for item in LeadStatus)


def _key(status: Any) -> str:
    return status.value if isinstance(status, LeadStatus) else str(status or "")


def is_known(status: Any) -> bool:
    return _key(status) in _KNOWN_STATUSES


def statuses() -> tuple[str, ...]:
    return tuple(item.value for item in LeadStatus)


def sub_statuses_of(status: Any) -> tuple[str, ...]:
    return _SUB_STATUSES.get(_key(status), ())


def required_fields_of(status: Any) -> frozenset[str]:
    return _REQUIRED_FIELDS.get(_key(status), frozenset())


def boolean_true_fields_of(status: Any) -> frozenset[str]:
    return BOOLEAN_TRUE_REQUIRED.get(_key(status), frozenset())


def is_soft_terminal(status: Any) -> bool:
    return _key(status) in SOFT_TERMINAL_STATUSES


def label_of(status: Any) -> str:
    key = _key(status)
    return _STATUS_LABELS.get(key, key)


def field_catalog() -> frozenset[str]:
    return frozenset(CONDITIONAL_FIELD_TYPES)


def canonical_field_id(field_id: str) -> str:
    return FIELD_ALIASES.get(field_id, field_id)


def snapshot() -> dict[str, Any]:
    """Serializable copy of the whole catalog, tagged with its version."""

    return {
        "version": CATALOG_VERSION,
        "statuses": [
            {
                "value": status.value,
                "label": label_of(status),
                "sub_statuses": list(sub_statuses_of(status)),
                "required_fields": sorted(required_fields_of(status)),
                "soft_terminal": is_soft_terminal(status),
            }
            for status in LeadStatus
        ],
        "fields": sorted(field_catalog()),
    }
