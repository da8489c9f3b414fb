from __future__ import annotations

import uuid
from datetime import date, datetime, timezone
from decimal import Decimal
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, model_validator

from estate_crm.leads.registry import LeadSource, LeadStatus, Priority, PropertyType, Purpose


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class BudgetRange(BaseModel):
    min: Decimal | None = Field(default=None, ge=0)
    max: Decimal | None = Field(default=None, ge=0)

    @model_validator(mode="after")
    def _check_bounds(self) -> BudgetRange:
        if self.min is not None and self.max is not None and self.min > self.max:
            raise ValueError("budget min must not exceed max")
        return self


class LeadNote(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    author_id: str
    body: str = Field(min_length=1)
    kind: str = "note"
    created_at: datetime = Field(default_factory=utcnow)


class Lead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    first_name: str
    last_name: str
    phone: str
    country_code: str = "+91"
    email: str | None = None
    city: str | None = None
    budget: BudgetRange | None = None
    property_type: PropertyType = PropertyType.RESIDENTIAL
    purpose: Purpose = Purpose.BUY
    source: LeadSource = LeadSource.WALK_IN
    status: LeadStatus = LeadStatus.NEW
    sub_status: str | None = None
    priority: Priority = Priority.MEDIUM
    assigned_to: str | None = None
    notes: list[LeadNote] = Field(default_factory=list)

    schedule_date: datetime | None = None
    booking_under_name: str | None = None
    book_date: date | None = None
    agreement_value: Decimal | None = None
    choose_property: str | None = None
    token_done: bool | None = None

    last_contacted_at: datetime | None = None
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)
    version: int = 0

    def conditional_fields(self) -> dict[str, Any]:
        return {
            "schedule_date": self.schedule_date,
            "booking_under_name": self.booking_under_name,
            "book_date": self.book_date,
            "agreement_value": self.agreement_value,
            "choose_property": self.choose_property,
            "token_done": self.token_done,
        }


class LeadStatusChanged(BaseModel):
    event_type: str = "lead.status_changed"
    event_id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    lead_id: str
    from_status: LeadStatus
    to_status: LeadStatus
    from_sub_status: str | None = None
    to_sub_status: str | None = None
    actor_id: str
    timestamp: datetime = Field(default_factory=utcnow)
    reopened: bool = False
    correlation_id: str | None = None


class LeadCreated(BaseModel):
    event_type: str = "lead.created"
    event_id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    lead_id: str
    status: LeadStatus
    actor_id: str
    assigned_to: str | None = None
    timestamp: datetime = Field(default_factory=utcnow)
    correlation_id: str | None = None


class ImportRowOutcome(BaseModel):
    row_index: int
    lead_id: str | None = None
    errors: list[dict[str, str]] = Field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.errors
