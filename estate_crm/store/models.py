from __future__ import annotations

from datetime import date, datetime, timezone
from decimal import Decimal

from sqlalchemy import JSON, Boolean, Date, DateTime, ForeignKey, Index, Integer, Numeric, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from estate_crm.core.database import Base


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class LeadRecord(Base):
    __tablename__ = "crm_lead"

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    first_name: Mapped[str] = mapped_column(Text, nullable=False)
    last_name: Mapped[str] = mapped_column(Text, nullable=False)
    phone: Mapped[str] = mapped_column(String(32), nullable=False)
    country_code: Mapped[str] = mapped_column(String(8), nullable=False, default="+91")
    email: Mapped[str | None] = mapped_column(Text, nullable=True)
    city: Mapped[str | None] = mapped_column(Text, nullable=True)
    budget_min: Mapped[Decimal | None] = mapped_column(Numeric(18, 2), nullable=True)
    budget_max: Mapped[Decimal | None] = mapped_column(Numeric(18, 2), nullable=True)
    property_type: Mapped[str] = mapped_column(String(32), nullable=False)
    purpose: Mapped[str] = mapped_column(String(16), nullable=False)
    source: Mapped[str] = mapped_column(String(32), nullable=False)
    status: Mapped[str] = mapped_column(String(32), nullable=False, default="new", server_default="new")
    sub_status: Mapped[str | None] = mapped_column(String(64), nullable=True)
    priority: Mapped[str] = mapped_column(String(16), nullable=False, default="medium")
    assigned_to: Mapped[str | None] = mapped_column(String(64), nullable=True)

    schedule_date: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    booking_under_name: Mapped[str | None] = mapped_column(Text, nullable=True)
    book_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    agreement_value: Mapped[Decimal | None] = mapped_column(Numeric(18, 2), nullable=True)
    choose_property: Mapped[str | None] = mapped_column(String(64), nullable=True)
    token_done: Mapped[bool | None] = mapped_column(Boolean, nullable=True)

    last_contacted_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)
    row_version: Mapped[int] = mapped_column(Integer, nullable=False, default=1, server_default="1")

    notes: Mapped[list[LeadNoteRecord]] = relationship(
        "LeadNoteRecord",
        back_populates="lead",
        cascade="all, delete-orphan",
        order_by="LeadNoteRecord.position",
    )


class LeadNoteRecord(Base):
    __tablename__ = "crm_lead_note"

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    lead_id: Mapped[str] = mapped_column(String(36), ForeignKey("crm_lead.id", ondelete="CASCADE"), nullable=False)
    position: Mapped[int] = mapped_column(Integer, nullable=False)
    author_id: Mapped[str] = mapped_column(String(64), nullable=False)
    body: Mapped[str] = mapped_column(Text, nullable=False)
    kind: Mapped[str] = mapped_column(String(32), nullable=False, default="note")
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)

    lead: Mapped[LeadRecord] = relationship("LeadRecord", back_populates="notes")


class RoleRecord(Base):
    __tablename__ = "authz_role"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    name: Mapped[str] = mapped_column(String(128), nullable=False, unique=True)
    level: Mapped[int] = mapped_column(Integer, nullable=False)
    permissions: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)


class ActorRecord(Base):
    __tablename__ = "authz_actor"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    role_id: Mapped[str] = mapped_column(String(64), ForeignKey("authz_role.id"), nullable=False)
    branch_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    region_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    reports_to: Mapped[str | None] = mapped_column(String(64), nullable=True)
    extra_permissions: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)


Index("ix_crm_lead_assigned_status", LeadRecord.assigned_to, LeadRecord.status)
Index("ix_crm_lead_phone", LeadRecord.phone)
Index("ix_crm_lead_note_lead", LeadNoteRecord.lead_id, LeadNoteRecord.position)
Index("ix_authz_actor_reports_to", ActorRecord.reports_to)
Index("ix_authz_actor_branch_region", ActorRecord.branch_id, ActorRecord.region_id)
