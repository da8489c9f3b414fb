from __future__ import annotations

import logging
from collections.abc import Iterable, Iterator
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Any

from sqlalchemy import Select, and_, delete, false, func, select, update
from sqlalchemy.exc import IntegrityError, OperationalError
from sqlalchemy.orm import Session, selectinload, sessionmaker

from estate_crm.authz.capabilities import Capability
from estate_crm.authz.schemas import Actor, OrgUnit, Role
from estate_crm.authz.scope import Scope, ScopePredicate
from estate_crm.core.database import Base
from estate_crm.errors import ConflictError, StoreUnavailableError, ValidationError
from estate_crm.leads.schemas import BudgetRange, Lead, LeadNote
from estate_crm.store.models import ActorRecord, LeadNoteRecord, LeadRecord, RoleRecord

logger = logging.getLogger("estate_crm.store")

_LEAD_COLUMNS = (
    "first_name",
    "last_name",
    "phone",
    "country_code",
    "email",
    "city",
    "property_type",
    "purpose",
    "source",
    "status",
    "sub_status",
    "priority",
    "assigned_to",
    "schedule_date",
    "booking_under_name",
    "book_date",
    "agreement_value",
    "choose_property",
    "token_done",
    "last_contacted_at",
    "created_at",
    "updated_at",
)
_DATETIME_COLUMNS = ("schedule_date", "last_contacted_at", "created_at", "updated_at")


def _aware(value: datetime | None) -> datetime | None:
    if value is None or value.tzinfo is not None:
        return value
    return value.replace(tzinfo=timezone.utc)


def _utc(value: datetime | None) -> datetime | None:
    # SQLite drops the offset, so values are written as UTC.
    if value is None or value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc)


def apply_scope_filter(query: Select[Any], predicate: ScopePredicate) -> Select[Any]:
    """Restrict a lead query to the rows ``predicate`` admits."""

    if predicate.scope == Scope.ALL:
        return query
    if predicate.scope == Scope.OWN:
        return query.where(LeadRecord.assigned_to == predicate.actor_id)
    if predicate.scope == Scope.TEAM:
        return query.where(LeadRecord.assigned_to.in_(sorted(predicate.member_ids)))
    if predicate.scope == Scope.BRANCH:
        if predicate.branch_id is None:
            return query.where(false())
        return query.where(
            LeadRecord.assigned_to.in_(select(ActorRecord.id).where(ActorRecord.branch_id == predicate.branch_id))
        )
    if predicate.region_id is None:
        return query.where(false())
    return query.where(
        LeadRecord.assigned_to.in_(select(ActorRecord.id).where(ActorRecord.region_id == predicate.region_id))
    )


class SqlAlchemyStore:
    """Relational store using ``row_version`` compare-and-swap for leads."""

    def __init__(self, session_factory: sessionmaker) -> None:
        self._session_factory = session_factory

    def create_schema(self) -> None:
        with self._session() as session:
            Base.metadata.create_all(bind=session.get_bind())

    @contextmanager
    def _session(self) -> Iterator[Session]:
        try:
            with self._session_factory() as session:
                yield session
        except OperationalError as exc:
            logger.error("store unavailable", extra={"error": str(exc.orig)})
            raise StoreUnavailableError(str(exc.orig)) from exc

    def add_actor(
        self,
        actor_id: str,
        role_id: str,
        *,
        branch_id: str | None = None,
        region_id: str | None = None,
        reports_to: str | None = None,
        extra_permissions: Iterable[Capability] = (),
    ) -> None:
        with self._session() as session:
            session.merge(
                ActorRecord(
                    id=actor_id,
                    role_id=role_id,
                    branch_id=branch_id,
                    region_id=region_id,
                    reports_to=reports_to,
                    extra_permissions=sorted(str(item) for item in extra_permissions),
                )
            )
            session.commit()

    def get_lead(self, lead_id: str) -> Lead | None:
        with self._session() as session:
            row = session.scalar(
                select(LeadRecord).options(selectinload(LeadRecord.notes)).where(LeadRecord.id == lead_id)
            )
            return self._to_lead(row) if row is not None else None

    def save_lead(self, lead: Lead, expected_version: int | None) -> Lead:
        values = self._lead_values(lead)
        with self._session() as session:
            if expected_version is None:
                session.add(LeadRecord(id=lead.id, row_version=1, **values))
                try:
                    session.flush()
                except IntegrityError:
                    session.rollback()
                    actual = session.scalar(select(LeadRecord.row_version).where(LeadRecord.id == lead.id))
                    raise ConflictError(expected=None, actual=actual) from None
            else:
                result = session.execute(
                    update(LeadRecord)
                    .where(and_(LeadRecord.id == lead.id, LeadRecord.row_version == expected_version))
                    .values(row_version=LeadRecord.row_version + 1, **values)
                )
                if result.rowcount == 0:
                    session.rollback()
                    actual = session.scalar(select(LeadRecord.row_version).where(LeadRecord.id == lead.id))
                    raise ConflictError(expected=expected_version, actual=actual)

            self._append_notes(session, lead)
            session.commit()

        saved = self.get_lead(lead.id)
        if saved is None:
            raise StoreUnavailableError(f"lead '{lead.id}' vanished after commit")
        return saved

    def query_leads(self, predicate: ScopePredicate) -> list[Lead]:
        query = apply_scope_filter(select(LeadRecord).options(selectinload(LeadRecord.notes)), predicate)
        query = query.order_by(LeadRecord.created_at.desc())
        with self._session() as session:
            return [self._to_lead(row) for row in session.scalars(query).all()]

    def get_role(self, role_id: str) -> Role | None:
        with self._session() as session:
            row = session.get(RoleRecord, role_id)
            return self._to_role(row) if row is not None else None

    def list_roles(self) -> list[Role]:
        with self._session() as session:
            rows = session.scalars(select(RoleRecord).order_by(RoleRecord.level.desc(), RoleRecord.name)).all()
            return [self._to_role(row) for row in rows]

    def save_role(self, role: Role) -> Role:
        with self._session() as session:
            session.merge(
                RoleRecord(
                    id=role.id,
                    name=role.name,
                    level=role.level,
                    permissions=sorted(str(item) for item in role.permissions),
                    description=role.description,
                    updated_at=_utc(role.updated_at),
                )
            )
            try:
                session.commit()
            except IntegrityError as exc:
                session.rollback()
                raise ValidationError("name", "duplicate") from exc
        return role

    def delete_role(self, role_id: str) -> bool:
        with self._session() as session:
            result = session.execute(delete(RoleRecord).where(RoleRecord.id == role_id))
            session.commit()
            return result.rowcount > 0

    def get_actor(self, actor_id: str) -> Actor | None:
        with self._session() as session:
            record = session.get(ActorRecord, actor_id)
            if record is None:
                return None
            role_row = session.get(RoleRecord, record.role_id)
            if role_row is None:
                return None
            return Actor(
                id=record.id,
                role=self._to_role(role_row),
                org_unit=OrgUnit(branch_id=record.branch_id, region_id=record.region_id),
                direct_reports=self._report_closure(session, record.id),
                extra_permissions=frozenset(Capability(item) for item in record.extra_permissions or []),
            )

    def get_org_unit(self, actor_id: str) -> OrgUnit | None:
        with self._session() as session:
            record = session.get(ActorRecord, actor_id)
            if record is None:
                return None
            return OrgUnit(branch_id=record.branch_id, region_id=record.region_id)

    @staticmethod
    def _report_closure(session: Session, actor_id: str) -> frozenset[str]:
        seen: set[str] = set()
        frontier = [actor_id]
        while frontier:
            rows = session.scalars(select(ActorRecord.id).where(ActorRecord.reports_to.in_(frontier))).all()
            frontier = [row for row in rows if row not in seen and row != actor_id]
            seen.update(frontier)
        return frozenset(seen)

    @staticmethod
    def _append_notes(session: Session, lead: Lead) -> None:
        stored = set(session.scalars(select(LeadNoteRecord.id).where(LeadNoteRecord.lead_id == lead.id)).all())
        position = session.scalar(
            select(func.coalesce(func.max(LeadNoteRecord.position), -1)).where(LeadNoteRecord.lead_id == lead.id)
        )
        for note in lead.notes:
            if note.id in stored:
                continue
            position += 1
            session.add(
                LeadNoteRecord(
                    id=note.id,
                    lead_id=lead.id,
                    position=position,
                    author_id=note.author_id,
                    body=note.body,
                    kind=note.kind,
                    created_at=_utc(note.created_at),
                )
            )

    @staticmethod
    def _lead_values(lead: Lead) -> dict[str, Any]:
        values = {name: getattr(lead, name) for name in _LEAD_COLUMNS}
        for name in ("property_type", "purpose", "source", "status", "priority"):
            values[name] = str(values[name])
        values["budget_min"] = lead.budget.min if lead.budget is not None else None
        values["budget_max"] = lead.budget.max if lead.budget is not None else None
        for name in _DATETIME_COLUMNS:
            values[name] = _utc(values[name])
        return values

    @staticmethod
    def _to_lead(row: LeadRecord) -> Lead:
        payload: dict[str, Any] = {name: getattr(row, name) for name in _LEAD_COLUMNS}
        for name in _DATETIME_COLUMNS:
            payload[name] = _aware(payload[name])
        if row.budget_min is not None or row.budget_max is not None:
            payload["budget"] = BudgetRange(min=row.budget_min, max=row.budget_max)
        payload["notes"] = [
            LeadNote(
                id=note.id,
                author_id=note.author_id,
                body=note.body,
                kind=note.kind,
                created_at=_aware(note.created_at),
            )
            for note in row.notes
        ]
        return Lead(id=row.id, version=row.row_version, **payload)

    @staticmethod
    def _to_role(row: RoleRecord) -> Role:
        return Role(
            id=row.id,
            name=row.name,
            level=row.level,
            permissions=frozenset(Capability(item) for item in row.permissions),
            description=row.description,
            updated_at=_aware(row.updated_at),
        )
