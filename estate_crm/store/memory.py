from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field
from threading import Lock

from estate_crm.authz.capabilities import Capability
from estate_crm.authz.schemas import Actor, OrgUnit, Role
from estate_crm.authz.scope import ScopePredicate
from estate_crm.errors import ConflictError, ValidationError
from estate_crm.leads.schemas import Lead


@dataclass(slots=True)
class ActorRecord:
    id: str
    role_id: str
    branch_id: str | None = None
    region_id: str | None = None
    reports_to: str | None = None
    extra_permissions: frozenset[Capability] = field(default_factory=frozenset)


def report_closure(actor_id: str, records: Iterable[ActorRecord]) -> frozenset[str]:
    """Everyone reporting to ``actor_id`` directly or through intermediaries."""

    children: dict[str, list[str]] = {}
    for record in records:
        if record.reports_to is not None:
            children.setdefault(record.reports_to, []).append(record.id)

    seen: set[str] = set()
    pending = list(children.get(actor_id, []))
    while pending:
        current = pending.pop()
        if current in seen or current == actor_id:
            continue
        seen.add(current)
        pending.extend(children.get(current, []))
    return frozenset(seen)


class InMemoryStore:
    """Thread-safe store keeping copies of every record it hands out."""

    def __init__(self, roles: Iterable[Role] = ()) -> None:
        self._lock = Lock()
        self._leads: dict[str, Lead] = {}
        self._roles: dict[str, Role] = {role.id: role for role in roles}
        self._actors: dict[str, ActorRecord] = {}

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
        with self._lock:
            self._actors[actor_id] = ActorRecord(
                id=actor_id,
                role_id=role_id,
                branch_id=branch_id,
                region_id=region_id,
                reports_to=reports_to,
                extra_permissions=frozenset(extra_permissions),
            )

    def get_lead(self, lead_id: str) -> Lead | None:
        with self._lock:
            lead = self._leads.get(lead_id)
            return lead.model_copy(deep=True) if lead is not None else None

    def save_lead(self, lead: Lead, expected_version: int | None) -> Lead:
        with self._lock:
            current = self._leads.get(lead.id)
            current_version = current.version if current is not None else None
            if current_version != expected_version:
                raise ConflictError(expected=expected_version, actual=current_version)

            saved = lead.model_copy(update={"version": (current_version or 0) + 1}, deep=True)
            self._leads[saved.id] = saved
            return saved.model_copy(deep=True)

    def query_leads(self, predicate: ScopePredicate) -> list[Lead]:
        with self._lock:
            leads = list(self._leads.values())
            org_units = {actor_id: self._org_unit(actor_id) for actor_id in self._actors}

        matched = [
            lead.model_copy(deep=True)
            for lead in leads
            if predicate.matches(lead.assigned_to, org_units.get(lead.assigned_to) if lead.assigned_to else None)
        ]
        return sorted(matched, key=lambda lead: lead.created_at, reverse=True)

    def get_role(self, role_id: str) -> Role | None:
        with self._lock:
            return self._roles.get(role_id)

    def list_roles(self) -> list[Role]:
        with self._lock:
            return list(self._roles.values())

    def save_role(self, role: Role) -> Role:
        with self._lock:
            if any(other.name == role.name and other.id != role.id for other in self._roles.values()):
                raise ValidationError("name", "duplicate")
            self._roles[role.id] = role
            return role

    def delete_role(self, role_id: str) -> bool:
        with self._lock:
            return self._roles.pop(role_id, None) is not None

    def get_actor(self, actor_id: str) -> Actor | None:
        with self._lock:
            record = self._actors.get(actor_id)
            if record is None:
                return None
            role = self._roles.get(record.role_id)
            if role is None:
                return None
            return Actor(
                id=record.id,
                role=role,
                org_unit=OrgUnit(branch_id=record.branch_id, region_id=record.region_id),
                direct_reports=report_closure(record.id, self._actors.values()),
                extra_permissions=record.extra_permissions,
            )

    def get_org_unit(self, actor_id: str) -> OrgUnit | None:
        with self._lock:
            return self._org_unit(actor_id)

    def _org_unit(self, actor_id: str) -> OrgUnit | None:
        record = self._actors.get(actor_id)
        if record is None:
            return None
        return OrgUnit(branch_id=record.branch_id, region_id=record.region_id)
