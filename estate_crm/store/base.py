from __future__ import annotations

from typing import Any, Protocol

from estate_crm.authz.schemas import Actor, OrgUnit, Role
from estate_crm.authz.scope import ScopePredicate
from estate_crm.leads.schemas import Lead


class Store(Protocol):
    """Persistence collaborator consumed by the engine.

    ``save_lead`` raises :class:`estate_crm.errors.ConflictError` when the
    stored version differs from ``expected_version`` (``None`` means insert)
    and returns the saved lead with its new version. Unreachable backends
    raise :class:`estate_crm.errors.StoreUnavailableError`.
    """

    def get_lead(self, lead_id: str) -> Lead | None:
        ...

    def save_lead(self, lead: Lead, expected_version: int | None) -> Lead:
        ...

    def query_leads(self, predicate: ScopePredicate) -> list[Lead]:
        ...

    def get_role(self, role_id: str) -> Role | None:
        ...

    def list_roles(self) -> list[Role]:
        ...

    def save_role(self, role: Role) -> Role:
        """Insert or replace ``role``; raises ``ValidationError("name", "duplicate")`` when another role holds its name."""
        ...

    def delete_role(self, role_id: str) -> bool:
        ...

    def get_actor(self, actor_id: str) -> Actor | None:
        ...

    def get_org_unit(self, actor_id: str) -> OrgUnit | None:
        ...


class EventSink(Protocol):
    def publish(self, event: Any) -> None:
        ...
