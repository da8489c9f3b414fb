from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass

from estate_crm import audit
from estate_crm.authz.capabilities import Capability
from estate_crm.authz.hierarchy import has_permission
from estate_crm.authz.schemas import Actor
from estate_crm.authz.scope import Scope, ScopePredicate, ScopeResolver, scope_resolver
from estate_crm.errors import AuthorizationError, NotFoundError
from estate_crm.leads.schemas import Lead
from estate_crm.metrics import observe_authz_denied
from estate_crm.store.base import Store

logger = logging.getLogger("estate_crm.authz")

FORBIDDEN = "forbidden"
SCOPE_UNAVAILABLE = "scope_unavailable"
OUT_OF_SCOPE = "out_of_scope"
NOT_FOUND = "not_found"


@dataclass(frozen=True, slots=True)
class Decision:
    allowed: bool
    reason: str | None = None

    @classmethod
    def allow(cls) -> Decision:
        return cls(allowed=True)

    @classmethod
    def deny(cls, reason: str) -> Decision:
        return cls(allowed=False, reason=reason)

    def to_error(self, entity_id: str | None = None, scope: str | None = None) -> AuthorizationError | NotFoundError | None:
        if self.allowed:
            return None
        if self.reason == NOT_FOUND and entity_id is not None:
            return NotFoundError(entity_id)
        if self.reason == SCOPE_UNAVAILABLE:
            return AuthorizationError(kind="scope", scope=scope)
        return AuthorizationError(kind="scope" if self.reason == OUT_OF_SCOPE else "capability")


@dataclass(frozen=True, slots=True)
class BulkItemOutcome:
    target_id: str
    decision: Decision

    @property
    def allowed(self) -> bool:
        return self.decision.allowed


class PermissionGate:
    """Authorizes a single action: capability first, then the scope predicate."""

    def __init__(self, store: Store, resolver: ScopeResolver | None = None) -> None:
        self._store = store
        self._resolver = resolver or scope_resolver

    def authorize(
        self,
        actor: Actor,
        capability: Capability,
        scope: Scope | str,
        target: Lead | None = None,
    ) -> Decision:
        decision, predicate = self._precheck(actor, capability, scope)
        if predicate is None or target is None:
            return decision
        if not self._matches(predicate, target):
            return self._deny(actor, OUT_OF_SCOPE, scope=predicate.scope, entity_id=target.id)
        return decision

    def authorize_bulk(
        self,
        actor: Actor,
        capability: Capability,
        scope: Scope | str,
        target_ids: Iterable[str],
    ) -> list[BulkItemOutcome]:
        """Evaluate every id; callers learn exactly which ones were rejected."""

        ids = list(target_ids)
        decision, predicate = self._precheck(actor, capability, scope)
        if predicate is None:
            return [BulkItemOutcome(target_id=target_id, decision=decision) for target_id in ids]

        outcomes: list[BulkItemOutcome] = []
        for target_id in ids:
            lead = self._store.get_lead(target_id)
            if lead is None:
                outcomes.append(BulkItemOutcome(target_id=target_id, decision=Decision.deny(NOT_FOUND)))
            elif self._matches(predicate, lead):
                outcomes.append(BulkItemOutcome(target_id=target_id, decision=Decision.allow()))
            else:
                outcomes.append(
                    BulkItemOutcome(
                        target_id=target_id,
                        decision=self._deny(actor, OUT_OF_SCOPE, scope=predicate.scope, entity_id=target_id),
                    )
                )
        return outcomes

    def predicate_for(self, actor: Actor, scope: Scope | str) -> ScopePredicate:
        return self._resolver.resolve_predicate(actor, scope)

    def _precheck(
        self,
        actor: Actor,
        capability: Capability,
        scope: Scope | str,
    ) -> tuple[Decision, ScopePredicate | None]:
        if not has_permission(actor, capability):
            return self._deny(actor, FORBIDDEN, scope=scope), None
        try:
            predicate = self._resolver.resolve_predicate(actor, scope)
        except AuthorizationError:
            return self._deny(actor, SCOPE_UNAVAILABLE, scope=scope), None
        return Decision.allow(), predicate

    def _matches(self, predicate: ScopePredicate, lead: Lead) -> bool:
        org_unit = None
        if predicate.scope in {Scope.BRANCH, Scope.REGION} and lead.assigned_to is not None:
            org_unit = self._store.get_org_unit(lead.assigned_to)
        return predicate.matches(lead.assigned_to, org_unit)

    def _deny(self, actor: Actor, reason: str, *, scope: Scope | str, entity_id: str | None = None) -> Decision:
        observe_authz_denied(reason)
        logger.info(
            "authz.denied",
            extra={"actor_id": actor.id, "scope": str(scope), "outcome": reason, "lead_id": entity_id},
        )
        audit.record(
            actor_id=actor.id,
            entity_type="security.authz",
            entity_id=entity_id or "scope",
            action="authz.denied",
            before=None,
            after={"reason": reason, "scope": str(scope)},
            correlation_id=actor.correlation_id,
        )
        return Decision.deny(reason)
