from __future__ import annotations

from collections.abc import Callable

import pytest

from estate_crm import audit
from estate_crm.authz.capabilities import Capability
from estate_crm.authz.gate import FORBIDDEN, NOT_FOUND, OUT_OF_SCOPE, SCOPE_UNAVAILABLE, PermissionGate
from estate_crm.authz.schemas import Actor
from estate_crm.authz.scope import Scope
from estate_crm.errors import AuthorizationError
from estate_crm.store.memory import InMemoryStore
from factories import make_lead


@pytest.fixture()
def gate(store: InMemoryStore) -> PermissionGate:
    return PermissionGate(store)


def test_missing_capability_is_denied_without_naming_it(
    gate: PermissionGate, actor: Callable[[str], Actor]
) -> None:
    decision = gate.authorize(actor("agent-1"), Capability.DELETE_LEADS, Scope.OWN)

    assert decision.allowed is False
    assert decision.reason == FORBIDDEN
    error = decision.to_error()
    assert isinstance(error, AuthorizationError)
    assert "delete" not in str(error).lower()
    assert str(error) == "not authorized"


def test_unavailable_scope_is_denied(gate: PermissionGate, actor: Callable[[str], Actor]) -> None:
    decision = gate.authorize(actor("srm-1"), Capability.VIEW_ASSIGNED_LEADS, "branch")

    assert decision.reason == SCOPE_UNAVAILABLE
    error = decision.to_error(scope="branch")
    assert isinstance(error, AuthorizationError)
    assert error.kind == "scope"


def test_target_outside_scope_is_denied_and_audited(
    gate: PermissionGate, store: InMemoryStore, actor: Callable[[str], Actor]
) -> None:
    foreign = make_lead(store, "agent-3")

    decision = gate.authorize(actor("tl-1"), Capability.UPDATE_LEAD_STATUS, Scope.TEAM, foreign)

    assert decision.reason == OUT_OF_SCOPE
    assert audit.audit_entries[-1]["entity_id"] == foreign.id
    assert audit.audit_entries[-1]["after"] == {"reason": OUT_OF_SCOPE, "scope": "team"}


def test_target_inside_scope_is_allowed(
    gate: PermissionGate, store: InMemoryStore, actor: Callable[[str], Actor]
) -> None:
    lead = make_lead(store, "agent-2")

    assert gate.authorize(actor("tl-1"), Capability.UPDATE_LEAD_STATUS, Scope.TEAM, lead).allowed is True
    assert gate.authorize(actor("bm-1"), Capability.UPDATE_LEAD_STATUS, Scope.BRANCH, lead).allowed is True
    assert gate.authorize(actor("agent-1"), Capability.UPDATE_LEAD_STATUS, Scope.OWN, lead).allowed is False


def test_bulk_authorization_reports_every_id(
    gate: PermissionGate, store: InMemoryStore, actor: Callable[[str], Actor]
) -> None:
    inside = make_lead(store, "agent-1")
    outside = make_lead(store, "agent-4")

    outcomes = gate.authorize_bulk(
        actor("bm-1"),
        Capability.UPDATE_LEAD_STATUS,
        Scope.BRANCH,
        [inside.id, outside.id, "missing-lead"],
    )

    assert [item.target_id for item in outcomes] == [inside.id, outside.id, "missing-lead"]
    assert [item.allowed for item in outcomes] == [True, False, False]
    assert outcomes[1].decision.reason == OUT_OF_SCOPE
    assert outcomes[2].decision.reason == NOT_FOUND


def test_bulk_authorization_without_capability_denies_each_item(
    gate: PermissionGate, store: InMemoryStore, actor: Callable[[str], Actor]
) -> None:
    lead = make_lead(store, "agent-1")

    outcomes = gate.authorize_bulk(actor("agent-1"), Capability.BULK_OPERATIONS, Scope.OWN, [lead.id, "other"])

    assert len(outcomes) == 2
    assert all(item.decision.reason == FORBIDDEN for item in outcomes)
