from __future__ import annotations

from collections.abc import Callable

import pytest
from prometheus_client import REGISTRY

from estate_crm import bootstrap
from estate_crm.authz.schemas import Actor
from estate_crm.bootstrap import build_core, scrape_metrics
from estate_crm.core.config import get_settings
from estate_crm.leads.service import LeadLifecycleEngine
from estate_crm.store.memory import InMemoryStore
from factories import make_lead


def _sample(name: str, labels: dict[str, str]) -> float:
    return REGISTRY.get_sample_value(name, labels) or 0.0


def test_transition_outcomes_are_counted(
    engine: LeadLifecycleEngine, store: InMemoryStore, actor: Callable[[str], Actor]
) -> None:
    lead = make_lead(store, "agent-1")
    ok_labels = {"from_status": "new", "to_status": "callback", "outcome": "ok"}
    invalid_labels = {"field": "schedule_date", "reason": "missing"}
    ok_before = _sample("lead_transitions_total", ok_labels)
    invalid_before = _sample("lead_validation_errors_total", invalid_labels)

    engine.transition(actor("agent-1"), lead.id, "schedule_meeting", "f2f", {})
    engine.transition(actor("agent-1"), lead.id, "callback", "called", {}).unwrap()

    assert _sample("lead_transitions_total", ok_labels) == ok_before + 1
    assert _sample("lead_validation_errors_total", invalid_labels) == invalid_before + 1


def test_unknown_target_status_is_not_used_as_a_label(
    engine: LeadLifecycleEngine, store: InMemoryStore, actor: Callable[[str], Actor]
) -> None:
    lead = make_lead(store, "agent-1")
    labels = {"from_status": "new", "to_status": "unknown", "outcome": "validation_error"}
    before = _sample("lead_transitions_total", labels)

    engine.transition(actor("agent-1"), lead.id, "teleport-42", None, {})

    assert _sample("lead_transitions_total", labels) == before + 1
    assert REGISTRY.get_sample_value(
        "lead_transitions_total", {"from_status": "new", "to_status": "teleport-42", "outcome": "validation_error"}
    ) is None


def test_authz_denials_are_counted(engine: LeadLifecycleEngine, actor: Callable[[str], Actor]) -> None:
    before = _sample("authz_denied_total", {"reason": "scope_unavailable"})

    engine.list_leads(actor("agent-1"), "region")

    assert _sample("authz_denied_total", {"reason": "scope_unavailable"}) == before + 1


def test_scrape_is_gated_by_settings(monkeypatch: pytest.MonkeyPatch) -> None:
    assert scrape_metrics() is None

    monkeypatch.setenv("METRICS_ENABLED", "true")
    get_settings.cache_clear()
    payload = scrape_metrics()

    assert payload is not None
    assert b"lead_transitions_total" in payload


def test_build_core_wires_an_in_memory_store_for_tests(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(bootstrap, "configure_logging", lambda: None)

    core = build_core()

    assert isinstance(core.store, InMemoryStore)
    assert core.store.get_role("admin") is not None
    assert core.leads is not None
    assert core.roles.list_roles(Actor(id="x", role=core.store.get_role("admin"))).ok is True
