from __future__ import annotations

from collections.abc import Callable, Generator

import pytest

from estate_crm import audit
from estate_crm.authz.schemas import Actor
from estate_crm.authz.seed import default_roles
from estate_crm.core.config import get_settings
from estate_crm.events import InProcessEventSink
from estate_crm.leads.service import LeadLifecycleEngine
from estate_crm.store.memory import InMemoryStore
from factories import seed_org


@pytest.fixture(autouse=True)
def setup_env(monkeypatch: pytest.MonkeyPatch) -> Generator[None, None, None]:
    monkeypatch.setenv("APP_ENV", "test")
    get_settings.cache_clear()
    audit.clear()
    yield
    get_settings.cache_clear()
    audit.clear()


@pytest.fixture()
def store() -> InMemoryStore:
    memory_store = InMemoryStore(default_roles())
    seed_org(memory_store)
    return memory_store


@pytest.fixture()
def sink() -> InProcessEventSink:
    return InProcessEventSink()


@pytest.fixture()
def engine(store: InMemoryStore, sink: InProcessEventSink) -> LeadLifecycleEngine:
    return LeadLifecycleEngine(store, sink)


@pytest.fixture()
def actor(store: InMemoryStore) -> Callable[[str], Actor]:
    def _load(actor_id: str) -> Actor:
        loaded = store.get_actor(actor_id)
        assert loaded is not None, actor_id
        return loaded

    return _load
