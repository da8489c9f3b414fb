from __future__ import annotations

import logging
from dataclasses import dataclass

from estate_crm.authz.seed import default_roles
from estate_crm.authz.service import RoleAdminService
from estate_crm.core.config import get_settings
from estate_crm.core.database import build_session_factory
from estate_crm.events import InProcessEventSink
from estate_crm.leads.service import LeadLifecycleEngine
from estate_crm.logging import configure_logging
from estate_crm.metrics import generate_metrics_payload
from estate_crm.otel import setup_otel
from estate_crm.store.base import EventSink, Store
from estate_crm.store.memory import InMemoryStore
from estate_crm.store.sql import SqlAlchemyStore

logger = logging.getLogger("estate_crm.lifecycle")


@dataclass(slots=True)
class CoreServices:
    store: Store
    sink: EventSink
    leads: LeadLifecycleEngine
    roles: RoleAdminService


def build_sql_store(database_url: str | None = None) -> SqlAlchemyStore:
    """Create the schema and seed the default role catalog where it is missing."""

    store = SqlAlchemyStore(build_session_factory(database_url))
    store.create_schema()
    for role in default_roles():
        if store.get_role(role.id) is None:
            store.save_role(role)
    return store


def build_core(store: Store | None = None, sink: EventSink | None = None) -> CoreServices:
    configure_logging()
    settings = get_settings()
    if settings.otel_enabled:
        setup_otel(settings.app_name, True)

    if store is None:
        store = InMemoryStore(default_roles()) if settings.app_env == "test" else build_sql_store()
    sink = sink or InProcessEventSink()
    logger.info("core.started", extra={"outcome": type(store).__name__})
    return CoreServices(
        store=store,
        sink=sink,
        leads=LeadLifecycleEngine(store, sink),
        roles=RoleAdminService(store),
    )


def scrape_metrics() -> bytes | None:
    if not get_settings().metrics_enabled:
        return None
    return generate_metrics_payload()
