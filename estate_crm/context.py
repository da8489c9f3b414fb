from __future__ import annotations

import uuid
from collections.abc import Iterator
from contextlib import contextmanager
from contextvars import ContextVar, Token

correlation_id_var: ContextVar[str | None] = ContextVar("estate_crm_correlation_id", default=None)
actor_id_var: ContextVar[str | None] = ContextVar("estate_crm_actor_id", default=None)


def new_correlation_id() -> str:
    return uuid.uuid4().hex


def set_correlation_id(value: str | None) -> Token[str | None]:
    return correlation_id_var.set(value)


def reset_correlation_id(token: Token[str | None]) -> None:
    correlation_id_var.reset(token)


def get_correlation_id() -> str | None:
    return correlation_id_var.get()


def get_actor_id() -> str | None:
    return actor_id_var.get()


@contextmanager
def operation_scope(actor_id: str, correlation_id: str | None = None) -> Iterator[str]:
    """Bind the acting user and a correlation id for the duration of one operation.

    An id already bound by the caller is kept; otherwise ``correlation_id`` or a
    fresh one is used.
    """

    resolved = get_correlation_id() or correlation_id or new_correlation_id()
    correlation_token = correlation_id_var.set(resolved)
    actor_token = actor_id_var.set(actor_id)
    try:
        yield resolved
    finally:
        actor_id_var.reset(actor_token)
        correlation_id_var.reset(correlation_token)


def get_log_context() -> dict[str, str | None]:
    return {"correlation_id": get_correlation_id(), "actor_id": get_actor_id()}
