from __future__ import annotations

import logging
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import replace
from threading import Lock

from pydantic import ValidationError as PydanticValidationError

from estate_crm import audit
from estate_crm.authz.capabilities import Capability
from estate_crm.authz.hierarchy import can_manage, can_manage_level, has_permission
from estate_crm.authz.schemas import ADMIN_LEVEL, MIN_LEVEL, Actor, Role, RoleCreate, RoleUpdate, utcnow
from estate_crm.errors import AuthorizationError, DomainError, NotFoundError, Outcome, ValidationError
from estate_crm.metrics import observe_role_mutation
from estate_crm.store.base import Store

logger = logging.getLogger("estate_crm.roles")
_LOCK_STRIPES = 32


class RoleAdminService:
    """Role create/edit/delete guarded by the level ordering.

    ``can_manage`` is re-evaluated against freshly loaded records while the
    role's lock stripe is held, so a level change between read and write is seen.
    """

    def __init__(self, store: Store) -> None:
        self._store = store
        self._locks = tuple(Lock() for _ in range(_LOCK_STRIPES))

    def list_roles(self, actor: Actor) -> Outcome[list[Role]]:
        if not has_permission(actor, Capability.MANAGE_ROLES):
            return Outcome.failure(AuthorizationError())
        roles = sorted(self._store.list_roles(), key=lambda role: (-role.level, role.name))
        return Outcome.success(roles)

    def create_role(self, actor: Actor, dto: RoleCreate) -> Outcome[Role]:
        errors = self._validate_fields(level=dto.level, permissions=dto.permissions)
        if errors:
            return self._fail("create", *errors)
        try:
            role = Role(
                name=dto.name.strip(),
                level=dto.level,
                permissions=frozenset(dto.permissions),
                description=dto.description,
            )
        except PydanticValidationError:
            return self._fail("create", ValidationError("role", "invalid"))

        with self._role_lock(role.id):
            current = self._current_role(actor)
            if current is None or not has_permission(replace(actor, role=current), Capability.MANAGE_ROLES):
                return self._fail("create", AuthorizationError())
            if not can_manage_level(current, role.level):
                return self._fail("create", AuthorizationError())
            try:
                saved = self._store.save_role(role)
            except ValidationError as exc:
                return self._fail("create", exc)

        self._record(actor, "create", before=None, after=saved)
        return Outcome.success(saved)

    def update_role(self, actor: Actor, role_id: str, dto: RoleUpdate) -> Outcome[Role]:
        errors = self._validate_fields(level=dto.level, permissions=dto.permissions)
        if errors:
            return self._fail("update", *errors)

        with self._role_lock(role_id):
            target = self._store.get_role(role_id)
            if target is None:
                return self._fail("update", NotFoundError(role_id))

            current = self._current_role(actor)
            if current is None or not has_permission(replace(actor, role=current), Capability.MANAGE_ROLES):
                return self._fail("update", AuthorizationError())
            if not can_manage(current, target):
                return self._fail("update", AuthorizationError())
            if dto.level is not None and not can_manage_level(current, dto.level):
                return self._fail("update", AuthorizationError())

            try:
                updated = Role(
                    id=target.id,
                    name=dto.name.strip() if dto.name is not None else target.name,
                    level=dto.level if dto.level is not None else target.level,
                    permissions=frozenset(dto.permissions) if dto.permissions is not None else target.permissions,
                    description=dto.description if dto.description is not None else target.description,
                    updated_at=utcnow(),
                )
            except PydanticValidationError:
                return self._fail("update", ValidationError("role", "invalid"))
            try:
                saved = self._store.save_role(updated)
            except ValidationError as exc:
                return self._fail("update", exc)

        self._record(actor, "update", before=target, after=saved)
        return Outcome.success(saved)

    def delete_role(self, actor: Actor, role_id: str) -> Outcome[None]:
        with self._role_lock(role_id):
            target = self._store.get_role(role_id)
            if target is None:
                return self._fail("delete", NotFoundError(role_id))

            current = self._current_role(actor)
            if current is None or not has_permission(replace(actor, role=current), Capability.MANAGE_ROLES):
                return self._fail("delete", AuthorizationError())
            if not can_manage(current, target):
                return self._fail("delete", AuthorizationError())
            self._store.delete_role(role_id)

        self._record(actor, "delete", before=target, after=None)
        return Outcome.success(None)

    def _current_role(self, actor: Actor) -> Role | None:
        return self._store.get_role(actor.role.id)

    @staticmethod
    def _validate_fields(*, level: int | None, permissions: set[Capability] | None) -> list[ValidationError]:
        errors: list[ValidationError] = []
        if level is not None and not MIN_LEVEL <= level <= ADMIN_LEVEL:
            errors.append(ValidationError("level", "out_of_range"))
        if permissions is not None and not permissions:
            errors.append(ValidationError("permissions", "empty"))
        return errors

    @contextmanager
    def _role_lock(self, role_id: str) -> Iterator[None]:
        with self._locks[hash(role_id) % _LOCK_STRIPES]:
            yield

    def _fail(self, action: str, *errors: DomainError) -> Outcome:
        observe_role_mutation(action, errors[0].code)
        return Outcome.failure(*errors)

    def _record(self, actor: Actor, action: str, *, before: Role | None, after: Role | None) -> None:
        observe_role_mutation(action, "ok")
        role = after or before
        logger.info(
            "role.%s",
            action,
            extra={"actor_id": actor.id, "role_id": role.id if role else None, "outcome": "ok"},
        )
        audit.record(
            actor_id=actor.id,
            entity_type="authz.role",
            entity_id=role.id if role else "",
            action=action,
            before=before.model_dump(mode="json") if before else None,
            after=after.model_dump(mode="json") if after else None,
            correlation_id=actor.correlation_id,
        )
