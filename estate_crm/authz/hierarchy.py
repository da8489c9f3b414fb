from __future__ import annotations

from collections.abc import Iterable

from estate_crm.authz.capabilities import Capability
from estate_crm.authz.schemas import MIN_LEVEL, Actor, Role


def has_permission(actor: Actor, capability: Capability) -> bool:
    return capability in actor.effective_permissions


def has_any(actor: Actor, capabilities: Iterable[Capability]) -> bool:
    granted = actor.effective_permissions
    return any(capability in granted for capability in capabilities)


def has_all(actor: Actor, capabilities: Iterable[Capability]) -> bool:
    granted = actor.effective_permissions
    return all(capability in granted for capability in capabilities)


def can_manage(actor_role: Role, target_role: Role) -> bool:
    """Whether ``actor_role`` may create, edit or delete ``target_role``.

    Equal levels never manage each other, so the relation is irreflexive and
    never symmetric. Reserved ranks manage every numbered level.
    """

    if actor_role.level == target_role.level:
        return False
    if actor_role.is_reserved and not target_role.is_reserved:
        return True
    return actor_role.level > target_role.level


def can_manage_level(actor_role: Role, level: int) -> bool:
    return actor_role.level > level


def managed_levels(actor_role: Role) -> list[int]:
    return list(range(MIN_LEVEL, actor_role.level))
