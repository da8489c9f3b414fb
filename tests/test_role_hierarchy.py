from __future__ import annotations

import itertools

import pytest

from estate_crm.authz.capabilities import Capability
from estate_crm.authz.hierarchy import can_manage, can_manage_level, has_all, has_any, has_permission, managed_levels
from estate_crm.authz.schemas import Actor, Role
from estate_crm.authz.seed import default_roles, permissions_for_level


def _role(level: int) -> Role:
    return Role(id=f"role-{level}", name=f"Level {level}", level=level, permissions=permissions_for_level(level))


@pytest.mark.parametrize("role", default_roles(), ids=lambda role: role.id)
def test_no_role_manages_itself(role: Role) -> None:
    assert can_manage(role, role) is False


def test_can_manage_is_never_symmetric() -> None:
    roles = default_roles()
    for first, second in itertools.permutations(roles, 2):
        assert not (can_manage(first, second) and can_manage(second, first)), (first.id, second.id)


def test_level_six_manages_level_five_but_not_its_peers() -> None:
    actor_role = _role(6)

    assert can_manage(actor_role, _role(6)) is False
    assert can_manage(actor_role, _role(5)) is True
    assert can_manage(_role(5), actor_role) is False


def test_reserved_ranks_manage_every_numbered_role() -> None:
    founder = _role(12)
    admin = _role(13)

    for level in range(1, 12):
        assert can_manage(founder, _role(level)) is True
        assert can_manage(admin, _role(level)) is True
    assert can_manage(admin, founder) is True
    assert can_manage(founder, admin) is False


def test_managed_levels_are_strictly_below() -> None:
    assert managed_levels(_role(1)) == []
    assert managed_levels(_role(4)) == [1, 2, 3]
    assert can_manage_level(_role(10), 9) is True
    assert can_manage_level(_role(10), 10) is False


def test_default_catalog_levels() -> None:
    levels = {role.id: role.level for role in default_roles()}

    assert levels["agent"] == 1
    assert levels["branch_manager"] == 6
    assert levels["vp"] == 11
    assert levels["founding_member"] == 12
    assert levels["admin"] == 13


def test_capabilities_accumulate_with_level() -> None:
    assert Capability.UPDATE_LEAD_STATUS in permissions_for_level(1)
    assert Capability.VIEW_TEAM_LEADS not in permissions_for_level(3)
    assert Capability.CREATE_LEADS in permissions_for_level(6)
    assert Capability.IMPORT_EXPORT_DATA not in permissions_for_level(7)
    assert Capability.MANAGE_ROLES not in permissions_for_level(9)
    assert Capability.MANAGE_ROLES in permissions_for_level(10)
    assert Capability.SYSTEM_SETTINGS in permissions_for_level(13)
    for lower, higher in itertools.pairwise(range(1, 14)):
        assert permissions_for_level(lower) <= permissions_for_level(higher)


def test_extra_permissions_extend_the_role() -> None:
    actor = Actor(id="agent-9", role=_role(1), extra_permissions=frozenset({Capability.CREATE_LEADS}))

    assert has_permission(actor, Capability.CREATE_LEADS) is True
    assert has_any(actor, [Capability.DELETE_LEADS, Capability.CALL_LEADS]) is True
    assert has_all(actor, [Capability.CREATE_LEADS, Capability.DELETE_LEADS]) is False
