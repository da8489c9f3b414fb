from __future__ import annotations

from estate_crm.authz.capabilities import Capability
from estate_crm.authz.schemas import ADMIN_LEVEL, FOUNDER_LEVEL, Role

ROLE_LEVELS: dict[str, int] = {
    "agent": 1,
    "relationship_manager": 2,
    "sr_relationship_manager": 3,
    "team_leader": 4,
    "sr_team_leader": 5,
    "branch_manager": 6,
    "sr_branch_manager": 7,
    "regional_manager": 8,
    "sr_regional_manager": 9,
    "avp": 10,
    "vp": 11,
    "founding_member": FOUNDER_LEVEL,
    "admin": ADMIN_LEVEL,
}

ROLE_LABELS: dict[str, str] = {
    "agent": "Agent",
    "relationship_manager": "Relationship Manager",
    "sr_relationship_manager": "Sr. Relationship Manager",
    "team_leader": "Team Leader",
    "sr_team_leader": "Sr. Team Leader",
    "branch_manager": "Branch Manager",
    "sr_branch_manager": "Sr. Branch Manager",
    "regional_manager": "Regional Manager",
    "sr_regional_manager": "Sr. Regional Manager",
    "avp": "AVP",
    "vp": "V.P",
    "founding_member": "Founding Member & Director",
    "admin": "Administrator",
}

# Minimum role level at which each capability is granted by default.
CAPABILITY_MIN_LEVELS: dict[Capability, int] = {
    Capability.VIEW_OWN_PROFILE: 1,
    Capability.EDIT_OWN_PROFILE: 1,
    Capability.VIEW_ASSIGNED_LEADS: 1,
    Capability.VIEW_ASSIGNED_PROPERTIES: 1,
    Capability.ADD_NOTES_TO_LEADS: 1,
    Capability.UPDATE_LEAD_STATUS: 1,
    Capability.CALL_LEADS: 1,
    Capability.VIEW_TEAM_LEADS: 4,
    Capability.ASSIGN_LEADS_TO_TEAM: 4,
    Capability.VIEW_TEAM_PERFORMANCE: 4,
    Capability.MANAGE_TEAM_MEMBERS: 4,
    Capability.VIEW_TEAM_HIERARCHY: 4,
    Capability.VIEW_BRANCH_AGENTS: 6,
    Capability.CREATE_AGENTS: 6,
    Capability.EDIT_TEAM_AGENTS: 6,
    Capability.VIEW_BRANCH_ANALYTICS: 6,
    Capability.MANAGE_BRANCH_PROPERTIES: 6,
    Capability.DELETE_AGENTS: 6,
    Capability.CREATE_LEADS: 6,
    Capability.EDIT_LEADS: 6,
    Capability.DELETE_LEADS: 6,
    Capability.VIEW_REGIONAL_DATA: 8,
    Capability.MANAGE_BRANCHES: 8,
    Capability.REGIONAL_ANALYTICS: 8,
    Capability.BULK_OPERATIONS: 8,
    Capability.IMPORT_EXPORT_DATA: 8,
    Capability.COMPANY_ANALYTICS: 10,
    Capability.MANAGE_DEPARTMENTS: 10,
    Capability.STRATEGIC_DECISIONS: 10,
    Capability.MANAGE_ROLES: 10,
    Capability.FULL_SYSTEM_ACCESS: ADMIN_LEVEL,
    Capability.MANAGE_ALL_USERS: ADMIN_LEVEL,
    Capability.SYSTEM_SETTINGS: ADMIN_LEVEL,
}


def permissions_for_level(level: int) -> frozenset[Capability]:
    return frozenset(capability for capability, minimum in CAPABILITY_MIN_LEVELS.items() if level >= minimum)


def default_roles() -> list[Role]:
    return [
        Role(
            id=name,
            name=ROLE_LABELS[name],
            level=level,
            permissions=permissions_for_level(level),
        )
        for name, level in ROLE_LEVELS.items()
    ]
