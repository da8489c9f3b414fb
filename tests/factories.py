from __future__ import annotations

from typing import Any

from estate_crm.leads.schemas import Lead

# actor id -> (role id, branch, region, reports_to)
ORG_CHART: dict[str, tuple[str, str | None, str | None, str | None]] = {
    "admin-1": ("admin", None, None, None),
    "founder-1": ("founding_member", None, None, None),
    "avp-1": ("avp", None, "north", None),
    "rm-1": ("regional_manager", "b1", "north", "avp-1"),
    "bm-1": ("branch_manager", "b1", "north", "rm-1"),
    "tl-1": ("team_leader", "b1", "north", "bm-1"),
    "agent-1": ("agent", "b1", "north", "tl-1"),
    "agent-2": ("agent", "b1", "north", "tl-1"),
    "agent-3": ("agent", "b2", "north", None),
    "agent-4": ("agent", "b9", "south", None),
    "srm-1": ("sr_relationship_manager", "b1", "north", None),
}


def seed_org(store: Any) -> None:
    for actor_id, (role_id, branch_id, region_id, reports_to) in ORG_CHART.items():
        store.add_actor(actor_id, role_id, branch_id=branch_id, region_id=region_id, reports_to=reports_to)


def make_lead(store: Any, assigned_to: str | None, **overrides: Any) -> Lead:
    payload: dict[str, Any] = {
        "first_name": "Asha",
        "last_name": "Rao",
        "phone": "9876543210",
        "assigned_to": assigned_to,
    }
    payload.update(overrides)
    return store.save_lead(Lead(**payload), None)
