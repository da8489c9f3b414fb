from estate_crm.authz.capabilities import Capability
from estate_crm.authz.hierarchy import can_manage, can_manage_level, has_all, has_any, has_permission
from estate_crm.authz.schemas import Actor, OrgUnit, Role, RoleCreate, RoleUpdate
from estate_crm.authz.scope import Scope, ScopePredicate, ScopeResolver, scope_resolver

__all__ = [
    "Actor",
    "Capability",
    "OrgUnit",
    "Role",
    "RoleCreate",
    "RoleUpdate",
    "Scope",
    "ScopePredicate",
    "ScopeResolver",
    "can_manage",
    "can_manage_level",
    "has_all",
    "has_any",
    "has_permission",
    "scope_resolver",
]
