from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum

from estate_crm.authz.schemas import RESERVED_LEVELS, Actor, OrgUnit
from estate_crm.errors import AuthorizationError


class Scope(StrEnum):
    OWN = "own"
    TEAM = "team"
    BRANCH = "branch"
    REGION = "region"
    ALL = "all"


TEAM_SCOPE_MIN_LEVEL = 4
BRANCH_SCOPE_MIN_LEVEL = 6
REGION_SCOPE_MIN_LEVEL = 8

# Narrowest first; available scopes are always a prefix of this order.
SCOPE_ORDER: tuple[Scope, ...] = (Scope.OWN, Scope.TEAM, Scope.BRANCH, Scope.REGION, Scope.ALL)


@dataclass(frozen=True, slots=True)
class ScopePredicate:
    scope: Scope
    actor_id: str
    member_ids: frozenset[str] = frozenset()
    branch_id: str | None = None
    region_id: str | None = None

    def matches(self, assigned_to: str | None, org_unit: OrgUnit | None) -> bool:
        if self.scope == Scope.ALL:
            return True
        if self.scope == Scope.OWN:
            return assigned_to is not None and assigned_to == self.actor_id
        if self.scope == Scope.TEAM:
            return assigned_to is not None and assigned_to in self.member_ids
        if org_unit is None:
            return False
        if self.scope == Scope.BRANCH:
            return self.branch_id is not None and org_unit.branch_id == self.branch_id
        return self.region_id is not None and org_unit.region_id == self.region_id


class ScopeResolver:
    """Derives what an actor may see from its level and org position.

    The requested scope is only a hint; it is checked against the scopes the
    actor's level unlocks and rebuilt from the actor itself.
    """

    def available_scopes(self, actor: Actor) -> tuple[Scope, ...]:
        level = actor.level
        if level in RESERVED_LEVELS:
            count = 5
        elif level >= REGION_SCOPE_MIN_LEVEL:
            count = 4
        elif level >= BRANCH_SCOPE_MIN_LEVEL:
            count = 3
        elif level >= TEAM_SCOPE_MIN_LEVEL:
            count = 2
        else:
            count = 1
        return SCOPE_ORDER[:count]

    def resolve_predicate(self, actor: Actor, scope: Scope | str) -> ScopePredicate:
        try:
            requested = Scope(scope)
        except ValueError:
            raise AuthorizationError(kind="scope", scope=str(scope)) from None

        if requested not in self.available_scopes(actor):
            raise AuthorizationError(kind="scope", scope=requested.value)

        return ScopePredicate(
            scope=requested,
            actor_id=actor.id,
            member_ids=frozenset(actor.direct_reports) | {actor.id},
            branch_id=actor.org_unit.branch_id,
            region_id=actor.org_unit.region_id,
        )

    def narrowest_scope_containing(
        self,
        actor: Actor,
        assigned_to: str | None,
        org_unit: OrgUnit | None,
    ) -> Scope | None:
        for scope in self.available_scopes(actor):
            if self.resolve_predicate(actor, scope).matches(assigned_to, org_unit):
                return scope
        return None


scope_resolver = ScopeResolver()
