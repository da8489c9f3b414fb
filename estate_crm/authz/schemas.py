from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone

from pydantic import BaseModel, ConfigDict, Field, field_validator

from estate_crm.authz.capabilities import Capability

MIN_LEVEL = 1
MAX_NUMBERED_LEVEL = 11
FOUNDER_LEVEL = 12
ADMIN_LEVEL = 13
RESERVED_LEVELS = frozenset({FOUNDER_LEVEL, ADMIN_LEVEL})


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Role(BaseModel):
    model_config = ConfigDict(frozen=True, from_attributes=True)

    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    name: str = Field(min_length=1, max_length=128)
    level: int = Field(ge=MIN_LEVEL, le=ADMIN_LEVEL)
    permissions: frozenset[Capability]
    description: str | None = None
    updated_at: datetime = Field(default_factory=utcnow)

    @field_validator("permissions")
    @classmethod
    def _require_permissions(cls, value: frozenset[Capability]) -> frozenset[Capability]:
        if not value:
            raise ValueError("role must grant at least one permission")
        return value

    @property
    def is_reserved(self) -> bool:
        return self.level in RESERVED_LEVELS


class RoleCreate(BaseModel):
    name: str = Field(min_length=1, max_length=128)
    level: int
    permissions: set[Capability] = Field(default_factory=set)
    description: str | None = None


class RoleUpdate(BaseModel):
    name: str | None = Field(default=None, min_length=1, max_length=128)
    level: int | None = None
    permissions: set[Capability] | None = None
    description: str | None = None


@dataclass(frozen=True, slots=True)
class OrgUnit:
    branch_id: str | None = None
    region_id: str | None = None


@dataclass(slots=True)
class Actor:
    """An authenticated user with its org position already resolved.

    ``direct_reports`` holds the transitive closure of everyone reporting to
    this actor.
    """

    id: str
    role: Role
    org_unit: OrgUnit = field(default_factory=OrgUnit)
    direct_reports: frozenset[str] = field(default_factory=frozenset)
    extra_permissions: frozenset[Capability] = field(default_factory=frozenset)
    correlation_id: str | None = None

    @property
    def level(self) -> int:
        return self.role.level

    @property
    def effective_permissions(self) -> frozenset[Capability]:
        return self.role.permissions | self.extra_permissions
