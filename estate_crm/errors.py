from __future__ import annotations

from dataclasses import dataclass, field
from typing import Generic, TypeVar

T = TypeVar("T")


class DomainError(Exception):
    """Base class for user-facing failures returned inside an Outcome."""

    code = "domain_error"


class ValidationError(DomainError):
    """A single user-correctable problem with one field."""

    code = "validation_error"

    def __init__(self, field: str, reason: str) -> None:
        self.field = field
        self.reason = reason
        super().__init__(f"{field}: {reason}")

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, ValidationError):
            return NotImplemented
        return (self.field, self.reason) == (other.field, other.reason)

    def __hash__(self) -> int:
        return hash((self.field, self.reason))


class AuthorizationError(DomainError):
    """Forbidden action. The message never names the missing capability."""

    code = "forbidden"

    def __init__(self, kind: str = "capability", scope: str | None = None) -> None:
        self.kind = kind
        self.scope = scope
        if kind == "scope" and scope is not None:
            message = f"scope '{scope}' is not available"
        else:
            message = "not authorized"
        super().__init__(message)


class ConflictError(DomainError):
    code = "conflict"

    def __init__(self, expected: int | None, actual: int | None) -> None:
        self.expected = expected
        self.actual = actual
        super().__init__(f"version conflict: expected {expected}, found {actual}")


class NotFoundError(DomainError):
    code = "not_found"

    def __init__(self, entity_id: str) -> None:
        self.entity_id = entity_id
        super().__init__(f"entity '{entity_id}' not found")


class StoreUnavailableError(RuntimeError):
    """Raised by store implementations when the backend cannot be reached."""


@dataclass(slots=True)
class Outcome(Generic[T]):
    value: T | None = None
    errors: list[DomainError] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.errors

    @classmethod
    def success(cls, value: T) -> Outcome[T]:
        return cls(value=value)

    @classmethod
    def failure(cls, *errors: DomainError) -> Outcome[T]:
        return cls(errors=list(errors))

    def unwrap(self) -> T:
        if self.errors:
            raise self.errors[0]
        return self.value  # type: ignore[return-value]
