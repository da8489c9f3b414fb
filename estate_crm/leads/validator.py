from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Mapping

from pydantic import TypeAdapter
from pydantic import ValidationError as PydanticValidationError

from estate_crm.errors import ValidationError
from estate_crm.leads import registry
from estate_crm.leads.registry import LeadSource, LeadStatus, Priority, PropertyType, Purpose
from estate_crm.leads.schemas import BudgetRange, Lead

MISSING = "missing"
INVALID = "invalid"
UNKNOWN_STATUS = "unknown_status"
INVALID_SUB_STATUS = "invalid_sub_status"

_CONDITIONAL_ADAPTERS: dict[str, TypeAdapter[Any]] = {
    name: TypeAdapter(field_type) for name, field_type in registry.CONDITIONAL_FIELD_TYPES.items()
}

_INTAKE_ADAPTERS: dict[str, TypeAdapter[Any]] = {
    "first_name": TypeAdapter(str),
    "last_name": TypeAdapter(str),
    "phone": TypeAdapter(str),
    "country_code": TypeAdapter(str),
    "email": TypeAdapter(str),
    "city": TypeAdapter(str),
    "budget": TypeAdapter(BudgetRange),
    "property_type": TypeAdapter(PropertyType),
    "purpose": TypeAdapter(Purpose),
    "source": TypeAdapter(LeadSource),
    "priority": TypeAdapter(Priority),
    "assigned_to": TypeAdapter(str),
}


@dataclass(slots=True)
class ValidationResult:
    errors: list[ValidationError] = field(default_factory=list)
    fields: dict[str, Any] = field(default_factory=dict)

    @property
    def accepted(self) -> bool:
        return not self.errors


def is_present(value: Any) -> bool:
    if value is None:
        return False
    if isinstance(value, str) and not value.strip():
        return False
    return True


def canonicalize(field_bag: Mapping[str, Any] | None) -> dict[str, Any]:
    return {registry.canonical_field_id(key): value for key, value in (field_bag or {}).items()}


class TransitionValidator:
    """Checks a proposed status change against the status registry.

    All problems are collected before returning so a caller can report every
    missing or invalid field at once.
    """

    def validate(
        self,
        lead: Lead | None,
        proposed_status: str,
        proposed_sub_status: str | None,
        field_bag: Mapping[str, Any] | None,
    ) -> ValidationResult:
        bag = canonicalize(field_bag)
        merged: dict[str, Any] = lead.conditional_fields() if lead is not None else {}
        for name in registry.field_catalog():
            if name in bag:
                merged[name] = bag[name]

        result = ValidationResult()
        self._check_status(proposed_status, proposed_sub_status, result)
        normalized = self._coerce(merged, _CONDITIONAL_ADAPTERS, result)
        if registry.is_known(proposed_status):
            self._check_required(proposed_status, normalized, result)

        if result.accepted:
            result.fields = {name: normalized.get(name) for name in sorted(registry.field_catalog())}
            result.fields["status"] = LeadStatus(proposed_status)
            result.fields["sub_status"] = proposed_sub_status or None
        return result

    def validate_intake(self, field_bag: Mapping[str, Any] | None) -> ValidationResult:
        """Create-mode validation: identity fields plus the initial status rules."""

        bag = canonicalize(field_bag)
        status = bag.get("status") or LeadStatus.NEW.value
        sub_status = bag.get("sub_status") or None

        result = ValidationResult()
        normalized_intake = self._coerce(
            {name: bag[name] for name in registry.INTAKE_FIELDS if name in bag},
            _INTAKE_ADAPTERS,
            result,
        )
        invalid = {error.field for error in result.errors}
        for name in registry.IDENTITY_FIELDS:
            if name not in invalid and not is_present(normalized_intake.get(name)):
                result.errors.append(ValidationError(name, MISSING))

        transition = self.validate(None, status, sub_status, bag)
        result.errors.extend(transition.errors)

        if result.accepted:
            result.fields = {
                **{key: value for key, value in normalized_intake.items() if value is not None},
                **transition.fields,
            }
        return result

    def _check_status(self, status: str, sub_status: str | None, result: ValidationResult) -> None:
        if not registry.is_known(status):
            result.errors.append(ValidationError("status", UNKNOWN_STATUS))
        if sub_status and sub_status not in registry.sub_statuses_of(status):
            result.errors.append(ValidationError("sub_status", INVALID_SUB_STATUS))

    def _check_required(self, status: str, values: Mapping[str, Any], result: ValidationResult) -> None:
        invalid = {error.field for error in result.errors if error.reason == INVALID}
        strict_true = registry.boolean_true_fields_of(status)
        for name in sorted(registry.required_fields_of(status)):
            if name in invalid:
                continue
            value = values.get(name)
            if name in strict_true:
                if value is not True:
                    result.errors.append(ValidationError(name, MISSING))
            elif not is_present(value):
                result.errors.append(ValidationError(name, MISSING))

    @staticmethod
    def _coerce(
        values: Mapping[str, Any],
        adapters: Mapping[str, TypeAdapter[Any]],
        result: ValidationResult,
    ) -> dict[str, Any]:
        coerced: dict[str, Any] = {}
        for name, value in values.items():
            if not is_present(value):
                coerced[name] = None
                continue
            adapter = adapters.get(name)
            if adapter is None:
                coerced[name] = value
                continue
            try:
                item = adapter.validate_python(value)
            except PydanticValidationError:
                result.errors.append(ValidationError(name, INVALID))
                continue
            coerced[name] = item.strip() if isinstance(item, str) else item
        return coerced


transition_validator = TransitionValidator()
