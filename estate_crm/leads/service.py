from __future__ import annotations

import logging
from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass, field
from typing import Any

from opentelemetry import trace

from estate_crm.authz.capabilities import Capability
from estate_crm.authz.gate import PermissionGate
from estate_crm.authz.hierarchy import has_permission
from estate_crm.authz.schemas import Actor
from estate_crm.authz.scope import Scope, ScopeResolver, scope_resolver
from estate_crm.context import operation_scope
from estate_crm.core.config import get_settings
from estate_crm.errors import (
    AuthorizationError,
    ConflictError,
    DomainError,
    NotFoundError,
    Outcome,
    ValidationError,
)
from estate_crm.leads import registry
from estate_crm.leads.schemas import ImportRowOutcome, Lead, LeadCreated, LeadNote, LeadStatusChanged, utcnow
from estate_crm.leads.validator import TransitionValidator, transition_validator
from estate_crm.metrics import (
    observe_event_publish_failure,
    observe_import_rows,
    observe_transition,
    observe_validation_error,
    observe_version_conflict,
)
from estate_crm.otel import mark_outcome
from estate_crm.store.base import EventSink, Store

logger = logging.getLogger("estate_crm.leads")
tracer = trace.get_tracer("estate_crm.leads")

STATUS_CHANGE_NOTE = "status_change"


@dataclass(slots=True)
class _PreparedChange:
    updated: Lead | None = None
    errors: list[DomainError] = field(default_factory=list)
    event: Any | None = None


class LeadLifecycleEngine:
    """The only writer of lead records.

    Every mutation goes through authorize, validate, commit and publish, with
    one reload-and-retry when the stored version moved underneath us.
    """

    def __init__(
        self,
        store: Store,
        sink: EventSink,
        *,
        gate: PermissionGate | None = None,
        validator: TransitionValidator | None = None,
        resolver: ScopeResolver | None = None,
    ) -> None:
        self._store = store
        self._sink = sink
        self._resolver = resolver or scope_resolver
        self._gate = gate or PermissionGate(store, self._resolver)
        self._validator = validator or transition_validator
        self._max_attempts = 1 + max(get_settings().transition_conflict_retries, 0)

    def transition(
        self,
        actor: Actor,
        lead_id: str,
        proposed_status: str,
        proposed_sub_status: str | None = None,
        field_bag: Mapping[str, Any] | None = None,
        note: str | None = None,
    ) -> Outcome[Lead]:
        with operation_scope(actor.id, actor.correlation_id), tracer.start_as_current_span("lead.transition") as span:
            span.set_attribute("lead.id", lead_id)
            span.set_attribute("lead.to_status", str(proposed_status))

            from_status = "unknown"

            def prepare(lead: Lead) -> _PreparedChange:
                nonlocal from_status
                from_status = lead.status.value
                span.set_attribute("lead.from_status", from_status)
                return self._prepare_transition(actor, lead, proposed_status, proposed_sub_status, field_bag, note)

            outcome = self._run(actor, lead_id, Capability.UPDATE_LEAD_STATUS, prepare)
            outcome_label = "ok" if outcome.ok else outcome.errors[0].code
            observe_transition(
                from_status=from_status,
                to_status=str(proposed_status) if registry.is_known(proposed_status) else "unknown",
                outcome=outcome_label,
            )
            mark_outcome(span, outcome.errors)
            return outcome

    def create_lead(
        self,
        actor: Actor,
        field_bag: Mapping[str, Any],
        note: str | None = None,
    ) -> Outcome[Lead]:
        with operation_scope(actor.id, actor.correlation_id), tracer.start_as_current_span("lead.create") as span:
            if has_permission(actor, Capability.CREATE_LEADS):
                outcome = self._create(actor, field_bag, note)
            else:
                outcome = Outcome.failure(AuthorizationError())
            if outcome.ok and outcome.value is not None:
                span.set_attribute("lead.id", outcome.value.id)
            mark_outcome(span, outcome.errors)
            return outcome

    def import_leads(self, actor: Actor, rows: Iterable[Mapping[str, Any]]) -> Outcome[list[ImportRowOutcome]]:
        """Create one lead per parsed row; failing rows do not block the others."""

        with operation_scope(actor.id, actor.correlation_id), tracer.start_as_current_span("lead.import") as span:
            if not has_permission(actor, Capability.IMPORT_EXPORT_DATA):
                denied: Outcome[list[ImportRowOutcome]] = Outcome.failure(AuthorizationError())
                mark_outcome(span, denied.errors)
                return denied

            results: list[ImportRowOutcome] = []
            for index, row in enumerate(rows):
                created = self._create(actor, row, None)
                if created.ok and created.value is not None:
                    results.append(ImportRowOutcome(row_index=index, lead_id=created.value.id))
                else:
                    results.append(
                        ImportRowOutcome(row_index=index, errors=[_error_payload(error) for error in created.errors])
                    )

            accepted = sum(1 for item in results if item.ok)
            observe_import_rows("created", accepted)
            observe_import_rows("rejected", len(results) - accepted)
            span.set_attribute("import.rows", len(results))
            mark_outcome(span, None)
            logger.info(
                "lead.import.finished",
                extra={"actor_id": actor.id, "row_count": len(results), "outcome": f"{accepted} created"},
            )
            return Outcome.success(results)

    def add_note(self, actor: Actor, lead_id: str, body: str) -> Outcome[Lead]:
        if not body or not body.strip():
            return Outcome.failure(ValidationError("note", "missing"))

        def prepare(lead: Lead) -> _PreparedChange:
            note = LeadNote(author_id=actor.id, body=body.strip())
            return _PreparedChange(
                updated=lead.model_copy(update={"notes": [*lead.notes, note], "updated_at": utcnow()})
            )

        return self._run(actor, lead_id, Capability.ADD_NOTES_TO_LEADS, prepare)

    def get_lead(self, actor: Actor, lead_id: str) -> Outcome[Lead]:
        lead = self._store.get_lead(lead_id)
        if lead is None:
            return Outcome.failure(NotFoundError(lead_id))
        denied = self._authorize_on(actor, Capability.VIEW_ASSIGNED_LEADS, lead)
        if denied is not None:
            return Outcome.failure(denied)
        return Outcome.success(lead)

    def list_leads(self, actor: Actor, scope: Scope | str) -> Outcome[list[Lead]]:
        """Leads visible under ``scope``. A forbidden scope is an error, never an empty list."""

        decision = self._gate.authorize(actor, Capability.VIEW_ASSIGNED_LEADS, scope)
        if not decision.allowed:
            return Outcome.failure(decision.to_error(scope=str(scope)) or AuthorizationError())
        predicate = self._gate.predicate_for(actor, scope)
        return Outcome.success(self._store.query_leads(predicate))

    def _run(
        self,
        actor: Actor,
        lead_id: str,
        capability: Capability,
        prepare: Callable[[Lead], _PreparedChange],
    ) -> Outcome[Lead]:
        last_conflict: ConflictError | None = None
        for attempt in range(1, self._max_attempts + 1):
            lead = self._store.get_lead(lead_id)
            if lead is None:
                return Outcome.failure(NotFoundError(lead_id))

            denied = self._authorize_on(actor, capability, lead)
            if denied is not None:
                return Outcome.failure(denied)

            change = prepare(lead)
            if change.errors:
                return Outcome.failure(*change.errors)
            if change.updated is None:
                return Outcome.success(lead)

            try:
                saved = self._store.save_lead(change.updated, lead.version)
            except ConflictError as exc:
                last_conflict = exc
                observe_version_conflict("retried" if attempt < self._max_attempts else "surfaced")
                logger.warning(
                    "lead.version_conflict",
                    extra={"lead_id": lead_id, "actor_id": actor.id, "attempt": attempt, "error": str(exc)},
                )
                continue

            if change.event is not None:
                self._publish(change.event)
            return Outcome.success(saved)

        return Outcome.failure(last_conflict or ConflictError(expected=None, actual=None))

    def _prepare_transition(
        self,
        actor: Actor,
        lead: Lead,
        proposed_status: str,
        proposed_sub_status: str | None,
        field_bag: Mapping[str, Any] | None,
        note: str | None,
    ) -> _PreparedChange:
        result = self._validator.validate(lead, proposed_status, proposed_sub_status, field_bag)
        if not result.accepted:
            for error in result.errors:
                observe_validation_error(error.field, error.reason)
            return _PreparedChange(errors=list(result.errors))

        fields = result.fields
        to_status = fields["status"]
        note_body = note.strip() if note and note.strip() else None
        if note_body is None and _is_same_state(lead, fields):
            return _PreparedChange()

        if note_body is None:
            note_body = _auto_note(lead, fields)

        reopened = registry.is_soft_terminal(lead.status) and to_status != lead.status
        if reopened:
            logger.warning(
                "lead.reopened",
                extra={"lead_id": lead.id, "actor_id": actor.id, "from_status": lead.status.value, "to_status": to_status.value},
            )

        now = utcnow()
        updated = lead.model_copy(
            update={
                **fields,
                "notes": [*lead.notes, LeadNote(author_id=actor.id, body=note_body, kind=STATUS_CHANGE_NOTE, created_at=now)],
                "last_contacted_at": now,
                "updated_at": now,
            }
        )
        event = None
        if to_status != lead.status or fields["sub_status"] != lead.sub_status:
            event = LeadStatusChanged(
                lead_id=lead.id,
                from_status=lead.status,
                to_status=to_status,
                from_sub_status=lead.sub_status,
                to_sub_status=fields["sub_status"],
                actor_id=actor.id,
                timestamp=now,
                reopened=reopened,
                correlation_id=actor.correlation_id,
            )
            logger.info(
                "lead.status_changed",
                extra={"lead_id": lead.id, "actor_id": actor.id, "from_status": lead.status.value, "to_status": to_status.value},
            )
        return _PreparedChange(updated=updated, event=event)

    def _create(self, actor: Actor, field_bag: Mapping[str, Any], note: str | None) -> Outcome[Lead]:
        result = self._validator.validate_intake(field_bag)
        if not result.accepted:
            for error in result.errors:
                observe_validation_error(error.field, error.reason)
            return Outcome.failure(*result.errors)

        fields = dict(result.fields)
        assigned_to = fields.pop("assigned_to", None) or actor.id
        if assigned_to != actor.id:
            org_unit = self._store.get_org_unit(assigned_to)
            if org_unit is None:
                return Outcome.failure(NotFoundError(assigned_to))
            if self._resolver.narrowest_scope_containing(actor, assigned_to, org_unit) is None:
                return Outcome.failure(AuthorizationError(kind="scope"))

        fields.setdefault("country_code", get_settings().default_country_code)
        notes = [LeadNote(author_id=actor.id, body=note.strip())] if note and note.strip() else []
        lead = Lead(**fields, assigned_to=assigned_to, notes=notes)
        saved = self._store.save_lead(lead, None)

        self._publish(
            LeadCreated(
                lead_id=saved.id,
                status=saved.status,
                actor_id=actor.id,
                assigned_to=saved.assigned_to,
                correlation_id=actor.correlation_id,
            )
        )
        logger.info("lead.created", extra={"lead_id": saved.id, "actor_id": actor.id, "to_status": saved.status.value})
        return Outcome.success(saved)

    def _authorize_on(self, actor: Actor, capability: Capability, lead: Lead) -> DomainError | None:
        org_unit = self._store.get_org_unit(lead.assigned_to) if lead.assigned_to else None
        scope = self._resolver.narrowest_scope_containing(actor, lead.assigned_to, org_unit) or Scope.OWN
        decision = self._gate.authorize(actor, capability, scope, lead)
        if decision.allowed:
            return None
        return decision.to_error(entity_id=lead.id, scope=scope.value)

    def _publish(self, event: Any) -> None:
        try:
            self._sink.publish(event)
        except Exception:
            # The write stays committed.
            observe_event_publish_failure(event.event_type)
            logger.exception(
                "lead.event_publish_failed",
                extra={"lead_id": getattr(event, "lead_id", None), "outcome": "publish_failed"},
            )


def _is_same_state(lead: Lead, fields: Mapping[str, Any]) -> bool:
    if lead.status != fields["status"] or (lead.sub_status or None) != fields["sub_status"]:
        return False
    current = lead.conditional_fields()
    return all(current.get(name) == fields.get(name) for name in registry.field_catalog())


def _auto_note(lead: Lead, fields: Mapping[str, Any]) -> str:
    to_status = fields["status"]
    if to_status == lead.status and fields["sub_status"] == lead.sub_status:
        return f"Status details updated for {registry.label_of(to_status)}"
    text = f"Status changed from {registry.label_of(lead.status)} to {registry.label_of(to_status)}"
    if fields["sub_status"]:
        text = f"{text} ({fields['sub_status']})"
    return text


def _error_payload(error: DomainError) -> dict[str, str]:
    if isinstance(error, ValidationError):
        return {"field": error.field, "reason": error.reason}
    if isinstance(error, NotFoundError):
        return {"field": "assigned_to", "reason": error.code}
    return {"field": "", "reason": error.code}
