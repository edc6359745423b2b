import json
from datetime import date, datetime
from typing import Any

from flask import g, has_request_context, request
from sqlalchemy.orm import Session

from app.coaching.models import AuditEvent, Base, User


def _json_default(value: Any) -> str:
    if isinstance(value, (date, datetime)):
        return value.isoformat()
    return str(value)


def entity_ref(entity: Base) -> tuple[str, str]:
    """(entity_type, entity_id) for a mapped row, e.g. ("WorkoutRoutine", "12")."""
    return type(entity).__name__, str(entity.id)


def record_event(
    s: Session,
    *,
    actor: User | None,
    action: str,
    entity: Base | None = None,
    entity_type: str | None = None,
    entity_id: str | None = None,
    reason: str | None = None,
    metadata: dict[str, Any] | None = None,
    request_id: str | None = None,
) -> AuditEvent:
    """
    Append one row to the audit trail. Actions are "<area>.<verb>"
    (student.invite, workout.check_in, subscription.mark_overdue ...).

    Pass `entity` for a persisted row; its class name and id are recorded.
    `entity_type`/`entity_id` are for targets without a row (a failed login
    records the typed email). Works without a request context (scripts, the
    overdue sync); request id and client IP are then empty.
    """
    if entity is not None:
        entity_type, entity_id = entity_ref(entity)
    in_request = has_request_context()
    rid = request_id or (getattr(g, "request_id", None) if in_request else None)
    ev = AuditEvent(
        request_id=rid,
        actor_user_id=actor.id if actor else None,
        actor_user_email=actor.email if actor else None,
        action=action,
        entity_type=entity_type,
        entity_id=entity_id,
        reason=reason,
        metadata_json=json.dumps(metadata, sort_keys=True, default=_json_default) if metadata else None,
        client_ip=request.remote_addr if in_request else None,
    )
    s.add(ev)
    return ev
