from __future__ import annotations

import json
import logging
from datetime import date, datetime

from sqlalchemy.exc import SQLAlchemyError

from listit.extensions import db
from listit.models import AuditEvent
from listit.utils.observability import get_request_id

logger = logging.getLogger(__name__)


def _json_default(value):
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, (set, frozenset)):
        return sorted(value, key=str)
    return str(value)


def record_audit_event(
    action: str,
    *,
    actor_user_id: int | None = None,
    listing_id: int | None = None,
    details: dict | None = None,
) -> AuditEvent | None:
    """Append an audit row for a moderation action.

    The insert runs in a savepoint: if it fails, the caller's pending work is
    untouched, the failure is logged and ``None`` is returned.
    """
    event = AuditEvent(
        action=(action or "unknown").strip()[:80],
        actor_user_id=actor_user_id,
        listing_id=listing_id,
        request_id=get_request_id()[:80] or None,
        details_json=json.dumps(details or {}, default=_json_default, separators=(",", ":")),
    )
    try:
        with db.session.begin_nested():
            db.session.add(event)
    except SQLAlchemyError:
        logger.exception("audit_event_write_failed action=%s", action)
        return None
    return event
