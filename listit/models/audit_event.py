from datetime import datetime
import json

from listit.extensions import db


class AuditEvent(db.Model):
    """Moderation/audit trail for destructive actions (admin deletes, purges)."""

    __tablename__ = "audit_events"

    id = db.Column(db.Integer, primary_key=True)
    created_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow, index=True)

    action = db.Column(db.String(80), nullable=False, index=True)
    actor_user_id = db.Column(db.Integer, nullable=True, index=True)
    listing_id = db.Column(db.Integer, nullable=True, index=True)

    request_id = db.Column(db.String(80), nullable=True)
    details_json = db.Column(db.Text, nullable=True)

    def details(self) -> dict:
        if not self.details_json:
            return {}
        try:
            parsed = json.loads(self.details_json)
        except ValueError:
            return {"raw": str(self.details_json)}
        return parsed if isinstance(parsed, dict) else {"value": parsed}

    def to_dict(self) -> dict:
        return {
            "id": int(self.id),
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "action": self.action or "",
            "actor_user_id": int(self.actor_user_id) if self.actor_user_id is not None else None,
            "listing_id": int(self.listing_id) if self.listing_id is not None else None,
            "request_id": self.request_id or "",
            "details": self.details(),
        }
