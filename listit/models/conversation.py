from __future__ import annotations

from datetime import datetime

from listit.extensions import db


class Conversation(db.Model):
    __tablename__ = "conversations"

    id = db.Column(db.Integer, primary_key=True)

    # Participants are stored ordered (a_user_id < b_user_id).
    a_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)
    b_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)
    listing_id = db.Column(db.Integer, nullable=True, index=True)

    created_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)

    __table_args__ = (
        db.UniqueConstraint("a_user_id", "b_user_id", "listing_id", name="uq_conversations_pair_listing"),
    )

    def has_member(self, user_id: int | None) -> bool:
        if user_id is None:
            return False
        return int(user_id) in (int(self.a_user_id), int(self.b_user_id))

    def other_user_id(self, user_id: int) -> int:
        return int(self.b_user_id) if int(self.a_user_id) == int(user_id) else int(self.a_user_id)

    def to_dict(self) -> dict:
        return {
            "id": int(self.id),
            "a_user_id": int(self.a_user_id),
            "b_user_id": int(self.b_user_id),
            "listing_id": int(self.listing_id) if self.listing_id is not None else None,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }


class Message(db.Model):
    __tablename__ = "messages"

    id = db.Column(db.Integer, primary_key=True)
    conversation_id = db.Column(db.Integer, db.ForeignKey("conversations.id"), nullable=False, index=True)
    sender_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False)
    body = db.Column(db.Text, nullable=False, default="")
    created_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)

    sender = db.relationship("User", lazy="joined")
    images = db.relationship(
        "MessageImage",
        order_by="MessageImage.position",
        cascade="all, delete-orphan",
        lazy="select",
    )

    def to_dict(self) -> dict:
        return {
            "id": int(self.id),
            "conversation_id": int(self.conversation_id),
            "sender_id": int(self.sender_id),
            "sender_username": (getattr(self.sender, "username", None) or "") if self.sender is not None else "",
            "body": self.body or "",
            "images": [img.image_data for img in (self.images or [])],
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }


class MessageImage(db.Model):
    __tablename__ = "message_images"

    id = db.Column(db.Integer, primary_key=True)
    message_id = db.Column(db.Integer, db.ForeignKey("messages.id"), nullable=False, index=True)
    image_data = db.Column(db.Text, nullable=False)
    position = db.Column(db.Integer, nullable=False, default=0)
