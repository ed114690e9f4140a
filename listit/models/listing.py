from datetime import datetime
import sqlalchemy as sa

from listit.extensions import db


class Listing(db.Model):
    __tablename__ = "listings"

    id = db.Column(db.Integer, primary_key=True)

    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)

    title = db.Column(db.String(80), nullable=False, default="", server_default="")
    description = db.Column(db.Text, nullable=False)

    # Free-form "City, Region"; the city token is derived at query time.
    location = db.Column(db.String(80), nullable=False)

    price = db.Column(db.Float, nullable=False, default=0.0)

    # Comma-joined normalized tags, visible to the owner only.
    tags = db.Column(db.Text, nullable=False, default="", server_default="")

    # Cover image (first of the ordered images) as a data URL.
    image_data = db.Column(db.Text, nullable=False)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=datetime.utcnow, server_default=sa.func.now())

    owner = db.relationship("User", lazy="joined")
    images = db.relationship(
        "ListingImage",
        order_by="ListingImage.position",
        cascade="all, delete-orphan",
        lazy="select",
    )

    def tag_list(self) -> list[str]:
        raw = (self.tags or "").strip()
        if not raw:
            return []
        return [t for t in raw.split(",") if t]

    def to_dict(self, *, include_private: bool = False) -> dict:
        payload = {
            "id": self.id,
            "user_id": self.user_id,
            "owner_username": (getattr(self.owner, "username", None) or "") if self.owner is not None else "",
            "title": self.title or "",
            "description": self.description or "",
            "location": self.location or "",
            "price": float(self.price or 0.0),
            "image_data": self.image_data or "",
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }
        if include_private:
            payload["tags"] = self.tag_list()
        return payload


class ListingImage(db.Model):
    __tablename__ = "listing_images"

    id = db.Column(db.Integer, primary_key=True)
    listing_id = db.Column(db.Integer, db.ForeignKey("listings.id"), nullable=False, index=True)
    image_data = db.Column(db.Text, nullable=False)
    position = db.Column(db.Integer, nullable=False, default=0)

    __table_args__ = (
        db.Index("ix_listing_images_listing_position", "listing_id", "position"),
    )
