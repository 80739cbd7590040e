"""Follow model — a profile following a band."""

import uuid

from metalist.extensions import db


class Follow(db.Model):
    __tablename__ = "follows"

    id = db.Column(
        db.String(36), primary_key=True, default=lambda: str(uuid.uuid4())
    )
    band_id = db.Column(
        db.String(36),
        db.ForeignKey("bands.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    user_id = db.Column(
        db.String(36),
        db.ForeignKey("profiles.id", ondelete="CASCADE"),
        nullable=False,
    )
    created_at = db.Column(
        db.DateTime(timezone=True), server_default=db.func.now()
    )

    __table_args__ = (
        db.UniqueConstraint("band_id", "user_id", name="uq_follow_band_user"),
    )

    def __repr__(self):
        return f"<Follow user={self.user_id} band={self.band_id}>"
