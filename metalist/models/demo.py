"""Demo model — an unfinished song a member shares as an MP3.

Visibility:
    public  — listed on the Demos page and the member's profile
    private — only the owner sees it

How many demos a member may add per calendar month depends on their
plan (TierLimits.demos_per_month).
"""

import uuid

from metalist.extensions import db


class Demo(db.Model):
    __tablename__ = "demos"

    VISIBILITIES = ["public", "private"]

    id = db.Column(
        db.String(36), primary_key=True, default=lambda: str(uuid.uuid4())
    )
    profile_id = db.Column(
        db.String(36),
        db.ForeignKey("profiles.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    title = db.Column(db.String(255), nullable=True)
    audio_path = db.Column(db.String(500), nullable=False)
    visibility = db.Column(db.String(20), nullable=False, default="public")
    key = db.Column(db.String(20), nullable=True)  # "E minor"
    tempo = db.Column(db.Integer, nullable=True)  # BPM
    created_at = db.Column(
        db.DateTime(timezone=True), server_default=db.func.now(), index=True
    )

    # --- Relationships ---
    profile = db.relationship("Profile", back_populates="demos")

    def __repr__(self):
        return f"<Demo {self.title or self.id}>"
