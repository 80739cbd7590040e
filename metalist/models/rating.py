"""Rating and review models.

Scores are on the 0-20 scale with at most one decimal place.
One rating and one review per (release, user).
"""

import uuid

from metalist.extensions import db


class Rating(db.Model):
    __tablename__ = "ratings"

    id = db.Column(
        db.String(36), primary_key=True, default=lambda: str(uuid.uuid4())
    )
    release_id = db.Column(
        db.String(36),
        db.ForeignKey("releases.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    user_id = db.Column(
        db.String(36),
        db.ForeignKey("profiles.id", ondelete="CASCADE"),
        nullable=False,
    )
    score = db.Column(db.Float, nullable=False)
    created_at = db.Column(
        db.DateTime(timezone=True), server_default=db.func.now()
    )
    updated_at = db.Column(
        db.DateTime(timezone=True),
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    __table_args__ = (
        db.UniqueConstraint("release_id", "user_id", name="uq_rating_release_user"),
    )

    # --- Relationships ---
    release = db.relationship("Release", back_populates="ratings")

    def __repr__(self):
        return f"<Rating {self.score} release={self.release_id}>"


class Review(db.Model):
    __tablename__ = "reviews"

    id = db.Column(
        db.String(36), primary_key=True, default=lambda: str(uuid.uuid4())
    )
    release_id = db.Column(
        db.String(36),
        db.ForeignKey("releases.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    user_id = db.Column(
        db.String(36),
        db.ForeignKey("profiles.id", ondelete="CASCADE"),
        nullable=False,
    )
    title = db.Column(db.String(255), nullable=False)
    content = db.Column(db.Text, nullable=False)
    rating = db.Column(db.Float, nullable=True)  # optional score quoted in the review
    created_at = db.Column(
        db.DateTime(timezone=True), server_default=db.func.now()
    )
    updated_at = db.Column(
        db.DateTime(timezone=True),
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    __table_args__ = (
        db.UniqueConstraint("release_id", "user_id", name="uq_review_release_user"),
    )

    # --- Relationships ---
    release = db.relationship("Release", back_populates="reviews")
    author = db.relationship("Profile", back_populates="reviews")

    def __repr__(self):
        return f"<Review {self.title}>"
