"""Profile model.

One row per user (same id as users.id). Everything a user owns hangs
off the profile, so deleting it removes memberships, ratings, reviews,
follows, notifications, payments, demos and the subscription row with it.
"""

from metalist.extensions import db


class Profile(db.Model):
    __tablename__ = "profiles"

    id = db.Column(
        db.String(36),
        db.ForeignKey("users.id", ondelete="CASCADE"),
        primary_key=True,
    )
    username = db.Column(db.String(50), unique=True, nullable=False)
    first_name = db.Column(db.String(100), nullable=True)
    last_name = db.Column(db.String(100), nullable=True)
    bio = db.Column(db.Text, nullable=True)
    is_producer = db.Column(db.Boolean, default=False)
    is_sound_engineer = db.Column(db.Boolean, default=False)
    created_at = db.Column(
        db.DateTime(timezone=True), server_default=db.func.now()
    )

    # --- Relationships ---
    user = db.relationship("User", back_populates="profile")
    band_memberships = db.relationship(
        "BandMember",
        back_populates="profile",
        cascade="all, delete-orphan",
    )
    ratings = db.relationship(
        "Rating", cascade="all, delete-orphan"
    )
    reviews = db.relationship(
        "Review",
        back_populates="author",
        cascade="all, delete-orphan",
    )
    follows = db.relationship(
        "Follow", cascade="all, delete-orphan"
    )
    notifications = db.relationship(
        "Notification", cascade="all, delete-orphan"
    )
    release_payments = db.relationship(
        "ReleasePayment", cascade="all, delete-orphan"
    )
    subscription = db.relationship(
        "Subscription",
        uselist=False,
        cascade="all, delete-orphan",
    )
    demos = db.relationship(
        "Demo",
        back_populates="profile",
        cascade="all, delete-orphan",
    )

    @property
    def display_name(self):
        """Full name when both parts are known, username otherwise."""
        if self.first_name and self.last_name:
            return f"{self.first_name} {self.last_name}"
        return self.username

    def __repr__(self):
        return f"<Profile {self.username}>"
