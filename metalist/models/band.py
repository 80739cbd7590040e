"""Band models.

- Band: public band page (name, slug, links, genres).
- BandMember: membership row per (band, profile). Manually-listed
  members with no account have profile_id = NULL.

Membership state machine (BandMember.status):

    none ──request──▶ pending ──leader──▶ approved | rejected
    none ──invite───▶ invited ──invitee─▶ approved | rejected

The leader row is created "approved" with role "leader" when the band
is created and sits outside the machine.
"""

import uuid

from metalist.extensions import db


class Band(db.Model):
    __tablename__ = "bands"

    id = db.Column(
        db.String(36), primary_key=True, default=lambda: str(uuid.uuid4())
    )
    user_id = db.Column(
        db.String(36),
        db.ForeignKey("profiles.id", ondelete="SET NULL"),
        nullable=True,
    )  # creator; the leader membership is what grants management rights
    name = db.Column(db.String(255), nullable=False)
    slug = db.Column(db.String(80), unique=True, nullable=False, index=True)
    country = db.Column(db.String(100), nullable=True)
    year_formed = db.Column(db.Integer, nullable=True)
    description = db.Column(db.Text, nullable=True)
    logo_url = db.Column(db.String(500), nullable=True)
    instagram_url = db.Column(db.String(500), nullable=True)
    bandcamp_url = db.Column(db.String(500), nullable=True)
    youtube_url = db.Column(db.String(500), nullable=True)
    merch_url = db.Column(db.String(500), nullable=True)
    genre_ids = db.Column(db.JSON, default=list)
    is_published = db.Column(db.Boolean, default=True)
    created_at = db.Column(
        db.DateTime(timezone=True), server_default=db.func.now()
    )

    # --- Relationships ---
    members = db.relationship(
        "BandMember",
        back_populates="band",
        lazy="dynamic",
        cascade="all, delete-orphan",
    )
    releases = db.relationship(
        "Release",
        back_populates="band",
        lazy="dynamic",
        cascade="all, delete-orphan",
    )
    follows = db.relationship(
        "Follow", lazy="dynamic", cascade="all, delete-orphan"
    )

    def __repr__(self):
        return f"<Band {self.name}>"


class BandMember(db.Model):
    __tablename__ = "band_members"

    ROLES = ["leader", "member"]
    STATUSES = ["pending", "approved", "rejected", "invited"]

    id = db.Column(
        db.String(36), primary_key=True, default=lambda: str(uuid.uuid4())
    )
    band_id = db.Column(
        db.String(36),
        db.ForeignKey("bands.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    profile_id = db.Column(
        db.String(36),
        db.ForeignKey("profiles.id", ondelete="CASCADE"),
        nullable=True,
    )
    name = db.Column(db.String(255), nullable=True)
    instrument = db.Column(db.String(255), nullable=True)  # comma-separated
    role = db.Column(db.String(20), nullable=False, default="member")  # leader | member
    status = db.Column(
        db.String(20), nullable=False, default="pending"
    )  # pending | approved | rejected | invited
    display_order = db.Column(db.Integer, nullable=False, default=0)
    join_year = db.Column(db.Integer, nullable=True)
    country = db.Column(db.String(100), nullable=True)
    created_at = db.Column(
        db.DateTime(timezone=True), server_default=db.func.now()
    )
    updated_at = db.Column(
        db.DateTime(timezone=True),
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    __table_args__ = (
        db.UniqueConstraint(
            "band_id", "profile_id", name="uq_band_member_profile"
        ),
    )

    # --- Relationships ---
    band = db.relationship("Band", back_populates="members")
    profile = db.relationship("Profile", back_populates="band_memberships")

    @property
    def instruments(self):
        """Instrument list parsed from the comma-separated column."""
        if not self.instrument:
            return []
        return [i.strip() for i in self.instrument.split(",") if i.strip()]

    @property
    def is_leader(self):
        return self.role == "leader" and self.status == "approved"

    def __repr__(self):
        return f"<BandMember band={self.band_id} profile={self.profile_id} ({self.status})>"
