"""Release and track models.

A track is "hosted" when its audio lives in our storage bucket
(audio_path set) rather than being an embedded third-party link.
Hosted tracks are what release payments bill for.
"""

import uuid

from metalist.extensions import db


class Release(db.Model):
    __tablename__ = "releases"

    RELEASE_TYPES = ["album", "ep", "single", "demo", "live", "compilation"]

    id = db.Column(
        db.String(36), primary_key=True, default=lambda: str(uuid.uuid4())
    )
    band_id = db.Column(
        db.String(36),
        db.ForeignKey("bands.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    title = db.Column(db.String(255), nullable=False)
    release_type = db.Column(db.String(20), nullable=False, default="album")
    release_year = db.Column(db.Integer, nullable=True)
    description = db.Column(db.Text, nullable=True)
    cover_url = db.Column(db.String(500), nullable=True)
    embed_url = db.Column(db.String(500), nullable=True)  # YouTube / SoundCloud
    created_at = db.Column(
        db.DateTime(timezone=True), server_default=db.func.now()
    )

    # --- Relationships ---
    band = db.relationship("Band", back_populates="releases")
    tracks = db.relationship(
        "Track",
        back_populates="release",
        order_by="Track.track_number",
        cascade="all, delete-orphan",
    )
    ratings = db.relationship(
        "Rating", back_populates="release", lazy="dynamic", cascade="all, delete-orphan"
    )
    reviews = db.relationship(
        "Review", back_populates="release", lazy="dynamic", cascade="all, delete-orphan"
    )

    @property
    def hosted_track_count(self):
        return sum(1 for t in self.tracks if t.is_hosted)

    def __repr__(self):
        return f"<Release {self.title}>"


class Track(db.Model):
    __tablename__ = "tracks"

    id = db.Column(
        db.String(36), primary_key=True, default=lambda: str(uuid.uuid4())
    )
    release_id = db.Column(
        db.String(36),
        db.ForeignKey("releases.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    title = db.Column(db.String(255), nullable=False)
    track_number = db.Column(db.Integer, nullable=False, default=1)
    duration = db.Column(db.String(10), nullable=True)  # "4:31"
    embed_url = db.Column(db.String(500), nullable=True)  # YouTube / SoundCloud / Bandcamp
    audio_path = db.Column(db.String(500), nullable=True)  # storage path when hosted
    lyrics = db.Column(db.Text, nullable=True)
    created_at = db.Column(
        db.DateTime(timezone=True), server_default=db.func.now()
    )

    # --- Relationships ---
    release = db.relationship("Release", back_populates="tracks")

    @property
    def is_hosted(self):
        return bool(self.audio_path)

    def __repr__(self):
        return f"<Track {self.track_number}. {self.title}>"
