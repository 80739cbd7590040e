"""
Pydantic request/response schemas for the JSON API.

Request bodies are validated here before any service code runs; the
wire format is camelCase, Python attributes are snake_case.
"""

from typing import List, Optional

from flask import request
from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    StrictInt,
    ValidationError,
    field_validator,
    model_validator,
)

from metalist.models.demo import Demo
from metalist.models.release import Release


class InvalidBody(ValueError):
    """Request body is not JSON or does not match its schema."""


def parse_body(schema, error_message=None):
    """Validate the current request's JSON body against `schema`.

    Raises InvalidBody with `error_message` (or the first validation
    error) when the body is missing, malformed or invalid.
    """
    data = request.get_json(silent=True)
    if data is None:
        raise InvalidBody("Invalid JSON body.")
    try:
        return schema.model_validate(data)
    except ValidationError as e:
        if error_message:
            raise InvalidBody(error_message) from e
        first = e.errors()[0]
        field = ".".join(str(p) for p in first["loc"])
        raise InvalidBody(f"{field}: {first['msg']}" if field else first["msg"]) from e


class ApiModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True, str_strip_whitespace=True)


def _validate_score(value):
    """0-20 inclusive, at most one decimal place."""
    if value < 0 or value > 20:
        raise ValueError("Enter a number between 0 and 20")
    if round(value * 10) / 10 != value:
        raise ValueError("Max one decimal place (e.g. 13.5)")
    return value


# ──────────────────────────────────────────────
# Payments
# ──────────────────────────────────────────────

class ReleaseCheckoutRequest(ApiModel):
    release_id: str = Field(..., alias="releaseId", min_length=1)
    band_id: str = Field(..., alias="bandId", min_length=1)
    hosted_track_count: StrictInt = Field(..., alias="hostedTrackCount", gt=0)


class ReleaseCheckoutResponse(ApiModel):
    checkout_url: Optional[str] = Field(None, alias="checkoutUrl")
    already_paid: int = Field(0, alias="alreadyPaid")
    new_billable: int = Field(0, alias="newBillable")
    amount_cents: int = Field(0, alias="amountCents")

    def to_json(self):
        return self.model_dump(by_alias=True)


class SubscribeCheckoutRequest(ApiModel):
    tier: Optional[str] = None


# ──────────────────────────────────────────────
# Auth
# ──────────────────────────────────────────────

class RegisterRequest(ApiModel):
    email: str = Field(..., min_length=3, max_length=255)
    password: str = Field(..., min_length=8)
    username: str = Field(..., min_length=2, max_length=50, pattern=r"^[A-Za-z0-9_.-]+$")
    first_name: Optional[str] = Field(None, alias="firstName", max_length=100)
    last_name: Optional[str] = Field(None, alias="lastName", max_length=100)
    invite_code: Optional[str] = Field(None, alias="inviteCode")

    @field_validator("email")
    @classmethod
    def normalize_email(cls, v):
        v = v.lower()
        if "@" not in v:
            raise ValueError("Enter a valid email address")
        return v


class LoginRequest(ApiModel):
    email: str
    password: str

    @field_validator("email")
    @classmethod
    def normalize_email(cls, v):
        return v.lower()


class ValidateInviteRequest(ApiModel):
    code: str = ""


# ──────────────────────────────────────────────
# Bands & membership
# ──────────────────────────────────────────────

class CreateBandRequest(ApiModel):
    name: str = Field(..., min_length=1, max_length=255)
    country: Optional[str] = None
    year_formed: Optional[int] = Field(None, alias="yearFormed", ge=1900, le=2100)
    description: Optional[str] = None
    logo_url: Optional[str] = Field(None, alias="logoUrl")
    instagram_url: Optional[str] = Field(None, alias="instagramUrl")
    bandcamp_url: Optional[str] = Field(None, alias="bandcampUrl")
    youtube_url: Optional[str] = Field(None, alias="youtubeUrl")
    genre_ids: List[int] = Field(default_factory=list, alias="genreIds")


class JoinRequestBody(ApiModel):
    name: str = Field(..., min_length=1, max_length=255)
    instruments: List[str]

    @field_validator("instruments")
    @classmethod
    def at_least_one_instrument(cls, v):
        v = [i.strip() for i in v if i and i.strip()]
        if not v:
            raise ValueError("Pick at least one instrument")
        return v


class InviteMemberRequest(ApiModel):
    username: str = Field(..., min_length=1)


# ──────────────────────────────────────────────
# Ratings & reviews
# ──────────────────────────────────────────────

class RatingRequest(ApiModel):
    score: float

    @field_validator("score")
    @classmethod
    def check_score(cls, v):
        return _validate_score(v)


class RatingSummary(ApiModel):
    avg_rating: Optional[float] = Field(None, alias="avgRating")
    rating_count: int = Field(0, alias="ratingCount")
    user_rating: Optional[float] = Field(None, alias="userRating")

    def to_json(self):
        return self.model_dump(by_alias=True)


class ReviewRequest(ApiModel):
    title: str = Field(..., min_length=1, max_length=255)
    content: str = Field(..., min_length=1)
    rating: Optional[float] = None

    @field_validator("rating")
    @classmethod
    def round_rating(cls, v):
        if v is None:
            return v
        if v < 0 or v > 20:
            raise ValueError("Rating must be between 0 and 20.")
        return round(v, 1)


# ──────────────────────────────────────────────
# Releases & demos
# ──────────────────────────────────────────────


class TrackInput(ApiModel):
    title: str = Field(..., min_length=1, max_length=255)
    duration: Optional[str] = Field(None, max_length=10)
    embed_url: Optional[str] = Field(None, alias="embedUrl", max_length=500)
    audio_path: Optional[str] = Field(None, alias="audioPath", max_length=500)
    lyrics: Optional[str] = None

    @model_validator(mode="after")
    def needs_a_source(self):
        if not self.embed_url and not self.audio_path:
            raise ValueError("Each track needs an embed URL or an uploaded MP3")
        return self


class CreateReleaseRequest(ApiModel):
    title: str = Field(..., min_length=1, max_length=255)
    release_type: str = Field("album", alias="releaseType")
    release_year: Optional[int] = Field(None, alias="releaseYear", ge=1900, le=2100)
    description: Optional[str] = None
    cover_url: Optional[str] = Field(None, alias="coverUrl", max_length=500)
    tracks: List[TrackInput] = Field(..., min_length=1)

    @field_validator("release_type")
    @classmethod
    def known_release_type(cls, v):
        v = v.lower()
        if v not in Release.RELEASE_TYPES:
            raise ValueError(
                f"releaseType must be one of {', '.join(Release.RELEASE_TYPES)}"
            )
        return v


class CreateDemoRequest(ApiModel):
    title: Optional[str] = Field(None, max_length=255)
    audio_path: str = Field(..., alias="audioPath", min_length=1, max_length=500)
    visibility: str = "public"
    key: Optional[str] = Field(None, max_length=20)
    tempo: Optional[StrictInt] = Field(None, ge=1, le=400)

    @field_validator("audio_path")
    @classmethod
    def must_be_mp3(cls, v):
        if not v.lower().endswith(".mp3"):
            raise ValueError("File must be MP3")
        return v

    @field_validator("visibility")
    @classmethod
    def known_visibility(cls, v):
        if v not in Demo.VISIBILITIES:
            raise ValueError("visibility must be public or private")
        return v
