"""Band service — band creation, public band view, follows, dashboard.

Functions flush but do NOT commit — the caller commits.
"""

import logging
import re

import bleach
from sqlalchemy.exc import IntegrityError

from metalist.extensions import db
from metalist.models.band import Band, BandMember
from metalist.models.follow import Follow
from metalist.models.release import Release
from metalist.services import membership_service

logger = logging.getLogger(__name__)


def _sanitize(text):
    """Strip all HTML tags from user input."""
    if text is None:
        return text
    return bleach.clean(text, tags=[], strip=True).strip()


def slugify(value):
    """Lowercase, only a-z 0-9 and hyphens."""
    value = (value or "").lower()
    value = re.sub(r"[^a-z0-9\s-]", "", value)
    value = re.sub(r"[\s-]+", "-", value)
    return value.strip("-")


def _unique_slug(name):
    base = slugify(name) or "band"
    slug = base
    n = 2
    while Band.query.filter_by(slug=slug).first() is not None:
        slug = f"{base}-{n}"
        n += 1
    return slug


def create_band(profile, data):
    """Create a band and its leader membership.

    The creator becomes the "approved" leader with display_order 0.
    `data` is a CreateBandRequest.

    Returns the Band.
    """
    name = _sanitize(data.name)
    if not name:
        raise ValueError("Band name is required.")

    band = Band(
        user_id=profile.id,
        name=name,
        slug=_unique_slug(name),
        country=data.country,
        year_formed=data.year_formed,
        description=_sanitize(data.description),
        logo_url=data.logo_url,
        instagram_url=data.instagram_url,
        bandcamp_url=data.bandcamp_url,
        youtube_url=data.youtube_url,
        genre_ids=list(data.genre_ids),
    )
    db.session.add(band)
    try:
        db.session.flush()
    except IntegrityError:
        db.session.rollback()
        raise ValueError("A band with that name already exists. Try another name.")

    leader = BandMember(
        band_id=band.id,
        profile_id=profile.id,
        name=profile.display_name,
        role="leader",
        status="approved",
        display_order=0,
    )
    db.session.add(leader)
    db.session.flush()

    logger.info(f"Band {band.slug} created by {profile.id}")
    return band


def get_band_by_slug(slug):
    band = Band.query.filter_by(slug=slug).first()
    if band is None:
        raise LookupError("Band not found.")
    return band


def follow_count(band_id):
    return Follow.query.filter_by(band_id=band_id).count()


def is_following(band_id, profile_id):
    if not profile_id:
        return False
    return Follow.query.filter_by(band_id=band_id, user_id=profile_id).first() is not None


def follow_band(band_id, profile_id):
    """Follow a band. Following twice is a no-op."""
    if db.session.get(Band, band_id) is None:
        raise LookupError("Band not found.")
    if not is_following(band_id, profile_id):
        db.session.add(Follow(band_id=band_id, user_id=profile_id))
        try:
            db.session.flush()
        except IntegrityError:
            db.session.rollback()
    return follow_count(band_id)


def unfollow_band(band_id, profile_id):
    if db.session.get(Band, band_id) is None:
        raise LookupError("Band not found.")
    Follow.query.filter_by(band_id=band_id, user_id=profile_id).delete(
        synchronize_session=False
    )
    db.session.flush()
    return follow_count(band_id)


def serialize_band(band):
    return {
        "id": band.id,
        "name": band.name,
        "slug": band.slug,
        "country": band.country,
        "yearFormed": band.year_formed,
        "description": band.description,
        "logoUrl": band.logo_url,
        "instagramUrl": band.instagram_url,
        "bandcampUrl": band.bandcamp_url,
        "youtubeUrl": band.youtube_url,
        "merchUrl": band.merch_url,
        "genreIds": band.genre_ids or [],
    }


def band_view(band, viewer_id=None):
    """Public band page payload, plus leader-only sections for the leader.

    Pending join requests and outstanding invitations are included only
    when the viewer is the band leader.
    """
    status = membership_service.viewer_status(band.id, viewer_id)
    releases = band.releases.order_by(Release.release_year.desc()).all()

    view = serialize_band(band)
    view.update({
        "members": [
            membership_service.serialize_member(m)
            for m in membership_service.approved_members(band.id)
        ],
        "releases": [
            {
                "id": r.id,
                "title": r.title,
                "releaseType": r.release_type,
                "releaseYear": r.release_year,
                "description": r.description,
                "coverUrl": r.cover_url,
                "hostedTrackCount": r.hosted_track_count,
            }
            for r in releases
        ],
        "followCount": follow_count(band.id),
        "isFollowing": is_following(band.id, viewer_id),
        "viewerStatus": status,
    })

    if status == "leader":
        view["pendingRequests"] = [
            membership_service.serialize_member(m)
            for m in membership_service.pending_requests(band.id)
        ]
        view["invitations"] = [
            membership_service.serialize_member(m)
            for m in membership_service.outstanding_invitations(band.id)
        ]
    return view


def dashboard(profile_id):
    """Everything the signed-in user's dashboard lists.

    - leaderBands / memberBands: approved memberships split by role
    - pendingRequests: join requests awaiting this user's decision
    - invitations: bands that invited this user
    """
    memberships = BandMember.query.filter_by(profile_id=profile_id).all()

    leader_bands, member_bands, invitations = [], [], []
    for m in memberships:
        if m.status == "approved" and m.role == "leader":
            leader_bands.append(m.band)
        elif m.status == "approved":
            member_bands.append(m.band)
        elif m.status == "invited":
            invitations.append({"memberId": m.id, "band": serialize_band(m.band)})

    pending = []
    for band in leader_bands:
        for m in membership_service.pending_requests(band.id):
            item = membership_service.serialize_member(m)
            item["bandName"] = band.name
            pending.append(item)

    return {
        "leaderBands": [serialize_band(b) for b in leader_bands],
        "memberBands": [serialize_band(b) for b in member_bands],
        "pendingRequests": pending,
        "invitations": invitations,
    }
