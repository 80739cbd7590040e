"""Release service — publishing a release and its track list.

Functions flush but do NOT commit; the caller commits.
"""

import logging

from metalist.extensions import db
from metalist.models.follow import Follow
from metalist.models.release import Release, Track
from metalist.plans import TIER_LIMITS, can_upload_audio_track, normalize_tier
from metalist.services.band_service import _sanitize

logger = logging.getLogger(__name__)


def create_release(band_id, data, tier):
    """Insert a release and its tracks for `band_id`.

    `data` is a CreateReleaseRequest; `tier` is the acting leader's plan.
    Hosted tracks (audio_path set) need a plan that can host audio and
    lyrics need Pro+. Nothing is written when either check fails.

    Tracks are numbered from 1 in request order.

    Returns the Release.
    Raises PermissionError (plan) or ValueError.
    """
    tier = normalize_tier(tier)

    if any(t.audio_path for t in data.tracks):
        allowed, reason = can_upload_audio_track(tier)
        if not allowed:
            raise PermissionError(reason)

    if any(t.lyrics for t in data.tracks) and not TIER_LIMITS[tier].can_add_lyrics:
        raise PermissionError("Lyrics are a Pro+ feature. See Plans.")

    title = _sanitize(data.title)
    if not title:
        raise ValueError("Release title is required.")

    release = Release(
        band_id=band_id,
        title=title,
        release_type=data.release_type,
        release_year=data.release_year,
        description=_sanitize(data.description),
        cover_url=data.cover_url,
    )
    db.session.add(release)
    db.session.flush()

    for number, item in enumerate(data.tracks, start=1):
        db.session.add(Track(
            release_id=release.id,
            title=_sanitize(item.title) or f"Track {number}",
            track_number=number,
            duration=item.duration,
            embed_url=item.embed_url,
            audio_path=item.audio_path,
            lyrics=item.lyrics,
        ))
    db.session.flush()
    db.session.refresh(release)

    logger.info(
        f"Release {release.id} created for band {band_id} "
        f"({len(data.tracks)} tracks, {release.hosted_track_count} hosted)"
    )
    return release


def follower_ids(band_id):
    return [f.user_id for f in Follow.query.filter_by(band_id=band_id).all()]


def serialize_release(release):
    return {
        "id": release.id,
        "bandId": release.band_id,
        "title": release.title,
        "releaseType": release.release_type,
        "releaseYear": release.release_year,
        "description": release.description,
        "coverUrl": release.cover_url,
        "hostedTrackCount": release.hosted_track_count,
        "tracks": [
            {
                "id": t.id,
                "trackNumber": t.track_number,
                "title": t.title,
                "duration": t.duration,
                "embedUrl": t.embed_url,
                "audioPath": t.audio_path,
                "hasLyrics": bool(t.lyrics),
            }
            for t in release.tracks
        ],
    }
