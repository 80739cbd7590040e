"""Demo service — sharing unfinished songs with producers and engineers.

The monthly quota counts demos created since the first day of the
current UTC month; deleting a demo frees its slot.

Functions flush but do NOT commit; the caller commits.
"""

import logging
from datetime import datetime, timezone

from metalist.extensions import db
from metalist.models.demo import Demo
from metalist.models.profile import Profile
from metalist.plans import can_upload_demo
from metalist.services.band_service import _sanitize

logger = logging.getLogger(__name__)


def month_start(now=None):
    now = now or datetime.now(timezone.utc)
    return now.replace(day=1, hour=0, minute=0, second=0, microsecond=0)


def demos_this_month(profile_id):
    return Demo.query.filter(
        Demo.profile_id == profile_id,
        Demo.created_at >= month_start(),
    ).count()


def create_demo(profile_id, data, tier):
    """Share a demo. `data` is a CreateDemoRequest.

    Raises PermissionError with an upgrade hint when the plan's monthly
    quota is used up.
    """
    allowed, reason = can_upload_demo(tier, demos_this_month(profile_id))
    if not allowed:
        raise PermissionError(reason)

    demo = Demo(
        profile_id=profile_id,
        title=_sanitize(data.title) or None,
        audio_path=data.audio_path,
        visibility=data.visibility,
        key=data.key,
        tempo=data.tempo,
    )
    db.session.add(demo)
    db.session.flush()
    logger.info(f"Demo {demo.id} shared by {profile_id} ({demo.visibility})")
    return demo


def can_browse_demos(profile):
    """Only producers and sound engineers browse everyone's demos."""
    return bool(profile and (profile.is_producer or profile.is_sound_engineer))


def list_public_demos():
    return (
        Demo.query.filter_by(visibility="public")
        .order_by(Demo.created_at.desc(), Demo.id)
        .all()
    )


def list_member_demos(username, viewer_id=None):
    """Demos on a member's profile. Private ones only for the owner."""
    profile = Profile.query.filter_by(username=username).first()
    if profile is None:
        raise LookupError("Member not found.")

    query = Demo.query.filter_by(profile_id=profile.id)
    if viewer_id != profile.id:
        query = query.filter_by(visibility="public")
    return query.order_by(Demo.created_at.desc(), Demo.id).all()


def delete_demo(demo_id, profile_id):
    demo = db.session.get(Demo, demo_id)
    if demo is None:
        raise LookupError("Demo not found.")
    if demo.profile_id != profile_id:
        raise PermissionError("You can only delete your own demos.")
    db.session.delete(demo)
    db.session.flush()


def serialize_demo(demo):
    return {
        "id": demo.id,
        "title": demo.title,
        "audioPath": demo.audio_path,
        "visibility": demo.visibility,
        "key": demo.key,
        "tempo": demo.tempo,
        "username": demo.profile.username,
        "createdAt": demo.created_at.isoformat() if demo.created_at else None,
    }
