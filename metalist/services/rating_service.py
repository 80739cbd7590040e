"""Rating service — release ratings and reviews.

Scores are 0-20 with at most one decimal place (validated by
RatingRequest / ReviewRequest before they reach this module).

Functions flush but do NOT commit — the caller commits.
"""

import logging

import bleach

from metalist.extensions import db
from metalist.models.rating import Rating, Review
from metalist.models.release import Release
from metalist.schemas import RatingSummary

logger = logging.getLogger(__name__)


def _sanitize(text):
    """Strip all HTML tags from user input."""
    if text is None:
        return text
    return bleach.clean(text, tags=[], strip=True).strip()


def recompute_average(avg, count, old_value, new_value):
    """Return the (avg, count) after one rating changes.

    old_value is None  -> new_value is a new rating (count + 1).
    otherwise          -> new_value replaces old_value (count unchanged).

    `avg` may be None when there are no ratings yet.
    """
    total = (avg or 0.0) * count
    if old_value is None:
        count += 1
        total += new_value
    else:
        if count <= 0:
            return float(new_value), 1
        total += new_value - old_value
    return total / count, count


def get_release(release_id):
    release = db.session.get(Release, release_id)
    if release is None:
        raise LookupError("Release not found.")
    return release


def rating_summary(release_id, user_id=None):
    """Current average, count and (optionally) the viewer's own score."""
    avg, count = (
        db.session.query(db.func.avg(Rating.score), db.func.count(Rating.id))
        .filter(Rating.release_id == release_id)
        .one()
    )
    user_rating = None
    if user_id:
        own = Rating.query.filter_by(release_id=release_id, user_id=user_id).first()
        user_rating = own.score if own else None
    return RatingSummary(
        avg_rating=float(avg) if avg is not None else None,
        rating_count=count or 0,
        user_rating=user_rating,
    )


def submit_rating(release_id, user_id, score):
    """Create or replace the user's rating on a release.

    Returns a RatingSummary with the locally recomputed average.
    """
    get_release(release_id)
    before = rating_summary(release_id, user_id)

    existing = Rating.query.filter_by(release_id=release_id, user_id=user_id).first()
    old_value = existing.score if existing else None
    if existing:
        existing.score = score
    else:
        db.session.add(Rating(release_id=release_id, user_id=user_id, score=score))
    db.session.flush()

    avg, count = recompute_average(
        before.avg_rating, before.rating_count, old_value, score
    )
    logger.info(f"Rating on {release_id} by {user_id}: {old_value} -> {score}")
    return RatingSummary(avg_rating=avg, rating_count=count, user_rating=score)


def submit_review(release_id, user_id, data):
    """One review per user per release; resubmitting updates it.

    `data` is a ReviewRequest. Returns the Review.
    """
    get_release(release_id)
    title = _sanitize(data.title)
    content = _sanitize(data.content)
    if not title or not content:
        raise ValueError("Title and review text are required.")

    review = Review.query.filter_by(release_id=release_id, user_id=user_id).first()
    if review is None:
        review = Review(release_id=release_id, user_id=user_id)
        db.session.add(review)
    review.title = title
    review.content = content
    review.rating = data.rating
    db.session.flush()
    return review


def list_reviews(release_id):
    get_release(release_id)
    return (
        Review.query.filter_by(release_id=release_id)
        .order_by(Review.created_at.desc(), Review.id)
        .all()
    )


def serialize_review(review):
    author = review.author
    return {
        "id": review.id,
        "releaseId": review.release_id,
        "userId": review.user_id,
        "username": author.username if author else None,
        "title": review.title,
        "content": review.content,
        "rating": review.rating,
        "createdAt": review.created_at.isoformat() if review.created_at else None,
    }
