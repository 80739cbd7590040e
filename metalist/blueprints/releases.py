"""Releases blueprint — /api/releases/<release_id>/*

Ratings (0-20, one decimal) and written reviews.

Routes:
- GET  /api/releases/<id>/ratings  — {avgRating, ratingCount, userRating}
- PUT  /api/releases/<id>/rating   — upsert own rating, returns new summary
- GET  /api/releases/<id>/reviews  — newest first
- POST /api/releases/<id>/reviews  — create or update own review
"""

from flask import Blueprint, jsonify
from flask_login import current_user, login_required

from metalist.extensions import db
from metalist.schemas import InvalidBody, RatingRequest, ReviewRequest, parse_body
from metalist.services import rating_service

releases_bp = Blueprint("releases", __name__, url_prefix="/api/releases")


@releases_bp.route("/<release_id>/ratings")
def ratings(release_id):
    user_id = current_user.id if current_user.is_authenticated else None
    try:
        rating_service.get_release(release_id)
    except LookupError as e:
        return jsonify({"error": str(e)}), 404
    return jsonify(rating_service.rating_summary(release_id, user_id).to_json())


@releases_bp.route("/<release_id>/rating", methods=["PUT"])
@login_required
def rate(release_id):
    try:
        body = parse_body(RatingRequest)
    except InvalidBody as e:
        return jsonify({"error": str(e)}), 400

    try:
        summary = rating_service.submit_rating(release_id, current_user.id, body.score)
    except LookupError as e:
        return jsonify({"error": str(e)}), 404
    db.session.commit()

    return jsonify(summary.to_json())


@releases_bp.route("/<release_id>/reviews")
def reviews(release_id):
    try:
        items = rating_service.list_reviews(release_id)
    except LookupError as e:
        return jsonify({"error": str(e)}), 404
    return jsonify({"reviews": [rating_service.serialize_review(r) for r in items]})


@releases_bp.route("/<release_id>/reviews", methods=["POST"])
@login_required
def write_review(release_id):
    try:
        body = parse_body(ReviewRequest)
    except InvalidBody as e:
        return jsonify({"error": str(e)}), 400

    try:
        review = rating_service.submit_review(release_id, current_user.id, body)
    except LookupError as e:
        return jsonify({"error": str(e)}), 404
    except ValueError as e:
        return jsonify({"error": str(e)}), 400
    db.session.commit()

    return jsonify(rating_service.serialize_review(review)), 201
