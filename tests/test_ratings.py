"""Tests for ratings and reviews.

Covers:
- recompute_average (pure): add, replace, first rating
- PUT /api/releases/<id>/rating upsert + recomputed summary
- Score validation (0-20, one decimal)
- Reviews: one per user, updated on resubmission, newest first
"""

import pytest

from conftest import login
from metalist.services.rating_service import recompute_average


class TestRecomputeAverage:
    """Pure average arithmetic."""

    def test_first_rating(self):
        assert recompute_average(None, 0, None, 15.0) == (15.0, 1)

    def test_add_rating(self):
        avg, count = recompute_average(10.0, 2, None, 16.0)
        assert count == 3
        assert avg == pytest.approx(12.0)

    def test_replace_rating(self):
        avg, count = recompute_average(12.0, 3, 16.0, 10.0)
        assert count == 3
        assert avg == pytest.approx(10.0)

    def test_replace_same_value_is_stable(self):
        assert recompute_average(14.5, 4, 14.5, 14.5) == (14.5, 4)


class TestRatingEndpoints:

    def _rate(self, client, seed_data, score):
        return client.put(
            f"/api/releases/{seed_data['release_id']}/rating", json={"score": score}
        )

    def test_rate_and_summary(self, client, seed_data):
        login(client, seed_data["fan_email"])
        resp = self._rate(client, seed_data, 16)

        assert resp.status_code == 200
        assert resp.get_json() == {"avgRating": 16.0, "ratingCount": 1, "userRating": 16.0}

    def test_second_user_and_replacement(self, client, seed_data):
        login(client, seed_data["fan_email"])
        self._rate(client, seed_data, 10)
        client.post("/api/auth/logout")

        login(client, seed_data["outsider_email"])
        data = self._rate(client, seed_data, 20).get_json()
        assert data["ratingCount"] == 2
        assert data["avgRating"] == pytest.approx(15.0)

        data = self._rate(client, seed_data, 14.5).get_json()
        assert data["ratingCount"] == 2
        assert data["avgRating"] == pytest.approx(12.25)
        assert data["userRating"] == 14.5

        summary = client.get(f"/api/releases/{seed_data['release_id']}/ratings").get_json()
        assert summary["avgRating"] == pytest.approx(12.25)
        assert summary["userRating"] == 14.5

    @pytest.mark.parametrize("score", [-1, 20.5, 13.25, "high"])
    def test_invalid_scores(self, client, seed_data, score):
        login(client, seed_data["fan_email"])
        assert self._rate(client, seed_data, score).status_code == 400

    def test_unknown_release(self, client, seed_data):
        login(client, seed_data["fan_email"])
        resp = client.put("/api/releases/missing/rating", json={"score": 10})
        assert resp.status_code == 404

    def test_requires_login(self, client, seed_data):
        assert self._rate(client, seed_data, 10).status_code == 401

    def test_anonymous_summary(self, client, seed_data):
        data = client.get(f"/api/releases/{seed_data['release_id']}/ratings").get_json()
        assert data == {"avgRating": None, "ratingCount": 0, "userRating": None}


class TestReviews:

    def _review(self, client, seed_data, **body):
        payload = {"title": "Crushing", "content": "Cold and heavy."}
        payload.update(body)
        return client.post(f"/api/releases/{seed_data['release_id']}/reviews", json=payload)

    def test_create_review(self, client, seed_data):
        login(client, seed_data["fan_email"])
        resp = self._review(client, seed_data, rating=17.26)

        assert resp.status_code == 201
        data = resp.get_json()
        assert data["username"] == "fan"
        assert data["rating"] == 17.3

    def test_resubmission_updates(self, client, seed_data):
        login(client, seed_data["fan_email"])
        self._review(client, seed_data)
        self._review(client, seed_data, title="Changed my mind")

        reviews = client.get(f"/api/releases/{seed_data['release_id']}/reviews").get_json()["reviews"]
        assert len(reviews) == 1
        assert reviews[0]["title"] == "Changed my mind"

    def test_content_is_sanitized(self, client, seed_data):
        login(client, seed_data["fan_email"])
        data = self._review(client, seed_data, content="<img src=x onerror=alert(1)>Heavy").get_json()
        assert data["content"] == "Heavy"

    def test_rating_out_of_range(self, client, seed_data):
        login(client, seed_data["fan_email"])
        assert self._review(client, seed_data, rating=25).status_code == 400

    def test_missing_title(self, client, seed_data):
        login(client, seed_data["fan_email"])
        assert self._review(client, seed_data, title="").status_code == 400
