"""Tests for band creation, the band page, follows and the dashboard."""

from conftest import login
from metalist.extensions import db
from metalist.models.band import Band, BandMember
from metalist.services.band_service import slugify


def _create(client, name="Black Pine", **extra):
    body = {"name": name}
    body.update(extra)
    return client.post("/api/bands", json=body)


class TestCreateBand:
    """POST /api/bands"""

    def test_creator_becomes_approved_leader(self, client, seed_data):
        login(client, seed_data["fan_email"])
        resp = _create(client, yearFormed=2001, country="Finland")

        assert resp.status_code == 201
        data = resp.get_json()
        assert data["slug"] == "black-pine"
        assert data["yearFormed"] == 2001

        leader = BandMember.query.filter_by(band_id=data["id"]).one()
        assert leader.profile_id == seed_data["fan_id"]
        assert leader.role == "leader"
        assert leader.status == "approved"
        assert leader.display_order == 0

    def test_slug_is_unique(self, client, seed_data):
        login(client, seed_data["fan_email"])
        first = _create(client).get_json()
        second = _create(client).get_json()

        assert first["slug"] == "black-pine"
        assert second["slug"] == "black-pine-2"

    def test_html_is_stripped(self, client, seed_data):
        login(client, seed_data["fan_email"])
        data = _create(client, name="<b>Grave</b>", description="<script>x</script>doom").get_json()

        assert data["name"] == "Grave"
        assert "<script>" not in data["description"]

    def test_name_required(self, client, seed_data):
        login(client, seed_data["fan_email"])
        assert _create(client, name="").status_code == 400

    def test_requires_login(self, client, seed_data):
        assert _create(client).status_code == 401

    def test_slugify(self):
        assert slugify("  Mörk Gryning!! ") == "mrk-gryning"
        assert slugify("A -- B") == "a-b"


class TestBandView:
    """GET /api/bands/<slug>"""

    def _add_pending(self, seed_data):
        db.session.add(BandMember(
            band_id=seed_data["band_id"],
            profile_id=seed_data["fan_id"],
            name="Fan Boy",
            status="pending",
        ))
        db.session.commit()

    def test_public_view(self, client, seed_data):
        self._add_pending(seed_data)
        data = client.get(f"/api/bands/{seed_data['band_slug']}").get_json()

        assert data["name"] == "Night Vigil"
        assert [m["name"] for m in data["members"]] == ["Lead Er"]
        assert data["releases"][0]["hostedTrackCount"] == 3
        assert data["viewerStatus"] == "none"
        assert "pendingRequests" not in data
        assert "invitations" not in data

    def test_leader_sees_pending_requests(self, client, seed_data):
        self._add_pending(seed_data)
        login(client, seed_data["leader_email"])

        data = client.get(f"/api/bands/{seed_data['band_slug']}").get_json()

        assert data["viewerStatus"] == "leader"
        assert [m["name"] for m in data["pendingRequests"]] == ["Fan Boy"]
        assert data["invitations"] == []

    def test_pending_member_does_not_see_requests(self, client, seed_data):
        self._add_pending(seed_data)
        login(client, seed_data["fan_email"])

        data = client.get(f"/api/bands/{seed_data['band_slug']}").get_json()

        assert data["viewerStatus"] == "pending"
        assert "pendingRequests" not in data

    def test_unknown_slug(self, client, seed_data):
        resp = client.get("/api/bands/nope")
        assert resp.status_code == 404
        assert resp.get_json()["error"] == "Band not found."


class TestFollow:
    """POST / DELETE /api/bands/<band_id>/follow"""

    def test_follow_and_unfollow(self, client, seed_data):
        login(client, seed_data["fan_email"])
        url = f"/api/bands/{seed_data['band_id']}/follow"

        assert client.post(url).get_json() == {"following": True, "followCount": 1}
        assert client.post(url).get_json() == {"following": True, "followCount": 1}
        assert client.delete(url).get_json() == {"following": False, "followCount": 0}

    def test_follow_unknown_band(self, client, seed_data):
        login(client, seed_data["fan_email"])
        assert client.post("/api/bands/missing/follow").status_code == 404

    def test_requires_login(self, client, seed_data):
        assert client.post(f"/api/bands/{seed_data['band_id']}/follow").status_code == 401


class TestDashboard:
    """GET /api/dashboard"""

    def test_leader_dashboard(self, client, seed_data):
        db.session.add(BandMember(
            band_id=seed_data["band_id"],
            profile_id=seed_data["fan_id"],
            name="Fan Boy",
            status="pending",
        ))
        db.session.commit()

        login(client, seed_data["leader_email"])
        data = client.get("/api/dashboard").get_json()

        assert [b["slug"] for b in data["leaderBands"]] == ["night-vigil"]
        assert data["memberBands"] == []
        assert data["pendingRequests"][0]["bandName"] == "Night Vigil"

    def test_invitations_listed_for_invitee(self, client, seed_data):
        other = Band(name="Other", slug="other")
        db.session.add(other)
        db.session.flush()
        db.session.add(BandMember(
            band_id=other.id, profile_id=seed_data["fan_id"], status="invited"
        ))
        db.session.commit()

        login(client, seed_data["fan_email"])
        data = client.get("/api/dashboard").get_json()

        assert data["leaderBands"] == []
        assert data["invitations"][0]["band"]["slug"] == "other"
