"""Shared test fixtures for The Metalist test suite.

Provides:
- app: Flask app configured for testing (in-memory SQLite, fake Stripe keys)
- client: Flask test client
- db_session: clean database per test (tables created/dropped)
- seed_data: a leader, a fan and an outsider; a band led by the leader;
  a release with three hosted tracks
- mock_stripe: the stripe module as seen by stripe_service, mocked
- login: helper to sign a user in through the API
"""

from unittest.mock import patch

import pytest
import stripe
from werkzeug.security import generate_password_hash

from metalist import create_app
from metalist.extensions import db as _db
from metalist.models.band import Band, BandMember
from metalist.models.profile import Profile
from metalist.models.release import Release, Track
from metalist.models.user import User

PASSWORD = "password123"


@pytest.fixture(scope="session")
def app():
    """Create the Flask application configured for testing."""
    app = create_app("testing")
    yield app


@pytest.fixture(autouse=True)
def db_session(app):
    """Create all tables before each test, drop after."""
    with app.app_context():
        _db.create_all()
        yield _db.session
        _db.session.rollback()
        _db.drop_all()


@pytest.fixture
def client(app):
    """Flask test client."""
    return app.test_client()


class FakeStripeObject(dict):
    """Dict with attribute access, like stripe.StripeObject."""

    def __getattr__(self, name):
        try:
            return self[name]
        except KeyError:
            raise AttributeError(name)


@pytest.fixture
def mock_stripe():
    """Patch the stripe module used by stripe_service.

    Exception classes stay real so `except stripe.error.StripeError`
    keeps working inside the service.
    """
    with patch("metalist.services.stripe_service.stripe") as mocked:
        mocked.error = stripe.error
        mocked.checkout.Session.create.return_value = FakeStripeObject(
            id="cs_test_123",
            url="https://checkout.stripe.com/c/pay/cs_test_123",
            payment_intent=None,
        )
        yield mocked


def make_user(email, username, first_name=None, last_name=None):
    """Create User + Profile with PASSWORD. Returns the user id."""
    user = User(email=email, password_hash=generate_password_hash(PASSWORD))
    _db.session.add(user)
    _db.session.flush()
    _db.session.add(Profile(
        id=user.id, username=username, first_name=first_name, last_name=last_name
    ))
    _db.session.flush()
    return user.id


def login(client, email, password=PASSWORD):
    """Sign in through the JSON API."""
    resp = client.post("/api/auth/login", json={"email": email, "password": password})
    assert resp.status_code == 200, resp.get_json()
    return resp


@pytest.fixture
def seed_data(app, db_session):
    """Seed a band with a leader, plus a fan and an outsider.

    Returns a dict of plain ids/emails so tests don't depend on
    attached ORM instances.
    """
    leader_id = make_user("leader@metalist.test", "leader", "Lead", "Er")
    fan_id = make_user("fan@metalist.test", "fan", "Fan", "Boy")
    outsider_id = make_user("outsider@metalist.test", "outsider")

    band = Band(user_id=leader_id, name="Night Vigil", slug="night-vigil")
    _db.session.add(band)
    _db.session.flush()

    _db.session.add(BandMember(
        band_id=band.id,
        profile_id=leader_id,
        name="Lead Er",
        instrument="Vocals",
        role="leader",
        status="approved",
        display_order=0,
    ))

    release = Release(band_id=band.id, title="Cold Halls", release_type="ep", release_year=2024)
    _db.session.add(release)
    _db.session.flush()
    for n in range(1, 4):
        _db.session.add(Track(
            release_id=release.id,
            title=f"Track {n}",
            track_number=n,
            audio_path=f"{band.id}/{release.id}/{n}.mp3",
        ))

    _db.session.commit()

    return {
        "leader_id": leader_id,
        "leader_email": "leader@metalist.test",
        "fan_id": fan_id,
        "fan_email": "fan@metalist.test",
        "outsider_id": outsider_id,
        "outsider_email": "outsider@metalist.test",
        "band_id": band.id,
        "band_slug": band.slug,
        "release_id": release.id,
    }
