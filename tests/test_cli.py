"""Tests for the flask CLI commands (seed-demo, verify-stripe-config)."""

from unittest.mock import patch

import stripe

from conftest import FakeStripeObject
from metalist.models.band import Band, BandMember
from metalist.models.release import Release, Track
from metalist.models.user import User


class TestSeedDemo:

    def test_creates_demo_data(self, app):
        result = app.test_cli_runner().invoke(args=["seed-demo"])

        assert result.exit_code == 0
        assert "Demo data created successfully!" in result.output

        band = Band.query.filter_by(slug="demo-grinders").one()
        leader = BandMember.query.filter_by(band_id=band.id, role="leader").one()
        assert leader.status == "approved"
        assert leader.display_order == 0

        release = Release.query.filter_by(band_id=band.id).one()
        assert Track.query.filter_by(release_id=release.id).count() == 3

    def test_is_idempotent(self, app):
        runner = app.test_cli_runner()
        runner.invoke(args=["seed-demo"])
        result = runner.invoke(args=["seed-demo"])

        assert "already exists" in result.output
        assert User.query.count() == 2


class TestVerifyStripeConfig:

    def test_reports_each_price(self, app):
        with patch("stripe.Price.retrieve") as retrieve:
            retrieve.return_value = FakeStripeObject(livemode=False, active=True)
            result = app.test_cli_runner().invoke(args=["verify-stripe-config"])

        assert result.exit_code == 0
        assert "Stripe key mode: Test" in result.output
        assert "pro_plus: price_pro_plus_test" in result.output
        assert retrieve.call_count == 3

    def test_unknown_price(self, app):
        error = stripe.error.InvalidRequestError("No such price", "price")
        with patch("stripe.Price.retrieve", side_effect=error):
            result = app.test_cli_runner().invoke(args=["verify-stripe-config"])

        assert "ERROR: No such price" in result.output
