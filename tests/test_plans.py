"""Tests for plan tiers and hosted-track pricing."""

import pytest

from metalist.plans import (
    TIER_LIMITS,
    can_upload_audio_track,
    can_upload_demo,
    normalize_tier,
    release_cost_cents,
    subscription_tier_from_request,
)


class TestNormalizeTier:

    @pytest.mark.parametrize("raw, expected", [
        (None, "free"),
        ("", "free"),
        ("PRO", "pro"),
        (" pro_plus ", "pro_plus"),
        ("proplus", "pro_plus"),
        ("bedroom_musician", "bedroom"),
        ("label", "pro"),
        ("enterprise", "free"),
    ])
    def test_mapping(self, raw, expected):
        assert normalize_tier(raw) == expected

    def test_every_tier_has_limits(self):
        for tier in ("free", "bedroom", "pro", "pro_plus"):
            assert normalize_tier(tier) in TIER_LIMITS


class TestSubscriptionTier:

    def test_known(self):
        assert subscription_tier_from_request("bedroom") == "bedroom"
        assert subscription_tier_from_request("pro_plus") == "pro_plus"

    def test_fallback_is_pro(self):
        assert subscription_tier_from_request(None) == "pro"
        assert subscription_tier_from_request("free") == "pro"


def test_release_cost():
    assert release_cost_cents(0) == 0
    assert release_cost_cents(3) == 600


def test_audio_hosting_gate():
    assert can_upload_audio_track("pro") == (True, None)
    assert can_upload_audio_track("pro_plus") == (True, None)

    allowed, reason = can_upload_audio_track("bedroom")
    assert allowed is False
    assert "Pro" in reason
    assert can_upload_audio_track(None)[0] is False


def test_demo_quota():
    assert can_upload_demo("free", 0) == (True, None)
    assert can_upload_demo("free", 1) == (
        False, "Free allows 1 demo per month. Upgrade for more."
    )
    assert can_upload_demo("bedroom", 3)[0] is True
    assert can_upload_demo("bedroom", 4)[1] == (
        "Bedroom Musician allows 4 demos per month. Upgrade for more."
    )
    assert can_upload_demo("pro", 500) == (True, None)
    assert can_upload_demo("enterprise", 1)[0] is False
