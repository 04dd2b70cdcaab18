"""Tests for daily usage gating, both the pure transitions and the persisted service."""

import pytest

from dotoracle import gating
from dotoracle.errors import GatingDeniedError, InvalidInputError
from dotoracle.models import GatingLimits
from dotoracle.services import GatingService

LIMITS = GatingLimits()


class TestPureGating:
    def test_fresh_day_allows_everything(self):
        assert gating.can_do_free_spread(None)
        assert gating.can_use_clarifier(None, LIMITS)
        assert gating.can_use_another_topic(None, LIMITS)
        assert gating.spread_access(None, LIMITS) == "free"

    def test_use_free_spread_is_idempotent(self):
        g = gating.use_free_spread(gating.default_gating("2024-01-01"))
        assert not gating.can_do_free_spread(g)
        assert gating.use_free_spread(g) is g

    def test_clarifier_limit(self):
        g = gating.use_clarifier(gating.default_gating("2024-01-01"), LIMITS)
        assert g.clarifier_used_count == 1
        assert not gating.can_use_clarifier(g, LIMITS)
        with pytest.raises(GatingDeniedError):
            gating.use_clarifier(g, LIMITS)

    def test_another_topic_limit(self):
        limits = GatingLimits(max_another_topic_per_day=2)
        g = gating.default_gating("2024-01-01")
        g = gating.use_another_topic(gating.use_another_topic(g, limits), limits)
        assert not gating.can_use_another_topic(g, limits)
        with pytest.raises(GatingDeniedError):
            gating.use_another_topic(g, limits)

    def test_spread_access_progression(self):
        limits = GatingLimits(max_another_topic_per_day=1)
        g = gating.use_free_spread(gating.default_gating("2024-01-01"))
        assert gating.spread_access(g, limits) == "ad"
        g = gating.use_another_topic(g, limits)
        assert gating.spread_access(g, limits) == "blocked"

    def test_ad_cooldown(self):
        g = gating.mark_ad_shown(gating.default_gating("2024-01-01"), now=10_000)
        assert gating.ad_cooldown_remaining(g, 10_000, LIMITS) == 2500
        assert gating.ad_cooldown_remaining(g, 11_000, LIMITS) == 1500
        assert not gating.can_show_ad(g, 12_000, LIMITS)
        assert gating.can_show_ad(g, 12_500, LIMITS)
        assert gating.ad_cooldown_remaining(None, 0, LIMITS) == 0


class TestNormalizeGating:
    def test_missing_record(self):
        assert gating.normalize_gating(None, "2024-01-01") is None

    def test_negative_counters_are_clamped(self):
        raw = {"date_key": "2024-01-01", "clarifier_used_count": -3, "another_topic_used_count": -1, "last_ad_timestamp": -9}
        state = gating.normalize_gating(raw, "2024-01-01")
        assert state.clarifier_used_count == 0
        assert state.another_topic_used_count == 0
        assert state.last_ad_timestamp == 0
        assert not state.free_spread_used

    def test_record_takes_the_requested_day(self):
        state = gating.normalize_gating({"free_spread_used": True, "clarifier_used_count": "1"}, "2024-01-02")
        assert state.date_key == "2024-01-02"
        assert state.free_spread_used
        assert state.clarifier_used_count == 1

    def test_unreadable_record_reads_as_fresh_day(self):
        assert gating.normalize_gating(["junk"], "2024-01-01") == gating.default_gating("2024-01-01")

    def test_clean_record_is_unchanged(self):
        state = gating.use_free_spread(gating.default_gating("2024-01-01"))
        assert gating.normalize_gating(state.model_dump(), "2024-01-01") == state


class TestGatingService:
    def test_free_spread_resets_per_day(self, store):
        service = GatingService(store, LIMITS)
        assert service.can_do_free_spread("2024-01-01")
        service.use_free_spread("2024-01-01")
        assert not service.can_do_free_spread("2024-01-01")
        assert service.can_do_free_spread("2024-01-02")

    def test_state_is_persisted(self, store):
        GatingService(store, LIMITS).use_clarifier("2024-03-05")
        again = GatingService(store, LIMITS)
        assert again.get("2024-03-05").clarifier_used_count == 1
        assert not again.can_use_clarifier("2024-03-05")

    def test_unsaved_day_reads_as_zero(self, store):
        g = GatingService(store, LIMITS).get("2024-03-05")
        assert g.date_key == "2024-03-05"
        assert not g.free_spread_used
        assert store.keys("gating:") == []

    def test_corrupt_record_loads_clamped(self, store):
        store.set("gating:2024-03-05", {"clarifier_used_count": -4, "another_topic_used_count": None})
        service = GatingService(store, LIMITS)
        assert service.get("2024-03-05").clarifier_used_count == 0
        service.use_clarifier("2024-03-05")
        assert service.get("2024-03-05").clarifier_used_count == 1

    def test_invalid_date_key(self, store):
        with pytest.raises(InvalidInputError):
            GatingService(store, LIMITS).use_free_spread("2024-13-40")

    def test_ad_cooldown_on_today(self, store):
        service = GatingService(store, LIMITS)
        assert service.can_show_ad(now=1_000)
        service.mark_ad_shown(now=1_000)
        assert service.get_ad_cooldown_remaining(now=2_000) == 1500
        assert service.can_show_ad(now=3_500)
