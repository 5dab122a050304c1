"""
Unit tests for slug derivation and subscription plan helpers.
"""

import re
from datetime import UTC, datetime, timedelta

import pytest

from core.plans import (
    GENERATION_LIMITS,
    UNLIMITED,
    get_generation_limit,
    is_premium_tier,
    next_reset_date,
)
from core.slugs import MAX_SLUG_LENGTH, numbered_slug, random_suffix_slug, slugify


class TestSlugify:
    @pytest.mark.parametrize(
        "value,expected",
        [
            ("My Cool Team!", "my-cool-team"),
            ("  Leading and trailing  ", "leading-and-trailing"),
            ("Ünïcode -- mix__ed", "n-code-mix-ed"),
            ("already-a-slug", "already-a-slug"),
            ("Task Tracker 2.0", "task-tracker-2-0"),
        ],
    )
    def test_slugify(self, value, expected):
        assert slugify(value) == expected

    def test_empty_input_uses_fallback(self):
        assert slugify("!!!", fallback="team") == "team"
        assert slugify("") == "item"

    def test_long_names_are_truncated_without_trailing_hyphen(self):
        slug = slugify("ab " * 200)
        assert len(slug) <= MAX_SLUG_LENGTH
        assert not slug.endswith("-")


class TestSlugSuffixes:
    def test_numbered(self):
        assert [numbered_slug("acme", i) for i in range(3)] == ["acme", "acme-1", "acme-2"]

    def test_random_suffix(self):
        assert random_suffix_slug("app", 0) == "app"
        assert re.fullmatch(r"app-[0-9a-f]{8}", random_suffix_slug("app", 1))


class TestPlans:
    def test_tier_limits(self):
        assert get_generation_limit("free") == 3
        assert get_generation_limit("pro_monthly") == 50
        assert get_generation_limit("team_yearly") == 100
        assert get_generation_limit("enterprise") == UNLIMITED
        assert get_generation_limit("suspended") == 0

    def test_unknown_or_missing_tier_gets_free_allowance(self):
        assert get_generation_limit(None) == GENERATION_LIMITS["free"]
        assert get_generation_limit("platinum") == GENERATION_LIMITS["free"]

    def test_premium_tiers(self):
        now = datetime.now(UTC)
        assert is_premium_tier("pro_monthly")
        assert is_premium_tier("enterprise", now + timedelta(days=1), now)
        assert not is_premium_tier("pro_monthly", now - timedelta(seconds=1), now)
        assert not is_premium_tier("free")
        assert not is_premium_tier("enterprise_trial")

    def test_naive_expiry_treated_as_utc(self):
        now = datetime(2026, 5, 1, tzinfo=UTC)
        assert is_premium_tier("pro_yearly", datetime(2026, 6, 1), now)

    def test_next_reset_date(self):
        assert next_reset_date(datetime(2026, 3, 15, 12, tzinfo=UTC)) == datetime(2026, 4, 1, tzinfo=UTC)
        assert next_reset_date(datetime(2026, 12, 31, 23, tzinfo=UTC)) == datetime(2027, 1, 1, tzinfo=UTC)
