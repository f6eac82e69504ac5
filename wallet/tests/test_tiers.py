"""
Unit Tests for the Reward Tier Table

Tests cover:
1. Exact thresholds
2. Values between thresholds
3. Amounts below the lowest tier
4. Plan previews
"""

import pytest
from decimal import Decimal

from wallet.tiers import REWARD_TIERS, preview_plan, weekly_profit_for


class TestWeeklyProfit:
    """Tier lookup by deposit amount."""

    @pytest.mark.parametrize("amount, expected", [
        ("500000", "15000"),
        ("100000", "10000"),
        ("50000", "5000"),
        ("30000", "3000"),
        ("15000", "1500"),
        ("5000", "500"),
    ])
    def test_exact_thresholds(self, amount, expected):
        """Each threshold is inclusive."""
        assert weekly_profit_for(Decimal(amount)) == Decimal(expected)

    @pytest.mark.parametrize("amount, expected", [
        ("1000000", "15000"),
        ("499999.99", "10000"),
        ("75000", "5000"),
        ("49999", "3000"),
        ("29999", "1500"),
        ("14999", "500"),
    ])
    def test_between_thresholds(self, amount, expected):
        """An amount gets the highest tier it reaches."""
        assert weekly_profit_for(Decimal(amount)) == Decimal(expected)

    @pytest.mark.parametrize("amount", ["4999.99", "4000", "1", "0"])
    def test_below_lowest_tier(self, amount):
        """Below 5000 there is no program."""
        assert weekly_profit_for(Decimal(amount)) == Decimal("0")

    def test_tiers_sorted_highest_first(self):
        """The lookup depends on descending thresholds."""
        thresholds = [minimum for minimum, _ in REWARD_TIERS]
        assert thresholds == sorted(thresholds, reverse=True)


class TestPlanPreview:
    """Previews without touching any record."""

    def test_eligible_preview(self):
        preview = preview_plan(Decimal("50000"))

        assert preview.weekly_profit == Decimal("5000")
        assert preview.eligible is True

    def test_ineligible_preview(self):
        preview = preview_plan(Decimal("4000"))

        assert preview.weekly_profit == Decimal("0")
        assert preview.eligible is False


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
