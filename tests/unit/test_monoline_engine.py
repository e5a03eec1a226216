"""
Unit tests for the monoline fixed-amount commission engine.

Tests cover:
- Full payout when the whole upline is fully active
- Conservation of the unit price for every activity pattern
- Inactive and missing levels going to the company fund
- Buyer without sponsor
- Rescaled unit price
"""

from decimal import Decimal
from itertools import product

import pytest

from mlm_engine.models.enums import CommissionCategory
from mlm_engine.services.commission.monoline_engine import calculate_monoline_commissions
from mlm_engine.services.directory.directory import MemberDirectory
from mlm_engine.utils.exceptions import MemberNotFoundError

UPLINE = [f"u{i}" for i in range(7, 0, -1)]
DEPTH_AMOUNTS = [
    Decimal("2.50"),
    Decimal("1.50"),
    Decimal("1.00"),
    Decimal("0.70"),
    Decimal("0.50"),
    Decimal("0.40"),
    Decimal("0.30"),
]


def _active_chain(make_chain, active_levels):
    """Chain u7 -> ... -> u1 -> buyer where ``u{level}`` is fully active per flag."""
    overrides = {
        f"u{level}": {"fully_active": True}
        for level, active in enumerate(active_levels, start=1)
        if active
    }
    return make_chain(UPLINE + ["buyer"], overrides=overrides)


class TestMonolineCommissions:
    """Test the per-unit split."""

    def test_fully_active_upline(self, make_chain):
        directory = _active_chain(make_chain, [True] * 7)

        result = calculate_monoline_commissions("buyer", directory, sale_id="s1")

        assert result.success
        assert result.transactions[0].recipient_id == "u1"
        assert result.transactions[0].category is CommissionCategory.SPONSOR
        assert result.transactions[0].amount == Decimal("3.00")
        depth = [(t.recipient_id, t.level, t.amount) for t in result.transactions[1:]]
        assert depth == [(f"u{i + 1}", i + 1, DEPTH_AMOUNTS[i]) for i in range(7)]
        assert result.total_distributed == Decimal("9.90")
        assert result.passive_pool_amount == Decimal("0.10")
        assert result.company_fund_amount == Decimal("10.00")
        assert result.remainder_to_company == Decimal("1.00")
        assert result.total_allocated == Decimal("20.00")
        assert result.forfeited_levels == []

    @pytest.mark.parametrize("active_levels", list(product([True, False], repeat=7)))
    def test_split_always_sums_to_price(self, make_chain, active_levels):
        directory = _active_chain(make_chain, active_levels)

        result = calculate_monoline_commissions("buyer", directory)

        forfeited = sum(
            (amount for amount, active in zip(DEPTH_AMOUNTS, active_levels) if not active),
            Decimal("0"),
        )
        assert result.total_allocated == Decimal("20.00")
        assert result.inactive_commissions_to_company == forfeited
        assert result.company_fund_amount == Decimal("10.00") + forfeited
        assert len(result.forfeited_levels) == active_levels.count(False)

    def test_sponsor_paid_even_if_inactive(self, make_chain):
        directory = make_chain(["root", "buyer"])

        result = calculate_monoline_commissions("buyer", directory)

        assert [(t.recipient_id, t.category) for t in result.transactions] == [
            ("root", CommissionCategory.SPONSOR)
        ]
        assert [(f.level, f.member_id, f.amount) for f in result.forfeited_levels] == [
            (1, "root", Decimal("2.50"))
        ]
        assert result.inactive_commissions_to_company == Decimal("2.50")
        assert result.unclaimed_to_company == Decimal("4.40")
        assert result.company_fund_amount == Decimal("16.90")
        assert result.total_allocated == Decimal("20.00")

    def test_buyer_without_sponsor(self, make_member):
        directory = MemberDirectory([make_member("buyer")], root_member_id="buyer")

        result = calculate_monoline_commissions("buyer", directory)

        assert result.transactions == []
        assert result.unclaimed_to_company == Decimal("9.90")
        assert result.company_fund_amount == Decimal("19.90")
        assert result.total_allocated == Decimal("20.00")

    def test_percentages_of_price(self, make_chain):
        directory = _active_chain(make_chain, [True] * 7)

        result = calculate_monoline_commissions("buyer", directory)

        assert result.transactions[0].percentage == Decimal("15")
        assert result.transactions[1].percentage == Decimal("12.5")

    def test_scaled_unit_price(self, make_chain):
        directory = _active_chain(make_chain, [True] * 7)

        result = calculate_monoline_commissions("buyer", directory, unit_price=Decimal("40.00"))

        assert result.unit_price == Decimal("40.00")
        assert result.transactions[0].amount == Decimal("6.00")
        assert result.total_distributed == Decimal("19.80")
        assert result.company_fund_amount == Decimal("20.00")
        assert result.total_allocated == Decimal("40.00")

    def test_unknown_buyer(self, make_chain):
        with pytest.raises(MemberNotFoundError) as exc_info:
            calculate_monoline_commissions("ghost", make_chain(["root"]))
        assert exc_info.value.message == "Buyer not found: ghost"
