"""
Unit tests for read-only network queries.

Tests cover:
- Binary leg volumes, counts and bonus
- Monoline network overview
- Sale simulation
"""

from decimal import Decimal

import pytest

from mlm_engine.services.commission.network_stats import (
    get_binary_network_stats,
    get_monoline_network_stats,
    simulate_sales_transaction,
)
from mlm_engine.services.directory.directory import MemberDirectory
from mlm_engine.utils.exceptions import MemberNotFoundError


class TestBinaryNetworkStats:
    """Test left/right leg totals."""

    def test_legs_and_bonus(self, make_tree, make_statistics):
        directory = make_tree(
            [("root", "left", "a"), ("a", "left", "c"), ("root", "right", "b")],
            overrides={
                "a": {"total_investment": Decimal("100")},
                "c": {"total_investment": Decimal("50")},
                "b": {"total_investment": Decimal("30")},
            },
        )

        stats = get_binary_network_stats("root", make_statistics(directory))

        assert (stats.left_volume, stats.right_volume) == (Decimal("150"), Decimal("30"))
        assert (stats.left_count, stats.right_count) == (2, 1)
        assert stats.binary_bonus == Decimal("3.00")
        assert stats.next_binary_bonus == Decimal("12.00")

    def test_unknown_member(self, make_tree, make_statistics):
        stats = get_binary_network_stats("ghost", make_statistics(make_tree()))
        assert stats.left_count == stats.right_count == 0
        assert stats.binary_bonus == Decimal("0")


class TestMonolineNetworkStats:
    """Test the network overview."""

    def test_overview(self, make_tree):
        directory = make_tree(
            [("root", "left", "a"), ("root", "right", "b")],
            overrides={
                "root": {"fully_active": True, "annual_sales_volume": Decimal("300")},
                "a": {"monthly_sales_volume": Decimal("40")},
            },
        )

        stats = get_monoline_network_stats(directory)

        assert stats.total_members == 3
        assert stats.fully_active_members == 1
        assert stats.monthly_active_members == 2
        assert stats.annually_active_members == 1
        assert stats.inactive_members == 1
        assert stats.total_monthly_volume == Decimal("60")
        assert stats.average_depth == Decimal("0.67")
        assert stats.estimated_monthly_sales == Decimal("3.00")
        assert stats.estimated_passive_pool == Decimal("0.30")
        assert stats.estimated_company_fund == Decimal("27.00")
        assert [p.member_id for p in stats.top_performers] == ["root", "a", "b"]
        assert stats.top_performers[0].activity_status == "Fully Active"

    def test_top_performers_limited(self, make_tree):
        edges = [("root", "left", f"m{i}") if i == 0 else (f"m{i - 1}", "left", f"m{i}") for i in range(12)]
        overrides = {f"m{i}": {"annual_sales_volume": Decimal(i)} for i in range(12)}

        stats = get_monoline_network_stats(make_tree(edges, overrides=overrides))

        assert len(stats.top_performers) == 10
        assert stats.top_performers[0].member_id == "m11"

    def test_empty_directory(self):
        stats = get_monoline_network_stats(MemberDirectory([]))
        assert stats.total_members == 0
        assert stats.average_depth == Decimal("0")


class TestSaleSimulation:
    """Test N-unit sale simulation."""

    def test_three_units(self, make_chain):
        ids = [f"u{i}" for i in range(7, 0, -1)] + ["buyer"]
        overrides = {member_id: {"fully_active": True} for member_id in ids[:-1]}
        directory = make_chain(ids, overrides=overrides)

        simulation = simulate_sales_transaction("buyer", directory, units=3)

        assert simulation.sale_amount == Decimal("60.00")
        assert simulation.total_commissions == Decimal("29.70")
        assert simulation.total_passive_pool == Decimal("0.30")
        assert simulation.total_company_fund == Decimal("30.00")
        assert simulation.affected_members == [f"u{i}" for i in range(1, 8)]
        assert "Sale of 3 unit(s) by buyer" in simulation.summary
        # Wallets untouched
        assert all(member.wallet.balance == 0 for member in directory)

    def test_invalid_units(self, make_chain):
        with pytest.raises(ValueError):
            simulate_sales_transaction("buyer", make_chain(["root", "buyer"]), units=0)

    def test_unknown_buyer(self, make_chain):
        with pytest.raises(MemberNotFoundError):
            simulate_sales_transaction("ghost", make_chain(["root"]))
