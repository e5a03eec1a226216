"""
Read-only network queries: binary leg statistics, monoline network
overview and sale simulation.
"""

from dataclasses import dataclass, field
from decimal import Decimal

from loguru import logger

from mlm_engine.config.commission_structures import (
    MembershipRequirements,
    MonolineCommissionStructure,
)
from mlm_engine.services.activity.eligibility import evaluate_activity
from mlm_engine.services.commission.models import MonolineSaleResult
from mlm_engine.services.commission.monoline_engine import calculate_monoline_commissions
from mlm_engine.services.directory.directory import MemberDirectory
from mlm_engine.services.tree.statistics import TreeStatisticsEngine
from mlm_engine.utils.formatters import format_breakdown
from mlm_engine.utils.money import ZERO, quantize_money

TOP_PERFORMERS_LIMIT = 10


@dataclass(frozen=True)
class BinaryNetworkStats:
    """Left/right leg totals and the resulting binary bonus."""

    member_id: str
    left_volume: Decimal
    right_volume: Decimal
    left_count: int
    right_count: int
    binary_bonus: Decimal
    next_binary_bonus: Decimal


@dataclass(frozen=True)
class TopPerformer:
    member_id: str
    member_code: str
    full_name: str
    monthly_volume: Decimal
    annual_volume: Decimal
    activity_status: str


@dataclass
class MonolineNetworkStats:
    """Network-wide activity and volume overview."""

    total_members: int = 0
    fully_active_members: int = 0
    monthly_active_members: int = 0
    annually_active_members: int = 0
    inactive_members: int = 0
    total_monthly_volume: Decimal = ZERO
    total_annual_volume: Decimal = ZERO
    average_depth: Decimal = ZERO
    estimated_monthly_sales: Decimal = ZERO
    estimated_passive_pool: Decimal = ZERO
    estimated_company_fund: Decimal = ZERO
    top_performers: list[TopPerformer] = field(default_factory=list)


@dataclass
class SaleSimulation:
    """Breakdown of an N-unit sale; wallets are not touched."""

    buyer_id: str
    units: int
    sale_amount: Decimal
    per_unit: MonolineSaleResult
    total_commissions: Decimal
    total_passive_pool: Decimal
    total_company_fund: Decimal
    affected_members: list[str]
    summary: str


def get_binary_network_stats(
    member_id: str,
    statistics: TreeStatisticsEngine,
    binary_bonus_rate: Decimal = Decimal("0.10"),
    decimals: int = 2,
) -> BinaryNetworkStats:
    """
    Leg volumes, counts and binary bonus of a member.

    The bonus is paid on the weaker leg's volume; ``next_binary_bonus`` is
    what the stronger leg's surplus would pay once matched. Unknown members
    get zero statistics.

    Args:
        member_id: Member to inspect
        statistics: Statistics engine over the directory
        binary_bonus_rate: Share of the matched volume paid out
        decimals: Currency precision

    Returns:
        BinaryNetworkStats
    """
    member = statistics.directory.get(member_id)
    left_id = member.left_child_id if member else None
    right_id = member.right_child_id if member else None

    left_volume = statistics.subtree_volume(left_id)
    right_volume = statistics.subtree_volume(right_id)
    left_count = 1 + statistics.team_size(left_id) if left_id in statistics.directory else 0
    right_count = 1 + statistics.team_size(right_id) if right_id in statistics.directory else 0

    weaker = min(left_volume, right_volume)
    stronger = max(left_volume, right_volume)
    return BinaryNetworkStats(
        member_id=member_id,
        left_volume=left_volume,
        right_volume=right_volume,
        left_count=left_count,
        right_count=right_count,
        binary_bonus=quantize_money(weaker * binary_bonus_rate, decimals),
        next_binary_bonus=quantize_money((stronger - weaker) * binary_bonus_rate, decimals),
    )


def get_monoline_network_stats(
    directory: MemberDirectory,
    structure: MonolineCommissionStructure | None = None,
    requirements: MembershipRequirements | None = None,
    decimals: int = 2,
) -> MonolineNetworkStats:
    """
    Activity counts, volumes and this month's pool/fund estimates.

    Estimated monthly sales are monthly volume divided by the unit price;
    the pool and fund estimates multiply that by their per-unit amounts.
    """
    structure = structure or MonolineCommissionStructure()
    requirements = requirements or MembershipRequirements()
    members = list(directory)
    stats = MonolineNetworkStats(total_members=len(members))
    if not members:
        return stats

    performers: list[TopPerformer] = []
    total_depth = 0
    for member in members:
        status = evaluate_activity(member, requirements)
        if status.is_fully_active:
            stats.fully_active_members += 1
        if status.is_monthly_active:
            stats.monthly_active_members += 1
        if status.is_annually_active:
            stats.annually_active_members += 1
        if not status.is_monthly_active and not status.is_annually_active:
            stats.inactive_members += 1

        stats.total_monthly_volume += member.monthly_sales_volume
        stats.total_annual_volume += member.annual_sales_volume
        total_depth += directory.depth_of(member.id)
        performers.append(
            TopPerformer(
                member_id=member.id,
                member_code=member.member_code,
                full_name=member.full_name,
                monthly_volume=member.monthly_sales_volume,
                annual_volume=member.annual_sales_volume,
                activity_status=status.label,
            )
        )

    stats.average_depth = (Decimal(total_depth) / len(members)).quantize(Decimal("0.01"))
    sales_units = stats.total_monthly_volume / structure.product_price
    stats.estimated_monthly_sales = sales_units.quantize(Decimal("0.01"))
    stats.estimated_passive_pool = quantize_money(
        sales_units * structure.passive_pool_amount, decimals
    )
    stats.estimated_company_fund = quantize_money(
        sales_units * structure.company_fund_amount, decimals
    )
    stats.top_performers = sorted(
        performers, key=lambda performer: performer.annual_volume, reverse=True
    )[:TOP_PERFORMERS_LIMIT]
    return stats


def simulate_sales_transaction(
    buyer_id: str,
    directory: MemberDirectory,
    units: int = 1,
    structure: MonolineCommissionStructure | None = None,
    requirements: MembershipRequirements | None = None,
    decimals: int = 2,
    currency: str = "USD",
) -> SaleSimulation:
    """
    Run the monoline split for ``units`` units without applying it.

    Raises:
        ValueError: If ``units`` is not positive
        MemberNotFoundError: If the buyer is unknown
    """
    if units < 1:
        raise ValueError(f"units must be positive, got {units}")
    structure = structure or MonolineCommissionStructure()

    per_unit = calculate_monoline_commissions(
        buyer_id,
        directory,
        structure=structure,
        requirements=requirements,
        decimals=decimals,
    )
    total_commissions = per_unit.total_distributed * units
    total_pool = per_unit.passive_pool_amount * units
    total_fund = per_unit.company_fund_amount * units
    sale_amount = structure.product_price * units
    affected = list(dict.fromkeys(t.recipient_id for t in per_unit.transactions))

    summary = format_breakdown(
        f"Sale of {units} unit(s) by {buyer_id}",
        [
            ("Sale amount", sale_amount),
            ("Commissions paid", total_commissions),
            ("Forfeited to company", per_unit.inactive_commissions_to_company * units),
            ("Passive pool", total_pool),
            ("Company fund", total_fund),
        ],
        currency=currency,
        decimals=decimals,
    )
    logger.debug(summary)

    return SaleSimulation(
        buyer_id=buyer_id,
        units=units,
        sale_amount=sale_amount,
        per_unit=per_unit,
        total_commissions=total_commissions,
        total_passive_pool=total_pool,
        total_company_fund=total_fund,
        affected_members=affected,
        summary=summary,
    )
