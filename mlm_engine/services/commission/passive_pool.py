"""
Passive income pool distribution.

Run on a schedule, not per sale: the accumulated pool is split evenly
across fully active members. Recipients stay ``pending`` until the ledger
applies them.
"""

from collections.abc import Iterable
from decimal import ROUND_DOWN, Decimal

from loguru import logger

from mlm_engine.config.commission_structures import MembershipRequirements
from mlm_engine.services.activity.eligibility import evaluate_activity
from mlm_engine.services.commission.models import (
    PassiveIncomeDistribution,
    PassiveIncomeRecipient,
)
from mlm_engine.services.directory.snapshot import MemberSnapshot
from mlm_engine.utils.ids import generate_distribution_id
from mlm_engine.utils.money import ZERO, minor_unit, quantize_money


def distribute_passive_income_pool(
    total_pool_amount: Decimal,
    members: Iterable[MemberSnapshot],
    requirements: MembershipRequirements | None = None,
    decimals: int = 2,
) -> PassiveIncomeDistribution:
    """
    Split the pool evenly across fully active members.

    The per-member amount is rounded down to the minor unit so the payouts
    never exceed the pool; the difference is reported as
    ``undistributed_remainder``.

    Args:
        total_pool_amount: Accumulated pool
        members: Candidate members (typically the whole directory)
        requirements: Activity thresholds
        decimals: Currency precision

    Returns:
        PassiveIncomeDistribution; no active members gives an explicit
        "no recipients" result
    """
    requirements = requirements or MembershipRequirements()
    distribution_id = generate_distribution_id()
    pool = quantize_money(total_pool_amount, decimals)

    active_members = [
        member for member in members if evaluate_activity(member, requirements).is_fully_active
    ]

    if not active_members:
        logger.warning(f"Passive pool {pool} not distributed: no fully active members")
        return PassiveIncomeDistribution(
            distribution_id=distribution_id,
            total_pool_amount=pool,
            active_member_count=0,
            amount_per_member=ZERO,
            undistributed_remainder=pool,
            success=False,
            error_code="no_recipients",
            message="No fully active members to receive the passive pool",
        )

    count = len(active_members)
    amount_per_member = (pool / count).quantize(minor_unit(decimals), rounding=ROUND_DOWN)
    recipients = [
        PassiveIncomeRecipient(member_id=member.id, amount=amount_per_member)
        for member in active_members
    ]
    remainder = pool - amount_per_member * count

    logger.info(
        "Passive pool distribution prepared",
        extra={
            "distribution_id": distribution_id,
            "pool": str(pool),
            "recipients": count,
            "per_member": str(amount_per_member),
        },
    )
    return PassiveIncomeDistribution(
        distribution_id=distribution_id,
        total_pool_amount=pool,
        active_member_count=count,
        amount_per_member=amount_per_member,
        recipients=recipients,
        undistributed_remainder=remainder,
        message=f"Passive pool split across {count} active members",
    )
