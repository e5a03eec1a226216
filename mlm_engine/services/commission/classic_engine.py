"""
Classic percentage commission engine.

Splits an investment into:

- sponsor bonus paid to an active immediate sponsor;
- depth bonus out of a pre-allocated pool, up to seven levels, ending at
  the first inactive member or missing link;
- passive income out of its own pool, scaled by each sponsor's career
  passive rate and the levels remaining, climbing past unpaid sponsors;
- system fund paid to the root member.

Each amount is rounded once. The engine only builds transactions; the
ledger applies them.
"""

from decimal import Decimal

from loguru import logger

from mlm_engine.config.career_levels import get_passive_income_rate
from mlm_engine.config.commission_structures import ClassicCommissionStructure
from mlm_engine.models.enums import CommissionCategory
from mlm_engine.services.commission.models import (
    ClassicCommissionResult,
    CommissionTransaction,
)
from mlm_engine.services.directory.directory import MemberDirectory
from mlm_engine.utils.ids import generate_sale_id
from mlm_engine.utils.money import HUNDRED, ZERO, quantize_money


def calculate_classic_commissions(
    investment_amount: Decimal,
    member_id: str,
    directory: MemberDirectory,
    structure: ClassicCommissionStructure | None = None,
    decimals: int = 2,
    sale_id: str | None = None,
) -> ClassicCommissionResult:
    """
    Build the classic split for one investment.

    Args:
        investment_amount: Triggering amount
        member_id: Acting member
        directory: Member directory for this pass
        structure: Rates (defaults when omitted)
        decimals: Currency precision
        sale_id: Sale identifier (generated when omitted)

    Returns:
        ClassicCommissionResult with transactions in traversal order

    Raises:
        MemberNotFoundError: If the acting member is unknown
    """
    structure = structure or ClassicCommissionStructure()
    sale_id = sale_id or generate_sale_id()
    member = directory.require(member_id, "Member")
    transactions: list[CommissionTransaction] = []

    def add(
        recipient_id: str,
        category: CommissionCategory,
        rate: Decimal,
        level: int | None = None,
    ) -> None:
        amount = quantize_money(investment_amount * rate, decimals)
        if amount <= ZERO:
            return
        transactions.append(
            CommissionTransaction(
                sale_id=sale_id,
                buyer_id=member.id,
                recipient_id=recipient_id,
                category=category,
                level=level,
                percentage=rate * HUNDRED,
                amount=amount,
            )
        )

    # 1. Sponsor bonus
    sponsor = directory.get(member.sponsor_id)
    if sponsor is not None and sponsor.is_active:
        add(sponsor.id, CommissionCategory.SPONSOR, structure.sponsor_rate, level=1)
    elif member.sponsor_id is not None:
        logger.debug(f"Sponsor bonus skipped for {member.id}: sponsor missing or inactive")

    # 2. Depth bonus
    upline = directory.upline(member.id, max_levels=len(structure.depth_level_rates))
    for level, upline_member in enumerate(upline, start=1):
        if not upline_member.is_active:
            logger.debug(f"Depth ladder for {member.id} ends at inactive level {level}")
            break
        rate = structure.depth_pool_rate * structure.depth_level_rates[level - 1]
        add(upline_member.id, CommissionCategory.DEPTH, rate, level=level)

    # 3. Passive income
    passive_upline = directory.upline(member.id, max_levels=structure.passive_levels)
    for index, upline_member in enumerate(passive_upline):
        levels_remaining = structure.passive_levels - index
        passive_rate = get_passive_income_rate(upline_member.career_level)
        if upline_member.is_active and passive_rate > ZERO:
            rate = (
                structure.passive_pool_rate
                * passive_rate
                / HUNDRED
                * Decimal(levels_remaining)
                / Decimal(structure.passive_levels)
            )
            add(upline_member.id, CommissionCategory.PASSIVE, rate, level=index + 1)

    # 4. System fund
    unallocated = ZERO
    root = directory.root
    if root is not None:
        add(root.id, CommissionCategory.COMPANY_FUND, structure.system_fund_rate)
    else:
        unallocated = quantize_money(investment_amount * structure.system_fund_rate, decimals)
        logger.warning(
            f"No root member configured, system fund {unallocated} left unallocated",
            extra={"sale_id": sale_id},
        )

    result = ClassicCommissionResult(
        success=True,
        sale_id=sale_id,
        investment_amount=investment_amount,
        transactions=transactions,
        unallocated_system_fund=unallocated,
        message=f"{len(transactions)} classic commissions calculated",
    )
    logger.info(
        "Classic commissions calculated",
        extra={
            "sale_id": sale_id,
            "member_id": member.id,
            "investment": str(investment_amount),
            "transactions": len(transactions),
            "distributed": str(result.total_distributed),
        },
    )
    return result
