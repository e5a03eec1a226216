"""
Monoline fixed-amount commission engine.

One unit sale splits into a direct sponsor bonus, seven fixed upline
levels gated by full activity, a passive pool contribution and the company
fund. Amounts that are not paid out (inactive recipient, no sponsor, chain
shorter than seven) and any part of the price the structure leaves
unallocated are added to the company fund, so the split always sums to the
unit price.
"""

from decimal import Decimal

from loguru import logger

from mlm_engine.config.commission_structures import (
    MembershipRequirements,
    MonolineCommissionStructure,
)
from mlm_engine.models.enums import CommissionCategory
from mlm_engine.services.activity.eligibility import evaluate_activity
from mlm_engine.services.commission.models import (
    CommissionTransaction,
    ForfeitedLevel,
    MonolineSaleResult,
)
from mlm_engine.services.directory.directory import MemberDirectory
from mlm_engine.utils.ids import generate_sale_id
from mlm_engine.utils.money import ZERO


def calculate_monoline_commissions(
    buyer_id: str,
    directory: MemberDirectory,
    unit_price: Decimal | None = None,
    structure: MonolineCommissionStructure | None = None,
    requirements: MembershipRequirements | None = None,
    decimals: int = 2,
    sale_id: str | None = None,
) -> MonolineSaleResult:
    """
    Split one unit sale.

    Args:
        buyer_id: Buyer member id
        directory: Member directory for this pass
        unit_price: Sale price; the structure is rescaled when it differs
        structure: Fixed amounts (defaults when omitted)
        requirements: Activity thresholds gating the upline levels
        decimals: Currency precision
        sale_id: Sale identifier (generated when omitted)

    Returns:
        MonolineSaleResult whose components sum to the unit price

    Raises:
        MemberNotFoundError: If the buyer is unknown
    """
    structure = structure or MonolineCommissionStructure()
    if unit_price is not None:
        structure = structure.scaled_to(unit_price, decimals)
    requirements = requirements or MembershipRequirements()
    sale_id = sale_id or generate_sale_id()

    buyer = directory.require(buyer_id, "Buyer")
    transactions: list[CommissionTransaction] = []
    forfeited: list[ForfeitedLevel] = []
    inactive_to_company = ZERO
    unclaimed_to_company = ZERO

    # 1. Direct sponsor, paid regardless of activity
    sponsor = directory.get(buyer.sponsor_id)
    if sponsor is not None:
        transactions.append(
            CommissionTransaction(
                sale_id=sale_id,
                buyer_id=buyer.id,
                recipient_id=sponsor.id,
                category=CommissionCategory.SPONSOR,
                percentage=structure.percentage_of_price(structure.direct_sponsor_amount),
                amount=structure.direct_sponsor_amount,
            )
        )
    else:
        unclaimed_to_company += structure.direct_sponsor_amount
        logger.warning(f"Buyer {buyer.id} has no sponsor, direct bonus goes to company fund")

    # 2. Upline levels, gated by full activity
    upline = directory.upline(buyer.id, max_levels=len(structure.depth_amounts))
    for index, amount in enumerate(structure.depth_amounts):
        level = index + 1
        if index >= len(upline):
            unclaimed_to_company += amount
            continue

        recipient = upline[index]
        if evaluate_activity(recipient, requirements).is_fully_active:
            transactions.append(
                CommissionTransaction(
                    sale_id=sale_id,
                    buyer_id=buyer.id,
                    recipient_id=recipient.id,
                    category=CommissionCategory.DEPTH,
                    level=level,
                    percentage=structure.percentage_of_price(amount),
                    amount=amount,
                )
            )
        else:
            inactive_to_company += amount
            forfeited.append(ForfeitedLevel(level=level, member_id=recipient.id, amount=amount))
            logger.debug(f"Level {level} forfeited by inactive member {recipient.id}")

    # 3. Passive pool and company fund
    company_fund = (
        structure.company_fund_amount
        + structure.remainder_amount
        + inactive_to_company
        + unclaimed_to_company
    )

    result = MonolineSaleResult(
        success=True,
        sale_id=sale_id,
        buyer_id=buyer.id,
        unit_price=structure.product_price,
        transactions=transactions,
        passive_pool_amount=structure.passive_pool_amount,
        company_fund_amount=company_fund,
        inactive_commissions_to_company=inactive_to_company,
        unclaimed_to_company=unclaimed_to_company,
        remainder_to_company=structure.remainder_amount,
        forfeited_levels=forfeited,
        message=f"{len(transactions)} monoline commissions calculated",
    )

    if result.total_allocated != structure.product_price:
        # Structures are validated at load, so this only fires on a corrupted one
        logger.error(
            f"Monoline split for {sale_id} totals {result.total_allocated}, "
            f"expected {structure.product_price}"
        )

    logger.info(
        "Monoline commissions calculated",
        extra={
            "sale_id": sale_id,
            "buyer_id": buyer.id,
            "distributed": str(result.total_distributed),
            "forfeited": str(inactive_to_company),
            "company_fund": str(company_fund),
        },
    )
    return result
