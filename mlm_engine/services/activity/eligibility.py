"""
Activity eligibility.

Pure functions over a member's sales metrics and the membership thresholds.
Every boundary is inclusive.
"""

from dataclasses import dataclass
from decimal import Decimal

from mlm_engine.config.commission_structures import MembershipRequirements
from mlm_engine.services.directory.snapshot import MemberSnapshot
from mlm_engine.utils.formatters import format_currency


@dataclass(frozen=True)
class ActivityStatus:
    """Activity flags of one member."""

    is_monthly_active: bool
    is_annually_active: bool
    has_initial_purchase: bool
    is_fully_active: bool

    @property
    def label(self) -> str:
        if self.is_fully_active:
            return "Fully Active"
        if self.is_monthly_active:
            return "Monthly Active"
        if self.is_annually_active:
            return "Annually Active"
        return "Inactive"


@dataclass(frozen=True)
class MembershipValidation:
    """Result of the initial membership check."""

    is_valid: bool
    required_amount: Decimal
    message: str


def evaluate_activity(
    member: MemberSnapshot,
    requirements: MembershipRequirements | None = None,
    monthly_sales: Decimal | None = None,
    annual_sales: Decimal | None = None,
) -> ActivityStatus:
    """
    Classify a member's activity.

    Args:
        member: Member snapshot
        requirements: Thresholds (defaults when omitted)
        monthly_sales: Override for the recorded monthly volume
        annual_sales: Override for the recorded annual volume

    Returns:
        ActivityStatus; fully active requires all three checks
    """
    requirements = requirements or MembershipRequirements()
    monthly = member.monthly_sales_volume if monthly_sales is None else monthly_sales
    annual = member.annual_sales_volume if annual_sales is None else annual_sales

    is_monthly_active = monthly >= requirements.monthly_minimum
    is_annually_active = annual >= requirements.annual_minimum
    has_initial_purchase = member.total_investment >= requirements.initial_purchase_minimum

    return ActivityStatus(
        is_monthly_active=is_monthly_active,
        is_annually_active=is_annually_active,
        has_initial_purchase=has_initial_purchase,
        is_fully_active=is_monthly_active and is_annually_active and has_initial_purchase,
    )


def validate_initial_membership(
    purchase_amount: Decimal,
    requirements: MembershipRequirements | None = None,
    currency: str = "$",
) -> MembershipValidation:
    """
    Check that a first purchase meets the initial minimum.

    Example:
        >>> validate_initial_membership(Decimal("80")).message
        'Minimum initial purchase of $100.00 (5 units) required'
    """
    requirements = requirements or MembershipRequirements()
    required = requirements.initial_purchase_minimum
    is_valid = purchase_amount >= required

    if is_valid:
        message = "Initial membership requirement met"
    else:
        units = requirements.initial_units.normalize()
        message = (
            f"Minimum initial purchase of {format_currency(required, currency)} "
            f"({units:f} units) required"
        )

    return MembershipValidation(is_valid=is_valid, required_amount=required, message=message)
