"""
Commission value types shared by both calculators and the ledger.
"""

from dataclasses import dataclass, field
from datetime import UTC, datetime
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field

from mlm_engine.models.enums import CommissionCategory, DistributionStatus, TransactionStatus
from mlm_engine.utils.exceptions import InvalidStatusTransitionError
from mlm_engine.utils.ids import generate_transaction_id


class CommissionTransaction(BaseModel):
    """
    One payout produced by a calculation pass.

    Only the status, processing timestamp, failure reason and approval
    flags change after creation, through ``mark_processed`` /
    ``mark_failed`` / ``flag_for_approval``.
    """

    model_config = ConfigDict(frozen=False, validate_assignment=True)

    id: str = Field(default_factory=generate_transaction_id)
    sale_id: str
    buyer_id: str
    recipient_id: str
    category: CommissionCategory
    level: int | None = Field(default=None, ge=1)
    percentage: Decimal | None = None
    amount: Decimal = Field(..., ge=0)
    status: TransactionStatus = TransactionStatus.PENDING
    failure_reason: str | None = None
    requires_approval: bool = False
    risk_score: int = Field(default=0, ge=0, le=10)
    created_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
    processed_at: datetime | None = None

    @property
    def commission_type(self) -> str:
        """Category label with the level for depth payouts (``depth_level_3``)."""
        if self.category is CommissionCategory.DEPTH and self.level is not None:
            return f"depth_level_{self.level}"
        return self.category.value

    def mark_processed(self) -> None:
        self._transition(TransactionStatus.PROCESSED)

    def mark_failed(self, reason: str) -> None:
        self._transition(TransactionStatus.FAILED)
        self.failure_reason = reason

    def flag_for_approval(self, risk_score: int, requires_approval: bool) -> None:
        self.risk_score = risk_score
        self.requires_approval = requires_approval

    def _transition(self, status: TransactionStatus) -> None:
        if self.status.is_terminal:
            raise InvalidStatusTransitionError(
                f"Transaction {self.id} is already {self.status.value}"
            )
        self.status = status
        self.processed_at = datetime.now(UTC)


@dataclass
class ForfeitedLevel:
    """Upline level whose amount went to the company fund."""

    level: int
    member_id: str
    amount: Decimal


@dataclass
class ClassicCommissionResult:
    """
    Outcome of a classic (percentage) calculation pass.

    Attributes:
        success: False when the pass could not run
        sale_id: Identifier grouping the transactions
        investment_amount: Triggering amount
        transactions: Payouts in traversal order
        unallocated_system_fund: System fund kept back when no root exists
        error_code / message: Failure details
    """

    success: bool
    sale_id: str = ""
    investment_amount: Decimal = Decimal("0")
    transactions: list[CommissionTransaction] = field(default_factory=list)
    unallocated_system_fund: Decimal = Decimal("0")
    error_code: str | None = None
    message: str = ""

    @property
    def total_distributed(self) -> Decimal:
        return sum((t.amount for t in self.transactions), Decimal("0"))

    def total_for(self, category: CommissionCategory) -> Decimal:
        return sum(
            (t.amount for t in self.transactions if t.category is category),
            Decimal("0"),
        )


@dataclass
class MonolineSaleResult:
    """
    Outcome of a monoline (fixed amount) split for one unit.

    ``total_distributed + passive_pool_amount + company_fund_amount`` equals
    the unit price exactly.
    """

    success: bool
    sale_id: str = ""
    buyer_id: str = ""
    unit_price: Decimal = Decimal("0")
    transactions: list[CommissionTransaction] = field(default_factory=list)
    passive_pool_amount: Decimal = Decimal("0")
    company_fund_amount: Decimal = Decimal("0")
    inactive_commissions_to_company: Decimal = Decimal("0")
    unclaimed_to_company: Decimal = Decimal("0")
    remainder_to_company: Decimal = Decimal("0")
    forfeited_levels: list[ForfeitedLevel] = field(default_factory=list)
    error_code: str | None = None
    message: str = ""

    @property
    def total_distributed(self) -> Decimal:
        return sum((t.amount for t in self.transactions), Decimal("0"))

    @property
    def total_allocated(self) -> Decimal:
        return self.total_distributed + self.passive_pool_amount + self.company_fund_amount


@dataclass
class PassiveIncomeRecipient:
    member_id: str
    amount: Decimal
    status: DistributionStatus = DistributionStatus.PENDING


@dataclass
class PassiveIncomeDistribution:
    """
    Even split of the passive pool across fully active members.

    ``undistributed_remainder`` is what rounding the per-member amount
    leaves in the pool.
    """

    distribution_id: str
    total_pool_amount: Decimal
    active_member_count: int
    amount_per_member: Decimal
    recipients: list[PassiveIncomeRecipient] = field(default_factory=list)
    undistributed_remainder: Decimal = Decimal("0")
    success: bool = True
    error_code: str | None = None
    message: str = ""
    distributed_at: datetime = field(default_factory=lambda: datetime.now(UTC))

    @property
    def has_recipients(self) -> bool:
        return bool(self.recipients)
