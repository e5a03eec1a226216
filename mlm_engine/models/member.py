"""
Member model.

Persisted form of a network member: binary tree pointers, activity metrics
and wallet accumulators.
"""

from datetime import UTC, datetime
from decimal import Decimal

from sqlalchemy import Boolean, DateTime, ForeignKey, Index, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from mlm_engine.models.base import Base
from mlm_engine.models.enums import MemberRole
from mlm_engine.models.types import MoneyType


class Member(Base):
    """
    Member entity.

    Attributes:
        id: Opaque member id
        member_code: Human-readable sequential code (MB0000001)
        sponsor_id: Placement parent (None for the root)
        left_child_id: Member in the left slot
        right_child_id: Member in the right slot
        is_active: Account active flag (classic engine gating)
        career_level: Career level number (1-7)
        monthly_sales_volume: Sales volume in the current month
        annual_sales_volume: Sales volume in the current year
        total_investment: Lifetime investment
        wallet_balance: Spendable balance
        total_earnings: Lifetime commission earnings
        sponsor_bonus / career_bonus / passive_income / leadership_bonus:
            Per-category earnings accumulators
    """

    __tablename__ = "members"
    __table_args__ = (
        Index("idx_members_sponsor", "sponsor_id"),
        Index("idx_members_active", "is_active"),
    )

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    member_code: Mapped[str] = mapped_column(
        String(32), unique=True, nullable=False, index=True
    )
    full_name: Mapped[str] = mapped_column(String(255), default="", nullable=False)
    role: Mapped[str] = mapped_column(
        String(16), default=MemberRole.MEMBER.value, nullable=False
    )

    # Binary tree
    sponsor_id: Mapped[str | None] = mapped_column(
        String(64), ForeignKey("members.id", ondelete="SET NULL"), nullable=True
    )
    left_child_id: Mapped[str | None] = mapped_column(
        String(64), ForeignKey("members.id", ondelete="SET NULL"), nullable=True
    )
    right_child_id: Mapped[str | None] = mapped_column(
        String(64), ForeignKey("members.id", ondelete="SET NULL"), nullable=True
    )

    # Activity
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    career_level: Mapped[int] = mapped_column(Integer, default=1, nullable=False)
    monthly_sales_volume: Mapped[Decimal] = mapped_column(
        MoneyType, default=Decimal("0"), nullable=False
    )
    annual_sales_volume: Mapped[Decimal] = mapped_column(
        MoneyType, default=Decimal("0"), nullable=False
    )
    total_investment: Mapped[Decimal] = mapped_column(
        MoneyType, default=Decimal("0"), nullable=False
    )

    # Wallet
    wallet_balance: Mapped[Decimal] = mapped_column(
        MoneyType, default=Decimal("0"), nullable=False
    )
    total_earnings: Mapped[Decimal] = mapped_column(
        MoneyType, default=Decimal("0"), nullable=False
    )
    sponsor_bonus: Mapped[Decimal] = mapped_column(
        MoneyType, default=Decimal("0"), nullable=False
    )
    career_bonus: Mapped[Decimal] = mapped_column(
        MoneyType, default=Decimal("0"), nullable=False
    )
    passive_income: Mapped[Decimal] = mapped_column(
        MoneyType, default=Decimal("0"), nullable=False
    )
    leadership_bonus: Mapped[Decimal] = mapped_column(
        MoneyType, default=Decimal("0"), nullable=False
    )

    registered_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(UTC),
        nullable=False,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(UTC),
        onupdate=lambda: datetime.now(UTC),
        nullable=False,
    )

    def __repr__(self) -> str:
        return (
            f"<Member(id={self.id}, code={self.member_code}, "
            f"sponsor={self.sponsor_id})>"
        )
