"""
CommissionRecord model.

One persisted commission transaction produced by a calculation pass.
"""

from datetime import UTC, datetime
from decimal import Decimal

from sqlalchemy import Boolean, DateTime, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from mlm_engine.models.base import Base
from mlm_engine.models.enums import TransactionStatus
from mlm_engine.models.types import MoneyType, RatePercentType


class CommissionRecord(Base):
    """
    CommissionRecord entity.

    ``recipient_id`` has no foreign key: a transaction whose recipient
    disappeared is still stored, with status ``failed``.
    """

    __tablename__ = "commission_records"
    __table_args__ = (
        Index("idx_commission_records_sale", "sale_id"),
        Index("idx_commission_records_recipient_status", "recipient_id", "status"),
    )

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    sale_id: Mapped[str] = mapped_column(String(64), nullable=False)
    buyer_id: Mapped[str] = mapped_column(String(64), nullable=False)
    recipient_id: Mapped[str] = mapped_column(String(64), nullable=False)

    category: Mapped[str] = mapped_column(String(32), nullable=False)
    level: Mapped[int | None] = mapped_column(Integer, nullable=True)
    percentage: Mapped[Decimal | None] = mapped_column(RatePercentType, nullable=True)
    amount: Mapped[Decimal] = mapped_column(MoneyType, nullable=False)

    status: Mapped[str] = mapped_column(
        String(16), default=TransactionStatus.PENDING.value, nullable=False
    )
    failure_reason: Mapped[str | None] = mapped_column(Text, nullable=True)
    requires_approval: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    risk_score: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(UTC),
        nullable=False,
    )
    processed_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    def __repr__(self) -> str:
        return (
            f"<CommissionRecord(id={self.id}, recipient={self.recipient_id}, "
            f"category={self.category}, amount={self.amount}, status={self.status})>"
        )
