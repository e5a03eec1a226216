"""
Purchase model.

The sale that triggers a commission pass. ``commission_distributed`` is the
idempotency flag: it is set before wallets are touched.
"""

from datetime import UTC, datetime
from decimal import Decimal

from sqlalchemy import Boolean, DateTime, ForeignKey, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from mlm_engine.models.base import Base
from mlm_engine.models.types import MoneyType


class Purchase(Base):
    """Purchase entity."""

    __tablename__ = "purchases"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    buyer_id: Mapped[str] = mapped_column(
        String(64), ForeignKey("members.id", ondelete="CASCADE"), nullable=False, index=True
    )
    commission_model: Mapped[str] = mapped_column(
        String(16), default="monoline", nullable=False
    )
    units: Mapped[int] = mapped_column(Integer, default=1, nullable=False)
    unit_price: Mapped[Decimal] = mapped_column(MoneyType, nullable=False)
    amount: Mapped[Decimal] = mapped_column(MoneyType, nullable=False)

    commission_distributed: Mapped[bool] = mapped_column(
        Boolean, default=False, nullable=False
    )
    distributed_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(UTC),
        nullable=False,
    )

    def __repr__(self) -> str:
        return (
            f"<Purchase(id={self.id}, buyer={self.buyer_id}, amount={self.amount}, "
            f"distributed={self.commission_distributed})>"
        )
