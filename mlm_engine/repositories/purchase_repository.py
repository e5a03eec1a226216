"""
Purchase repository.
"""

from datetime import UTC, datetime
from decimal import Decimal

from sqlalchemy import update
from sqlalchemy.ext.asyncio import AsyncSession

from mlm_engine.models.purchase import Purchase
from mlm_engine.repositories.base import BaseRepository


class PurchaseRepository(BaseRepository[Purchase]):
    """Repository for Purchase entity."""

    def __init__(self, session: AsyncSession) -> None:
        super().__init__(Purchase, session)

    async def get_purchase(self, purchase_id: str) -> Purchase | None:
        return await self.get_by_id(purchase_id)

    async def record_purchase(
        self,
        purchase_id: str,
        buyer_id: str,
        unit_price: Decimal,
        units: int = 1,
        commission_model: str = "monoline",
    ) -> Purchase:
        """Store a sale awaiting commission distribution."""
        return await self.create(
            id=purchase_id,
            buyer_id=buyer_id,
            commission_model=commission_model,
            units=units,
            unit_price=unit_price,
            amount=unit_price * units,
            commission_distributed=False,
        )

    async def mark_commission_distributed(self, purchase_id: str) -> bool:
        """
        Claim the purchase for commission distribution.

        Conditional UPDATE, so two concurrent claims cannot both succeed.

        Returns:
            True if this call set the flag, False if it was already set
        """
        stmt = (
            update(Purchase)
            .where(Purchase.id == purchase_id, Purchase.commission_distributed.is_(False))
            .values(commission_distributed=True, distributed_at=datetime.now(UTC))
        )
        result = await self.session.execute(stmt)
        await self.session.flush()
        return result.rowcount > 0

    async def find_undistributed(self, limit: int | None = None) -> list[Purchase]:
        return await self.find_all(limit=limit, commission_distributed=False)

    async def count_undistributed(self) -> int:
        return await self.count(commission_distributed=False)
