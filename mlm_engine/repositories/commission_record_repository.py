"""
CommissionRecord repository.
"""

from decimal import Decimal

from sqlalchemy import insert, select
from sqlalchemy.ext.asyncio import AsyncSession

from mlm_engine.models.commission_record import CommissionRecord
from mlm_engine.models.enums import TransactionStatus
from mlm_engine.repositories.base import BaseRepository
from mlm_engine.services.commission.models import CommissionTransaction

PERCENTAGE_PLACES = Decimal("0.0001")


def to_record_values(transaction: CommissionTransaction) -> dict:
    """Column values for one engine transaction."""
    percentage = transaction.percentage
    if percentage is not None:
        percentage = percentage.quantize(PERCENTAGE_PLACES)
    return {
        "id": transaction.id,
        "sale_id": transaction.sale_id,
        "buyer_id": transaction.buyer_id,
        "recipient_id": transaction.recipient_id,
        "category": transaction.category.value,
        "level": transaction.level,
        "percentage": percentage,
        "amount": transaction.amount,
        "status": transaction.status.value,
        "failure_reason": transaction.failure_reason,
        "requires_approval": transaction.requires_approval,
        "risk_score": transaction.risk_score,
        "created_at": transaction.created_at,
        "processed_at": transaction.processed_at,
    }


class CommissionRecordRepository(BaseRepository[CommissionRecord]):
    """Repository for CommissionRecord entity."""

    def __init__(self, session: AsyncSession) -> None:
        super().__init__(CommissionRecord, session)

    async def save_transactions(self, transactions: list[CommissionTransaction]) -> None:
        """Insert all transactions of a pass in one statement."""
        if not transactions:
            return
        await self.session.execute(
            insert(CommissionRecord),
            [to_record_values(transaction) for transaction in transactions],
        )
        await self.session.flush()

    async def get_by_sale(self, sale_id: str) -> list[CommissionRecord]:
        return await self.find_by(sale_id=sale_id)

    async def get_by_recipient(
        self,
        recipient_id: str,
        status: TransactionStatus | None = None,
        limit: int | None = None,
    ) -> list[CommissionRecord]:
        """Records paid to a member, newest first."""
        stmt = select(CommissionRecord).where(CommissionRecord.recipient_id == recipient_id)
        if status is not None:
            stmt = stmt.where(CommissionRecord.status == status.value)
        stmt = stmt.order_by(CommissionRecord.created_at.desc())
        if limit:
            stmt = stmt.limit(limit)

        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def get_pending_approval(self) -> list[CommissionRecord]:
        return await self.find_by(requires_approval=True)
