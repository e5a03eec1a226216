"""
Member repository.

Implements the member lookup and write-back capabilities the commission
engine service consumes.
"""

from decimal import Decimal

from loguru import logger
from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from mlm_engine.models.enums import CommissionCategory, MemberRole
from mlm_engine.models.member import Member
from mlm_engine.repositories.base import BaseRepository
from mlm_engine.services.directory.snapshot import MemberSnapshot, Wallet
from mlm_engine.services.ledger.wallet_applier import CATEGORY_ACCUMULATORS


def to_snapshot(member: Member) -> MemberSnapshot:
    """Convert an ORM member to the engine snapshot."""
    return MemberSnapshot(
        id=member.id,
        member_code=member.member_code,
        full_name=member.full_name,
        role=MemberRole(member.role),
        sponsor_id=member.sponsor_id,
        left_child_id=member.left_child_id,
        right_child_id=member.right_child_id,
        is_active=member.is_active,
        career_level=member.career_level,
        monthly_sales_volume=member.monthly_sales_volume,
        annual_sales_volume=member.annual_sales_volume,
        total_investment=member.total_investment,
        registered_at=member.registered_at,
        wallet=Wallet(
            balance=member.wallet_balance,
            total_earnings=member.total_earnings,
            sponsor_bonus=member.sponsor_bonus,
            career_bonus=member.career_bonus,
            passive_income=member.passive_income,
            leadership_bonus=member.leadership_bonus,
        ),
    )


class MemberRepository(BaseRepository[Member]):
    """Repository for Member entity."""

    def __init__(self, session: AsyncSession) -> None:
        super().__init__(Member, session)

    async def get_member(self, member_id: str) -> MemberSnapshot | None:
        member = await self.get_by_id(member_id)
        return to_snapshot(member) if member else None

    async def get_members_by_sponsor(self, sponsor_id: str) -> list[MemberSnapshot]:
        """Direct children (by sponsor pointer) of a member."""
        members = await self.find_by(sponsor_id=sponsor_id)
        return [to_snapshot(member) for member in members]

    async def list_members(self) -> list[MemberSnapshot]:
        members = await self.find_all()
        return [to_snapshot(member) for member in members]

    async def get_by_member_code(self, member_code: str) -> Member | None:
        return await self.get_by(member_code=member_code)

    async def get_last_member_code(self) -> str | None:
        """Highest member code issued so far."""
        stmt = select(Member.member_code).order_by(Member.member_code.desc()).limit(1)
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def save_tree_pointers(self, members: list[MemberSnapshot]) -> None:
        """Write sponsor and child pointers back."""
        for snapshot in members:
            await self.session.execute(
                update(Member)
                .where(Member.id == snapshot.id)
                .values(
                    sponsor_id=snapshot.sponsor_id,
                    left_child_id=snapshot.left_child_id,
                    right_child_id=snapshot.right_child_id,
                )
            )
        await self.session.flush()
        logger.debug(f"Tree pointers saved for {len(members)} members")

    async def credit_wallet(
        self, member_id: str, category: CommissionCategory, amount: Decimal
    ) -> None:
        """
        Add ``amount`` to the wallet in one UPDATE.

        The increment happens in SQL so concurrent credits do not
        overwrite each other.
        """
        values = {"wallet_balance": Member.wallet_balance + amount}
        accumulator = CATEGORY_ACCUMULATORS[category]
        if accumulator is not None:
            values["total_earnings"] = Member.total_earnings + amount
            values[accumulator] = getattr(Member, accumulator) + amount

        await self.session.execute(
            update(Member).where(Member.id == member_id).values(**values)
        )
        await self.session.flush()

    async def delete_member(self, member_id: str) -> None:
        deleted = await self.delete(member_id)
        if not deleted:
            logger.warning(f"Member {member_id} was already gone from storage")

    async def update_activity(
        self,
        member_id: str,
        monthly_sales_volume: Decimal | None = None,
        annual_sales_volume: Decimal | None = None,
        total_investment: Decimal | None = None,
        is_active: bool | None = None,
    ) -> MemberSnapshot | None:
        """
        Store new activity metrics for a member.

        Only the given values change. Returns the updated snapshot, or None
        if the member does not exist.
        """
        values = {
            key: value
            for key, value in (
                ("monthly_sales_volume", monthly_sales_volume),
                ("annual_sales_volume", annual_sales_volume),
                ("total_investment", total_investment),
                ("is_active", is_active),
            )
            if value is not None
        }
        member = await self.update(member_id, **values)
        return to_snapshot(member) if member else None
