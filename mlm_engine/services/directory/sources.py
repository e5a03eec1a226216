"""
Collaborator protocols consumed by the service facade.

The persistence adapter in ``mlm_engine.repositories`` implements them; tests
substitute in-memory or mocked versions.
"""

from decimal import Decimal
from typing import TYPE_CHECKING, Protocol

from mlm_engine.models.enums import CommissionCategory
from mlm_engine.services.directory.snapshot import MemberSnapshot

if TYPE_CHECKING:
    from mlm_engine.services.commission.models import CommissionTransaction


class MemberSource(Protocol):
    """Member lookup and write-back."""

    async def get_member(self, member_id: str) -> MemberSnapshot | None: ...

    async def get_members_by_sponsor(self, sponsor_id: str) -> list[MemberSnapshot]: ...

    async def list_members(self) -> list[MemberSnapshot]: ...

    async def get_last_member_code(self) -> str | None: ...

    async def save_tree_pointers(self, members: list[MemberSnapshot]) -> None: ...

    async def credit_wallet(
        self, member_id: str, category: CommissionCategory, amount: Decimal
    ) -> None: ...

    async def delete_member(self, member_id: str) -> None: ...


class TransactionSink(Protocol):
    """Persistence for commission transactions."""

    async def save_transactions(
        self, transactions: list["CommissionTransaction"]
    ) -> None: ...


class PurchaseRecord(Protocol):
    id: str
    buyer_id: str
    commission_model: str
    units: int
    unit_price: Decimal
    amount: Decimal
    commission_distributed: bool


class PurchaseLedger(Protocol):
    """Purchase lookup and the commission-distributed flag."""

    async def get_purchase(self, purchase_id: str) -> PurchaseRecord | None: ...

    async def mark_commission_distributed(self, purchase_id: str) -> bool:
        """Set the flag; False if it was already set."""
        ...
