"""
In-memory member snapshot used by every engine during a calculation pass.
"""

from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field

from mlm_engine.models.enums import MemberRole


class Wallet(BaseModel):
    """Member wallet: balance plus per-category accumulators."""

    model_config = ConfigDict(frozen=False, validate_assignment=True)

    balance: Decimal = Field(default=Decimal("0"))
    total_earnings: Decimal = Field(default=Decimal("0"), ge=0)
    sponsor_bonus: Decimal = Field(default=Decimal("0"), ge=0)
    career_bonus: Decimal = Field(default=Decimal("0"), ge=0)
    passive_income: Decimal = Field(default=Decimal("0"), ge=0)
    leadership_bonus: Decimal = Field(default=Decimal("0"), ge=0)


class MemberSnapshot(BaseModel):
    """
    Member record as seen by the engines.

    Tree pointers (``sponsor_id``, ``left_child_id``, ``right_child_id``) and
    the wallet are mutable; everything else is read during a pass.
    """

    model_config = ConfigDict(frozen=False, validate_assignment=True)

    id: str
    member_code: str = ""
    full_name: str = ""
    role: MemberRole = MemberRole.MEMBER

    sponsor_id: str | None = None
    left_child_id: str | None = None
    right_child_id: str | None = None

    is_active: bool = True
    career_level: int = Field(default=1, ge=1, le=7)
    monthly_sales_volume: Decimal = Field(default=Decimal("0"), ge=0)
    annual_sales_volume: Decimal = Field(default=Decimal("0"), ge=0)
    total_investment: Decimal = Field(default=Decimal("0"), ge=0)
    registered_at: datetime | None = None

    wallet: Wallet = Field(default_factory=Wallet)

    @property
    def is_admin(self) -> bool:
        return self.role == MemberRole.ADMIN

    @property
    def has_open_slot(self) -> bool:
        return self.left_child_id is None or self.right_child_id is None
