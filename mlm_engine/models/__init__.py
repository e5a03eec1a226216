"""
Database models and shared enumerations.
"""

from mlm_engine.models.base import Base
from mlm_engine.models.commission_record import CommissionRecord
from mlm_engine.models.enums import (
    CommissionCategory,
    DistributionStatus,
    MemberRole,
    PlacementAlgorithm,
    PlacementSearch,
    PlacementSide,
    TransactionStatus,
)
from mlm_engine.models.member import Member
from mlm_engine.models.purchase import Purchase

__all__ = [
    "Base",
    "CommissionCategory",
    "CommissionRecord",
    "DistributionStatus",
    "Member",
    "MemberRole",
    "PlacementAlgorithm",
    "PlacementSearch",
    "PlacementSide",
    "Purchase",
    "TransactionStatus",
]
