"""Async SQLAlchemy persistence adapter."""

from mlm_engine.repositories.base import BaseRepository
from mlm_engine.repositories.commission_record_repository import CommissionRecordRepository
from mlm_engine.repositories.member_repository import MemberRepository, to_snapshot
from mlm_engine.repositories.purchase_repository import PurchaseRepository

__all__ = [
    "BaseRepository",
    "CommissionRecordRepository",
    "MemberRepository",
    "PurchaseRepository",
    "to_snapshot",
]
