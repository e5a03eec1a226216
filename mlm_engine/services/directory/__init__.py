"""Member directory: snapshots, indexes and collaborator protocols."""

from mlm_engine.services.directory.directory import MemberDirectory
from mlm_engine.services.directory.snapshot import MemberSnapshot, Wallet
from mlm_engine.services.directory.sources import (
    MemberSource,
    PurchaseLedger,
    PurchaseRecord,
    TransactionSink,
)

__all__ = [
    "MemberDirectory",
    "MemberSnapshot",
    "MemberSource",
    "PurchaseLedger",
    "PurchaseRecord",
    "TransactionSink",
    "Wallet",
]
