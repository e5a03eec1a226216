"""Wallet application and transaction risk scoring."""

from mlm_engine.services.ledger.risk import RiskAssessment, RiskScorer
from mlm_engine.services.ledger.wallet_applier import (
    CATEGORY_ACCUMULATORS,
    LedgerApplication,
    WalletApplier,
    WalletSink,
)

__all__ = [
    "CATEGORY_ACCUMULATORS",
    "LedgerApplication",
    "RiskAssessment",
    "RiskScorer",
    "WalletApplier",
    "WalletSink",
]
