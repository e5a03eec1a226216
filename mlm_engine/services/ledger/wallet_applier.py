"""
Ledger / wallet applier.

Credits commission transactions to recipient wallets and moves each
transaction to its terminal status. Updates of one recipient's wallet are
serialized with a per-recipient ``asyncio.Lock``; a transaction that is
already processed (or was recently applied by this applier) is skipped.
"""

import asyncio
from collections import OrderedDict
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Protocol

from loguru import logger

from mlm_engine.models.enums import CommissionCategory, DistributionStatus, TransactionStatus
from mlm_engine.services.commission.models import (
    CommissionTransaction,
    PassiveIncomeDistribution,
)
from mlm_engine.services.directory.directory import MemberDirectory
from mlm_engine.services.directory.snapshot import MemberSnapshot
from mlm_engine.services.ledger.risk import RiskScorer

# Wallet accumulator per category; company fund only moves the balance
CATEGORY_ACCUMULATORS: dict[CommissionCategory, str | None] = {
    CommissionCategory.SPONSOR: "sponsor_bonus",
    CommissionCategory.DEPTH: "career_bonus",
    CommissionCategory.PASSIVE: "passive_income",
    CommissionCategory.COMPANY_FUND: None,
}

PASSIVE_POOL_BUYER_ID = "passive_pool"

# Most recent transaction ids remembered for replay protection
APPLIED_IDS_LIMIT = 10_000


class WalletSink(Protocol):
    """Incremental wallet write-back, called under the recipient lock."""

    async def credit_wallet(
        self, member_id: str, category: CommissionCategory, amount: Decimal
    ) -> None: ...


@dataclass
class LedgerApplication:
    """Outcome of applying a batch of transactions."""

    processed: list[CommissionTransaction] = field(default_factory=list)
    failed: list[CommissionTransaction] = field(default_factory=list)
    skipped: list[CommissionTransaction] = field(default_factory=list)
    unapplied: list[CommissionTransaction] = field(default_factory=list)
    error: str | None = None

    @property
    def total_applied(self) -> Decimal:
        return sum((t.amount for t in self.processed), Decimal("0"))

    @property
    def touched_member_ids(self) -> list[str]:
        return list(dict.fromkeys(t.recipient_id for t in self.processed))

    @property
    def transactions(self) -> list[CommissionTransaction]:
        return self.processed + self.failed


class WalletApplier:
    """
    Apply commission transactions to wallets.

    Args:
        risk_scorer: Optional scorer flagging payouts for approval
        wallet_sink: Optional persistent credit per applied transaction
        applied_ids_limit: How many recently applied ids are remembered

    Per-recipient locks exist only while a credit for that recipient is
    running or waiting.
    """

    def __init__(
        self,
        risk_scorer: RiskScorer | None = None,
        wallet_sink: WalletSink | None = None,
        applied_ids_limit: int = APPLIED_IDS_LIMIT,
    ) -> None:
        self.risk_scorer = risk_scorer
        self.wallet_sink = wallet_sink
        self.applied_ids_limit = applied_ids_limit
        self._locks: dict[str, asyncio.Lock] = {}
        self._lock_users: dict[str, int] = {}
        self._applied_ids: OrderedDict[str, None] = OrderedDict()

    async def apply_transaction(
        self, transaction: CommissionTransaction, directory: MemberDirectory
    ) -> bool:
        """
        Credit one transaction.

        Args:
            transaction: Pending transaction
            directory: Directory holding the recipient wallet

        Returns:
            True if the wallet was credited now, False if skipped or failed
        """
        if self._already_applied(transaction):
            logger.warning(f"Transaction {transaction.id} already applied, skipping")
            return False

        recipient = directory.get(transaction.recipient_id)
        if recipient is None:
            transaction.mark_failed(f"Recipient {transaction.recipient_id} not found")
            logger.error(
                f"Commission {transaction.id} failed: recipient "
                f"{transaction.recipient_id} not found",
                extra={"sale_id": transaction.sale_id},
            )
            return False

        lock = self._acquire_lock(recipient.id)
        try:
            async with lock:
                if self._already_applied(transaction):
                    return False

                if self.risk_scorer is not None:
                    assessment = self.risk_scorer.assess(transaction.amount, recipient)
                    transaction.flag_for_approval(
                        assessment.score, assessment.requires_approval
                    )
                    if assessment.requires_approval:
                        logger.warning(
                            f"Commission {transaction.id} flagged for approval "
                            f"(risk {assessment.score}: {', '.join(assessment.factors)})"
                        )

                if self.wallet_sink is not None:
                    await self.wallet_sink.credit_wallet(
                        recipient.id, transaction.category, transaction.amount
                    )

                self._credit(recipient, transaction)
                self._remember(transaction.id)
                transaction.mark_processed()
                if self.risk_scorer is not None:
                    self.risk_scorer.record(recipient.id)
        finally:
            self._release_lock(recipient.id)

        logger.debug(
            f"Credited {transaction.amount} ({transaction.commission_type}) "
            f"to {recipient.id}"
        )
        return True

    async def apply_transactions(
        self,
        transactions: list[CommissionTransaction],
        directory: MemberDirectory,
    ) -> LedgerApplication:
        """
        Apply transactions in order.

        A wallet sink failure stops the batch: transactions applied before
        it stay applied, the rest stay pending in ``unapplied`` and the
        failure is recorded in ``error``.
        """
        application = LedgerApplication()
        for index, transaction in enumerate(transactions):
            try:
                credited = await self.apply_transaction(transaction, directory)
            except Exception as e:
                application.unapplied = transactions[index:]
                application.error = str(e)
                logger.error(
                    f"Wallet credit failed for {transaction.id}: {e}",
                    extra={
                        "sale_id": transaction.sale_id,
                        "unapplied": len(application.unapplied),
                    },
                )
                break
            if credited:
                application.processed.append(transaction)
            elif transaction.status is TransactionStatus.FAILED:
                application.failed.append(transaction)
            else:
                application.skipped.append(transaction)

        logger.info(
            "Ledger application finished",
            extra={
                "processed": len(application.processed),
                "failed": len(application.failed),
                "skipped": len(application.skipped),
                "total": str(application.total_applied),
            },
        )
        return application

    async def apply_distribution(
        self,
        distribution: PassiveIncomeDistribution,
        directory: MemberDirectory,
    ) -> LedgerApplication:
        """Credit every pending recipient of a passive pool distribution."""
        pending = [
            recipient
            for recipient in distribution.recipients
            if recipient.status is DistributionStatus.PENDING
        ]
        transactions = [
            CommissionTransaction(
                id=f"{distribution.distribution_id}_{recipient.member_id}",
                sale_id=distribution.distribution_id,
                buyer_id=PASSIVE_POOL_BUYER_ID,
                recipient_id=recipient.member_id,
                category=CommissionCategory.PASSIVE,
                amount=recipient.amount,
            )
            for recipient in pending
        ]
        application = await self.apply_transactions(transactions, directory)

        for recipient, transaction in zip(pending, transactions):
            if transaction.status is TransactionStatus.PROCESSED:
                recipient.status = DistributionStatus.DISTRIBUTED
            elif transaction.status is TransactionStatus.FAILED:
                recipient.status = DistributionStatus.FAILED
        return application

    def _acquire_lock(self, recipient_id: str) -> asyncio.Lock:
        lock = self._locks.get(recipient_id)
        if lock is None:
            lock = self._locks[recipient_id] = asyncio.Lock()
        self._lock_users[recipient_id] = self._lock_users.get(recipient_id, 0) + 1
        return lock

    def _release_lock(self, recipient_id: str) -> None:
        remaining = self._lock_users[recipient_id] - 1
        if remaining:
            self._lock_users[recipient_id] = remaining
        else:
            del self._lock_users[recipient_id]
            del self._locks[recipient_id]

    def _remember(self, transaction_id: str) -> None:
        self._applied_ids[transaction_id] = None
        self._applied_ids.move_to_end(transaction_id)
        while len(self._applied_ids) > self.applied_ids_limit:
            self._applied_ids.popitem(last=False)

    def _already_applied(self, transaction: CommissionTransaction) -> bool:
        return (
            transaction.id in self._applied_ids
            or transaction.status is not TransactionStatus.PENDING
        )

    @staticmethod
    def _credit(member: MemberSnapshot, transaction: CommissionTransaction) -> None:
        wallet = member.wallet
        wallet.balance += transaction.amount
        accumulator = CATEGORY_ACCUMULATORS[transaction.category]
        if accumulator is not None:
            wallet.total_earnings += transaction.amount
            setattr(wallet, accumulator, getattr(wallet, accumulator) + transaction.amount)
