"""
Transaction risk score.

A 0..10 score that only flags a transaction for manual approval; it never
blocks the wallet update.
"""

from collections import deque
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta
from decimal import Decimal

from mlm_engine.services.directory.snapshot import MemberSnapshot

MAX_RISK_SCORE = 10

# (threshold, points), checked from the largest band down
AMOUNT_BANDS: tuple[tuple[Decimal, int], ...] = (
    (Decimal("50000"), 3),
    (Decimal("10000"), 2),
    (Decimal("5000"), 1),
)
RECENT_TRANSACTION_LIMIT = 10
RECENT_TRANSACTION_POINTS = 2
NEW_MEMBER_DAYS = 7
NEW_MEMBER_POINTS = 2


@dataclass(frozen=True)
class RiskAssessment:
    score: int
    requires_approval: bool
    factors: list[str] = field(default_factory=list)


class RiskScorer:
    """
    Score payouts from amount, recent frequency and recipient tenure.

    Args:
        approval_threshold: Score at which approval is required
        window: Look-back window for the frequency factor
        clock: Current time source (injectable for tests)
    """

    def __init__(
        self,
        approval_threshold: int = 5,
        window: timedelta = timedelta(hours=24),
        clock: Callable[[], datetime] = lambda: datetime.now(UTC),
    ) -> None:
        self.approval_threshold = approval_threshold
        self.window = window
        self._clock = clock
        self._history: dict[str, deque[datetime]] = {}

    def assess(self, amount: Decimal, recipient: MemberSnapshot) -> RiskAssessment:
        """Score one payout to ``recipient``."""
        now = self._clock()
        score = 0
        factors: list[str] = []

        for threshold, points in AMOUNT_BANDS:
            if amount > threshold:
                score += points
                factors.append(f"amount above {threshold}")
                break

        if self.recent_count(recipient.id, now) > RECENT_TRANSACTION_LIMIT:
            score += RECENT_TRANSACTION_POINTS
            factors.append("high transaction frequency")

        if recipient.registered_at is not None:
            registered_at = recipient.registered_at
            if registered_at.tzinfo is None:
                registered_at = registered_at.replace(tzinfo=UTC)
            if now - registered_at < timedelta(days=NEW_MEMBER_DAYS):
                score += NEW_MEMBER_POINTS
                factors.append("new member")

        score = min(score, MAX_RISK_SCORE)
        return RiskAssessment(
            score=score,
            requires_approval=score >= self.approval_threshold,
            factors=factors,
        )

    def record(self, recipient_id: str) -> None:
        """Remember a payout for the frequency factor."""
        self._history.setdefault(recipient_id, deque()).append(self._clock())

    def recent_count(self, recipient_id: str, now: datetime | None = None) -> int:
        history = self._history.get(recipient_id)
        if not history:
            return 0
        cutoff = (now or self._clock()) - self.window
        while history and history[0] < cutoff:
            history.popleft()
        return len(history)
