"""
Enumerations shared by the engines and the ORM models.
"""

from enum import Enum


class PlacementSide(str, Enum):
    """Binary tree child slot."""

    LEFT = "left"
    RIGHT = "right"

    @property
    def opposite(self) -> "PlacementSide":
        return PlacementSide.RIGHT if self is PlacementSide.LEFT else PlacementSide.LEFT


class PlacementAlgorithm(str, Enum):
    """Scoring used to pick the weaker leg."""

    SIZE_BASED = "size_based"
    VOLUME_BASED = "volume_based"
    DEPTH_FIRST = "depth_first"
    BALANCED = "balanced"


class PlacementSearch(str, Enum):
    """Greedy weaker-leg descent or exhaustive search-and-score."""

    GREEDY = "greedy"
    EXHAUSTIVE = "exhaustive"


class CommissionCategory(str, Enum):
    """Commission transaction category."""

    SPONSOR = "sponsor"
    DEPTH = "depth"
    PASSIVE = "passive"
    COMPANY_FUND = "company_fund"


class TransactionStatus(str, Enum):
    """Commission transaction lifecycle: pending -> processed | failed."""

    PENDING = "pending"
    PROCESSED = "processed"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self is not TransactionStatus.PENDING


class DistributionStatus(str, Enum):
    """Passive pool recipient status."""

    PENDING = "pending"
    DISTRIBUTED = "distributed"
    FAILED = "failed"


class MemberRole(str, Enum):
    """Member roles; admins cannot be deleted by tree operations."""

    ADMIN = "admin"
    LEADER = "leader"
    MEMBER = "member"
