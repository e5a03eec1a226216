"""
Tree statistics engine.

Team size, subtree volume, max depth and active-member counts over the
sponsor-children relation, plus the leg score used to compare two legs.
Traversals are iterative so deep single-line trees are safe. Unknown ids
yield zero statistics.
"""

from dataclasses import dataclass
from decimal import Decimal

from loguru import logger

from mlm_engine.config.commission_structures import LegScoreWeights
from mlm_engine.services.directory.directory import MemberDirectory
from mlm_engine.services.tree.cache import NullStatsCache, StatsCache


@dataclass(frozen=True)
class LegStats:
    """Statistics of one subtree."""

    team_size: int = 0
    volume: Decimal = Decimal("0")
    active_members: int = 0
    max_depth: int = 0


EMPTY_LEG = LegStats()


def leg_score(stats: LegStats, weights: LegScoreWeights | None = None) -> Decimal:
    """
    Weighted composite used for weaker-leg decisions (lower is weaker).

    Args:
        stats: Leg statistics
        weights: Weights and normalization divisors

    Returns:
        Composite score
    """
    weights = weights or LegScoreWeights()
    return (
        Decimal(stats.team_size) / weights.size_divisor * weights.size_weight
        + stats.volume / weights.volume_divisor * weights.volume_weight
        + Decimal(stats.active_members) / weights.active_divisor * weights.active_weight
        + Decimal(stats.max_depth) / weights.depth_divisor * weights.depth_weight
    )


class TreeStatisticsEngine:
    """
    Statistics over a member directory.

    Args:
        directory: Member directory for this pass
        size_cache: Team size cache (shared across passes)
        volume_cache: Subtree volume cache (shared across passes)
    """

    def __init__(
        self,
        directory: MemberDirectory,
        size_cache: StatsCache | None = None,
        volume_cache: StatsCache | None = None,
    ) -> None:
        self.directory = directory
        self.size_cache = size_cache if size_cache is not None else NullStatsCache()
        self.volume_cache = volume_cache if volume_cache is not None else NullStatsCache()

    def team_size(self, member_id: str | None) -> int:
        """Count of all descendants under a member."""
        if member_id is None or member_id not in self.directory:
            return 0
        return self.size_cache.get_or_compute(
            member_id, lambda: len(self._descendant_levels(member_id))
        )

    def subtree_volume(self, member_id: str | None) -> Decimal:
        """Total investment of a member and all descendants."""
        member = self.directory.get(member_id)
        if member is None:
            return Decimal("0")

        def compute() -> Decimal:
            total = member.total_investment
            for descendant_id in self._descendant_levels(member.id):
                descendant = self.directory.get(descendant_id)
                if descendant is not None:
                    total += descendant.total_investment
            return total

        return self.volume_cache.get_or_compute(member.id, compute)

    def max_depth(self, member_id: str | None) -> int:
        """Length of the longest descendant chain (0 for a leaf)."""
        if member_id is None or member_id not in self.directory:
            return 0
        levels = self._descendant_levels(member_id)
        return max(levels.values(), default=0)

    def active_members(self, member_id: str | None) -> int:
        """Count of active descendants."""
        if member_id is None or member_id not in self.directory:
            return 0
        count = 0
        for descendant_id in self._descendant_levels(member_id):
            descendant = self.directory.get(descendant_id)
            if descendant is not None and descendant.is_active:
                count += 1
        return count

    def leg_stats(self, member_id: str | None) -> LegStats:
        """All statistics of the subtree headed by ``member_id``."""
        if member_id is None or member_id not in self.directory:
            return EMPTY_LEG
        return LegStats(
            team_size=self.team_size(member_id),
            volume=self.subtree_volume(member_id),
            active_members=self.active_members(member_id),
            max_depth=self.max_depth(member_id),
        )

    def invalidate_all(self) -> None:
        """Clear both caches after a tree mutation."""
        self.size_cache.invalidate_all()
        self.volume_cache.invalidate_all()
        logger.debug("Tree statistics caches cleared")

    def invalidate_upline(self, member_id: str) -> None:
        """Drop cached entries of a member and every ancestor."""
        keys = [member_id] + [
            sponsor.id
            for sponsor in self.directory.upline(member_id, max_levels=len(self.directory))
        ]
        for key in keys:
            self.size_cache.invalidate(key)
            self.volume_cache.invalidate(key)

    def _descendant_levels(self, member_id: str) -> dict[str, int]:
        """Map every descendant id to its distance below ``member_id``."""
        levels: dict[str, int] = {}
        stack = [(child_id, 1) for child_id in self.directory.child_ids_of(member_id)]
        while stack:
            current_id, level = stack.pop()
            if current_id in levels or current_id == member_id:
                continue
            levels[current_id] = level
            stack.extend(
                (child_id, level + 1)
                for child_id in self.directory.child_ids_of(current_id)
            )
        return levels
