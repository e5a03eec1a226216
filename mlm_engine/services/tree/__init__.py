"""Tree statistics and their caches."""

from mlm_engine.services.tree.cache import NullStatsCache, StatsCache, TTLStatsCache
from mlm_engine.services.tree.statistics import (
    EMPTY_LEG,
    LegStats,
    TreeStatisticsEngine,
    leg_score,
)

__all__ = [
    "EMPTY_LEG",
    "LegStats",
    "NullStatsCache",
    "StatsCache",
    "TTLStatsCache",
    "TreeStatisticsEngine",
    "leg_score",
]
