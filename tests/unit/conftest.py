"""
Shared fixtures for unit tests.

This module provides common fixtures used across multiple test modules:
- Statistics engine with a fake clock
- Placement engine over a directory
- Default commission settings
"""

import pytest

from mlm_engine.config.commission_structures import get_default_commission_settings
from mlm_engine.services.placement.binary_placement import BinaryPlacementEngine
from mlm_engine.services.tree.cache import TTLStatsCache
from mlm_engine.services.tree.statistics import TreeStatisticsEngine


class FakeClock:
    """Manually advanced time source."""

    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def commission_settings():
    return get_default_commission_settings()


@pytest.fixture
def make_statistics(clock):
    """
    Build a statistics engine with TTL caches driven by the fake clock.
    """

    def _make(directory, ttl_seconds=300):
        return TreeStatisticsEngine(
            directory,
            size_cache=TTLStatsCache(ttl_seconds, clock=clock),
            volume_cache=TTLStatsCache(ttl_seconds, clock=clock),
        )

    return _make


@pytest.fixture
def make_placement(make_statistics):
    """Build a placement engine over a directory."""

    def _make(directory, **kwargs):
        return BinaryPlacementEngine(directory, make_statistics(directory), **kwargs)

    return _make
