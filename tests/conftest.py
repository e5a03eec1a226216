"""Pytest configuration and shared fixtures for all tests."""

import os
import sys
from pathlib import Path

# Engine settings for tests; no .env file and no database
os.environ.setdefault("MLM_ROOT_MEMBER_ID", "root")
os.environ.setdefault("MLM_LOG_LEVEL", "DEBUG")

# Add project root to PYTHONPATH
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from decimal import Decimal
from unittest.mock import AsyncMock, MagicMock

import pytest

from mlm_engine.config.settings import Settings
from mlm_engine.models.enums import PlacementSide
from mlm_engine.services.directory.directory import MemberDirectory
from mlm_engine.services.directory.snapshot import MemberSnapshot

FULLY_ACTIVE = {
    "monthly_sales_volume": Decimal("20"),
    "annual_sales_volume": Decimal("200"),
    "total_investment": Decimal("100"),
}


@pytest.fixture
def mock_session():
    """Mock AsyncSession for tests without a database."""
    session = AsyncMock()
    session.execute = AsyncMock()
    session.flush = AsyncMock()
    session.commit = AsyncMock()
    session.rollback = AsyncMock()
    session.get = AsyncMock()
    session.add = MagicMock()
    return session


@pytest.fixture
def engine_settings():
    """Settings with the root member configured, ignoring any .env file."""
    return Settings(_env_file=None, root_member_id="root", stats_cache_ttl_seconds=300)


@pytest.fixture
def make_member():
    """
    Factory for member snapshots.

    ``fully_active=True`` sets the monthly, annual and initial purchase
    metrics exactly at their default thresholds.
    """

    def _make(member_id: str, sponsor_id: str | None = None, fully_active: bool = False, **fields):
        if fully_active:
            for key, value in FULLY_ACTIVE.items():
                fields.setdefault(key, value)
        return MemberSnapshot(id=member_id, sponsor_id=sponsor_id, **fields)

    return _make


@pytest.fixture
def make_tree(make_member):
    """
    Factory for a binary tree directory.

    Args (of the returned callable):
        edges: ``(parent_id, "left" | "right", child_id)`` in creation order
        root_id: Root member id
        overrides: Per-member snapshot fields
        extra: Ids of members to register without placing them
    """

    def _make(edges=(), root_id="root", overrides=None, extra=()):
        overrides = overrides or {}
        ids = [root_id] + [child for _, _, child in edges] + list(extra)
        members = {member_id: make_member(member_id, **overrides.get(member_id, {})) for member_id in ids}
        for parent_id, side, child_id in edges:
            if PlacementSide(side) is PlacementSide.LEFT:
                members[parent_id].left_child_id = child_id
            else:
                members[parent_id].right_child_id = child_id
            members[child_id].sponsor_id = parent_id
        return MemberDirectory(members.values(), root_member_id=root_id)

    return _make


@pytest.fixture
def make_chain(make_tree):
    """
    Factory for a single sponsor line.

    ``ids`` run from the top (root) down; each member is the left child of
    the one before it.
    """

    def _make(ids, overrides=None):
        edges = [(parent, "left", child) for parent, child in zip(ids, ids[1:])]
        return make_tree(edges, root_id=ids[0], overrides=overrides)

    return _make
