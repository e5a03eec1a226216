"""Binary placement and administrative tree operations."""

from mlm_engine.services.placement.binary_placement import BinaryPlacementEngine
from mlm_engine.services.placement.models import (
    PlacementCandidate,
    PlacementPreferences,
    PlacementResult,
    PlacementStats,
)
from mlm_engine.services.placement.tree_operations import (
    TreeOperationResult,
    TreeOperations,
)

__all__ = [
    "BinaryPlacementEngine",
    "PlacementCandidate",
    "PlacementPreferences",
    "PlacementResult",
    "PlacementStats",
    "TreeOperationResult",
    "TreeOperations",
]
