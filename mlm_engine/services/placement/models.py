"""
Placement value types.
"""

from dataclasses import dataclass, field
from decimal import Decimal

from pydantic import BaseModel, ConfigDict

from mlm_engine.models.enums import PlacementAlgorithm, PlacementSearch, PlacementSide


@dataclass(frozen=True)
class PlacementCandidate:
    """One open slot considered during a placement decision."""

    parent_id: str
    side: PlacementSide
    depth: int
    score: Decimal = Decimal("0")


class PlacementPreferences(BaseModel):
    """Caller preferences for a placement."""

    model_config = ConfigDict(frozen=True)

    algorithm: PlacementAlgorithm | None = None
    max_depth: int | None = None
    preferred_side: PlacementSide | None = None
    search: PlacementSearch = PlacementSearch.GREEDY
    avoid_overloading: bool = False
    consider_career_level: bool = False


@dataclass(frozen=True)
class PlacementStats:
    """Leg sizes and volumes under one parent."""

    left_size: int
    right_size: int
    left_volume: Decimal
    right_volume: Decimal
    size_ratio: Decimal  # Infinity when only the left leg has members
    volume_ratio: Decimal
    is_balanced: bool


@dataclass
class PlacementResult:
    """
    Outcome of a placement.

    Attributes:
        success: Whether the member was placed
        parent_id: Parent receiving the member
        side: Slot used
        depth: Hops below the sponsor (1 = directly under the sponsor)
        algorithm: Algorithm that chose the slot ("preferred_side" when short-circuited)
        message: Human-readable outcome
        error_code: Machine error code on failure
        stats: Leg statistics of the parent after placement
        changed_member_ids: Members whose tree pointers changed
    """

    success: bool
    parent_id: str | None = None
    side: PlacementSide | None = None
    depth: int = 0
    algorithm: str = ""
    message: str = ""
    error_code: str | None = None
    stats: PlacementStats | None = None
    changed_member_ids: list[str] = field(default_factory=list)
