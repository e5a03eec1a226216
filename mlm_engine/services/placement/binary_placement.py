"""
Binary placement engine.

Decides the exact slot (parent + side) for a new member under a sponsor.
Two search modes:

- greedy: fill an open slot on the current member (left first), otherwise
  descend into the weaker leg under the requested algorithm;
- exhaustive: enumerate every open slot within the depth bound and pick
  the lowest candidate score, with an optional overload penalty and
  career-level bonus.

A placement with no sponsor resolves to the configured root member.
"""

from dataclasses import replace
from decimal import Decimal

from loguru import logger

from mlm_engine.config.commission_structures import LegScoreWeights, PlacementScoring
from mlm_engine.models.enums import PlacementAlgorithm, PlacementSearch, PlacementSide
from mlm_engine.services.directory.directory import MemberDirectory
from mlm_engine.services.directory.snapshot import MemberSnapshot
from mlm_engine.services.placement.models import (
    PlacementCandidate,
    PlacementPreferences,
    PlacementResult,
    PlacementStats,
)
from mlm_engine.services.tree.statistics import TreeStatisticsEngine, leg_score
from mlm_engine.utils.exceptions import (
    CommissionEngineError,
    InsufficientCapacityError,
    InvalidTreeOperationError,
    MemberNotFoundError,
)

PREFERRED_SIDE_ALGORITHM = "preferred_side"
BALANCE_TOLERANCE = 2


class BinaryPlacementEngine:
    """
    Place members into the binary tree.

    Args:
        directory: Member directory (mutated by placements)
        statistics: Statistics engine over the same directory
        weights: Leg score weights for the balanced algorithm
        scoring: Candidate scoring for exhaustive search
        default_algorithm: Algorithm when preferences name none
        default_max_depth: Search bound when preferences name none
    """

    def __init__(
        self,
        directory: MemberDirectory,
        statistics: TreeStatisticsEngine,
        weights: LegScoreWeights | None = None,
        scoring: PlacementScoring | None = None,
        default_algorithm: PlacementAlgorithm = PlacementAlgorithm.BALANCED,
        default_max_depth: int = 7,
    ) -> None:
        self.directory = directory
        self.statistics = statistics
        self.weights = weights or LegScoreWeights()
        self.scoring = scoring or PlacementScoring()
        self.default_algorithm = default_algorithm
        self.default_max_depth = default_max_depth

    def place(
        self,
        new_member_id: str,
        sponsor_id: str | None = None,
        preferences: PlacementPreferences | None = None,
    ) -> PlacementResult:
        """
        Choose a slot and place the member there.

        Args:
            new_member_id: Member to place (must exist in the directory)
            sponsor_id: Sponsor; None falls back to the root member
            preferences: Algorithm, depth bound, side and search options

        Returns:
            PlacementResult; failures are reported, not raised
        """
        prefs = preferences or PlacementPreferences()
        algorithm = prefs.algorithm or self.default_algorithm
        max_depth = prefs.max_depth or self.default_max_depth
        algorithm_name = algorithm.value

        try:
            sponsor = self._resolve_sponsor(sponsor_id)
            member = self.directory.require(new_member_id, "Member")
            self._check_placeable(member, sponsor)

            candidate = self._preferred_side_candidate(sponsor, prefs.preferred_side)
            if candidate is not None:
                algorithm_name = PREFERRED_SIDE_ALGORITHM
            elif prefs.search is PlacementSearch.EXHAUSTIVE:
                candidate = self.find_optimal_placement(sponsor.id, algorithm, max_depth, prefs)
            else:
                candidate = self.find_weakest_leg(sponsor.id, algorithm, max_depth)

            self.execute(candidate, new_member_id)
        except InsufficientCapacityError as e:
            logger.error(
                f"Placement failed for {new_member_id}: {e.message}",
                extra={"sponsor_id": sponsor_id, "algorithm": e.algorithm},
            )
            return PlacementResult(
                success=False,
                algorithm=e.algorithm,
                message=e.message,
                error_code=e.code,
            )
        except CommissionEngineError as e:
            logger.warning(f"Placement rejected for {new_member_id}: {e.message}")
            return PlacementResult(
                success=False,
                algorithm=algorithm_name,
                message=e.message,
                error_code=e.code,
            )

        return PlacementResult(
            success=True,
            parent_id=candidate.parent_id,
            side=candidate.side,
            depth=candidate.depth,
            algorithm=algorithm_name,
            message=(
                f"Placed {new_member_id} on the {candidate.side.value} of "
                f"{candidate.parent_id} at depth {candidate.depth}"
            ),
            stats=self.get_placement_stats(candidate.parent_id),
            changed_member_ids=[candidate.parent_id, new_member_id],
        )

    def find_weakest_leg(
        self,
        start_id: str,
        algorithm: PlacementAlgorithm,
        max_depth: int,
    ) -> PlacementCandidate:
        """
        Greedy descent into the weaker leg.

        Ties between legs go left.

        Raises:
            InsufficientCapacityError: If no open slot exists within ``max_depth``
        """
        current = self.directory.require(start_id, "Sponsor")
        depth = 1

        while depth <= max_depth:
            if current.left_child_id is None:
                return PlacementCandidate(current.id, PlacementSide.LEFT, depth)
            if current.right_child_id is None:
                return PlacementCandidate(current.id, PlacementSide.RIGHT, depth)

            left = self.directory.get(current.left_child_id)
            right = self.directory.get(current.right_child_id)
            if left is None and right is None:
                break
            if left is None or right is None:
                next_member = left or right
            else:
                left_score = self._leg_compare_score(left.id, algorithm)
                right_score = self._leg_compare_score(right.id, algorithm)
                next_member = left if left_score <= right_score else right
                logger.debug(
                    f"Descending from {current.id}: left={left_score} right={right_score} "
                    f"-> {next_member.id}"
                )

            current = next_member
            depth += 1

        raise InsufficientCapacityError(algorithm.value, max_depth)

    def find_available_positions(
        self, start_id: str, max_depth: int
    ) -> list[PlacementCandidate]:
        """
        Every open slot within ``max_depth``, depth-first, left before right.

        Args:
            start_id: Member to search under
            max_depth: Deepest acceptable slot depth (1 = on ``start_id``)

        Returns:
            Unscored candidates in enumeration order
        """
        positions: list[PlacementCandidate] = []
        self._collect_positions(start_id, 1, max_depth, positions, set())
        return positions

    def find_optimal_placement(
        self,
        start_id: str,
        algorithm: PlacementAlgorithm,
        max_depth: int,
        preferences: PlacementPreferences | None = None,
    ) -> PlacementCandidate:
        """
        Lowest-scoring open slot within ``max_depth``.

        Raises:
            InsufficientCapacityError: If there is no open slot
        """
        self.directory.require(start_id, "Sponsor")
        prefs = preferences or PlacementPreferences()
        positions = self.find_available_positions(start_id, max_depth)
        if not positions:
            raise InsufficientCapacityError(algorithm.value, max_depth)

        scored = [
            replace(position, score=self.score_candidate(position, algorithm, prefs))
            for position in positions
        ]
        # min() keeps the first of equal scores, i.e. enumeration order
        return min(scored, key=lambda candidate: candidate.score)

    def score_candidate(
        self,
        candidate: PlacementCandidate,
        algorithm: PlacementAlgorithm,
        preferences: PlacementPreferences,
    ) -> Decimal:
        """
        Score an open slot; lower is better.

        The base is a depth penalty plus the weight of the sibling leg
        under the algorithm, then the optional overload penalty and career
        bonus are applied.
        """
        scoring = self.scoring
        parent = self.directory.require(candidate.parent_id, "Parent")
        sibling_id = self.directory.child_in_slot(parent, candidate.side.opposite)

        score = Decimal(candidate.depth) * scoring.depth_penalty
        if algorithm is PlacementAlgorithm.SIZE_BASED:
            score += Decimal(self.statistics.team_size(sibling_id))
        elif algorithm is PlacementAlgorithm.VOLUME_BASED:
            score += self.statistics.subtree_volume(sibling_id) / scoring.volume_divisor
        elif algorithm is PlacementAlgorithm.DEPTH_FIRST:
            score += Decimal(self.statistics.max_depth(sibling_id)) * scoring.depth_multiplier
        else:
            score += (
                Decimal(self.statistics.team_size(sibling_id)) * scoring.balance_size_weight
                + self.statistics.subtree_volume(sibling_id) * scoring.balance_volume_weight
                + Decimal(self.statistics.max_depth(sibling_id)) * scoring.balance_depth_weight
            )

        if preferences.avoid_overloading:
            imbalance = abs(
                self.statistics.team_size(parent.left_child_id)
                - self.statistics.team_size(parent.right_child_id)
            )
            if imbalance > scoring.overload_threshold:
                score += Decimal(imbalance) * scoring.overload_multiplier

        if preferences.consider_career_level:
            score -= Decimal(parent.career_level) * scoring.career_bonus_multiplier

        return score

    def execute(self, candidate: PlacementCandidate, new_member_id: str) -> None:
        """Fill the slot and clear the statistics caches."""
        self.directory.assign_slot(candidate.parent_id, candidate.side, new_member_id)
        self.statistics.invalidate_all()
        logger.info(
            f"Member {new_member_id} placed under {candidate.parent_id} "
            f"({candidate.side.value}, depth {candidate.depth})"
        )

    def get_placement_stats(self, parent_id: str) -> PlacementStats:
        """
        Leg sizes and volumes under a parent.

        A leg counts its head member plus everything beneath it.
        """
        parent = self.directory.get(parent_id)
        left_id = parent.left_child_id if parent else None
        right_id = parent.right_child_id if parent else None

        left_size = self._leg_size(left_id)
        right_size = self._leg_size(right_id)
        left_volume = self.statistics.subtree_volume(left_id)
        right_volume = self.statistics.subtree_volume(right_id)

        return PlacementStats(
            left_size=left_size,
            right_size=right_size,
            left_volume=left_volume,
            right_volume=right_volume,
            size_ratio=_ratio(Decimal(left_size), Decimal(right_size)),
            volume_ratio=_ratio(left_volume, right_volume),
            is_balanced=abs(left_size - right_size) <= BALANCE_TOLERANCE,
        )

    def _resolve_sponsor(self, sponsor_id: str | None) -> MemberSnapshot:
        if sponsor_id is None:
            root = self.directory.root
            if root is None:
                raise MemberNotFoundError(self.directory.root_member_id, "Root member")
            logger.info(f"No sponsor given, falling back to root {root.id}")
            return root
        return self.directory.require(sponsor_id, "Sponsor")

    def _check_placeable(self, member: MemberSnapshot, sponsor: MemberSnapshot) -> None:
        if member.id == sponsor.id:
            raise InvalidTreeOperationError("A member cannot sponsor itself")
        if self.directory.slot_of(member.id) is not None:
            raise InvalidTreeOperationError(f"Member {member.id} is already placed")
        if self.directory.is_descendant(sponsor.id, member.id):
            raise InvalidTreeOperationError(
                f"Sponsor {sponsor.id} is in the downline of {member.id}"
            )

    def _preferred_side_candidate(
        self, sponsor: MemberSnapshot, side: PlacementSide | None
    ) -> PlacementCandidate | None:
        if side is None or self.directory.child_in_slot(sponsor, side) is not None:
            return None
        return PlacementCandidate(sponsor.id, side, 1)

    def _leg_compare_score(self, member_id: str, algorithm: PlacementAlgorithm) -> Decimal:
        if algorithm is PlacementAlgorithm.SIZE_BASED:
            return Decimal(self.statistics.team_size(member_id))
        if algorithm is PlacementAlgorithm.VOLUME_BASED:
            return self.statistics.subtree_volume(member_id)
        if algorithm is PlacementAlgorithm.DEPTH_FIRST:
            return Decimal(self.statistics.max_depth(member_id))
        return leg_score(self.statistics.leg_stats(member_id), self.weights)

    def _leg_size(self, head_id: str | None) -> int:
        if head_id is None or head_id not in self.directory:
            return 0
        return 1 + self.statistics.team_size(head_id)

    def _collect_positions(
        self,
        member_id: str,
        depth: int,
        max_depth: int,
        positions: list[PlacementCandidate],
        visited: set[str],
    ) -> None:
        if depth > max_depth or member_id in visited:
            return
        member = self.directory.get(member_id)
        if member is None:
            return
        visited.add(member_id)

        for side in (PlacementSide.LEFT, PlacementSide.RIGHT):
            child_id = self.directory.child_in_slot(member, side)
            if child_id is None:
                positions.append(PlacementCandidate(member_id, side, depth))
            else:
                self._collect_positions(child_id, depth + 1, max_depth, positions, visited)


def _ratio(left: Decimal, right: Decimal) -> Decimal:
    if right > 0:
        return left / right
    if left > 0:
        return Decimal("Infinity")
    return Decimal("1")
