"""
Administrative tree operations: manual placement, move and delete.

Each operation validates first, mutates inside ``MemberDirectory.atomic()``
and clears both statistics caches afterwards.
"""

from dataclasses import dataclass, field

from loguru import logger

from mlm_engine.models.enums import PlacementSide
from mlm_engine.services.placement.binary_placement import BinaryPlacementEngine
from mlm_engine.services.placement.models import PlacementCandidate
from mlm_engine.utils.exceptions import (
    CommissionEngineError,
    InvalidTreeOperationError,
    SlotOccupiedError,
)


@dataclass
class TreeOperationResult:
    """Outcome of an administrative tree operation."""

    success: bool
    message: str
    error_code: str | None = None
    member_id: str | None = None
    parent_id: str | None = None
    side: PlacementSide | None = None
    moved_children: list[str] = field(default_factory=list)
    changed_member_ids: list[str] = field(default_factory=list)
    removed_member_id: str | None = None


class TreeOperations:
    """
    Admin mutations of the binary tree.

    Args:
        placement: Placement engine whose directory and statistics are mutated
    """

    def __init__(self, placement: BinaryPlacementEngine) -> None:
        self.placement = placement
        self.directory = placement.directory
        self.statistics = placement.statistics

    def place_manually(
        self, member_id: str, parent_id: str, side: PlacementSide
    ) -> TreeOperationResult:
        """Put an unplaced member into a specific open slot."""
        try:
            self._check_target(member_id, parent_id)
            if self.directory.slot_of(member_id) is not None:
                raise InvalidTreeOperationError(
                    f"Member {member_id} is already placed, use move instead"
                )
            self.directory.assign_slot(parent_id, side, member_id)
        except CommissionEngineError as e:
            return self._failure("place_manually", member_id, e)

        self.statistics.invalidate_all()
        logger.info(f"Member {member_id} manually placed under {parent_id} ({side.value})")
        return TreeOperationResult(
            success=True,
            message=f"Placed {member_id} on the {side.value} of {parent_id}",
            member_id=member_id,
            parent_id=parent_id,
            side=side,
            changed_member_ids=[parent_id, member_id],
        )

    def move_member(
        self,
        member_id: str,
        new_parent_id: str,
        side: PlacementSide | None = None,
    ) -> TreeOperationResult:
        """
        Move a member (with its subtree) to a new slot.

        The old slot is vacated and the new one filled in one step. With no
        side, the member goes to the weaker leg under ``new_parent_id``.
        """
        try:
            member = self._check_target(member_id, new_parent_id)
            new_parent = self.directory.require(new_parent_id, "Parent")
            if side is not None and self.directory.child_in_slot(new_parent, side) is not None:
                raise SlotOccupiedError(new_parent_id, side.value)

            with self.directory.atomic():
                old_parent_id = self.directory.vacate_slot(member.id)
                self.statistics.invalidate_all()
                candidate = self._slot_under(new_parent_id, side)
                self.directory.assign_slot(candidate.parent_id, candidate.side, member.id)
        except CommissionEngineError as e:
            self.statistics.invalidate_all()
            return self._failure("move_member", member_id, e)

        self.statistics.invalidate_all()
        logger.info(
            f"Member {member_id} moved from {old_parent_id} to "
            f"{candidate.parent_id} ({candidate.side.value})"
        )
        changed = [member_id, candidate.parent_id]
        if old_parent_id is not None and old_parent_id not in changed:
            changed.append(old_parent_id)
        return TreeOperationResult(
            success=True,
            message=(
                f"Moved {member_id} to the {candidate.side.value} of {candidate.parent_id}"
            ),
            member_id=member_id,
            parent_id=candidate.parent_id,
            side=candidate.side,
            changed_member_ids=changed,
        )

    def delete_member(
        self, member_id: str, transfer_children_to: str | None = None
    ) -> TreeOperationResult:
        """
        Remove a member after re-placing its children.

        Children go under ``transfer_children_to``, else the member's
        sponsor, else the root. The root and admins cannot be deleted.
        """
        try:
            member = self.directory.require(member_id)
            if member.is_admin or member_id == self.directory.root_member_id:
                raise InvalidTreeOperationError("Cannot delete the root or an admin member")

            target_id = (
                transfer_children_to or member.sponsor_id or self.directory.root_member_id
            )
            if target_id is None:
                raise InvalidTreeOperationError(f"No parent to receive children of {member_id}")
            if target_id == member_id or self.directory.is_descendant(target_id, member_id):
                raise InvalidTreeOperationError(
                    "Children cannot be transferred into the deleted member's own subtree"
                )
            self.directory.require(target_id, "Transfer target")

            moved: list[str] = []
            changed: set[str] = {target_id}
            with self.directory.atomic():
                old_parent_id = self.directory.vacate_slot(member_id)
                self.statistics.invalidate_all()
                if old_parent_id is not None:
                    changed.add(old_parent_id)
                for child in self.directory.children_of(member_id):
                    self.directory.vacate_slot(child.id)
                    candidate = self._slot_under(target_id, None)
                    self.directory.assign_slot(candidate.parent_id, candidate.side, child.id)
                    self.statistics.invalidate_all()
                    moved.append(child.id)
                    changed.update((child.id, candidate.parent_id))
                self.directory.remove(member_id)
        except CommissionEngineError as e:
            self.statistics.invalidate_all()
            return self._failure("delete_member", member_id, e)

        self.statistics.invalidate_all()
        logger.warning(
            f"Member {member_id} deleted, {len(moved)} children moved under {target_id}"
        )
        return TreeOperationResult(
            success=True,
            message=f"Deleted {member_id}; {len(moved)} children moved under {target_id}",
            member_id=member_id,
            parent_id=target_id,
            moved_children=moved,
            changed_member_ids=sorted(changed),
            removed_member_id=member_id,
        )

    def _check_target(self, member_id: str, parent_id: str):
        member = self.directory.require(member_id)
        self.directory.require(parent_id, "Parent")
        if member_id == parent_id:
            raise InvalidTreeOperationError("A member cannot be placed under itself")
        if self.directory.is_descendant(parent_id, member_id):
            raise InvalidTreeOperationError(
                f"Cannot place {member_id} under its own descendant {parent_id}"
            )
        return member

    def _slot_under(
        self, parent_id: str, side: PlacementSide | None
    ) -> PlacementCandidate:
        if side is not None:
            return PlacementCandidate(parent_id, side, 1)
        # Unbounded search: re-placement must not fail on a deep, full tree
        return self.placement.find_weakest_leg(
            parent_id,
            self.placement.default_algorithm,
            max_depth=max(len(self.directory), 1),
        )

    @staticmethod
    def _failure(
        operation: str, member_id: str, error: CommissionEngineError
    ) -> TreeOperationResult:
        logger.warning(f"{operation} failed for {member_id}: {error.message}")
        return TreeOperationResult(
            success=False,
            message=error.message,
            error_code=error.code,
            member_id=member_id,
        )
