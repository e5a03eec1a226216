"""
Member directory.

Indexes a member snapshot set by id and by sponsor once per calculation
pass so tree walks never scan the whole population. Tree mutations
(slot assignment and vacating, removal) keep both indexes consistent.
"""

from collections.abc import Iterable, Iterator
from contextlib import contextmanager

from loguru import logger

from mlm_engine.models.enums import PlacementSide
from mlm_engine.services.directory.snapshot import MemberSnapshot
from mlm_engine.utils.exceptions import (
    InvalidTreeOperationError,
    MemberNotFoundError,
    SlotOccupiedError,
)


class MemberDirectory:
    """
    Id and sponsor indexes over a member snapshot set.

    Args:
        members: Member snapshots
        root_member_id: Configured placement fallback / system fund recipient

    Example:
        >>> directory = MemberDirectory(members, root_member_id="root")
        >>> [m.id for m in directory.upline("buyer", max_levels=7)]
        ['sponsor', 'root']
    """

    def __init__(
        self,
        members: Iterable[MemberSnapshot],
        root_member_id: str | None = None,
    ) -> None:
        self._members: dict[str, MemberSnapshot] = {}
        self._children: dict[str, list[str]] = {}
        self.root_member_id = root_member_id

        for member in members:
            self._members[member.id] = member
        for member in self._members.values():
            if member.sponsor_id is not None:
                self._children.setdefault(member.sponsor_id, []).append(member.id)

    def __len__(self) -> int:
        return len(self._members)

    def __contains__(self, member_id: object) -> bool:
        return member_id in self._members

    def __iter__(self) -> Iterator[MemberSnapshot]:
        return iter(list(self._members.values()))

    @property
    def root(self) -> MemberSnapshot | None:
        if self.root_member_id is None:
            return None
        return self._members.get(self.root_member_id)

    def get(self, member_id: str | None) -> MemberSnapshot | None:
        if member_id is None:
            return None
        return self._members.get(member_id)

    def require(self, member_id: str | None, role: str = "Member") -> MemberSnapshot:
        """
        Get a member or raise.

        Raises:
            MemberNotFoundError: If the member is unknown
        """
        member = self.get(member_id)
        if member is None:
            raise MemberNotFoundError(member_id, role)
        return member

    def children_of(self, member_id: str) -> list[MemberSnapshot]:
        """Members whose sponsor is ``member_id``."""
        return [
            self._members[child_id]
            for child_id in self._children.get(member_id, [])
            if child_id in self._members
        ]

    def child_ids_of(self, member_id: str) -> list[str]:
        return list(self._children.get(member_id, []))

    def upline(self, member_id: str, max_levels: int) -> list[MemberSnapshot]:
        """
        Sponsor chain above a member, nearest first.

        Stops at the root, at a missing link, after ``max_levels`` members
        or when a sponsor repeats (corrupted chain).

        Args:
            member_id: Starting member (not included)
            max_levels: Maximum chain length

        Returns:
            Upline members, level 1 first
        """
        chain: list[MemberSnapshot] = []
        seen = {member_id}
        current = self.get(member_id)

        while current is not None and len(chain) < max_levels:
            sponsor_id = current.sponsor_id
            if sponsor_id is None:
                break
            if sponsor_id in seen:
                logger.error(
                    f"Sponsor cycle detected at {sponsor_id} while walking upline of {member_id}"
                )
                break
            sponsor = self.get(sponsor_id)
            if sponsor is None:
                logger.warning(
                    f"Upline of {member_id} broken: sponsor {sponsor_id} not found"
                )
                break
            chain.append(sponsor)
            seen.add(sponsor_id)
            current = sponsor

        return chain

    def depth_of(self, member_id: str) -> int:
        """Number of sponsors above a member."""
        return len(self.upline(member_id, max_levels=len(self._members)))

    def is_descendant(self, member_id: str, ancestor_id: str) -> bool:
        """True if ``ancestor_id`` appears in the upline of ``member_id``."""
        return any(
            sponsor.id == ancestor_id
            for sponsor in self.upline(member_id, max_levels=len(self._members))
        )

    def slot_of(self, member_id: str) -> tuple[str, PlacementSide] | None:
        """(parent id, side) of the slot holding ``member_id``, if any."""
        member = self.get(member_id)
        if member is None or member.sponsor_id is None:
            return None
        parent = self.get(member.sponsor_id)
        if parent is None:
            return None
        if parent.left_child_id == member_id:
            return parent.id, PlacementSide.LEFT
        if parent.right_child_id == member_id:
            return parent.id, PlacementSide.RIGHT
        return None

    @staticmethod
    def child_in_slot(member: MemberSnapshot, side: PlacementSide) -> str | None:
        if side is PlacementSide.LEFT:
            return member.left_child_id
        return member.right_child_id

    def add(self, member: MemberSnapshot) -> None:
        """Register a new member (not yet placed)."""
        self._members[member.id] = member
        if member.sponsor_id is not None:
            self._children.setdefault(member.sponsor_id, []).append(member.id)

    def assign_slot(self, parent_id: str, side: PlacementSide, child_id: str) -> None:
        """
        Put ``child_id`` into a slot of ``parent_id``.

        The child's sponsor pointer moves to the parent.

        Raises:
            MemberNotFoundError: If parent or child is unknown
            SlotOccupiedError: If the slot already holds a member
            InvalidTreeOperationError: On self-parenting
        """
        if parent_id == child_id:
            raise InvalidTreeOperationError("A member cannot be placed under itself")
        parent = self.require(parent_id, "Parent")
        child = self.require(child_id, "Member")
        if self.child_in_slot(parent, side) is not None:
            raise SlotOccupiedError(parent_id, side.value)

        if side is PlacementSide.LEFT:
            parent.left_child_id = child_id
        else:
            parent.right_child_id = child_id
        self._reindex_sponsor(child, parent_id)

    def vacate_slot(self, member_id: str) -> str | None:
        """
        Detach a member from its parent's slot.

        Returns:
            Former parent id, or None if the member was not in a slot
        """
        member = self.require(member_id)
        parent = self.get(member.sponsor_id)
        former_parent_id = member.sponsor_id
        if parent is not None:
            if parent.left_child_id == member_id:
                parent.left_child_id = None
            if parent.right_child_id == member_id:
                parent.right_child_id = None
        self._reindex_sponsor(member, None)
        return former_parent_id

    def remove(self, member_id: str) -> MemberSnapshot:
        """Drop a member from the directory (slot must be vacated first)."""
        member = self._members.pop(member_id)
        if member.sponsor_id is not None:
            siblings = self._children.get(member.sponsor_id, [])
            if member_id in siblings:
                siblings.remove(member_id)
        self._children.pop(member_id, None)
        return member

    @contextmanager
    def atomic(self) -> Iterator["MemberDirectory"]:
        """
        Restore every tree pointer if the block raises.

        Example:
            >>> with directory.atomic():
            ...     directory.vacate_slot("a")
            ...     directory.assign_slot("b", PlacementSide.LEFT, "a")
        """
        saved_members = dict(self._members)
        saved_pointers = {
            member_id: (m.sponsor_id, m.left_child_id, m.right_child_id)
            for member_id, m in self._members.items()
        }
        saved_children = {key: list(value) for key, value in self._children.items()}
        try:
            yield self
        except Exception:
            self._members = saved_members
            for member_id, (sponsor_id, left_id, right_id) in saved_pointers.items():
                member = self._members[member_id]
                member.sponsor_id = sponsor_id
                member.left_child_id = left_id
                member.right_child_id = right_id
            self._children = saved_children
            raise

    def _reindex_sponsor(self, member: MemberSnapshot, new_sponsor_id: str | None) -> None:
        old_sponsor_id = member.sponsor_id
        if old_sponsor_id is not None:
            siblings = self._children.get(old_sponsor_id, [])
            if member.id in siblings:
                siblings.remove(member.id)
        member.sponsor_id = new_sponsor_id
        if new_sponsor_id is not None:
            self._children.setdefault(new_sponsor_id, []).append(member.id)
