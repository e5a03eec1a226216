"""
Unit tests for MemberDirectory.

Tests cover:
- Id and sponsor indexes
- Upline walks (bounded, broken links, cycles)
- Slot assignment and vacating
- Rollback of the atomic block
"""

import pytest

from mlm_engine.models.enums import PlacementSide
from mlm_engine.services.directory.directory import MemberDirectory
from mlm_engine.utils.exceptions import (
    InvalidTreeOperationError,
    MemberNotFoundError,
    SlotOccupiedError,
)


class TestLookups:
    """Test directory indexes."""

    def test_children_and_root(self, make_tree):
        directory = make_tree([("root", "left", "a"), ("root", "right", "b")])

        assert len(directory) == 3
        assert "a" in directory
        assert directory.root.id == "root"
        assert sorted(directory.child_ids_of("root")) == ["a", "b"]
        assert directory.children_of("a") == []

    def test_require_unknown(self, make_tree):
        directory = make_tree()
        with pytest.raises(MemberNotFoundError) as exc_info:
            directory.require("ghost", "Buyer")
        assert exc_info.value.message == "Buyer not found: ghost"
        assert exc_info.value.code == "not_found"

    def test_root_missing(self, make_member):
        directory = MemberDirectory([make_member("a")], root_member_id="root")
        assert directory.root is None

    def test_slot_of(self, make_tree):
        directory = make_tree([("root", "left", "a"), ("root", "right", "b")])
        assert directory.slot_of("a") == ("root", PlacementSide.LEFT)
        assert directory.slot_of("b") == ("root", PlacementSide.RIGHT)
        assert directory.slot_of("root") is None


class TestUpline:
    """Test upline walks."""

    def test_nearest_first_and_bounded(self, make_chain):
        ids = ["root"] + [f"u{i}" for i in range(9, 0, -1)] + ["buyer"]
        directory = make_chain(ids)

        upline = directory.upline("buyer", max_levels=7)

        assert [m.id for m in upline] == ["u1", "u2", "u3", "u4", "u5", "u6", "u7"]

    def test_stops_at_root(self, make_chain):
        directory = make_chain(["root", "a", "buyer"])
        assert [m.id for m in directory.upline("buyer", max_levels=7)] == ["a", "root"]
        assert directory.depth_of("buyer") == 2
        assert directory.is_descendant("buyer", "root")
        assert not directory.is_descendant("root", "buyer")

    def test_broken_link(self, make_member):
        directory = MemberDirectory(
            [make_member("a", sponsor_id="gone"), make_member("buyer", sponsor_id="a")]
        )
        assert [m.id for m in directory.upline("buyer", max_levels=7)] == ["a"]

    def test_cycle_terminates(self, make_member):
        directory = MemberDirectory(
            [make_member("a", sponsor_id="b"), make_member("b", sponsor_id="a")]
        )
        assert [m.id for m in directory.upline("a", max_levels=50)] == ["b"]

    def test_unknown_member(self, make_tree):
        assert make_tree().upline("ghost", max_levels=7) == []


class TestSlots:
    """Test tree mutations."""

    def test_assign_slot(self, make_tree):
        directory = make_tree(extra=["n"])

        directory.assign_slot("root", PlacementSide.RIGHT, "n")

        assert directory.get("root").right_child_id == "n"
        assert directory.get("n").sponsor_id == "root"
        assert directory.child_ids_of("root") == ["n"]

    def test_assign_occupied_slot(self, make_tree):
        directory = make_tree([("root", "left", "a")], extra=["n"])
        with pytest.raises(SlotOccupiedError):
            directory.assign_slot("root", PlacementSide.LEFT, "n")

    def test_self_parenting(self, make_tree):
        directory = make_tree()
        with pytest.raises(InvalidTreeOperationError):
            directory.assign_slot("root", PlacementSide.LEFT, "root")

    def test_vacate_slot(self, make_tree):
        directory = make_tree([("root", "left", "a")])

        former_parent = directory.vacate_slot("a")

        assert former_parent == "root"
        assert directory.get("root").left_child_id is None
        assert directory.get("a").sponsor_id is None
        assert directory.child_ids_of("root") == []

    def test_remove(self, make_tree):
        directory = make_tree([("root", "left", "a")])
        directory.vacate_slot("a")
        directory.remove("a")
        assert "a" not in directory

    def test_atomic_rolls_back(self, make_tree):
        directory = make_tree([("root", "left", "a"), ("a", "left", "b")])

        with pytest.raises(SlotOccupiedError):
            with directory.atomic():
                directory.vacate_slot("b")
                directory.remove("a")
                directory.assign_slot("root", PlacementSide.LEFT, "b")

        assert "a" in directory
        assert directory.get("root").left_child_id == "a"
        assert directory.get("a").left_child_id == "b"
        assert directory.get("b").sponsor_id == "a"
        assert directory.child_ids_of("a") == ["b"]

    def test_atomic_keeps_changes_on_success(self, make_tree):
        directory = make_tree([("root", "left", "a")], extra=["n"])
        with directory.atomic():
            directory.assign_slot("a", PlacementSide.LEFT, "n")
        assert directory.get("a").left_child_id == "n"
