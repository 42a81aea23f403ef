"""Tests for WBS path building, tree walking and code allocation."""

from __future__ import annotations

import uuid

import pytest

from jobcards.planning import wbs


class TestBaseCode:
    def test_item_sequence_is_two_digits(self):
        assert wbs.base_code("10305", 1) == "10305-01"
        assert wbs.base_code("10305", 12) == "10305-12"

    def test_three_digit_sequence_is_kept(self):
        assert wbs.base_code("10305", 120) == "10305-120"


class TestNaturalKey:
    def test_numbers_compare_numerically(self):
        codes = ["10", "2", "01"]
        assert sorted(codes, key=wbs.natural_key) == ["01", "2", "10"]

    def test_paths_sort_by_each_level(self):
        paths = ["10305-01-02-10", "10305-01-02-01", "10305-01-01", "10305-01-02"]
        assert sorted(paths, key=wbs.natural_key) == [
            "10305-01-01",
            "10305-01-02",
            "10305-01-02-01",
            "10305-01-02-10",
        ]

    def test_none_is_empty(self):
        assert wbs.natural_key(None) == ()


class TestBuildPathMap:
    def test_nested_paths(self, sample_tree, base):
        paths = wbs.build_path_map(sample_tree.nodes, base)

        assert paths[sample_tree.foundations.id] == "10305-01-01"
        assert paths[sample_tree.steel.id] == "10305-01-02"
        assert paths[sample_tree.bolts.id] == "10305-01-01-02"
        assert paths[sample_tree.rafters.id] == "10305-01-02-10"

    def test_every_node_gets_a_path(self, sample_tree, base):
        paths = wbs.build_path_map(sample_tree.nodes, base)
        assert set(paths) == {n.id for n in sample_tree.nodes}

    def test_missing_parent_hangs_under_base(self, make_node, base):
        orphan = make_node("03", parent_id=uuid.uuid4())
        assert wbs.build_path_map([orphan], base) == {orphan.id: "10305-01-03"}

    def test_empty(self, base):
        assert wbs.build_path_map([], base) == {}

    def test_parent_cycle_terminates(self, make_node, base):
        a_id, b_id = uuid.uuid4(), uuid.uuid4()
        a = make_node("01", parent_id=b_id, node_id=a_id)
        b = make_node("02", parent_id=a_id, node_id=b_id)

        paths = wbs.build_path_map([a, b], base)

        # b points back at a while a is being resolved, so b becomes top-level.
        assert paths[b_id] == "10305-01-02"
        assert paths[a_id] == "10305-01-02-01"

    def test_self_parent_terminates(self, make_node, base):
        node_id = uuid.uuid4()
        node = make_node("01", parent_id=node_id, node_id=node_id)
        assert wbs.build_path_map([node], base) == {node_id: "10305-01-01"}


class TestWalkTree:
    def test_depth_first_in_code_order(self, sample_tree, base):
        paths = wbs.build_path_map(sample_tree.nodes, base)
        rows = [(depth, path) for _, depth, path in wbs.walk_tree(sample_tree.nodes, paths)]

        assert rows == [
            (0, "10305-01-01"),
            (1, "10305-01-01-01"),
            (1, "10305-01-01-02"),
            (0, "10305-01-02"),
            (1, "10305-01-02-01"),
            (1, "10305-01-02-10"),
        ]

    def test_orphans_are_shown_as_roots(self, make_node, base):
        orphan = make_node("05", parent_id=uuid.uuid4())
        paths = wbs.build_path_map([orphan], base)
        assert [(n.id, d) for n, d, _ in wbs.walk_tree([orphan], paths)] == [(orphan.id, 0)]

    def test_cycle_and_self_parent_rows_are_shown(self, make_node, base):
        a_id, b_id, s_id = uuid.uuid4(), uuid.uuid4(), uuid.uuid4()
        a = make_node("01", parent_id=b_id, node_id=a_id)
        b = make_node("02", parent_id=a_id, node_id=b_id)
        s = make_node("03", parent_id=s_id, node_id=s_id)
        nodes = [a, b, s]

        paths = wbs.build_path_map(nodes, base)
        rows = [(n.id, depth, path) for n, depth, path in wbs.walk_tree(nodes, paths)]

        assert rows == [
            (b_id, 0, "10305-01-02"),
            (a_id, 1, "10305-01-02-01"),
            (s_id, 0, "10305-01-03"),
        ]


class TestEffectiveParents:
    def test_regular_tree_keeps_parents(self, sample_tree):
        parents = wbs.effective_parents(sample_tree.nodes)
        assert parents[sample_tree.rafters.id] == sample_tree.steel.id
        assert parents[sample_tree.steel.id] is None

    def test_three_node_cycle_is_cut_once(self, make_node):
        a_id, b_id, c_id = uuid.uuid4(), uuid.uuid4(), uuid.uuid4()
        nodes = [
            make_node("01", parent_id=c_id, node_id=a_id),
            make_node("02", parent_id=a_id, node_id=b_id),
            make_node("03", parent_id=b_id, node_id=c_id),
        ]
        # Resolving a walks c -> b -> a; b re-enters the cycle at a.
        assert wbs.effective_parents(nodes) == {a_id: c_id, c_id: b_id, b_id: None}


class TestNextChildCode:
    def test_first_top_level_node(self):
        assert wbs.next_child_code([], None) == "01"

    def test_after_existing_siblings(self, sample_tree):
        assert wbs.next_child_code(sample_tree.nodes, None) == "03"
        assert wbs.next_child_code(sample_tree.nodes, sample_tree.foundations.id) == "03"

    def test_skips_past_highest_code(self, sample_tree):
        # Steel erection has children 01 and 10.
        assert wbs.next_child_code(sample_tree.nodes, sample_tree.steel.id) == "11"

    def test_first_child_of_leaf(self, sample_tree):
        assert wbs.next_child_code(sample_tree.nodes, sample_tree.columns.id) == "01"

    def test_gap_left_by_deleted_sibling_is_not_reused(self, make_node):
        nodes = [make_node("01"), make_node("03")]
        assert wbs.next_child_code(nodes, None) == "04"


class TestNextSortOrder:
    def test_default(self):
        assert wbs.next_sort_order([], None) == 10

    def test_after_last_sibling(self, sample_tree):
        assert wbs.next_sort_order(sample_tree.nodes, None) == 30
        assert wbs.next_sort_order(sample_tree.nodes, sample_tree.columns.id) == 10


class TestDeleteBlocker:
    def test_node_with_children(self, sample_tree):
        assert wbs.delete_blocker(sample_tree.steel, sample_tree.nodes, []) == (
            "Cannot delete: has child WBS levels."
        )

    def test_node_with_jobcards(self, sample_tree, make_task):
        tasks = [make_task(sample_tree.columns.id)]
        assert wbs.delete_blocker(sample_tree.columns, sample_tree.nodes, tasks) == (
            "Cannot delete: has jobcards attached."
        )

    def test_children_reported_before_jobcards(self, sample_tree, make_task):
        tasks = [make_task(sample_tree.steel.id)]
        assert wbs.delete_blocker(sample_tree.steel, sample_tree.nodes, tasks) == (
            wbs.CANNOT_DELETE_CHILDREN
        )

    def test_empty_leaf_can_be_deleted(self, sample_tree):
        assert wbs.delete_blocker(sample_tree.bolts, sample_tree.nodes, []) is None


class TestPathLookup:
    def test_parent_path(self, sample_tree, base):
        paths = wbs.build_path_map(sample_tree.nodes, base)
        assert wbs.parent_path(sample_tree.bolts, paths, base) == "10305-01-01"
        assert wbs.parent_path(sample_tree.steel, paths, base) == base

    def test_node_for_path(self, sample_tree, base):
        paths = wbs.build_path_map(sample_tree.nodes, base)
        assert wbs.node_for_path(sample_tree.nodes, paths, "10305-01-02-10") is sample_tree.rafters
        assert wbs.node_for_path(sample_tree.nodes, paths, base) is None

    @pytest.mark.parametrize(
        "path, selected, expected",
        [
            ("10305-01-01", "10305-01-01", True),
            ("10305-01-01-02", "10305-01-01", True),
            ("10305-01-10", "10305-01-1", False),
            ("10305-01-02", "10305-01-01", False),
        ],
    )
    def test_is_within(self, path, selected, expected):
        assert wbs.is_within(path, selected) is expected
