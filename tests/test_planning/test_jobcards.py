"""Tests for jobcard slugs, labels and WBS-scoped listing."""

from __future__ import annotations

import re
import uuid
from datetime import datetime, timezone

import pytest

from jobcards.planning import wbs
from jobcards.planning.jobcards import (
    clean_description,
    clean_title,
    filter_by_path,
    jobcard_url,
    make_qr_slug,
    normalize_status,
    sort_for_display,
    status_label,
)


class TestQrSlug:
    def test_format_with_given_token(self):
        assert make_qr_slug("10305", 1, "02", token="AB12cd") == "10305-01-02-ab12cd"

    def test_random_token_is_six_base36_chars(self):
        slug = make_qr_slug("10305", 3, "01")
        assert re.fullmatch(r"10305-03-01-[0-9a-z]{6}", slug)

    def test_slugs_differ(self):
        slugs = {make_qr_slug("10305", 1, "01") for _ in range(20)}
        assert len(slugs) > 1

    def test_lowercased(self):
        assert make_qr_slug("AB123", 1, "01", token="xyz123") == "ab123-01-01-xyz123"


class TestStatus:
    def test_default_status(self):
        assert normalize_status(None) == "planned"
        assert normalize_status("  ") == "planned"

    def test_label(self):
        assert status_label("in_progress") == "in progress"
        assert status_label("complete") == "complete"


class TestCleaning:
    def test_title_is_trimmed(self):
        assert clean_title("  Pour footings ") == "Pour footings"

    @pytest.mark.parametrize("title", [None, "", "   "])
    def test_title_required(self, title):
        with pytest.raises(ValueError, match="Title is required."):
            clean_title(title)

    def test_blank_description_is_none(self):
        assert clean_description("   ") is None
        assert clean_description(" Grid A ") == "Grid A"


def test_jobcard_url_points_at_portal():
    assert jobcard_url("10305-01-02-ab12cd") == "http://localhost:8501/?jobcard=10305-01-02-ab12cd"


class TestListing:
    @pytest.fixture
    def tasks(self, sample_tree, make_task):
        early = datetime(2026, 1, 1, tzinfo=timezone.utc)
        late = datetime(2026, 2, 1, tzinfo=timezone.utc)
        return {
            "rafters": make_task(sample_tree.rafters.id, "Rafters", early),
            "columns_late": make_task(sample_tree.columns.id, "Columns B", late),
            "columns_early": make_task(sample_tree.columns.id, "Columns A", early),
            "footings": make_task(sample_tree.footings.id, "Footings", late),
        }

    def test_root_selection_keeps_everything(self, sample_tree, tasks, base):
        paths = wbs.build_path_map(sample_tree.nodes, base)
        assert len(filter_by_path(tasks.values(), paths, base, base)) == 4
        assert len(filter_by_path(tasks.values(), paths, base, "")) == 4

    def test_selection_keeps_subtree(self, sample_tree, tasks, base):
        paths = wbs.build_path_map(sample_tree.nodes, base)
        kept = filter_by_path(tasks.values(), paths, base, "10305-01-02")
        assert {t.title for t in kept} == {"Rafters", "Columns A", "Columns B"}

    def test_leaf_selection(self, sample_tree, tasks, base):
        paths = wbs.build_path_map(sample_tree.nodes, base)
        kept = filter_by_path(tasks.values(), paths, base, "10305-01-01-01")
        assert [t.title for t in kept] == ["Footings"]

    def test_sorted_by_path_then_creation(self, sample_tree, tasks, base):
        paths = wbs.build_path_map(sample_tree.nodes, base)
        ordered = sort_for_display(tasks.values(), paths, base)
        assert [t.title for t in ordered] == ["Footings", "Columns A", "Columns B", "Rafters"]

    def test_task_on_unknown_node_sorts_at_root(self, sample_tree, tasks, make_task, base):
        stray = make_task(uuid.uuid4(), "Stray")
        paths = wbs.build_path_map(sample_tree.nodes, base)
        ordered = sort_for_display([*tasks.values(), stray], paths, base)
        assert ordered[0].title == "Stray"
