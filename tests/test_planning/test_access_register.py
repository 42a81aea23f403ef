"""Tests for project roles and the admin register helpers."""

from __future__ import annotations

import uuid
from types import SimpleNamespace

import pytest

from jobcards.planning.access import ROLE_OPTIONS, can_edit, can_fill, read_only_notice
from jobcards.planning.register import (
    filter_projects,
    format_project_number,
    sort_projects,
    user_label,
)


class TestRoles:
    @pytest.mark.parametrize(
        "role, edit, fill",
        [
            ("admin", True, True),
            ("manager", True, True),
            ("member", False, True),
            (None, False, False),
        ],
    )
    def test_permissions(self, role, edit, fill):
        assert can_edit(role) is edit
        assert can_fill(role) is fill

    def test_role_options_start_with_none(self):
        assert ROLE_OPTIONS == ("none", "member", "manager", "admin")

    def test_read_only_notice(self):
        assert read_only_notice("member") == (
            "You are signed in with role member on this project. WBS is read-only. "
            "Ask a manager or admin if you need to change it."
        )


def _project(number, description=None):
    return SimpleNamespace(projectnumber=number, description=description)


class TestProjectRegister:
    def test_four_digit_numbers_are_padded(self):
        assert format_project_number("9876") == "09876"
        assert format_project_number("10305") == "10305"
        assert format_project_number("123") == "123"

    def test_numeric_descending_then_lexical(self):
        projects = [_project("9876"), _project("10305"), _project("TEST-1"), _project("10010"), _project("ADMIN")]
        ordered = [p.projectnumber for p in sort_projects(projects)]
        assert ordered == ["10305", "10010", "9876", "ADMIN", "TEST-1"]

    def test_sort_accepts_generators(self):
        ordered = sort_projects(_project(n) for n in ("1", "3", "2"))
        assert [p.projectnumber for p in ordered] == ["3", "2", "1"]

    def test_filter_matches_number_or_description(self):
        projects = [
            _project("10305", "Riverside warehouse"),
            _project("10306", "Office fit-out"),
            _project("9876", None),
        ]
        assert [p.projectnumber for p in filter_projects(projects, "WAREHOUSE")] == ["10305"]
        assert [p.projectnumber for p in filter_projects(projects, "987")] == ["9876"]
        assert len(filter_projects(projects, "  ")) == 3


class TestUserLabel:
    def test_prefers_full_name(self):
        user = SimpleNamespace(id=uuid.uuid4(), full_name="Jo Site", display_name="JS", email="jo@x.com")
        assert user_label(user) == "Jo Site"

    def test_falls_back_to_display_name_then_email_then_id(self):
        uid = uuid.uuid4()
        assert user_label(SimpleNamespace(id=uid, full_name=" ", display_name="JS", email="e")) == "JS"
        assert user_label(SimpleNamespace(id=uid, full_name=None, display_name=None, email="e")) == "e"
        assert user_label(SimpleNamespace(id=uid, full_name=None, display_name=None, email=None)) == str(uid)
