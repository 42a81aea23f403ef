"""Helpers for the project-access admin screen."""

from __future__ import annotations

from collections.abc import Iterable
from typing import Any


def format_project_number(projectnumber: str) -> str:
    """Pad legacy four-digit project numbers: ``9999`` -> ``09999``."""
    return f"0{projectnumber}" if len(projectnumber) == 4 else projectnumber


def filter_projects(projects: Iterable[Any], query: str | None) -> list[Any]:
    q = (query or "").strip().lower()
    if not q:
        return list(projects)
    return [
        p
        for p in projects
        if q in (p.projectnumber or "").lower() or q in (p.description or "").lower()
    ]


def sort_projects(projects: Iterable[Any]) -> list[Any]:
    """Newest (highest) project numbers first; non-numeric numbers sort lexically after."""
    projects = list(projects)
    numeric = [p for p in projects if p.projectnumber.isdigit()]
    other = [p for p in projects if not p.projectnumber.isdigit()]
    numeric.sort(key=lambda p: int(p.projectnumber), reverse=True)
    other.sort(key=lambda p: p.projectnumber)
    return numeric + other


def user_label(user: Any) -> str:
    for candidate in (user.full_name, user.display_name):
        if candidate and candidate.strip():
            return candidate.strip()
    return user.email or str(user.id)
