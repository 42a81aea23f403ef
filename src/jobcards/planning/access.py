"""Project roles and what each one may do."""

from __future__ import annotations

ROLES = ("member", "manager", "admin")
ROLE_OPTIONS = ("none", *ROLES)

EDITOR_ROLES = frozenset({"manager", "admin"})


def can_edit(role: str | None) -> bool:
    """Managers and admins may change the WBS, jobcards and attached HSE topics."""
    return role in EDITOR_ROLES


def can_fill(role: str | None) -> bool:
    """Any project member may record HSE responses."""
    return role is not None


def read_only_notice(role: str | None) -> str:
    return (
        f"You are signed in with role {role or 'member'} on this project. "
        "WBS is read-only. Ask a manager or admin if you need to change it."
    )
