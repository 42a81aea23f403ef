"""Jobcard helpers: QR slugs, status labels and WBS-scoped listing."""

from __future__ import annotations

import secrets
import string
from collections.abc import Iterable
from datetime import datetime
from typing import Any

from jobcards.config import settings
from jobcards.planning.wbs import is_within, natural_key

STATUSES = ("planned", "in_progress", "complete")
DEFAULT_STATUS = "planned"

_SLUG_ALPHABET = string.digits + string.ascii_lowercase
_SLUG_TOKEN_LENGTH = 6


def make_qr_slug(
    projectnumber: str, item_seq: int, node_code: str, token: str | None = None
) -> str:
    """Build the public slug encoded in a jobcard's QR code.

    Format: ``{projectnumber}-{item_seq:02d}-{node_code}-{token}``, lower-cased,
    where *token* is six random base-36 characters unless given.
    """
    if token is None:
        token = "".join(secrets.choice(_SLUG_ALPHABET) for _ in range(_SLUG_TOKEN_LENGTH))
    return f"{projectnumber}-{int(item_seq):02d}-{node_code}-{token}".lower()


def normalize_status(status: str | None) -> str:
    return (status or DEFAULT_STATUS).strip().lower() or DEFAULT_STATUS


def status_label(status: str | None) -> str:
    """Human label, e.g. ``in_progress`` -> ``in progress``."""
    return normalize_status(status).replace("_", " ")


def clean_title(title: str | None) -> str:
    cleaned = (title or "").strip()
    if not cleaned:
        raise ValueError("Title is required.")
    return cleaned


def clean_description(description: str | None) -> str | None:
    cleaned = (description or "").strip()
    return cleaned or None


def jobcard_url(qr_slug: str) -> str:
    """Link to the jobcard page in the portal; this is what the QR code holds."""
    return f"{settings.ui_base_url.rstrip('/')}/?jobcard={qr_slug}"


def task_path(task: Any, path_map: dict[Any, str], base: str) -> str:
    return path_map.get(task.wbs_node_id, base)


def filter_by_path(
    tasks: Iterable[Any], path_map: dict[Any, str], base: str, selected_path: str
) -> list[Any]:
    """Keep tasks at *selected_path* or anywhere beneath it.

    Selecting the item root (*base*) keeps every task.
    """
    if not selected_path or selected_path == base:
        return list(tasks)
    return [t for t in tasks if is_within(task_path(t, path_map, base), selected_path)]


def sort_for_display(tasks: Iterable[Any], path_map: dict[Any, str], base: str) -> list[Any]:
    """Order by WBS path (natural order), then by creation time."""

    def key(task: Any) -> tuple:
        created = task.created_at
        if isinstance(created, datetime):
            created = created.isoformat()
        return natural_key(task_path(task, path_map, base)), created or ""

    return sorted(tasks, key=key)
