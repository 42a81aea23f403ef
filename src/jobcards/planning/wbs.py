"""Work breakdown structure helpers.

WBS nodes are stored flat with a parent pointer. Screens need each node's
full path, e.g. ``10305-01-01-02`` for the second child of the first
top-level node of item 1 on project 10305. Paths are rebuilt client-side
from the rows on every load; nothing here touches the database.

Functions accept any objects exposing ``id``, ``parent_id``, ``code`` and
``sort_order`` attributes (ORM rows or API schemas alike).
"""

from __future__ import annotations

import re
from collections.abc import Iterable, Iterator, Sequence
from typing import Any

CANNOT_DELETE_CHILDREN = "Cannot delete: has child WBS levels."
CANNOT_DELETE_JOBCARDS = "Cannot delete: has jobcards attached."

_DIGITS = re.compile(r"(\d+)")


def base_code(projectnumber: str, item_seq: int) -> str:
    """Return the WBS root for a project item, e.g. ``10305-01``."""
    return f"{projectnumber}-{int(item_seq):02d}"


def natural_key(text: str | None) -> tuple:
    """Sort key that compares digit runs numerically (``2`` before ``10``)."""
    parts = _DIGITS.split((text or "").lower())
    return tuple((0, int(p), "") if p.isdigit() else (1, 0, p) for p in parts if p != "")


def effective_parents(nodes: Iterable[Any]) -> dict[Any, Any]:
    """Map every node id to the parent id it is displayed under.

    A parent missing from *nodes* maps to ``None`` (top level). Each node
    is resolved once; a parent cycle is cut where it re-enters, so that
    node maps to ``None`` as well, including a node that is its own parent.
    """
    by_id = {n.id: n for n in nodes}
    parents: dict[Any, Any] = {}
    visiting: set[Any] = set()

    def resolve(node_id: Any) -> None:
        if node_id in parents:
            return
        visiting.add(node_id)
        parent_id = by_id[node_id].parent_id
        if parent_id not in by_id or parent_id in visiting:
            parents[node_id] = None
        else:
            resolve(parent_id)
            parents[node_id] = parent_id
        visiting.discard(node_id)

    for node_id in by_id:
        resolve(node_id)
    return parents


def build_path_map(nodes: Iterable[Any], base: str) -> dict[Any, str]:
    """Map every node id to its full WBS path.

    A node whose parent is missing from *nodes* hangs directly under
    *base*. A parent cycle is cut where it re-enters, so that node is
    treated as top-level (see :func:`effective_parents`).
    """
    by_id = {n.id: n for n in nodes}
    parents = effective_parents(by_id.values())
    paths: dict[Any, str] = {}

    def resolve(node_id: Any) -> str:
        if node_id not in paths:
            parent_id = parents[node_id]
            parent_path = base if parent_id is None else resolve(parent_id)
            paths[node_id] = f"{parent_path}-{by_id[node_id].code}"
        return paths[node_id]

    for node_id in by_id:
        resolve(node_id)
    return paths


def children_by_parent(
    nodes: Iterable[Any], parents: dict[Any, Any] | None = None
) -> dict[Any, list[Any]]:
    """Group nodes by parent id; each group is ordered by natural code order.

    *parents* overrides each node's ``parent_id``, e.g. with the result
    of :func:`effective_parents`.
    """
    groups: dict[Any, list[Any]] = {}
    for node in nodes:
        parent_id = node.parent_id if parents is None else parents[node.id]
        groups.setdefault(parent_id, []).append(node)
    for siblings in groups.values():
        siblings.sort(key=lambda n: natural_key(n.code))
    return groups


def walk_tree(nodes: Sequence[Any], path_map: dict[Any, str]) -> Iterator[tuple[Any, int, str]]:
    """Yield ``(node, depth, path)`` depth-first, starting from root nodes.

    Orphans and nodes where a parent cycle is cut are rendered as roots,
    the same way :func:`build_path_map` places them, so no row disappears
    from the tree.
    """
    groups = children_by_parent(nodes, effective_parents(nodes))

    def visit(node: Any, depth: int) -> Iterator[tuple[Any, int, str]]:
        yield node, depth, path_map.get(node.id, "")
        for child in groups.get(node.id, []):
            yield from visit(child, depth + 1)

    for root in groups.get(None, []):
        yield from visit(root, 0)


def siblings_of(nodes: Iterable[Any], parent_id: Any) -> list[Any]:
    return [n for n in nodes if n.parent_id == parent_id]


def next_child_code(nodes: Iterable[Any], parent_id: Any) -> str:
    """Two-digit code for a new child of *parent_id* (``None`` = top level).

    One past the highest numeric sibling code, so a code freed by a
    deleted sibling is never handed out again while later siblings exist.
    """
    siblings = siblings_of(nodes, parent_id)
    numeric = [int(s.code) for s in siblings if str(s.code).isdigit()]
    next_number = max(numeric + [len(siblings)]) + 1
    return f"{next_number:02d}"


def next_sort_order(nodes: Iterable[Any], parent_id: Any) -> int:
    orders = [s.sort_order for s in siblings_of(nodes, parent_id) if s.sort_order is not None]
    return max(orders) + 10 if orders else 10


def delete_blocker(node: Any, nodes: Iterable[Any], tasks: Iterable[Any]) -> str | None:
    """Return why *node* cannot be deleted, or ``None`` when it can."""
    if any(n.parent_id == node.id for n in nodes):
        return CANNOT_DELETE_CHILDREN
    if any(t.wbs_node_id == node.id for t in tasks):
        return CANNOT_DELETE_JOBCARDS
    return None


def parent_path(node: Any, path_map: dict[Any, str], base: str) -> str:
    """Path of *node*'s parent, or *base* for a top-level node."""
    if node.parent_id is not None and node.parent_id in path_map:
        return path_map[node.parent_id]
    return base


def node_for_path(nodes: Iterable[Any], path_map: dict[Any, str], path: str) -> Any | None:
    """Return the node whose full path is *path* (``None`` for the root)."""
    for node in nodes:
        if path_map.get(node.id) == path:
            return node
    return None


def is_within(path: str, selected: str) -> bool:
    """True if *path* is *selected* or lies beneath it in the tree."""
    return path == selected or path.startswith(f"{selected}-")
