"""WBS node API routes (managers and admins only)."""

from __future__ import annotations

import logging
import uuid

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from jobcards.api.deps import get_current_user, get_db, get_item_or_404, require_editor
from jobcards.api.routes.projects import load_item_rows, node_payload
from jobcards.models.db import AppUser, WbsNode
from jobcards.models.schemas import WbsNodeCreate, WbsNodeResponse, WbsNodeUpdate
from jobcards.planning import wbs
from jobcards.planning.jobcards import clean_description

logger = logging.getLogger(__name__)

router = APIRouter()


def _clean_name(name: str | None) -> str:
    cleaned = (name or "").strip()
    if not cleaned:
        raise HTTPException(status_code=400, detail="Name is required.")
    return cleaned


async def _get_node_or_404(session: AsyncSession, node_id: uuid.UUID) -> WbsNode:
    result = await session.execute(select(WbsNode).where(WbsNode.id == node_id))
    node = result.scalar_one_or_none()
    if not node:
        raise HTTPException(status_code=404, detail="WBS node not found")
    return node


@router.post(
    "/projects/{projectnumber}/items/{item_seq}/wbs",
    response_model=WbsNodeResponse,
    status_code=201,
)
async def create_wbs_node(
    projectnumber: str,
    item_seq: int,
    data: WbsNodeCreate,
    session: AsyncSession = Depends(get_db),
    user: AppUser = Depends(get_current_user),
):
    """Add a WBS level, top-level or nested under an existing node.

    The new node gets the next free two-digit code among its siblings and
    sorts after them.
    """
    await require_editor(session, projectnumber, user)
    await get_item_or_404(session, projectnumber, item_seq)
    name = _clean_name(data.name)

    nodes, _ = await load_item_rows(session, projectnumber, item_seq)
    if data.parent_id is not None and all(n.id != data.parent_id for n in nodes):
        raise HTTPException(status_code=400, detail="Selected parent not found.")

    node = WbsNode(
        projectnumber=projectnumber,
        item_seq=item_seq,
        parent_id=data.parent_id,
        code=wbs.next_child_code(nodes, data.parent_id),
        name=name,
        description=clean_description(data.description),
        sort_order=wbs.next_sort_order(nodes, data.parent_id),
    )
    session.add(node)
    await session.flush()
    await session.refresh(node)

    base = wbs.base_code(projectnumber, item_seq)
    path_map = wbs.build_path_map([*nodes, node], base)
    logger.info("Created WBS node %s", path_map[node.id])
    return node_payload(node, path_map, base)


@router.patch("/wbs/{node_id}", response_model=WbsNodeResponse)
async def update_wbs_node(
    node_id: uuid.UUID,
    data: WbsNodeUpdate,
    session: AsyncSession = Depends(get_db),
    user: AppUser = Depends(get_current_user),
):
    """Rename a WBS level or change its description. Code and parent are fixed."""
    node = await _get_node_or_404(session, node_id)
    await require_editor(session, node.projectnumber, user)

    update_data = data.model_dump(exclude_unset=True)
    if "name" in update_data:
        node.name = _clean_name(update_data["name"])
    if "description" in update_data:
        node.description = clean_description(update_data["description"])

    await session.flush()
    await session.refresh(node)

    nodes, _ = await load_item_rows(session, node.projectnumber, node.item_seq)
    base = wbs.base_code(node.projectnumber, node.item_seq)
    return node_payload(node, wbs.build_path_map(nodes, base), base)


@router.delete("/wbs/{node_id}")
async def delete_wbs_node(
    node_id: uuid.UUID,
    session: AsyncSession = Depends(get_db),
    user: AppUser = Depends(get_current_user),
):
    """Delete a WBS level that has no child levels and no jobcards.

    Returns the parent's path so the caller can move its selection there.
    """
    node = await _get_node_or_404(session, node_id)
    await require_editor(session, node.projectnumber, user)

    nodes, tasks = await load_item_rows(session, node.projectnumber, node.item_seq)
    blocker = wbs.delete_blocker(node, nodes, tasks)
    if blocker:
        raise HTTPException(status_code=409, detail=blocker)

    base = wbs.base_code(node.projectnumber, node.item_seq)
    path_map = wbs.build_path_map(nodes, base)
    level_path = path_map.get(node.id, base)

    await session.delete(node)
    await session.flush()
    logger.info("Deleted WBS node %s", level_path)
    return {"id": str(node_id), "path": level_path, "parent_path": wbs.parent_path(node, path_map, base)}
