"""Jobcard API routes."""

from __future__ import annotations

import io
import logging
import uuid

import qrcode
from fastapi import APIRouter, Depends, HTTPException, Response
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from jobcards.api.deps import (
    get_current_user,
    get_db,
    get_item_or_404,
    require_editor,
    require_member,
)
from jobcards.api.routes.hse import (
    checklist_payload,
    get_task_or_404,
    load_checklist,
    summary_payload,
)
from jobcards.api.routes.projects import load_item_rows, task_payload
from jobcards.models.db import AppUser, JobcardTask, ProjectItem
from jobcards.models.schemas import (
    HseTopicResponse,
    JobcardCreate,
    JobcardDetailResponse,
    JobcardResponse,
    JobcardUpdate,
    ProjectItemResponse,
)
from jobcards.planning import wbs
from jobcards.planning.access import can_edit, can_fill
from jobcards.planning.jobcards import (
    DEFAULT_STATUS,
    clean_description,
    clean_title,
    filter_by_path,
    jobcard_url,
    make_qr_slug,
    sort_for_display,
    status_label,
)

logger = logging.getLogger(__name__)

router = APIRouter()


async def _get_task_by_slug(session: AsyncSession, qr_slug: str) -> JobcardTask:
    result = await session.execute(select(JobcardTask).where(JobcardTask.qr_slug == qr_slug))
    task = result.scalar_one_or_none()
    if not task:
        raise HTTPException(status_code=404, detail="Jobcard not found.")
    return task


@router.get(
    "/projects/{projectnumber}/items/{item_seq}/jobcards",
    response_model=list[JobcardResponse],
)
async def list_item_jobcards(
    projectnumber: str,
    item_seq: int,
    path: str | None = None,
    session: AsyncSession = Depends(get_db),
    user: AppUser = Depends(get_current_user),
):
    """List an item's jobcards at or below a WBS path, in WBS order.

    Without *path* (or with the item's base code) every jobcard is listed.
    """
    await require_member(session, projectnumber, user)
    await get_item_or_404(session, projectnumber, item_seq)
    nodes, tasks = await load_item_rows(session, projectnumber, item_seq)

    base = wbs.base_code(projectnumber, item_seq)
    path_map = wbs.build_path_map(nodes, base)
    selected = filter_by_path(tasks, path_map, base, path or base)
    return [task_payload(t, path_map, base) for t in sort_for_display(selected, path_map, base)]


@router.post(
    "/projects/{projectnumber}/items/{item_seq}/jobcards",
    response_model=JobcardResponse,
    status_code=201,
)
async def create_jobcard(
    projectnumber: str,
    item_seq: int,
    data: JobcardCreate,
    session: AsyncSession = Depends(get_db),
    user: AppUser = Depends(get_current_user),
):
    """Create a jobcard at a WBS level. It starts as ``planned`` with a fresh QR slug."""
    await require_editor(session, projectnumber, user)
    await get_item_or_404(session, projectnumber, item_seq)
    try:
        title = clean_title(data.title)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc

    nodes, _ = await load_item_rows(session, projectnumber, item_seq)
    node = next((n for n in nodes if n.id == data.wbs_node_id), None)
    if node is None:
        raise HTTPException(status_code=400, detail="Selected WBS node not found.")

    task = JobcardTask(
        projectnumber=projectnumber,
        item_seq=item_seq,
        wbs_node_id=node.id,
        title=title,
        description=clean_description(data.description),
        status=DEFAULT_STATUS,
        qr_slug=make_qr_slug(projectnumber, item_seq, node.code),
    )
    session.add(task)
    await session.flush()
    await session.refresh(task)
    logger.info("Created jobcard %s", task.qr_slug)

    base = wbs.base_code(projectnumber, item_seq)
    return task_payload(task, wbs.build_path_map(nodes, base), base)


@router.patch("/jobcards/{task_id}", response_model=JobcardResponse)
async def update_jobcard(
    task_id: uuid.UUID,
    data: JobcardUpdate,
    session: AsyncSession = Depends(get_db),
    user: AppUser = Depends(get_current_user),
):
    """Edit a jobcard's title, description or status."""
    task = await get_task_or_404(session, task_id)
    await require_editor(session, task.projectnumber, user)

    update_data = data.model_dump(exclude_unset=True)
    try:
        if "title" in update_data:
            task.title = clean_title(update_data["title"])
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    if "description" in update_data:
        task.description = clean_description(update_data["description"])
    if update_data.get("status"):
        task.status = update_data["status"]

    await session.flush()
    await session.refresh(task)

    nodes, _ = await load_item_rows(session, task.projectnumber, task.item_seq)
    base = wbs.base_code(task.projectnumber, task.item_seq)
    return task_payload(task, wbs.build_path_map(nodes, base), base)


@router.delete("/jobcards/{task_id}", status_code=204)
async def delete_jobcard(
    task_id: uuid.UUID,
    session: AsyncSession = Depends(get_db),
    user: AppUser = Depends(get_current_user),
):
    """Delete a jobcard together with its HSE topic links and responses."""
    task = await get_task_or_404(session, task_id)
    await require_editor(session, task.projectnumber, user)

    await session.delete(task)
    logger.info("Deleted jobcard %s", task.qr_slug)


@router.get("/jobcards/{qr_slug}", response_model=JobcardDetailResponse)
async def get_jobcard(
    qr_slug: str,
    session: AsyncSession = Depends(get_db),
    user: AppUser = Depends(get_current_user),
):
    """Load the jobcard screen: details, WBS path, role and HSE checklist."""
    task = await _get_task_by_slug(session, qr_slug)
    role = await require_member(session, task.projectnumber, user)

    item = await session.get(ProjectItem, (task.projectnumber, task.item_seq))
    nodes, _ = await load_item_rows(session, task.projectnumber, task.item_seq)
    topics, attached_ids, checklist = await load_checklist(session, task)

    base = wbs.base_code(task.projectnumber, task.item_seq)
    path_map = wbs.build_path_map(nodes, base)
    payload = task_payload(task, path_map, base)

    return JobcardDetailResponse(
        task=payload,
        item=ProjectItemResponse.model_validate(item) if item else None,
        base_code=base,
        wbs_path=payload.wbs_path,
        status_label=status_label(task.status),
        role=role,
        can_edit=can_edit(role),
        can_fill=can_fill(role),
        jobcard_url=jobcard_url(task.qr_slug),
        topics=[HseTopicResponse.model_validate(t) for t in topics],
        attached_topic_ids=attached_ids,
        checklist=checklist_payload(checklist),
        summary=summary_payload(checklist),
    )


@router.get("/jobcards/{qr_slug}/qr.png")
async def get_jobcard_qr(
    qr_slug: str,
    session: AsyncSession = Depends(get_db),
    user: AppUser = Depends(get_current_user),
):
    """PNG QR code linking to the jobcard page, for printing on site."""
    task = await _get_task_by_slug(session, qr_slug)
    await require_member(session, task.projectnumber, user)

    buffer = io.BytesIO()
    qrcode.make(jobcard_url(task.qr_slug)).save(buffer)
    return Response(content=buffer.getvalue(), media_type="image/png")
