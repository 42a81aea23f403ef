"""Dashboard and project item API routes."""

from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from jobcards.api.deps import get_current_user, get_db, get_item_or_404, require_member
from jobcards.models.db import AppUser, JobcardTask, Project, ProjectMember, WbsNode
from jobcards.models.schemas import (
    JobcardResponse,
    ProjectItemResponse,
    ProjectItemWorkspace,
    ProjectListResponse,
    ProjectSummary,
    WbsNodeResponse,
)
from jobcards.planning import wbs
from jobcards.planning.access import can_edit, read_only_notice
from jobcards.planning.jobcards import task_path
from jobcards.planning.register import sort_projects

router = APIRouter()


async def load_item_rows(
    session: AsyncSession, projectnumber: str, item_seq: int
) -> tuple[list[WbsNode], list[JobcardTask]]:
    """All WBS nodes (by sort order) and jobcards (oldest first) of one item."""
    nodes_result = await session.execute(
        select(WbsNode)
        .where(WbsNode.projectnumber == projectnumber, WbsNode.item_seq == item_seq)
        .order_by(WbsNode.sort_order.asc())
    )
    tasks_result = await session.execute(
        select(JobcardTask)
        .where(JobcardTask.projectnumber == projectnumber, JobcardTask.item_seq == item_seq)
        .order_by(JobcardTask.created_at.asc())
    )
    return list(nodes_result.scalars().all()), list(tasks_result.scalars().all())


def node_payload(node: WbsNode, path_map: dict, base: str) -> WbsNodeResponse:
    payload = WbsNodeResponse.model_validate(node)
    payload.path = path_map.get(node.id, base)
    return payload


def task_payload(task: JobcardTask, path_map: dict, base: str) -> JobcardResponse:
    payload = JobcardResponse.model_validate(task)
    payload.wbs_path = task_path(task, path_map, base)
    return payload


@router.get("/projects", response_model=ProjectListResponse)
async def list_my_projects(
    session: AsyncSession = Depends(get_db),
    user: AppUser = Depends(get_current_user),
):
    """List the projects the caller is a member of, with their items."""
    result = await session.execute(
        select(Project, ProjectMember.role)
        .join(ProjectMember, ProjectMember.projectnumber == Project.projectnumber)
        .where(ProjectMember.user_id == user.id)
        .options(selectinload(Project.items))
    )
    rows = result.all()
    role_by_project = {project.projectnumber: role for project, role in rows}

    projects = [
        ProjectSummary(
            projectnumber=project.projectnumber,
            description=project.description,
            role=role_by_project[project.projectnumber],
            items=[ProjectItemResponse.model_validate(item) for item in project.items],
        )
        for project in sort_projects(project for project, _ in rows)
    ]
    return ProjectListResponse(projects=projects, total=len(projects))


@router.get("/jobcards", response_model=list[JobcardResponse])
async def list_my_jobcards(
    skip: int = 0,
    limit: int = 50,
    session: AsyncSession = Depends(get_db),
    user: AppUser = Depends(get_current_user),
):
    """List jobcards across every project the caller is a member of."""
    member_projects = select(ProjectMember.projectnumber).where(ProjectMember.user_id == user.id)
    result = await session.execute(
        select(JobcardTask)
        .where(JobcardTask.projectnumber.in_(member_projects))
        .order_by(JobcardTask.created_at.asc())
        .offset(skip)
        .limit(limit)
    )
    return result.scalars().all()


@router.get("/projects/{projectnumber}/items/{item_seq}", response_model=ProjectItemWorkspace)
async def get_project_item(
    projectnumber: str,
    item_seq: int,
    session: AsyncSession = Depends(get_db),
    user: AppUser = Depends(get_current_user),
):
    """Load the project item screen: item, WBS tree with paths, jobcards and role."""
    role = await require_member(session, projectnumber, user)
    item = await get_item_or_404(session, projectnumber, item_seq)
    nodes, tasks = await load_item_rows(session, projectnumber, item_seq)

    base = wbs.base_code(projectnumber, item_seq)
    path_map = wbs.build_path_map(nodes, base)
    editable = can_edit(role)

    return ProjectItemWorkspace(
        item=ProjectItemResponse.model_validate(item),
        base_code=base,
        role=role,
        can_edit=editable,
        read_only_notice=None if editable else read_only_notice(role),
        nodes=[node_payload(n, path_map, base) for n in nodes],
        tasks=[task_payload(t, path_map, base) for t in tasks],
    )
