"""Superuser-only administration API routes: project access and registers."""

from __future__ import annotations

import logging
import uuid

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy import delete, func, select
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.ext.asyncio import AsyncSession

from jobcards.api.deps import get_db, require_superuser
from jobcards.models.db import (
    AppUser,
    HseQuestion,
    HseTopic,
    Project,
    ProjectItem,
    ProjectMember,
)
from jobcards.models.schemas import (
    AdminProjectResponse,
    AdminUserResponse,
    HseQuestionCreate,
    HseQuestionResponse,
    HseTopicCreate,
    HseTopicResponse,
    MembershipMapResponse,
    ProjectCreate,
    ProjectItemCreate,
    ProjectItemResponse,
    ProjectUpdate,
    RoleAssignment,
    RoleAssignmentResult,
)
from jobcards.planning.register import (
    filter_projects,
    format_project_number,
    sort_projects,
    user_label,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/admin")


def _project_payload(project: Project) -> AdminProjectResponse:
    return AdminProjectResponse(
        projectnumber=project.projectnumber,
        display_number=format_project_number(project.projectnumber),
        description=project.description,
    )


async def _get_project_or_404(session: AsyncSession, projectnumber: str) -> Project:
    project = await session.get(Project, projectnumber)
    if not project:
        raise HTTPException(status_code=404, detail="Project not found")
    return project


async def _get_user_or_404(session: AsyncSession, user_id: uuid.UUID) -> AppUser:
    user = await session.get(AppUser, user_id)
    if not user:
        raise HTTPException(status_code=404, detail="User not found")
    return user


# ── Users & memberships ───────────────────────────────────────────────────────


@router.get("/users", response_model=list[AdminUserResponse])
async def list_users(
    session: AsyncSession = Depends(get_db),
    _: AppUser = Depends(require_superuser),
):
    """List every portal user, ordered by email."""
    result = await session.execute(select(AppUser).order_by(AppUser.email.asc()))
    return [
        AdminUserResponse(
            id=u.id,
            email=u.email,
            full_name=u.full_name,
            display_name=u.display_name,
            label=user_label(u),
            is_superuser=u.is_superuser,
        )
        for u in result.scalars().all()
    ]


@router.get("/users/{user_id}/memberships", response_model=MembershipMapResponse)
async def get_memberships(
    user_id: uuid.UUID,
    session: AsyncSession = Depends(get_db),
    _: AppUser = Depends(require_superuser),
):
    """Map of project number to role for one user. Absent projects mean no access."""
    await _get_user_or_404(session, user_id)
    result = await session.execute(
        select(ProjectMember.projectnumber, ProjectMember.role).where(
            ProjectMember.user_id == user_id
        )
    )
    return MembershipMapResponse(
        user_id=user_id, roles={pn: role or "member" for pn, role in result.all()}
    )


@router.put(
    "/users/{user_id}/memberships/{projectnumber}", response_model=RoleAssignmentResult
)
async def set_membership(
    user_id: uuid.UUID,
    projectnumber: str,
    data: RoleAssignment,
    session: AsyncSession = Depends(get_db),
    admin: AppUser = Depends(require_superuser),
):
    """Give a user a role on a project; role ``none`` removes their access."""
    await _get_user_or_404(session, user_id)
    await _get_project_or_404(session, projectnumber)

    if data.role == "none":
        await session.execute(
            delete(ProjectMember).where(
                ProjectMember.user_id == user_id,
                ProjectMember.projectnumber == projectnumber,
            )
        )
    else:
        stmt = pg_insert(ProjectMember).values(
            projectnumber=projectnumber, user_id=user_id, role=data.role
        )
        await session.execute(
            stmt.on_conflict_do_update(
                index_elements=["projectnumber", "user_id"],
                set_={"role": stmt.excluded.role},
            )
        )

    logger.info(
        "%s set role %s for user %s on project %s",
        admin.email or admin.id,
        data.role,
        user_id,
        projectnumber,
    )
    return RoleAssignmentResult(user_id=user_id, projectnumber=projectnumber, role=data.role)


# ── Project register ──────────────────────────────────────────────────────────


@router.get("/projects", response_model=list[AdminProjectResponse])
async def list_projects(
    q: str | None = None,
    session: AsyncSession = Depends(get_db),
    _: AppUser = Depends(require_superuser),
):
    """List all projects, newest number first, optionally filtered by number or description."""
    result = await session.execute(select(Project))
    projects = sort_projects(filter_projects(result.scalars().all(), q))
    return [_project_payload(p) for p in projects]


@router.post("/projects", response_model=AdminProjectResponse, status_code=201)
async def create_project(
    data: ProjectCreate,
    session: AsyncSession = Depends(get_db),
    _: AppUser = Depends(require_superuser),
):
    """Register a project."""
    if await session.get(Project, data.projectnumber):
        raise HTTPException(status_code=400, detail="Project already exists")

    project = Project(projectnumber=data.projectnumber, description=data.description)
    session.add(project)
    await session.flush()
    logger.info("Registered project %s", project.projectnumber)
    return _project_payload(project)


@router.patch("/projects/{projectnumber}", response_model=AdminProjectResponse)
async def update_project(
    projectnumber: str,
    data: ProjectUpdate,
    session: AsyncSession = Depends(get_db),
    _: AppUser = Depends(require_superuser),
):
    """Update a project's description."""
    project = await _get_project_or_404(session, projectnumber)

    update_data = data.model_dump(exclude_unset=True)
    for key, value in update_data.items():
        setattr(project, key, value)

    await session.flush()
    return _project_payload(project)


@router.post(
    "/projects/{projectnumber}/items", response_model=ProjectItemResponse, status_code=201
)
async def create_project_item(
    projectnumber: str,
    data: ProjectItemCreate,
    session: AsyncSession = Depends(get_db),
    _: AppUser = Depends(require_superuser),
):
    """Add a line item to a project."""
    await _get_project_or_404(session, projectnumber)
    if await session.get(ProjectItem, (projectnumber, data.item_seq)):
        raise HTTPException(status_code=400, detail="Project item already exists")

    item = ProjectItem(
        projectnumber=projectnumber, item_seq=data.item_seq, line_desc=data.line_desc
    )
    session.add(item)
    await session.flush()
    logger.info("Added item %s-%02d", projectnumber, data.item_seq)
    return item


# ── HSE definitions ───────────────────────────────────────────────────────────


@router.post("/hse/topics", response_model=HseTopicResponse, status_code=201)
async def create_hse_topic(
    data: HseTopicCreate,
    session: AsyncSession = Depends(get_db),
    _: AppUser = Depends(require_superuser),
):
    """Define a new HSE topic."""
    existing = await session.execute(select(HseTopic).where(HseTopic.code == data.code))
    if existing.scalar_one_or_none():
        raise HTTPException(status_code=400, detail=f"HSE topic {data.code} already exists")

    topic = HseTopic(**data.model_dump())
    session.add(topic)
    await session.flush()
    await session.refresh(topic)
    logger.info("Created HSE topic %s", topic.code)
    return topic


@router.post(
    "/hse/topics/{topic_id}/questions", response_model=HseQuestionResponse, status_code=201
)
async def create_hse_question(
    topic_id: uuid.UUID,
    data: HseQuestionCreate,
    session: AsyncSession = Depends(get_db),
    _: AppUser = Depends(require_superuser),
):
    """Append a question to an HSE topic's checklist."""
    topic = await session.get(HseTopic, topic_id)
    if topic is None:
        raise HTTPException(status_code=404, detail="HSE topic not found")

    sort_order = data.sort_order
    if sort_order is None:
        result = await session.execute(
            select(func.max(HseQuestion.sort_order)).where(HseQuestion.topic_id == topic_id)
        )
        sort_order = (result.scalar_one_or_none() or 0) + 10

    question = HseQuestion(
        topic_id=topic_id,
        question_text=data.question_text.strip(),
        response_type=data.response_type,
        required=data.required,
        sort_order=sort_order,
    )
    session.add(question)
    await session.flush()
    await session.refresh(question)
    return question
