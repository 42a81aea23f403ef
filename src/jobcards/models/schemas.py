"""Pydantic schemas for API request/response validation."""

from __future__ import annotations

import uuid
from datetime import datetime

from pydantic import BaseModel, Field


# ── Auth ──────────────────────────────────────────────────────────────────────


class UserResponse(BaseModel):
    id: uuid.UUID
    email: str | None
    full_name: str | None
    display_name: str | None = None
    is_superuser: bool = False

    model_config = {"from_attributes": True}


class LoginResponse(BaseModel):
    authorize_url: str


class HandoffExchange(BaseModel):
    code: str = Field(..., min_length=1, max_length=128)


class SessionTokenResponse(BaseModel):
    token: str
    user: UserResponse


class WhoAmIResponse(BaseModel):
    uid: uuid.UUID


# ── Projects ──────────────────────────────────────────────────────────────────


class ProjectItemResponse(BaseModel):
    projectnumber: str
    item_seq: int
    line_desc: str | None = ""

    model_config = {"from_attributes": True}


class ProjectSummary(BaseModel):
    projectnumber: str
    description: str | None
    role: str
    items: list[ProjectItemResponse] = []


class ProjectListResponse(BaseModel):
    projects: list[ProjectSummary]
    total: int


# ── WBS ───────────────────────────────────────────────────────────────────────


class WbsNodeCreate(BaseModel):
    parent_id: uuid.UUID | None = None
    name: str = Field(..., min_length=1, max_length=255)
    description: str | None = None


class WbsNodeUpdate(BaseModel):
    name: str | None = Field(None, min_length=1, max_length=255)
    description: str | None = None


class WbsNodeResponse(BaseModel):
    id: uuid.UUID
    projectnumber: str
    item_seq: int
    parent_id: uuid.UUID | None
    code: str
    name: str
    description: str | None
    sort_order: int
    path: str = ""

    model_config = {"from_attributes": True}


# ── Jobcards ──────────────────────────────────────────────────────────────────


class JobcardCreate(BaseModel):
    wbs_node_id: uuid.UUID
    title: str = Field(..., min_length=1, max_length=500)
    description: str | None = None


class JobcardUpdate(BaseModel):
    title: str | None = Field(None, min_length=1, max_length=500)
    description: str | None = None
    status: str | None = Field(None, pattern="^(planned|in_progress|complete)$")


class JobcardResponse(BaseModel):
    id: uuid.UUID
    projectnumber: str
    item_seq: int
    wbs_node_id: uuid.UUID
    title: str
    description: str | None
    status: str
    qr_slug: str
    created_at: datetime | None = None
    wbs_path: str = ""

    model_config = {"from_attributes": True}


class ProjectItemWorkspace(BaseModel):
    """Everything the project item screen needs in one response."""

    item: ProjectItemResponse
    base_code: str
    role: str | None
    can_edit: bool
    read_only_notice: str | None = None
    nodes: list[WbsNodeResponse]
    tasks: list[JobcardResponse]


# ── HSE ───────────────────────────────────────────────────────────────────────


class HseTopicResponse(BaseModel):
    id: uuid.UUID
    code: str
    name: str
    description: str | None
    regulatory_ref: str | None = None

    model_config = {"from_attributes": True}


class HseQuestionResponse(BaseModel):
    id: uuid.UUID
    topic_id: uuid.UUID
    question_text: str
    response_type: str
    required: bool
    sort_order: int

    model_config = {"from_attributes": True}


class HseResponseRecord(BaseModel):
    id: uuid.UUID
    task_id: uuid.UUID
    question_id: uuid.UUID
    response_value: str | None
    responder_name: str | None
    responder_id: uuid.UUID | None = None
    responded_at: datetime | None = None

    model_config = {"from_attributes": True}


class ChecklistQuestionResponse(HseQuestionResponse):
    response: HseResponseRecord | None = None
    answered: bool = False


class ChecklistTopicResponse(BaseModel):
    topic: HseTopicResponse
    questions: list[ChecklistQuestionResponse]


class ChecklistSummaryResponse(BaseModel):
    total: int
    answered: int
    all_answered: bool


class HseAnswersSubmit(BaseModel):
    responder_name: str | None = None
    answers: dict[uuid.UUID, str] = {}


class HseAnswersResult(BaseModel):
    message: str
    saved: int
    checklist: list[ChecklistTopicResponse]
    summary: ChecklistSummaryResponse


class JobcardDetailResponse(BaseModel):
    """Everything the jobcard screen needs in one response."""

    task: JobcardResponse
    item: ProjectItemResponse | None
    base_code: str
    wbs_path: str
    status_label: str
    role: str | None
    can_edit: bool
    can_fill: bool
    jobcard_url: str
    topics: list[HseTopicResponse]
    attached_topic_ids: list[uuid.UUID]
    checklist: list[ChecklistTopicResponse]
    summary: ChecklistSummaryResponse


# ── Admin ─────────────────────────────────────────────────────────────────────


class AdminUserResponse(BaseModel):
    id: uuid.UUID
    email: str | None
    full_name: str | None
    display_name: str | None
    label: str
    is_superuser: bool


class AdminProjectResponse(BaseModel):
    projectnumber: str
    display_number: str
    description: str | None


class ProjectCreate(BaseModel):
    projectnumber: str = Field(..., min_length=1, max_length=16, pattern="^[0-9A-Za-z-]+$")
    description: str | None = None


class ProjectUpdate(BaseModel):
    description: str | None = None


class ProjectItemCreate(BaseModel):
    item_seq: int = Field(..., ge=0, le=999)
    line_desc: str = ""


class MembershipMapResponse(BaseModel):
    user_id: uuid.UUID
    roles: dict[str, str]


class RoleAssignment(BaseModel):
    role: str = Field(..., pattern="^(none|member|manager|admin)$")


class RoleAssignmentResult(BaseModel):
    user_id: uuid.UUID
    projectnumber: str
    role: str


class HseTopicCreate(BaseModel):
    code: str = Field(..., min_length=1, max_length=32)
    name: str = Field(..., min_length=1, max_length=255)
    description: str | None = None
    regulatory_ref: str | None = None


class HseQuestionCreate(BaseModel):
    question_text: str = Field(..., min_length=1)
    response_type: str = Field("yes_no", pattern="^(yes_no|text)$")
    required: bool = True
    sort_order: int | None = None
