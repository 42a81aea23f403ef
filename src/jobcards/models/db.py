"""SQLAlchemy ORM models for the Site Jobcards portal."""

import uuid

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    Enum,
    ForeignKey,
    ForeignKeyConstraint,
    Integer,
    String,
    Text,
    UniqueConstraint,
    func,
)
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import DeclarativeBase, relationship


class Base(DeclarativeBase):
    """Base class for all ORM models."""

    pass


# ── Identity ──────────────────────────────────────────────────────────────────


class AppUser(Base):
    """A person who has signed in through Azure AD at least once."""

    __tablename__ = "app_users"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    azure_oid = Column(String(64), unique=True, nullable=True)  # OIDC "sub" / object id
    email = Column(String(320), unique=True, nullable=True, index=True)
    full_name = Column(String(255), nullable=True)
    display_name = Column(String(255), nullable=True)
    is_superuser = Column(Boolean, nullable=False, default=False)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    last_login_at = Column(DateTime(timezone=True), nullable=True)

    # Relationships
    sessions = relationship("UserSession", back_populates="user", cascade="all, delete-orphan")
    memberships = relationship(
        "ProjectMember", back_populates="user", cascade="all, delete-orphan"
    )


class UserSession(Base):
    """A server-side login session. Only the token hash is stored."""

    __tablename__ = "user_sessions"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    user_id = Column(
        UUID(as_uuid=True), ForeignKey("app_users.id", ondelete="CASCADE"), nullable=False
    )
    token_hash = Column(String(64), unique=True, nullable=False)
    expires_at = Column(DateTime(timezone=True), nullable=False, index=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    last_seen_at = Column(DateTime(timezone=True), nullable=True)
    user_agent = Column(String(200), default="")

    # Relationships
    user = relationship("AppUser", back_populates="sessions")


class LoginHandoff(Base):
    """A one-time code the portal redeems for a session after sign-in."""

    __tablename__ = "login_handoffs"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    user_id = Column(
        UUID(as_uuid=True), ForeignKey("app_users.id", ondelete="CASCADE"), nullable=False
    )
    code_hash = Column(String(64), unique=True, nullable=False)
    expires_at = Column(DateTime(timezone=True), nullable=False, index=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())


# ── Project register ──────────────────────────────────────────────────────────


class Project(Base):
    """A project from the company project register, keyed by its number."""

    __tablename__ = "projects"

    projectnumber = Column(String(16), primary_key=True)
    description = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    # Relationships
    items = relationship(
        "ProjectItem",
        back_populates="project",
        cascade="all, delete-orphan",
        order_by="ProjectItem.item_seq",
    )
    members = relationship("ProjectMember", back_populates="project", cascade="all, delete-orphan")


class ProjectMember(Base):
    """A user's role on one project."""

    __tablename__ = "project_members"

    projectnumber = Column(
        String(16), ForeignKey("projects.projectnumber", ondelete="CASCADE"), primary_key=True
    )
    user_id = Column(
        UUID(as_uuid=True), ForeignKey("app_users.id", ondelete="CASCADE"), primary_key=True
    )
    role = Column(
        Enum("member", "manager", "admin", name="project_role"),
        nullable=False,
        default="member",
    )
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    # Relationships
    project = relationship("Project", back_populates="members")
    user = relationship("AppUser", back_populates="memberships")


class ProjectItem(Base):
    """A numbered line item of a project; each item owns its own WBS."""

    __tablename__ = "project_items"

    projectnumber = Column(
        String(16), ForeignKey("projects.projectnumber", ondelete="CASCADE"), primary_key=True
    )
    item_seq = Column(Integer, primary_key=True)
    line_desc = Column(Text, default="")

    # Relationships
    project = relationship("Project", back_populates="items")


# ── Work breakdown & jobcards ─────────────────────────────────────────────────


class WbsNode(Base):
    """One level of a project item's work breakdown structure."""

    __tablename__ = "wbs_nodes"
    __table_args__ = (
        ForeignKeyConstraint(
            ["projectnumber", "item_seq"],
            ["project_items.projectnumber", "project_items.item_seq"],
            ondelete="CASCADE",
        ),
    )

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    projectnumber = Column(String(16), nullable=False, index=True)
    item_seq = Column(Integer, nullable=False)
    parent_id = Column(
        UUID(as_uuid=True), ForeignKey("wbs_nodes.id", ondelete="RESTRICT"), nullable=True
    )
    code = Column(String(16), nullable=False)
    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    sort_order = Column(Integer, nullable=False, default=10)
    created_at = Column(DateTime(timezone=True), server_default=func.now())


class JobcardTask(Base):
    """A unit of site work attached to a WBS node."""

    __tablename__ = "jobcard_tasks"
    __table_args__ = (
        ForeignKeyConstraint(
            ["projectnumber", "item_seq"],
            ["project_items.projectnumber", "project_items.item_seq"],
            ondelete="CASCADE",
        ),
    )

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    projectnumber = Column(String(16), nullable=False, index=True)
    item_seq = Column(Integer, nullable=False)
    wbs_node_id = Column(
        UUID(as_uuid=True), ForeignKey("wbs_nodes.id", ondelete="RESTRICT"), nullable=False
    )
    title = Column(String(500), nullable=False)
    description = Column(Text, nullable=True)
    status = Column(
        Enum("planned", "in_progress", "complete", name="jobcard_status"),
        nullable=False,
        default="planned",
    )
    qr_slug = Column(String(128), unique=True, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())


# ── HSE checklists ────────────────────────────────────────────────────────────


class HseTopic(Base):
    """A health, safety and environment briefing topic (e.g. working at height)."""

    __tablename__ = "hse_topics"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    code = Column(String(32), unique=True, nullable=False)
    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    regulatory_ref = Column(String(255), nullable=True)

    # Relationships
    questions = relationship(
        "HseQuestion",
        back_populates="topic",
        cascade="all, delete-orphan",
        order_by="HseQuestion.sort_order",
    )


class HseQuestion(Base):
    """A checklist question belonging to an HSE topic."""

    __tablename__ = "hse_questions"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    topic_id = Column(
        UUID(as_uuid=True), ForeignKey("hse_topics.id", ondelete="CASCADE"), nullable=False
    )
    question_text = Column(Text, nullable=False)
    response_type = Column(
        Enum("yes_no", "text", name="hse_response_type"), nullable=False, default="yes_no"
    )
    required = Column(Boolean, nullable=False, default=True)
    sort_order = Column(Integer, nullable=False, default=10)

    # Relationships
    topic = relationship("HseTopic", back_populates="questions")


class TaskHseTopic(Base):
    """Link table: which HSE topics are attached to which jobcard."""

    __tablename__ = "task_hse_topics"

    task_id = Column(
        UUID(as_uuid=True), ForeignKey("jobcard_tasks.id", ondelete="CASCADE"), primary_key=True
    )
    topic_id = Column(
        UUID(as_uuid=True), ForeignKey("hse_topics.id", ondelete="CASCADE"), primary_key=True
    )


class HseResponse(Base):
    """A recorded answer to one HSE question on one jobcard. Never updated."""

    __tablename__ = "task_hse_responses"
    __table_args__ = (UniqueConstraint("task_id", "question_id", name="uq_task_question"),)

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    task_id = Column(
        UUID(as_uuid=True), ForeignKey("jobcard_tasks.id", ondelete="CASCADE"), nullable=False
    )
    question_id = Column(
        UUID(as_uuid=True), ForeignKey("hse_questions.id", ondelete="CASCADE"), nullable=False
    )
    response_value = Column(Text, nullable=True)
    responder_name = Column(String(255), nullable=True)
    responder_id = Column(
        UUID(as_uuid=True), ForeignKey("app_users.id", ondelete="SET NULL"), nullable=True
    )
    responded_at = Column(DateTime(timezone=True), server_default=func.now())
