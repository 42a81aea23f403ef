"""Data models - SQLAlchemy ORM and Pydantic schemas."""

from jobcards.models.db import (
    AppUser,
    Base,
    HseQuestion,
    HseResponse,
    HseTopic,
    JobcardTask,
    LoginHandoff,
    Project,
    ProjectItem,
    ProjectMember,
    TaskHseTopic,
    UserSession,
    WbsNode,
)

__all__ = [
    "Base",
    "AppUser",
    "UserSession",
    "LoginHandoff",
    "Project",
    "ProjectMember",
    "ProjectItem",
    "WbsNode",
    "JobcardTask",
    "HseTopic",
    "HseQuestion",
    "TaskHseTopic",
    "HseResponse",
]
