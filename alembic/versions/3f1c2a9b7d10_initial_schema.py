"""initial schema

Revision ID: 3f1c2a9b7d10
Revises:
Create Date: 2026-10-18 09:00:00.000000
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = "3f1c2a9b7d10"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # Identity
    op.create_table(
        "app_users",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("azure_oid", sa.String(length=64), nullable=True, unique=True),
        sa.Column("email", sa.String(length=320), nullable=True, unique=True),
        sa.Column("full_name", sa.String(length=255), nullable=True),
        sa.Column("display_name", sa.String(length=255), nullable=True),
        sa.Column("is_superuser", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("last_login_at", sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index("ix_app_users_email", "app_users", ["email"])

    op.create_table(
        "user_sessions",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column(
            "user_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("app_users.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("token_hash", sa.String(length=64), nullable=False, unique=True),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("last_seen_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("user_agent", sa.String(length=200), server_default=""),
    )
    op.create_index("ix_user_sessions_expires_at", "user_sessions", ["expires_at"])

    op.create_table(
        "login_handoffs",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column(
            "user_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("app_users.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("code_hash", sa.String(length=64), nullable=False, unique=True),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_index("ix_login_handoffs_expires_at", "login_handoffs", ["expires_at"])

    # Project register
    op.create_table(
        "projects",
        sa.Column("projectnumber", sa.String(length=16), primary_key=True),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )

    op.create_table(
        "project_members",
        sa.Column(
            "projectnumber",
            sa.String(length=16),
            sa.ForeignKey("projects.projectnumber", ondelete="CASCADE"),
            primary_key=True,
        ),
        sa.Column(
            "user_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("app_users.id", ondelete="CASCADE"),
            primary_key=True,
        ),
        sa.Column(
            "role",
            sa.Enum("member", "manager", "admin", name="project_role"),
            nullable=False,
            server_default="member",
        ),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )

    op.create_table(
        "project_items",
        sa.Column(
            "projectnumber",
            sa.String(length=16),
            sa.ForeignKey("projects.projectnumber", ondelete="CASCADE"),
            primary_key=True,
        ),
        sa.Column("item_seq", sa.Integer(), primary_key=True),
        sa.Column("line_desc", sa.Text(), server_default=""),
    )

    # Work breakdown & jobcards
    op.create_table(
        "wbs_nodes",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("projectnumber", sa.String(length=16), nullable=False),
        sa.Column("item_seq", sa.Integer(), nullable=False),
        sa.Column(
            "parent_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("wbs_nodes.id", ondelete="RESTRICT"),
            nullable=True,
        ),
        sa.Column("code", sa.String(length=16), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("sort_order", sa.Integer(), nullable=False, server_default="10"),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.ForeignKeyConstraint(
            ["projectnumber", "item_seq"],
            ["project_items.projectnumber", "project_items.item_seq"],
            ondelete="CASCADE",
        ),
    )
    op.create_index("ix_wbs_nodes_projectnumber", "wbs_nodes", ["projectnumber"])

    op.create_table(
        "jobcard_tasks",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("projectnumber", sa.String(length=16), nullable=False),
        sa.Column("item_seq", sa.Integer(), nullable=False),
        sa.Column(
            "wbs_node_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("wbs_nodes.id", ondelete="RESTRICT"),
            nullable=False,
        ),
        sa.Column("title", sa.String(length=500), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column(
            "status",
            sa.Enum("planned", "in_progress", "complete", name="jobcard_status"),
            nullable=False,
            server_default="planned",
        ),
        sa.Column("qr_slug", sa.String(length=128), nullable=False, unique=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.ForeignKeyConstraint(
            ["projectnumber", "item_seq"],
            ["project_items.projectnumber", "project_items.item_seq"],
            ondelete="CASCADE",
        ),
    )
    op.create_index("ix_jobcard_tasks_projectnumber", "jobcard_tasks", ["projectnumber"])

    # HSE checklists
    op.create_table(
        "hse_topics",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("code", sa.String(length=32), nullable=False, unique=True),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("regulatory_ref", sa.String(length=255), nullable=True),
    )

    op.create_table(
        "hse_questions",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column(
            "topic_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("hse_topics.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("question_text", sa.Text(), nullable=False),
        sa.Column(
            "response_type",
            sa.Enum("yes_no", "text", name="hse_response_type"),
            nullable=False,
            server_default="yes_no",
        ),
        sa.Column("required", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("sort_order", sa.Integer(), nullable=False, server_default="10"),
    )

    op.create_table(
        "task_hse_topics",
        sa.Column(
            "task_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("jobcard_tasks.id", ondelete="CASCADE"),
            primary_key=True,
        ),
        sa.Column(
            "topic_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("hse_topics.id", ondelete="CASCADE"),
            primary_key=True,
        ),
    )

    op.create_table(
        "task_hse_responses",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column(
            "task_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("jobcard_tasks.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column(
            "question_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("hse_questions.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("response_value", sa.Text(), nullable=True),
        sa.Column("responder_name", sa.String(length=255), nullable=True),
        sa.Column(
            "responder_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("app_users.id", ondelete="SET NULL"),
            nullable=True,
        ),
        sa.Column("responded_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.UniqueConstraint("task_id", "question_id", name="uq_task_question"),
    )


def downgrade() -> None:
    op.drop_table("task_hse_responses")
    op.drop_table("task_hse_topics")
    op.drop_table("hse_questions")
    op.drop_table("hse_topics")
    op.drop_index("ix_jobcard_tasks_projectnumber", table_name="jobcard_tasks")
    op.drop_table("jobcard_tasks")
    op.drop_index("ix_wbs_nodes_projectnumber", table_name="wbs_nodes")
    op.drop_table("wbs_nodes")
    op.drop_table("project_items")
    op.drop_table("project_members")
    op.drop_table("projects")
    op.drop_index("ix_login_handoffs_expires_at", table_name="login_handoffs")
    op.drop_table("login_handoffs")
    op.drop_index("ix_user_sessions_expires_at", table_name="user_sessions")
    op.drop_table("user_sessions")
    op.drop_index("ix_app_users_email", table_name="app_users")
    op.drop_table("app_users")

    sa.Enum(name="hse_response_type").drop(op.get_bind(), checkfirst=True)
    sa.Enum(name="jobcard_status").drop(op.get_bind(), checkfirst=True)
    sa.Enum(name="project_role").drop(op.get_bind(), checkfirst=True)
