"""Site Jobcards CLI: project register and access management.

Usage::

    # Register a project and one of its items
    jobcards add-project --number 10305 --description "Warehouse extension"
    jobcards add-item --project 10305 --seq 1 --desc "Structural steel"

    # Pre-provision a user and give them a role (linked on first SSO sign-in)
    jobcards set-role --email jo.site@example.com --project 10305 --role manager

    # Allow someone to open the admin screen
    jobcards grant-superuser --email it.admin@example.com

    # Remove expired login sessions
    jobcards purge-sessions
"""

from __future__ import annotations

import asyncio
import sys

import click
from sqlalchemy import select
from sqlalchemy.dialects.postgresql import insert as pg_insert

from jobcards.planning.access import ROLE_OPTIONS


@click.group()
def cli():
    """Site Jobcards: project, WBS and jobcard portal."""
    pass


def _fail(message: str) -> None:
    click.secho(f"Error: {message}", fg="red", err=True)
    sys.exit(1)


async def _get_or_create_user(session, email: str):
    from jobcards.accounts.users import get_user_by_email
    from jobcards.models.db import AppUser

    user = await get_user_by_email(session, email)
    if user is None:
        user = AppUser(email=email.strip().lower())
        session.add(user)
        await session.flush()
        click.echo(f"  Pre-provisioned user {user.email}")
    return user


# ── add-project ───────────────────────────────────────────────────────


@cli.command("add-project")
@click.option("--number", "projectnumber", required=True, help="Project number, e.g. 10305.")
@click.option("--description", default="", help="Project description / client.")
def add_project(projectnumber: str, description: str):
    """Register a project."""
    asyncio.run(_add_project(projectnumber, description))


async def _add_project(projectnumber: str, description: str) -> None:
    from jobcards.db.session import session_scope
    from jobcards.models.db import Project

    async with session_scope() as session:
        project = await session.get(Project, projectnumber)
        if project is not None:
            _fail(f"project {projectnumber} already exists")
        session.add(Project(projectnumber=projectnumber, description=description or None))
    click.echo(f"Registered project {projectnumber}")


# ── add-item ──────────────────────────────────────────────────────────


@cli.command("add-item")
@click.option("--project", "projectnumber", required=True, help="Project number.")
@click.option("--seq", "item_seq", required=True, type=int, help="Item sequence number.")
@click.option("--desc", "line_desc", default="", help="Item line description.")
def add_item(projectnumber: str, item_seq: int, line_desc: str):
    """Add a line item (its own WBS root) to a project."""
    asyncio.run(_add_item(projectnumber, item_seq, line_desc))


async def _add_item(projectnumber: str, item_seq: int, line_desc: str) -> None:
    from jobcards.db.session import session_scope
    from jobcards.models.db import Project, ProjectItem
    from jobcards.planning.wbs import base_code

    async with session_scope() as session:
        if await session.get(Project, projectnumber) is None:
            _fail(f"project {projectnumber} does not exist")
        if await session.get(ProjectItem, (projectnumber, item_seq)) is not None:
            _fail(f"item {base_code(projectnumber, item_seq)} already exists")
        session.add(ProjectItem(projectnumber=projectnumber, item_seq=item_seq, line_desc=line_desc))
    click.echo(f"Added item {base_code(projectnumber, item_seq)}")


# ── grant-superuser ───────────────────────────────────────────────────


@cli.command("grant-superuser")
@click.option("--email", required=True, help="Email of the user.")
@click.option("--revoke", is_flag=True, default=False, help="Remove superuser instead.")
def grant_superuser(email: str, revoke: bool):
    """Grant (or revoke) access to the project-access admin screen."""
    asyncio.run(_grant_superuser(email, not revoke))


async def _grant_superuser(email: str, value: bool) -> None:
    from jobcards.db.session import session_scope

    async with session_scope() as session:
        user = await _get_or_create_user(session, email)
        user.is_superuser = value
    click.echo(f"{email}: superuser={'yes' if value else 'no'}")


# ── set-role ──────────────────────────────────────────────────────────


@cli.command("set-role")
@click.option("--email", required=True, help="Email of the user.")
@click.option("--project", "projectnumber", required=True, help="Project number.")
@click.option("--role", type=click.Choice(ROLE_OPTIONS), required=True)
def set_role(email: str, projectnumber: str, role: str):
    """Set a user's role on a project ('none' removes access)."""
    asyncio.run(_set_role(email, projectnumber, role))


async def _set_role(email: str, projectnumber: str, role: str) -> None:
    from jobcards.db.session import session_scope
    from jobcards.models.db import Project, ProjectMember

    async with session_scope() as session:
        if await session.get(Project, projectnumber) is None:
            _fail(f"project {projectnumber} does not exist")
        user = await _get_or_create_user(session, email)

        if role == "none":
            member = await session.get(ProjectMember, (projectnumber, user.id))
            if member is not None:
                await session.delete(member)
        else:
            stmt = pg_insert(ProjectMember).values(
                projectnumber=projectnumber, user_id=user.id, role=role
            )
            await session.execute(
                stmt.on_conflict_do_update(
                    index_elements=["projectnumber", "user_id"],
                    set_={"role": stmt.excluded.role},
                )
            )
    click.echo(f"{email} on {projectnumber}: {role}")


# ── purge-sessions ────────────────────────────────────────────────────


@cli.command("purge-sessions")
def purge_sessions():
    """Delete expired login sessions now (the server also does this periodically)."""
    from jobcards.tasks.workers import run_session_purge

    removed = asyncio.run(run_session_purge())
    click.echo(f"Removed {removed} expired sessions")


# ── list-projects ─────────────────────────────────────────────────────


@cli.command("list-projects")
def list_projects():
    """Print the project register, newest first."""
    asyncio.run(_list_projects())


async def _list_projects() -> None:
    from jobcards.db.session import session_scope
    from jobcards.models.db import Project
    from jobcards.planning.register import format_project_number, sort_projects

    async with session_scope() as session:
        result = await session.execute(select(Project))
        projects = sort_projects(result.scalars().all())

    if not projects:
        click.echo("No projects registered.")
        return
    for project in projects:
        click.echo(f"{format_project_number(project.projectnumber):>8}  {project.description or ''}")


# ── Entry point ───────────────────────────────────────────────────────


def main():
    cli()


if __name__ == "__main__":
    main()
