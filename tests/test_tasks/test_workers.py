"""Tests for the background session purge and the CLI wiring."""

from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from click.testing import CliRunner


def _factory(session):
    context = MagicMock()
    context.__aenter__ = AsyncMock(return_value=session)
    context.__aexit__ = AsyncMock(return_value=False)
    return MagicMock(return_value=context)


class TestSessionPurge:
    @pytest.mark.asyncio
    async def test_commits_and_reports_count(self, db_session):
        from jobcards.tasks.workers import run_session_purge

        with (
            patch("jobcards.db.session.async_session_factory", new=_factory(db_session)),
            patch(
                "jobcards.accounts.sessions.purge_expired_sessions",
                new=AsyncMock(return_value=3),
            ),
        ):
            assert await run_session_purge() == 3
        db_session.commit.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_failure_rolls_back(self, db_session):
        from jobcards.tasks.workers import run_session_purge

        with (
            patch("jobcards.db.session.async_session_factory", new=_factory(db_session)),
            patch(
                "jobcards.accounts.sessions.purge_expired_sessions",
                new=AsyncMock(side_effect=RuntimeError("db down")),
            ),
        ):
            assert await run_session_purge() == 0
        db_session.rollback.assert_awaited_once()


class TestScheduler:
    def test_start_registers_purge_job_once(self):
        from jobcards.tasks import workers

        scheduler = MagicMock()
        with patch.object(workers, "AsyncIOScheduler", return_value=scheduler):
            workers.start_scheduler()
            workers.start_scheduler()
            workers.stop_scheduler()

        scheduler.add_job.assert_called_once()
        assert scheduler.add_job.call_args.kwargs["id"] == "session_purge"
        scheduler.start.assert_called_once()
        scheduler.shutdown.assert_called_once_with(wait=False)


class TestCli:
    def test_commands_are_registered(self):
        from jobcards.cli import cli

        result = CliRunner().invoke(cli, ["--help"])
        assert result.exit_code == 0
        for command in ("add-project", "add-item", "grant-superuser", "set-role", "purge-sessions"):
            assert command in result.output

    def test_set_role_rejects_unknown_role(self):
        from jobcards.cli import cli

        result = CliRunner().invoke(
            cli, ["set-role", "--email", "jo@example.com", "--project", "10305", "--role", "owner"]
        )
        assert result.exit_code != 0
        assert "owner" in result.output

    def test_purge_sessions(self):
        from jobcards.cli import cli

        with patch("jobcards.tasks.workers.run_session_purge", new=AsyncMock(return_value=2)):
            result = CliRunner().invoke(cli, ["purge-sessions"])
        assert result.exit_code == 0
        assert "Removed 2 expired sessions" in result.output
