"""Shared test fixtures for the Site Jobcards test suite."""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from fastapi.testclient import TestClient


def _make_node(code, parent_id=None, sort_order=10, name=None, node_id=None):
    """A WBS node stand-in with the attributes the planning helpers read."""
    return SimpleNamespace(
        id=node_id or uuid.uuid4(),
        parent_id=parent_id,
        code=code,
        projectnumber="10305",
        item_seq=1,
        name=name or f"Level {code}",
        description=None,
        sort_order=sort_order,
    )


def _make_task(wbs_node_id, title="Task", created_at=None, status="planned"):
    return SimpleNamespace(
        id=uuid.uuid4(),
        projectnumber="10305",
        item_seq=1,
        wbs_node_id=wbs_node_id,
        title=title,
        description=None,
        status=status,
        qr_slug=f"10305-01-xx-{uuid.uuid4().hex[:6]}",
        created_at=created_at or datetime(2026, 1, 1, tzinfo=timezone.utc),
    )


def _make_user(**overrides):
    data = {
        "id": uuid.UUID("11111111-2222-3333-4444-555555555555"),
        "email": "jo.site@example.com",
        "full_name": "Jo Site",
        "display_name": None,
        "is_superuser": False,
        "is_active": True,
    }
    data.update(overrides)
    return SimpleNamespace(**data)


@pytest.fixture
def base():
    """WBS root code of the sample item."""
    return "10305-01"


@pytest.fixture
def sample_tree():
    """A small WBS for item 10305-01.

    01 Foundations
      01 Pad footings
      02 Holding-down bolts
    02 Steel erection
      01 Columns
      10 Rafters (code chosen to check natural ordering)
    """
    foundations = _make_node("01", sort_order=10, name="Foundations")
    steel = _make_node("02", sort_order=20, name="Steel erection")
    footings = _make_node("01", parent_id=foundations.id, sort_order=10, name="Pad footings")
    bolts = _make_node("02", parent_id=foundations.id, sort_order=20, name="Holding-down bolts")
    columns = _make_node("01", parent_id=steel.id, sort_order=10, name="Columns")
    rafters = _make_node("10", parent_id=steel.id, sort_order=20, name="Rafters")
    return SimpleNamespace(
        foundations=foundations,
        steel=steel,
        footings=footings,
        bolts=bolts,
        columns=columns,
        rafters=rafters,
        nodes=[rafters, columns, bolts, footings, steel, foundations],
    )


@pytest.fixture
def sample_topics():
    """Two HSE topics: WAH with a yes/no and a text question, HOT with one yes/no."""
    wah = SimpleNamespace(
        id=uuid.uuid4(), code="WAH", name="Working at height", description=None,
        regulatory_ref="Work at Height Regulations 2005",
    )
    hot = SimpleNamespace(
        id=uuid.uuid4(), code="HOT", name="Hot work", description=None, regulatory_ref=None
    )
    q1 = SimpleNamespace(
        id=uuid.uuid4(), topic_id=wah.id, question_text="Guard rails in place?",
        response_type="yes_no", required=True, sort_order=10,
    )
    q2 = SimpleNamespace(
        id=uuid.uuid4(), topic_id=wah.id, question_text="Rescue plan reference",
        response_type="text", required=False, sort_order=20,
    )
    q3 = SimpleNamespace(
        id=uuid.uuid4(), topic_id=hot.id, question_text="Permit displayed?",
        response_type="yes_no", required=True, sort_order=10,
    )
    return SimpleNamespace(wah=wah, hot=hot, q1=q1, q2=q2, q3=q3)


@pytest.fixture
def db_session():
    """An AsyncSession stand-in; tests set return values as needed."""
    session = AsyncMock()
    session.add = MagicMock()
    return session


@pytest.fixture
def app():
    """The FastAPI app with database and scheduler start-up mocked out."""
    with (
        patch("jobcards.db.session.init_db", new_callable=AsyncMock),
        patch("jobcards.tasks.workers.start_scheduler"),
        patch("jobcards.db.session.close_db", new_callable=AsyncMock),
        patch("jobcards.tasks.workers.stop_scheduler"),
    ):
        from jobcards.main import app

        yield app
        app.dependency_overrides.clear()


@pytest.fixture
def client(app, db_session):
    """Test client whose requests share the mocked database session."""
    from jobcards.api.deps import get_db

    async def _get_db():
        yield db_session

    app.dependency_overrides[get_db] = _get_db
    with TestClient(app) as c:
        yield c


@pytest.fixture
def sign_in(app):
    """Act as the given user for subsequent requests."""
    from jobcards.api.deps import get_current_user

    def _sign_in(user):
        async def _current_user():
            return user

        app.dependency_overrides[get_current_user] = _current_user
        return user

    return _sign_in


@pytest.fixture
def make_node():
    return _make_node


@pytest.fixture
def make_task():
    return _make_task


@pytest.fixture
def make_user():
    return _make_user
