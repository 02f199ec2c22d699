"""
Pytest fixtures for the TutorMatch workflow suite.

Provides:
- A throwaway SQLite file database (configured before the app is imported)
- A FixedClock and a WorkflowService bound to it
- Actors for every role plus JWT headers for the HTTP tests
- Small factories for requirements, associations and demo slots
"""

import os
import tempfile

_DB_DIR = tempfile.mkdtemp(prefix="tutormatch-tests-")
os.environ["DATABASE_URL"] = f"sqlite:///{os.path.join(_DB_DIR, 'tutormatch_test.db')}"
os.environ["REDIS_URL"] = "redis://127.0.0.1:1/0"
os.environ["JWT_SECRET_KEY"] = "test-secret"
os.environ["APP_ENV"] = "test"

from uuid import uuid4  # noqa: E402

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402

import app.db.base  # noqa: F401, E402
from app.core.clock import FixedClock  # noqa: E402
from app.core.dependencies import get_workflow  # noqa: E402
from app.core.security import create_access_token  # noqa: E402
from app.db.base_class import Base  # noqa: E402
from app.db.init_db import init_db  # noqa: E402
from app.db.session import SessionLocal, engine  # noqa: E402
from app.main import app  # noqa: E402
from app.schemas.demo import DemoSchedule  # noqa: E402
from app.services.concurrency import Actor  # noqa: E402
from app.services.workflow_service import WorkflowService  # noqa: E402
from tests.factories import NOW, requirement_data, slot  # noqa: E402


# =============================================================================
# Database
# =============================================================================


@pytest.fixture(scope="session", autouse=True)
def _schema():
    init_db(engine)
    yield
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture(autouse=True)
def _clean_tables():
    yield
    with engine.begin() as conn:
        for table in reversed(Base.metadata.sorted_tables):
            conn.execute(table.delete())


@pytest.fixture
def fetch():
    """
    Load a row in a short-lived session. The session is closed before
    returning so no SQLite read lock outlives the call.
    """
    def _fetch(model, entity_id):
        with SessionLocal() as db:
            return db.get(model, entity_id)
    return _fetch


@pytest.fixture
def query():
    """Run `fn(db)` in a short-lived session and return its result."""
    def _query(fn):
        with SessionLocal() as db:
            return fn(db)
    return _query


# =============================================================================
# Clock, service, actors
# =============================================================================


@pytest.fixture
def clock():
    return FixedClock(NOW)


@pytest.fixture
def workflow(clock):
    return WorkflowService(SessionLocal, clock=clock)


@pytest.fixture
def parent():
    return Actor(role="parent", id=uuid4())


@pytest.fixture
def other_parent():
    return Actor(role="parent", id=uuid4())


@pytest.fixture
def tutor_a():
    return Actor(role="tutor", id=uuid4())


@pytest.fixture
def tutor_b():
    return Actor(role="tutor", id=uuid4())


@pytest.fixture
def tutor_c():
    return Actor(role="tutor", id=uuid4())


@pytest.fixture
def admin():
    return Actor(role="admin", id=uuid4())


@pytest.fixture
def system():
    return Actor(role="system")


# =============================================================================
# Factories
# =============================================================================


@pytest.fixture
def posted(workflow, parent):
    """An open requirement owned by `parent`."""
    return workflow.post_requirement(parent, requirement_data())


@pytest.fixture
def applied(workflow, posted, tutor_a):
    """`tutor_a` has applied to `posted`."""
    return workflow.record_tutor_interest(tutor_a, posted.id, tutor_a.id, "applied")


@pytest.fixture
def schedule_for(workflow, admin):
    def _schedule(requirement_id, tutor_id, demo_slot=None):
        return workflow.schedule_demo(admin, DemoSchedule(
            requirement_id=requirement_id,
            tutor_id=tutor_id,
            slot=demo_slot or slot(),
        ))
    return _schedule


# =============================================================================
# HTTP
# =============================================================================


@pytest.fixture
def client(workflow):
    app.dependency_overrides[get_workflow] = lambda: workflow
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def auth():
    def _auth(actor: Actor) -> dict:
        return {"Authorization": f"Bearer {create_access_token(actor.id, actor.role)}"}
    return _auth
