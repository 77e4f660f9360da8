# SPDX-License-Identifier: Apache-2.0
"""pytest fixtures for backend tests. Points the app at a throwaway SQLite file before it is imported."""
import os
import tempfile
import uuid

_tmp_dir = tempfile.mkdtemp(prefix="researchhub-tests-")
os.environ["DATABASE_URL"] = f"sqlite:///{_tmp_dir}/researchhub.db"
os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ["ROLE_SOURCE"] = "profile"

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402

from researchhub.core.identity import Caller, create_access_token  # noqa: E402
from researchhub.database import Session, create_db_and_tables, engine  # noqa: E402
from researchhub.main import app  # noqa: E402

create_db_and_tables()


def bearer(user_id: str, role: str | None = None, email: str = "") -> dict:
    return {"Authorization": f"Bearer {create_access_token(user_id, email=email, role=role)}"}


@pytest.fixture
def client():
    """FastAPI test client."""
    return TestClient(app)


@pytest.fixture
def auth():
    """auth(user_id, role) -> Authorization header dict."""
    return bearer


@pytest.fixture
def db():
    with Session(engine) as session:
        yield session


@pytest.fixture
def researcher():
    return Caller(user_id=f"researcher-{uuid.uuid4()}", email="r@example.com", token_role="researcher")


@pytest.fixture
def other_researcher():
    return Caller(user_id=f"researcher-{uuid.uuid4()}", email="r2@example.com", token_role="researcher")


@pytest.fixture
def participant():
    return Caller(user_id=f"participant-{uuid.uuid4()}", email="p@example.com", token_role="participant")


@pytest.fixture
def admin():
    return Caller(user_id=f"admin-{uuid.uuid4()}", email="a@example.com", token_role="admin")
