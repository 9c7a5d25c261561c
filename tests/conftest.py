"""Pytest configuration and fixtures."""
import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from casebook import crud
from casebook.auth.token import create_access_token
from casebook.database import enable_sqlite_foreign_keys, get_db
from casebook.main import app
from casebook.migrations import run_migrations


@pytest.fixture
def engine():
    """Fresh in-memory database with the full schema, one per test."""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    enable_sqlite_foreign_keys(engine)
    run_migrations(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def client(session_factory):
    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def make_user(db):
    """Create users through the same upsert the OAuth callback uses."""
    def factory(name: str, **fields):
        return crud.upsert_user(db, open_id=f"open-{name}", name=name, login_method="google", **fields)
    return factory


def auth_headers(user) -> dict:
    return {"Authorization": f"Bearer {create_access_token({'sub': str(user.id)})}"}


@pytest.fixture
def headers():
    return auth_headers


CASE_STUDY = {
    "title": "Weekly report drafts with ChatGPT",
    "description": "Turning raw notes into a report in ten minutes",
    "category": "prompt",
    "tools": ["ChatGPT"],
    "challenge": "Reports took two hours every Friday",
    "solution": "A reusable prompt that structures the notes",
    "steps": ["Paste notes", "Run prompt", "Review"],
    "impact": "Saves about 90 minutes a week",
    "tags": ["reporting", "writing"],
}


@pytest.fixture
def case_study_payload():
    return dict(CASE_STUDY)


@pytest.fixture
def post_case_study(client, headers, case_study_payload):
    def post(user, **overrides) -> int:
        res = client.post("/api/case-studies/", json={**case_study_payload, **overrides}, headers=headers(user))
        assert res.status_code == 201, res.text
        return res.json()["id"]
    return post
