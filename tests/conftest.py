"""
Shared fixtures: a throwaway SQLite database per test, fast bcrypt, and an app
wired to both.
"""

import pytest
from fastapi.testclient import TestClient

from linkgate import accounts, models
from linkgate.auth import TokenService
from linkgate.config import Settings
from linkgate.database import build_engine, build_session_factory
from linkgate.main import create_app


@pytest.fixture
def settings(tmp_path) -> Settings:
    return Settings(
        secret_key="test-secret",
        database_url=f"sqlite:///{tmp_path / 'linkgate_test.db'}",
        db_timeout=30,
        bcrypt_rounds=4,
    )


@pytest.fixture
def engine(settings):
    engine = build_engine(settings)
    models.Base.metadata.create_all(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return build_session_factory(engine)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def make_user(db):
    def _make(username: str = "alice", password: str = "pw1", role: models.Role = models.Role.user):
        return accounts.register(db, username, password, role, rounds=4)

    return _make


@pytest.fixture
def tokens(settings) -> TokenService:
    return TokenService(settings.secret_key, settings.algorithm)


@pytest.fixture
def app(settings):
    return create_app(settings)


@pytest.fixture
def client(app):
    with TestClient(app) as c:
        yield c


@pytest.fixture
def login_as(client):
    """Create an account through the API and return bearer headers for it."""

    def _login(username: str, password: str = "pw", role: str = "user") -> dict:
        body = {"username": username, "password": password, "role": role}
        assert client.post("/signup", json=body).status_code == 201
        response = client.post("/login", json={"username": username, "password": password})
        assert response.status_code == 200
        return {"Authorization": f"Bearer {response.json()['token']}"}

    return _login
