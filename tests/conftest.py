import os

# Override env vars for testing, before any application module reads them
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["JWT_SECRET_KEY"] = "test-secret"
os.environ["ADMIN_TOKEN"] = "test-admin-token"
os.environ["LOG_LEVEL"] = "WARNING"

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from app import app as fastapi_app
from api.routes.auth import create_access_token
from core.database import get_db
from models.base import Base
from utils import user_manager as user_manager_module
from utils.group_manager import GroupManager
from utils.user_manager import UserManager

# Full-strength bcrypt makes every test that creates a user slow
user_manager_module.BCRYPT_ROUNDS = 4


@pytest.fixture
def engine():
    """In-memory SQLite engine shared by every session of a test."""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db_session(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def client(session_factory):
    """Test client whose requests use the test database."""

    def override_get_db():
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    fastapi_app.dependency_overrides[get_db] = override_get_db
    with TestClient(fastapi_app) as test_client:
        yield test_client
    fastapi_app.dependency_overrides.clear()


@pytest.fixture
def make_user(db_session):
    """Factory creating users directly through the UserManager."""
    counter = {"n": 0}

    def _make_user(role="student", fullname=None, email=None, password="password123"):
        counter["n"] += 1
        email = email or f"{role}{counter['n']}@example.com"
        return UserManager(db_session).create_user(
            email=email,
            password=password,
            role=role,
            fullname=fullname or f"{role.title()} {counter['n']}",
        )

    return _make_user


@pytest.fixture
def make_group(db_session):
    def _make_group(teacher, name="Biology 101", subject="Biology", code=None):
        return GroupManager(db_session).create_group(
            teacher_id=teacher.user_id, name=name, subject=subject, code=code
        )

    return _make_group


def auth_headers(user) -> dict:
    token = create_access_token({"sub": user.user_id, "role": user.role})
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def headers():
    """Build bearer-token headers for a user."""
    return auth_headers
