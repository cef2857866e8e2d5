import os
import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

# Set dummy environment variables for settings initialization
# Must be set BEFORE importing ministrypath modules that use settings
os.environ["DATABASE_URL"] = "sqlite:///./test.db"
os.environ["ENV"] = "development"
os.environ["REDIS_ENABLED"] = "False"
os.environ["CSRF_SECRET_KEY"] = "test-csrf-secret-key-for-testing"

import ministrypath.database as db_app
from ministrypath.main import app
from ministrypath.database import Base, get_db
from ministrypath.auth import create_access_token
from ministrypath.models import User
from ministrypath.services import SurveyService
from ministrypath.services.catalog import ScoringCatalog

# Test database setup (using in-memory sqlite for speed and isolation)
SQLALCHEMY_DATABASE_URL = "sqlite://"
engine = create_engine(
    SQLALCHEMY_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

# Monkeypatch database globally for tests
db_app.engine = engine
db_app.SessionLocal = TestingSessionLocal


@pytest.fixture(autouse=True)
def setup_db():
    """Create and drop database tables for each test."""
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture(autouse=True)
def clear_overrides():
    """Clear dependency overrides and reset limiter before and after each test."""
    app.dependency_overrides.clear()
    from ministrypath.limiter import limiter
    limiter.reset()
    app.state.limiter.enabled = True
    yield
    limiter.reset()
    app.dependency_overrides.clear()


@pytest.fixture(autouse=True)
def reset_catalog():
    """Restore the packaged catalog after tests that swap it out."""
    yield
    SurveyService.set_catalog(None)


@pytest.fixture(autouse=True)
def skip_csrf_validation(monkeypatch):
    """Skip CSRF validation in tests by mocking validate_csrf to be a no-op."""
    from fastapi_csrf_protect import CsrfProtect

    async def mock_validate_csrf(self, request):
        pass

    monkeypatch.setattr(CsrfProtect, "validate_csrf", mock_validate_csrf)


@pytest.fixture(autouse=True)
def init_cache():
    """Initialize fastapi-cache for tests."""
    from fastapi_cache import FastAPICache
    from fastapi_cache.backends.inmemory import InMemoryBackend
    FastAPICache.init(InMemoryBackend(), prefix="fastapi-cache")
    yield


@pytest.fixture
def db():
    """Provide a database session for tests."""
    connection = engine.connect()
    transaction = connection.begin()
    session = TestingSessionLocal(bind=connection)

    yield session

    session.close()
    transaction.rollback()
    connection.close()


@pytest.fixture
def client(db):
    """Provide a test client with db override."""
    def override_get_db():
        yield db

    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as c:
        yield c


def _make_user(db, email, role="attendee", **kwargs):
    user = User(email=email, role=role, **kwargs)
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


def headers_for(user):
    token = create_access_token({"sub": str(user.id)})
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def auth_headers():
    """Build bearer headers for any user: auth_headers(user)."""
    return headers_for


@pytest.fixture
def make_user(db):
    """Factory for extra users: make_user(email, role=..., first_name=...)."""
    def factory(email, role="attendee", **kwargs):
        return _make_user(db, email, role, **kwargs)
    return factory


@pytest.fixture
def test_user(db):
    """Create a test member in the database."""
    return _make_user(db, "test@example.com", role="member", first_name="Test", last_name="Member")


@pytest.fixture
def admin_user(db):
    return _make_user(db, "admin@example.com", role="admin")


@pytest.fixture
def pastor_user(db):
    return _make_user(db, "pastor@example.com", role="pastor")


@pytest.fixture
def leader_user(db):
    return _make_user(db, "leader@example.com", role="leader")


@pytest.fixture
def token_headers(test_user):
    """Return auth headers for the test member."""
    return headers_for(test_user)


@pytest.fixture
def admin_token_headers(admin_user):
    return headers_for(admin_user)


@pytest.fixture
def pastor_token_headers(pastor_user):
    return headers_for(pastor_user)


@pytest.fixture
def leader_token_headers(leader_user):
    return headers_for(leader_user)


@pytest.fixture
def tiny_catalog():
    """
    Two gifts, three ministries and a handful of questions.

    q1/q2 are gift questions, p1/p2 personality, s1 a skill check for
    "sound" and m1/m2 plain ministry interest questions.
    """
    return ScoringCatalog.model_validate({
        "version": "test",
        "questions": [
            {"id": "q1", "section": 1, "type": "likert", "text": "I explain things well",
             "gift_weights": {"teaching": 1}},
            {"id": "q2", "section": 1, "type": "likert", "text": "I notice who is hurting",
             "gift_weights": {"mercy": 1}},
            {"id": "p1", "section": 2, "type": "likert", "text": "I love big gatherings",
             "personality_weights": {"introvert_extrovert": 1}},
            {"id": "p2", "section": 2, "type": "likert", "text": "I enjoy meeting strangers",
             "personality_weights": {"introvert_extrovert": 1}},
            {"id": "s1", "section": 3, "type": "yes-no", "text": "I can run a mixing desk",
             "ministry_weights": {"sound": 1.5}, "skill_verification": True},
            {"id": "m1", "section": 4, "type": "likert", "text": "I would enjoy kids ministry",
             "ministry_weights": {"kids": 1}},
            {"id": "m2", "section": 4, "type": "likert", "text": "I am curious about running sound",
             "ministry_weights": {"sound": 1}},
        ],
        "gifts": [
            {"id": "teaching", "name": "Teaching", "description": "Explains truth clearly"},
            {"id": "mercy", "name": "Mercy / Compassion", "description": "Comes alongside the hurting"},
        ],
        "ministries": [
            {"id": "kids", "name": "Kids Ministry", "category": "children"},
            {"id": "sound", "name": "Sound Team", "category": "production",
             "requires_skill_verification": True},
            {"id": "greeters", "name": "Greeters", "category": "hospitality"},
        ],
        "personality_types": [
            {"name": "Steady Servant", "traits": ["faithful"], "description": "Dependable"},
            {"name": "Bold Evangelist", "traits": ["outgoing"], "description": "Shares boldly"},
        ],
        "rules": {
            "gift_ministries": {"teaching": ["kids"], "mercy": ["greeters"]},
            "personality_bonuses": [
                {"axis": "introvert_extrovert", "value": "extrovert", "bonuses": {"greeters": 0.3}}
            ],
        },
    })
