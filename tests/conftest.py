import pytest
from fastapi.testclient import TestClient
from sqlalchemy.pool import StaticPool
from sqlmodel import Session, SQLModel, create_engine

from learning_platform import firebase
from learning_platform.database import get_session
from learning_platform.main import app
from learning_platform.models import User
from learning_platform.ratelimit import limiter

# ============================================================================
# IN-MEMORY DATABASE FOR TESTING
# ============================================================================

# StaticPool keeps every connection on the same in-memory database
test_engine = create_engine(
    "sqlite:///:memory:",
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)


@pytest.fixture(autouse=True)
def setup_test_db():
    """Fresh tables for every test."""
    SQLModel.metadata.create_all(test_engine)
    yield
    SQLModel.metadata.drop_all(test_engine)


@pytest.fixture(autouse=True)
def reset_rate_limiter():
    limiter.reset()
    yield
    limiter.reset()


# ============================================================================
# FAKE FIREBASE
# ============================================================================


def fake_verify_id_token(token):
    """Accept ``token-<uid>`` and reject everything else."""
    if not token.startswith("token-"):
        raise firebase.InvalidIdTokenError("Invalid token")
    uid = token[len("token-"):]
    return {
        "uid": uid,
        "email": f"{uid}@example.com",
        "email_verified": True,
        "name": uid.replace("-", " ").title(),
    }


@pytest.fixture(autouse=True)
def fake_firebase(monkeypatch):
    """Stand in for Firebase Auth; records account changes made through the API."""
    calls = {"updated": [], "deleted": []}

    def fake_get_user(uid):
        if uid.startswith("missing"):
            raise firebase.UserNotFoundError("No user record found")
        return {
            "uid": uid,
            "email": f"{uid}@example.com",
            "display_name": None,
            "photo_url": None,
            "email_verified": True,
            "disabled": False,
            "metadata": {"creation_timestamp": 0, "last_sign_in_timestamp": 0},
        }

    def fake_update_user(uid, **fields):
        if uid.startswith("missing"):
            raise firebase.UserNotFoundError("No user record found")
        calls["updated"].append((uid, fields))

    def fake_delete_user(uid):
        calls["deleted"].append(uid)

    monkeypatch.setattr(firebase, "verify_id_token", fake_verify_id_token)
    monkeypatch.setattr(firebase, "get_user", fake_get_user)
    monkeypatch.setattr(firebase, "update_user", fake_update_user)
    monkeypatch.setattr(firebase, "delete_user", fake_delete_user)
    monkeypatch.setattr(firebase, "create_custom_token", lambda uid, claims=None: f"custom-{uid}")
    return calls


# ============================================================================
# FASTAPI APP & TEST CLIENT
# ============================================================================


@pytest.fixture
def client():
    def override_get_session():
        with Session(test_engine) as session:
            yield session

    app.dependency_overrides[get_session] = override_get_session
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def session():
    """Provide a database session for tests."""
    with Session(test_engine) as session:
        yield session


# ============================================================================
# ENTITY FIXTURES
# ============================================================================


def create_user(uid, role="student", display_name=None):
    with Session(test_engine) as session:
        user = User(
            uid=uid,
            email=f"{uid}@example.com",
            display_name=display_name or uid.replace("-", " ").title(),
            role=role,
        )
        session.add(user)
        session.commit()
        session.refresh(user)
        return user


def auth(uid):
    return {"Authorization": f"Bearer token-{uid}"}


@pytest.fixture
def teacher_user():
    return create_user("teacher-1", role="teacher", display_name="Ms Perera")


@pytest.fixture
def other_teacher():
    return create_user("teacher-2", role="teacher", display_name="Mr Silva")


@pytest.fixture
def student_user():
    return create_user("student-1", display_name="Nimal")


@pytest.fixture
def second_student():
    return create_user("student-2", display_name="Kamala")


@pytest.fixture
def teacher_headers(teacher_user):
    return auth(teacher_user.uid)


@pytest.fixture
def student_headers(student_user):
    return auth(student_user.uid)


@pytest.fixture
def make_exercise(client, teacher_headers):
    """Create (and by default publish) an exercise through the API; returns its id."""

    def _make(questions, published=True, **fields):
        body = {"title": fields.pop("title", "Sinhala grammar"), "questions": questions, **fields}
        resp = client.post("/api/exercises/", json=body, headers=teacher_headers)
        assert resp.status_code == 201, resp.text
        exercise_id = resp.json()["id"]
        if published:
            resp = client.patch(
                f"/api/exercises/{exercise_id}/publish",
                json={"published": True},
                headers=teacher_headers,
            )
            assert resp.status_code == 200, resp.text
        return exercise_id

    return _make


@pytest.fixture
def make_user():
    return create_user


@pytest.fixture
def headers_for():
    return auth
