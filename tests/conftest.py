"""
Shared fixtures.

Environment is configured before any application module is imported so the
engine binds to an in-memory SQLite database and rate limiting stays off.
"""

import os

os.environ["DATABASE_URL"] = "sqlite://"
os.environ["ENVIRONMENT"] = "test"
os.environ["SECRET_KEY"] = "test-secret-key-for-unit-tests-only"
os.environ["RESEND_API_KEY"] = "re_test"
os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ["RETRY_DELAY_SECONDS"] = "0"
os.environ["DB_LOG_SLOW_QUERIES"] = "false"

from unittest.mock import AsyncMock, MagicMock, patch  # noqa: E402

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402

from ouest_services.database import Base, SessionLocal, engine  # noqa: E402
from ouest_services.main import app  # noqa: E402
from ouest_services.models import User, default_preferences, utcnow  # noqa: E402
from ouest_services.security_utils import create_jwt_token  # noqa: E402

FIREBASE_FUNCTIONS = (
    "verify_id_token",
    "get_user",
    "get_user_by_email",
    "update_user",
    "delete_user",
    "ensure_role_claim",
    "revoke_refresh_tokens",
    "generate_signin_link",
    "send_push",
)


@pytest.fixture(autouse=True)
def reset_database():
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    yield


@pytest.fixture
def db():
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def client():
    return TestClient(app)


@pytest.fixture(autouse=True)
def mock_send_email():
    """Every outgoing email goes through email_service.send_email"""
    with patch("ouest_services.email_service.send_email", new_callable=AsyncMock) as mock_send:
        mock_send.return_value = {"id": "email-test-id"}
        yield mock_send


@pytest.fixture(autouse=True)
def mock_firebase():
    """Firebase Admin wrappers keyed by function name"""
    mocks = {}
    patchers = [patch(f"ouest_services.firebase.{name}") for name in FIREBASE_FUNCTIONS]
    for name, patcher in zip(FIREBASE_FUNCTIONS, patchers):
        mocks[name] = patcher.start()
    mocks["send_push"].return_value = "projects/test/messages/1"
    mocks["generate_signin_link"].return_value = "https://example.firebaseapp.com/signin?oob=abc"
    yield mocks
    for patcher in patchers:
        patcher.stop()


@pytest.fixture(autouse=True)
def mock_r2():
    """R2 client double; public URLs are built from a fixed CDN base"""
    r2 = MagicMock()
    with (
        patch("ouest_services.services.storage_service.get_r2_client", return_value=r2),
        patch("ouest_services.services.storage_service.R2_PUBLIC_URL", "https://cdn.test"),
    ):
        yield r2


def make_user(db, user_id="user-1", email="jean@example.com", role="client", **overrides) -> User:
    user = User(
        id=user_id,
        email=email,
        name=overrides.pop("name", "Jean Dupont"),
        phone=overrides.pop("phone", "+33612345678"),
        role=role,
        preferences=overrides.pop("preferences", default_preferences()),
        email_verified=overrides.pop("email_verified", True),
        last_login=utcnow(),
        **overrides,
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


def auth_headers(user: User) -> dict:
    return {"Authorization": f"Bearer {create_jwt_token(user.id, user.role)}"}


@pytest.fixture
def client_user(db):
    return make_user(db)


@pytest.fixture
def admin_user(db):
    return make_user(db, user_id="admin-1", email="admin@llouestservices.fr", role="admin", name="Admin")


@pytest.fixture
def client_headers(client_user):
    return auth_headers(client_user)


@pytest.fixture
def admin_headers(admin_user):
    return auth_headers(admin_user)
