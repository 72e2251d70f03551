import hashlib
import os
from typing import Callable, Generator
from unittest.mock import patch

# Override settings for tests before importing app modules
TEST_DATABASE_URL = "sqlite:///:memory:"
os.environ["DATABASE_URL"] = TEST_DATABASE_URL
os.environ["JWT_SECRET"] = "test-secret-key-for-testing-only"
os.environ["APP_ENV"] = "test"

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from lms.main import app
from lms.models.database import Base, get_db
from lms.models.user import ROLE_ADMIN, ROLE_USER, STATUS_ACTIVE, STATUS_INACTIVE, User
from lms.services.passwords import get_password_hash

# Create test database engine
test_engine = create_engine(
    TEST_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=test_engine)

TEST_PASSWORD = "testpassword123"


@pytest.fixture(scope="function")
def db() -> Generator[Session, None, None]:
    """Create a fresh database for each test."""
    Base.metadata.create_all(bind=test_engine)
    db_session = TestSessionLocal()
    try:
        yield db_session
    finally:
        db_session.close()
        Base.metadata.drop_all(bind=test_engine)


@pytest.fixture(scope="function")
def client(db: Session) -> Generator[TestClient, None, None]:
    """Create a test client with database override."""

    def override_get_db():
        try:
            yield db
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture(autouse=True)
def outbox():
    """Capture queued login OTP emails instead of talking to SMTP."""
    with patch("lms.api.auth.deliver_login_otp") as mock_deliver:
        yield mock_deliver


@pytest.fixture
def make_user(db: Session) -> Callable[..., User]:
    def _make_user(
        email: str,
        password: str,
        name: str = "Test User",
        role: str = ROLE_USER,
        status: int = STATUS_ACTIVE,
    ) -> User:
        user = User(name=name, email=email, password=password, role=role, status=status)
        db.add(user)
        db.commit()
        db.refresh(user)
        return user

    return _make_user


@pytest.fixture
def test_user(make_user) -> User:
    """Create a user with a modern password hash."""
    return make_user("test@example.com", get_password_hash(TEST_PASSWORD))


@pytest.fixture
def test_user2(make_user) -> User:
    """Create a second user with a modern password hash."""
    return make_user("test2@example.com", get_password_hash(TEST_PASSWORD), name="Test User 2")


@pytest.fixture
def legacy_user(make_user) -> User:
    """Create a user imported with an unsalted MD5 credential."""
    return make_user("a@x.com", hashlib.md5(b"secret").hexdigest(), name="Legacy User")


@pytest.fixture
def inactive_user(make_user) -> User:
    return make_user("inactive@example.com", get_password_hash(TEST_PASSWORD), status=STATUS_INACTIVE)


@pytest.fixture
def admin_user(make_user) -> User:
    return make_user("admin@example.com", get_password_hash(TEST_PASSWORD), name="Admin", role=ROLE_ADMIN)


@pytest.fixture
def request_otp(client: TestClient, outbox) -> Callable[[str, str], tuple[int, str]]:
    """Log in with email/password and return (user_id, emailed code)."""

    def _request_otp(email: str, password: str = TEST_PASSWORD) -> tuple[int, str]:
        outbox.reset_mock()
        response = client.post("/api/login", json={"email": email, "password": password})
        assert response.status_code == 200, response.json()
        outbox.assert_called_once()
        return response.json()["data"]["user_id"], outbox.call_args.args[2]

    return _request_otp


@pytest.fixture
def sign_in(client: TestClient, request_otp) -> Callable[[str, str], dict]:
    """Complete login + OTP verification and return the token payload."""

    def _sign_in(email: str, password: str = TEST_PASSWORD) -> dict:
        user_id, code = request_otp(email, password)
        response = client.post("/api/verify-otp", json={"user_id": user_id, "otp": code})
        assert response.status_code == 200, response.json()
        return response.json()["data"]

    return _sign_in


@pytest.fixture
def auth_tokens(sign_in, test_user: User) -> dict:
    return sign_in(test_user.email)


@pytest.fixture
def auth_headers(auth_tokens: dict) -> dict[str, str]:
    """Get auth headers with token."""
    return {"Authorization": f"Bearer {auth_tokens['access_token']}"}


@pytest.fixture
def admin_headers(sign_in, admin_user: User) -> dict[str, str]:
    tokens = sign_in(admin_user.email)
    return {"Authorization": f"Bearer {tokens['access_token']}"}
