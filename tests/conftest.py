"""
Shared fixtures.

Settings are read once at import time, so the environment is populated here
before anything under `app` is imported. The app then runs against an
in-memory SQLite database, Razorpay is a MagicMock, and fastapi-mail runs with
SUPPRESS_SEND so `outbox` captures mail instead of sending it.
"""
import os

os.environ.update({
    "DATABASE_HOSTNAME": "localhost",
    "DATABASE_PORT": "5432",
    "DATABASE_PASSWORD": "test",
    "DATABASE_NAME": "dynamic_app_test",
    "DATABASE_USERNAME": "test",
    "SECRET_KEY": "test-secret-key-that-is-at-least-32-characters-long",
    "MAIL_USERNAME": "noreply@example.com",
    "MAIL_PASSWORD": "unused",
    "MAIL_FROM": "noreply@example.com",
    "MAIL_SUPPRESS_SEND": "true",
    "RAZORPAY_KEY_ID": "rzp_test_key",
    "RAZORPAY_KEY_SECRET": "rzp_test_secret",
    "RATE_LIMIT_ENABLED": "false",
    "AUTH_COOKIE_SECURE": "false",
    "PUBLIC_BASE_URL": "https://api.example.com",
})

from unittest.mock import MagicMock  # noqa: E402

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy import create_engine  # noqa: E402
from sqlalchemy.orm import sessionmaker  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from app.database import Base, get_db  # noqa: E402
from app.main import app  # noqa: E402
from app.models.user import User  # noqa: E402
from app.core.security import hash_password, create_access_token  # noqa: E402
from app.services import razorpay_service  # noqa: E402
from app.services.email_service import fast_mail  # noqa: E402

DEFAULT_PASSWORD = "s3cret-pass"

engine = create_engine(
    "sqlite://",
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture()
def db_session():
    Base.metadata.create_all(bind=engine)
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture()
def client(db_session):
    def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture(autouse=True)
def razorpay_client(monkeypatch):
    """Stands in for razorpay.Client; tests tweak return values as needed."""
    mock = MagicMock()
    mock.order.create.return_value = {
        "id": "order_test123",
        "amount": 50000,
        "currency": "INR",
        "status": "created",
    }
    mock.payment.fetch.return_value = {"id": "pay_test123", "method": "upi"}
    mock.payment.refund.return_value = {"id": "rfnd_test123", "status": "processed"}
    monkeypatch.setattr(razorpay_service, "client", mock)
    return mock


@pytest.fixture()
def outbox():
    with fast_mail.record_messages() as messages:
        yield messages


def _make_user(db_session, username: str, email: str, role: str = "USER", is_active: bool = True) -> User:
    user = User(
        username=username,
        email=email,
        full_name=username.title(),
        hashed_password=hash_password(DEFAULT_PASSWORD),
        role=role,
        is_active=is_active,
        is_email_verified=True,
    )
    db_session.add(user)
    db_session.commit()
    db_session.refresh(user)
    return user


@pytest.fixture()
def user(db_session) -> User:
    return _make_user(db_session, "alice", "alice@example.com")


@pytest.fixture()
def admin_user(db_session) -> User:
    return _make_user(db_session, "root", "root@example.com", role="ADMIN")


@pytest.fixture()
def auth_headers(user) -> dict:
    return {"Authorization": f"Bearer {create_access_token(str(user.id), user.role)}"}


@pytest.fixture()
def admin_headers(admin_user) -> dict:
    return {"Authorization": f"Bearer {create_access_token(str(admin_user.id), admin_user.role)}"}


@pytest.fixture()
def make_user(db_session):
    def factory(username: str, email: str, **kwargs) -> User:
        return _make_user(db_session, username, email, **kwargs)
    return factory
