import os
import tempfile

# Must happen before anything imports app.core.config
_TMP_DIR = tempfile.mkdtemp(prefix="estatehub-tests-")
os.environ["APP_ENV"] = "test"
os.environ["DATABASE_URL"] = f"sqlite:///{_TMP_DIR}/test.db"
os.environ["LOG_FILE"] = os.path.join(_TMP_DIR, "app.log")
os.environ["LOG_LEVEL"] = "INFO"
os.environ["AUTH_JWT_SECRET"] = "test-secret"

import pytest
from fastapi.testclient import TestClient

from app.core.auth import create_access_token
from app.core.db import Base, SessionLocal, engine
from app.core.init_db import init_db
from app.models.user import User
from app.services.cache import ResponseCache
from app.services.sse import NotificationBroker
from app.schemas.enums import (
    DocumentVerificationStatus,
    IdentityVerificationStatus,
    UserRole,
    VerificationStatus,
)


# =============================================================================
# FIXTURES
# =============================================================================

@pytest.fixture
def build_user():
    """Unsaved User with every onboarding flag set explicitly."""

    def _build(**overrides) -> User:
        fields = dict(
            email="someone@example.com",
            name="Someone",
            role=UserRole.CLIENT,
            verification_status=VerificationStatus.UNVERIFIED,
            phone_verified=False,
            profile_setup_completed=False,
            identity_verification_status=IdentityVerificationStatus.NOT_STARTED,
            documents_verification_status=DocumentVerificationStatus.NOT_STARTED,
            terms_accepted=False,
            privacy_policy_accepted=False,
            onboarding_completed=False,
            onboarding_step=None,
        )
        fields.update(overrides)
        return User(**fields)

    return _build


@pytest.fixture
def db():
    Base.metadata.drop_all(bind=engine)
    init_db()
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def create_user(db, build_user):
    counter = {"n": 0}

    def _create(**overrides) -> User:
        counter["n"] += 1
        overrides.setdefault("email", f"user{counter['n']}@example.com")
        user = build_user(**overrides)
        db.add(user)
        db.commit()
        db.refresh(user)
        return user

    return _create


@pytest.fixture
def auth_headers():
    def _headers(user: User) -> dict:
        return {"Authorization": f"Bearer {create_access_token(user.id)}"}

    return _headers


@pytest.fixture
def client(db):
    from app.main import app

    app.state.cache = ResponseCache()
    app.state.broker = NotificationBroker()
    with TestClient(app) as c:
        yield c
