"""
Shared fixtures: in-memory SQLite database, user factory and an API
client whose get_db dependency is bound to the test session.
"""
import os
import tempfile

# Configure the app before any talaty module reads the environment
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["UPLOAD_DIR"] = tempfile.mkdtemp(prefix="talaty-uploads-")
os.environ["SMTP_HOST"] = ""
os.environ.setdefault("INTERNAL_API_KEY", "test-internal-key")

from uuid import uuid4

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from talaty.main import app
from talaty.database import Base, get_db
from talaty.auth import create_access_token, hash_password
from talaty.models.db_models import UserDB, UserRole, UserStatus, KycStatus
from talaty.services.scoring import create_default_score

# Use in-memory SQLite for tests
SQLALCHEMY_DATABASE_URL = "sqlite://"

engine = create_engine(
    SQLALCHEMY_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db():
    Base.metadata.create_all(bind=engine)
    session = TestingSessionLocal()

    yield session

    session.close()
    Base.metadata.drop_all(bind=engine)


@pytest.fixture
def make_user(db):
    """Factory for users that start the way registration leaves them."""
    def _make_user(
        email=None,
        role=UserRole.USER,
        email_verified=False,
        phone_verified=False,
        kyc_status=KycStatus.PENDING,
        with_score=True,
    ):
        user = UserDB(
            id=str(uuid4()),
            email=email or f"{uuid4().hex[:8]}@example.com",
            password_hash=hash_password("password123"),
            first_name="Amira",
            last_name="Haddad",
            role=role,
            status=UserStatus.ACTIVE,
            email_verified=email_verified,
            phone_verified=phone_verified,
            kyc_status=kyc_status,
        )
        db.add(user)
        if with_score:
            create_default_score(db, user.id)
        db.commit()
        return user

    return _make_user


@pytest.fixture
def client(db):
    def override_get_db():
        try:
            yield db
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def auth_headers():
    """Bearer headers for a user, as the login endpoint would issue them."""
    def _headers(user: UserDB) -> dict:
        token = create_access_token(user.id, user.email, user.role.value)
        return {"Authorization": f"Bearer {token}"}

    return _headers
