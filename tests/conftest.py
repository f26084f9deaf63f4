import os

os.environ.setdefault("DATABASE_URL", "sqlite:///./test.db")
os.environ.setdefault("SECRET_KEY", "test-secret-key-for-expense-tracker")

import pytest
from datetime import datetime, timedelta, UTC
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool
from jose import jwt

from expense_tracker.database import get_db
from expense_tracker.models.base import Base
from expense_tracker.config import settings
# Import all model classes to ensure they're registered with SQLAlchemy
from expense_tracker.models.user import User
from expense_tracker.models.company import Company
from expense_tracker.models.company_membership import CompanyMembership
from expense_tracker.models.invitation import Invitation
from expense_tracker.models.expense import Expense, ExpenseItem
from expense_tracker.models.role import CompanyRole
# Import FastAPI app AFTER model imports
from expense_tracker.main import app

# Test database (SQLite in-memory for speed)
# Use StaticPool to ensure all connections share the same in-memory database
SQLALCHEMY_TEST_DATABASE_URL = "sqlite:///:memory:"
engine = create_engine(
    SQLALCHEMY_TEST_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture(scope="function")
def db_session():
    """Create fresh database for each test"""
    Base.metadata.create_all(bind=engine)
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture(scope="function")
def client(db_session):
    """FastAPI test client with test database"""

    def override_get_db():
        try:
            yield db_session
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


def create_test_token(
    user_id: str = "test-user-123",
    email: str | None = "owner@example.com",
    expired: bool = False,
    name: str | None = None,
) -> str:
    """
    Generate valid JWT token for testing.

    Args:
        user_id: User ID to embed in 'sub' claim
        email: Verified email claim (omitted when None)
        expired: If True, create expired token
        name: Optional display name claim

    Returns:
        Encoded JWT token
    """
    if expired:
        exp = datetime.now(UTC) - timedelta(minutes=5)
    else:
        exp = datetime.now(UTC) + timedelta(minutes=15)

    payload = {"sub": user_id, "exp": exp, "iat": datetime.now(UTC)}
    if email is not None:
        payload["email"] = email
    if name is not None:
        payload["name"] = name

    token = jwt.encode(payload, settings.SECRET_KEY, algorithm="HS256")
    return token


def headers_for(user_id: str, email: str | None) -> dict:
    """Authorization headers for an arbitrary caller"""
    return {"Authorization": f"Bearer {create_test_token(user_id=user_id, email=email)}"}


def flush_then_fail(session):
    """Commit replacement that writes the pending changes and then fails"""

    def _commit():
        session.flush()
        raise SQLAlchemyError("commit failed")

    return _commit


@pytest.fixture
def mock_jwt_token():
    """Generate valid JWT token"""
    return create_test_token()


@pytest.fixture
def auth_headers(mock_jwt_token):
    """Authorization headers for the default caller (owner@example.com)"""
    return {"Authorization": f"Bearer {mock_jwt_token}"}


@pytest.fixture
def member_headers():
    """Authorization headers for a second user"""
    return headers_for("member-user", "member@example.com")


@pytest.fixture
def outsider_headers():
    """Authorization headers for a user outside any company"""
    return headers_for("outsider-user", "outsider@example.com")


@pytest.fixture
def company_setup(client, auth_headers, member_headers):
    """
    Company owned by the default caller, with a second member.

    Returns a function taking the member's role so tests can build the
    membership they need.
    """

    def _setup(member_role: CompanyRole = CompanyRole.USER) -> dict:
        response = client.post("/api/companies", json={"name": "Acme Inc"}, headers=auth_headers)
        assert response.status_code == 201
        company = response.json()

        response = client.post(
            "/api/companies/me/invitations",
            json={"email": "member@example.com", "role": member_role.value},
            headers=auth_headers,
        )
        assert response.status_code == 201
        invitation = response.json()

        response = client.post(
            f"/api/invitations/{invitation['id']}/accept", headers=member_headers
        )
        assert response.status_code == 200

        member = client.get("/api/profile", headers=member_headers).json()
        owner = client.get("/api/profile", headers=auth_headers).json()
        return {"company": company, "owner": owner, "member": member}

    return _setup
