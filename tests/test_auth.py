"""Tests for bearer token resolution against the real dependency."""

from datetime import datetime, timedelta, timezone

import pytest
from fastapi.testclient import TestClient
from jose import jwt

from wellness_api.config import JWT_ALGORITHM, SECRET_KEY
from wellness_api.database import get_db
from wellness_api.main import app
from wellness_api.models import User


def make_token(sub="ext-123", expires_in=timedelta(minutes=15), **claims):
    payload = {"sub": sub, "exp": datetime.now(timezone.utc) + expires_in, **claims}
    return jwt.encode(payload, SECRET_KEY, algorithm=JWT_ALGORITHM)


@pytest.fixture
def raw_client(db_session):
    """Client with only the database overridden, so tokens are really verified."""

    def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    yield TestClient(app)
    app.dependency_overrides.clear()


class TestBearerAuth:
    def test_missing_token(self, raw_client):
        response = raw_client.get("/bookings")
        assert response.status_code == 401
        assert response.json()["success"] is False

    def test_invalid_token(self, raw_client):
        response = raw_client.get("/bookings", headers={"Authorization": "Bearer not-a-jwt"})
        assert response.status_code == 401

    def test_expired_token(self, raw_client):
        token = make_token(expires_in=timedelta(minutes=-5))
        response = raw_client.get("/bookings", headers={"Authorization": f"Bearer {token}"})
        assert response.status_code == 401
        assert response.headers["X-Token-Expired"] == "true"

    def test_first_request_creates_local_user(self, raw_client, db_session):
        token = make_token(sub="ext-new", email="new@example.com", name="New Patient")
        response = raw_client.get("/bookings", headers={"Authorization": f"Bearer {token}"})

        assert response.status_code == 200
        user = db_session.query(User).filter(User.external_id == "ext-new").one()
        assert user.email == "new@example.com"
        assert user.role == "user"

    def test_role_claim_is_synced(self, raw_client, db_session, make_user):
        make_user(external_id="ext-staff")
        token = make_token(sub="ext-staff", role="staff")
        raw_client.get("/bookings", headers={"Authorization": f"Bearer {token}"})

        user = db_session.query(User).filter(User.external_id == "ext-staff").one()
        assert user.role == "staff"

    def test_unknown_role_falls_back_to_user(self, raw_client, db_session):
        token = make_token(sub="ext-odd", role="superuser")
        raw_client.get("/bookings", headers={"Authorization": f"Bearer {token}"})
        assert db_session.query(User).filter(User.external_id == "ext-odd").one().role == "user"
