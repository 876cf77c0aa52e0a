"""Tests for the authentication system."""
from datetime import timedelta

import pytest
from fastapi import status

from gradebook.auth.service import AuthService
from gradebook.models import UserRole

LOGIN_URL = "/api/v1/auth/login"
ME_URL = "/api/v1/auth/me"

# Test data
TEST_USER = {
    "email": "teacher@test.com",
    "password": "Secret123!",
}


def login(client, email, password):
    return client.post(
        LOGIN_URL,
        data={"username": email, "password": password},
        headers={"content-type": "application/x-www-form-urlencoded"},
    )


@pytest.fixture
def auth_service(db_session):
    return AuthService(db_session)


def test_login(client, teacher):
    """Test user login and token generation."""
    # Test successful login
    response = login(client, TEST_USER["email"], TEST_USER["password"])
    assert response.status_code == status.HTTP_200_OK
    data = response.json()
    assert "access_token" in data
    assert data["token_type"] == "bearer"

    # Test invalid credentials
    response = login(client, TEST_USER["email"], "wrongpassword")
    assert response.status_code == status.HTTP_401_UNAUTHORIZED
    assert response.json()["error"]["code"] == "UNAUTHORIZED"


def test_login_unknown_email(client, teacher):
    response = login(client, "nobody@test.com", TEST_USER["password"])
    assert response.status_code == status.HTTP_401_UNAUTHORIZED


def test_login_records_last_login(client, db_session, teacher):
    assert teacher.last_login is None

    login(client, TEST_USER["email"], TEST_USER["password"])

    db_session.expire_all()
    assert teacher.last_login is not None


def test_inactive_user_cannot_login(client, db_session, teacher):
    teacher.is_active = False
    db_session.commit()

    response = login(client, TEST_USER["email"], TEST_USER["password"])
    assert response.status_code == status.HTTP_401_UNAUTHORIZED
    assert "disabled" in response.json()["error"]["message"]


def test_protected_endpoint(client, teacher):
    """Test access to protected endpoints."""
    access_token = login(client, TEST_USER["email"], TEST_USER["password"]).json()["access_token"]

    # Test access with valid token
    response = client.get(ME_URL, headers={"Authorization": f"Bearer {access_token}"})
    assert response.status_code == status.HTTP_200_OK
    data = response.json()
    assert data["email"] == TEST_USER["email"]
    assert data["role"] == "teacher"
    assert "hashed_password" not in data

    # Test access with invalid token
    response = client.get(ME_URL, headers={"Authorization": "Bearer invalid_token"})
    assert response.status_code == status.HTTP_401_UNAUTHORIZED

    # Test access without a token
    response = client.get(ME_URL)
    assert response.status_code == status.HTTP_401_UNAUTHORIZED


def test_token_claims(auth_service, class_head):
    token = auth_service.create_access_token(class_head)

    data = auth_service.verify_token(token)

    assert data.email == class_head.email
    assert data.user_id == class_head.id
    assert data.role == UserRole.class_head.value
    assert data.school_id == class_head.school_id


def test_expired_token(client, auth_service, teacher):
    token = auth_service.create_access_token(teacher, expires_delta=timedelta(minutes=-1))

    response = client.get(ME_URL, headers={"Authorization": f"Bearer {token}"})
    assert response.status_code == status.HTTP_401_UNAUTHORIZED


def test_token_of_deleted_user(client, db_session, auth_service, make_user):
    user = make_user("gone@test.com", "Gone", UserRole.teacher)
    token = auth_service.create_access_token(user)
    db_session.delete(user)
    db_session.commit()

    response = client.get(ME_URL, headers={"Authorization": f"Bearer {token}"})
    assert response.status_code == status.HTTP_401_UNAUTHORIZED


def test_role_guard(client, auth_headers, teacher, store_keeper):
    """Endpoints reject principals outside their roles with 403."""
    response = client.get("/api/v1/store-house/rosters", headers=auth_headers(teacher))
    assert response.status_code == status.HTTP_403_FORBIDDEN
    assert response.json()["error"]["code"] == "FORBIDDEN"

    response = client.get("/api/v1/store-house/rosters", headers=auth_headers(store_keeper))
    assert response.status_code == status.HTTP_200_OK


def test_password_hashing(teacher):
    assert teacher.hashed_password != TEST_USER["password"]
    assert teacher.verify_password(TEST_USER["password"])
    assert not teacher.verify_password("wrongpassword")
