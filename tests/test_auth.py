"""
Tests for admin authentication endpoints.
"""
from datetime import timedelta

from fastapi.testclient import TestClient

from thinkpress.core.security import create_access_token, get_password_hash, verify_password


class TestAuth:
    """Test admin authentication functionality."""

    def test_register_first_admin(self, client: TestClient):
        """The first registration creates the admin account."""
        response = client.post("/api/auth/register", json={"username": "owner", "password": "Password123"})
        assert response.status_code == 201
        data = response.json()
        assert data["username"] == "owner"
        assert data["nickname"] == "owner"
        assert data["token"]

    def test_register_closed_after_first(self, client: TestClient):
        """Registration closes once an admin exists."""
        client.post("/api/auth/register", json={"username": "owner", "password": "Password123"})
        response = client.post("/api/auth/register", json={"username": "intruder", "password": "Password123"})
        assert response.status_code == 403

    def test_register_validates_username(self, client: TestClient):
        response = client.post("/api/auth/register", json={"username": "no spaces", "password": "Password123"})
        assert response.status_code == 422

    def test_login_success(self, client: TestClient, admin_user):
        response = client.post("/api/auth/login", json={"username": "admin", "password": "Password123"})
        assert response.status_code == 200
        token = response.json()["token"]

        me = client.get("/api/auth/me", headers={"Authorization": f"Bearer {token}"})
        assert me.status_code == 200
        assert me.json()["data"]["username"] == "admin"

    def test_login_wrong_password(self, client: TestClient, admin_user):
        response = client.post("/api/auth/login", json={"username": "admin", "password": "WrongPassword1"})
        assert response.status_code == 401

    def test_login_nonexistent_user(self, client: TestClient):
        response = client.post("/api/auth/login", json={"username": "nobody", "password": "Password123"})
        assert response.status_code == 401

    def test_write_requires_token(self, client: TestClient):
        response = client.post("/api/posts", json={"title": "x", "content": "y"})
        assert response.status_code == 401

    def test_expired_token_rejected(self, client: TestClient, admin_user):
        token = create_access_token({"sub": admin_user.id}, expires_delta=timedelta(minutes=-1))
        response = client.get("/api/auth/me", headers={"Authorization": f"Bearer {token}"})
        assert response.status_code == 401


class TestPasswordHashing:

    def test_roundtrip(self):
        hashed = get_password_hash("Password123")
        assert verify_password("Password123", hashed)
        assert not verify_password("password123", hashed)

    def test_garbage_hash(self):
        assert not verify_password("Password123", "not-a-bcrypt-hash")
