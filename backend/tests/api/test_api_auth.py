"""
Auth API tests
"""
from fastapi.testclient import TestClient


class TestLogin:
    """POST /auth/login"""

    def test_login_success(self, client: TestClient, admin_user):
        response = client.post("/auth/login", json={"username": "admin1", "password": "secret123"})

        assert response.status_code == 200
        data = response.json()
        assert data["token_type"] == "bearer"
        assert data["user"]["username"] == "admin1"
        assert data["user"]["role"] == "admin"

    def test_login_wrong_password(self, client: TestClient, admin_user):
        response = client.post("/auth/login", json={"username": "admin1", "password": "nope"})

        assert response.status_code == 401

    def test_me(self, client: TestClient, admin_headers):
        response = client.get("/auth/me", headers=admin_headers)

        assert response.status_code == 200
        assert response.json()["username"] == "admin1"


class TestGuards:
    """Bearer token and role checks"""

    def test_missing_token(self, client: TestClient):
        response = client.get("/customers")

        assert response.status_code in (401, 403)

    def test_bad_token(self, client: TestClient):
        response = client.get("/customers", headers={"Authorization": "Bearer not-a-jwt"})

        assert response.status_code == 401

    def test_viewer_cannot_create_customer(self, client: TestClient, viewer_headers):
        response = client.post("/customers", json={"name": "Agus", "customer_number": 5},
                               headers=viewer_headers)

        assert response.status_code == 403

    def test_viewer_can_read(self, client: TestClient, viewer_headers):
        response = client.get("/customers", headers=viewer_headers)

        assert response.status_code == 200

    def test_health(self, client: TestClient):
        assert client.get("/health").json() == {"status": "healthy"}


class TestUserManagement:
    """POST /auth/register and GET /auth/users"""

    def test_admin_registers_operator(self, client: TestClient, admin_headers):
        response = client.post("/auth/register", json={
            "username": "kasir2", "password": "secret123", "name": "Kasir Dua"
        }, headers=admin_headers)

        assert response.status_code == 201
        data = response.json()
        assert data["role"] == "operator"
        assert "password" not in data and "password_hash" not in data

        login = client.post("/auth/login", json={"username": "kasir2", "password": "secret123"})
        assert login.status_code == 200

    def test_duplicate_username(self, client: TestClient, admin_headers):
        response = client.post("/auth/register", json={
            "username": "admin1", "password": "secret123", "name": "Copy"
        }, headers=admin_headers)

        assert response.status_code == 409

    def test_short_password_rejected(self, client: TestClient, admin_headers):
        response = client.post("/auth/register", json={
            "username": "kasir3", "password": "123", "name": "Kasir Tiga"
        }, headers=admin_headers)

        assert response.status_code == 422

    def test_operator_cannot_register(self, client: TestClient, operator_headers):
        response = client.post("/auth/register", json={
            "username": "kasir4", "password": "secret123", "name": "Kasir Empat"
        }, headers=operator_headers)

        assert response.status_code == 403

    def test_list_users(self, client: TestClient, admin_headers, viewer_headers):
        response = client.get("/auth/users", headers=admin_headers)

        assert response.status_code == 200
        assert {u["username"] for u in response.json()} == {"admin1", "viewer1"}
        assert client.get("/auth/users", headers=viewer_headers).status_code == 403
