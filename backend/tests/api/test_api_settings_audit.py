"""
Settings and audit log API tests
"""
from fastapi.testclient import TestClient


class TestSettingsApi:
    """/settings"""

    def test_list(self, client: TestClient, viewer_headers, tariff):
        response = client.get("/settings", headers=viewer_headers)

        assert response.status_code == 200
        keys = [s["key"] for s in response.json()]
        assert keys == ["ADMIN_FEE", "LIMIT_K1", "PENALTY_AMOUNT", "RATE_K1", "RATE_K2"]

    def test_update(self, client: TestClient, admin_headers, tariff):
        response = client.patch("/settings/RATE_K1", json={"value": "1250"}, headers=admin_headers)

        assert response.status_code == 200
        assert response.json()["value"] == "1250"

    def test_update_invalid_value(self, client: TestClient, admin_headers, tariff):
        response = client.patch("/settings/RATE_K1", json={"value": "cheap"}, headers=admin_headers)

        assert response.status_code == 400

    def test_update_unknown_key(self, client: TestClient, admin_headers, tariff):
        response = client.patch("/settings/NOPE", json={"value": "1"}, headers=admin_headers)

        assert response.status_code == 404

    def test_operator_cannot_update(self, client: TestClient, operator_headers, tariff):
        response = client.patch("/settings/RATE_K1", json={"value": "1"}, headers=operator_headers)

        assert response.status_code == 403


class TestAuditLogsApi:
    """/audit-logs"""

    def test_list_newest_first(self, client: TestClient, admin_headers):
        client.post("/customers", json={"name": "Agus", "customer_number": 7}, headers=admin_headers)
        client.post("/customers", json={"name": "Dewi", "customer_number": 8}, headers=admin_headers)

        response = client.get("/audit-logs", headers=admin_headers)

        assert response.status_code == 200
        data = response.json()
        assert data["meta"]["total"] == 2
        assert data["data"][0]["details"]["name"] == "Dewi"
        assert data["data"][0]["performed_by"] == "admin1"
        assert data["data"][0]["ip_address"] == "testclient"

    def test_forwarded_for_is_recorded(self, client: TestClient, admin_headers):
        headers = {**admin_headers, "X-Forwarded-For": "203.0.113.9, 10.0.0.1"}
        client.post("/customers", json={"name": "Agus", "customer_number": 7}, headers=headers)

        data = client.get("/audit-logs", headers=admin_headers).json()

        assert data["data"][0]["ip_address"] == "203.0.113.9"

    def test_viewer_forbidden(self, client: TestClient, viewer_headers):
        assert client.get("/audit-logs", headers=viewer_headers).status_code == 403
