"""
Integration tests for the results API.
"""
import uuid

import pytest
from fastapi.testclient import TestClient

PROPOSAL_DATA = {"system_size": 8.5, "estimated_production": 11200, "pricing": {"net_cost": 16850}}
BILL_DATA = {"energy_usage": 850, "rate": 0.22}


@pytest.fixture
def documents(db_session, user, stored_documents):
    return stored_documents(db_session, user, PROPOSAL_DATA, BILL_DATA)


@pytest.fixture
def generated(client: TestClient, auth_headers, documents):
    proposal, bill = documents
    response = client.post(
        "/api/v1/results/generate",
        json={"proposal_id": str(proposal.id), "utility_bill_id": str(bill.id)},
        headers=auth_headers,
    )
    assert response.status_code == 200
    return response.json()


class TestGenerate:
    """Tests for POST /results/generate."""

    def test_generate(self, generated, user):
        assert generated["status"] == "completed"
        assert generated["user_id"] == str(user.id)
        assert generated["solar_savings"]["net_system_cost"] == 16850
        assert generated["srec_incentives"]["state"] == "NY"
        assert generated["adapter_sources"]["production"]["source"] == "offline"
        assert generated["completed_at"] is not None

    def test_generate_with_location(self, client: TestClient, auth_headers, documents):
        proposal, bill = documents
        response = client.post(
            "/api/v1/results/generate",
            json={
                "proposal_id": str(proposal.id),
                "utility_bill_id": str(bill.id),
                "location": {"latitude": 39.95, "longitude": -75.16, "state": "PA"},
            },
            headers=auth_headers,
        )

        incentives = response.json()["srec_incentives"]
        assert incentives["state"] == "PA"
        assert incentives["srec_rate"] == 40

    def test_regenerating_creates_a_new_result(self, client: TestClient, auth_headers, documents, generated):
        proposal, bill = documents
        response = client.post(
            "/api/v1/results/generate",
            json={"proposal_id": str(proposal.id), "utility_bill_id": str(bill.id)},
            headers=auth_headers,
        )

        assert response.json()["id"] != generated["id"]
        assert client.get("/api/v1/results", headers=auth_headers).json()["total"] == 2

    def test_other_users_documents(self, client: TestClient, other_user, headers_for, documents):
        proposal, bill = documents
        response = client.post(
            "/api/v1/results/generate",
            json={"proposal_id": str(proposal.id), "utility_bill_id": str(bill.id)},
            headers=headers_for(other_user),
        )

        assert response.status_code == 404
        assert response.json()["error_code"] == "SLR-201"

    def test_invalid_body(self, client: TestClient, auth_headers):
        response = client.post("/api/v1/results/generate", json={"proposal_id": "nope"}, headers=auth_headers)
        assert response.status_code == 422


class TestReadAndDelete:
    """Tests for reading, listing and deleting results."""

    def test_get(self, client: TestClient, auth_headers, generated):
        response = client.get(f"/api/v1/results/{generated['id']}", headers=auth_headers)

        assert response.status_code == 200
        assert response.json()["solar_savings"] == generated["solar_savings"]

    def test_get_missing(self, client: TestClient, auth_headers):
        response = client.get(f"/api/v1/results/{uuid.uuid4()}", headers=auth_headers)

        assert response.status_code == 404
        assert response.json()["error_code"] == "SLR-203"

    def test_get_forbidden(self, client: TestClient, other_user, headers_for, generated):
        response = client.get(f"/api/v1/results/{generated['id']}", headers=headers_for(other_user))

        assert response.status_code == 403
        assert response.json()["error_code"] == "SLR-600"

    def test_admin_reads_any_result(self, client: TestClient, admin_user, headers_for, generated):
        response = client.get(f"/api/v1/results/{generated['id']}", headers=headers_for(admin_user))
        assert response.status_code == 200

    def test_list(self, client: TestClient, auth_headers, other_user, headers_for, generated):
        mine = client.get("/api/v1/results", headers=auth_headers).json()
        theirs = client.get("/api/v1/results", headers=headers_for(other_user)).json()

        assert mine["total"] == 1
        assert mine["results"][0]["id"] == generated["id"]
        assert theirs == {"results": [], "total": 0}

    def test_list_for_another_user(self, client: TestClient, user, other_user, admin_user, headers_for, generated):
        forbidden = client.get(f"/api/v1/results?user_id={user.id}", headers=headers_for(other_user))
        allowed = client.get(f"/api/v1/results?user_id={user.id}", headers=headers_for(admin_user))

        assert forbidden.status_code == 403
        assert allowed.json()["total"] == 1

    def test_delete(self, client: TestClient, auth_headers, generated):
        response = client.delete(f"/api/v1/results/{generated['id']}", headers=auth_headers)

        assert response.status_code == 204
        assert response.content == b""
        assert client.get(f"/api/v1/results/{generated['id']}", headers=auth_headers).status_code == 404

    def test_delete_forbidden(self, client: TestClient, auth_headers, other_user, headers_for, generated):
        response = client.delete(f"/api/v1/results/{generated['id']}", headers=headers_for(other_user))

        assert response.status_code == 403
        assert client.get(f"/api/v1/results/{generated['id']}", headers=auth_headers).status_code == 200


class TestResultEnvironmentalImpact:
    def test_stored_impact(self, client: TestClient, auth_headers, generated):
        response = client.get(f"/api/v1/results/{generated['id']}/environmental-impact", headers=auth_headers)

        assert response.status_code == 200
        assert response.json() == generated["environmental_impact"]
        assert response.json()["carbon_offset_annual"] == pytest.approx(7.62)

    def test_forbidden(self, client: TestClient, other_user, headers_for, generated):
        response = client.get(
            f"/api/v1/results/{generated['id']}/environmental-impact",
            headers=headers_for(other_user),
        )
        assert response.status_code == 403
