"""
Integration Tests for FastAPI Backend

Tests for API endpoints: catalog, diagnosis, treatment, safety, and
workflow sessions. Uses async httpx for ASGI app testing.
"""
import httpx
import pytest

from cdss import main
from cdss.main import app
from cdss.services import InMemoryReferenceData
from cdss.utils.exceptions import ExternalServiceError


@pytest.fixture
async def async_client():
    """Create async test client."""
    async with httpx.AsyncClient(
        transport=httpx.ASGITransport(app=app),
        base_url="http://test"
    ) as client:
        yield client


async def _session_at_treatment(client, diagnosis="Malaria & Typhoid Fever"):
    response = await client.post("/api/v1/sessions", json={
        "clinician_id": "DOC-001", "patient_id": "PAT-001", "patient_weight_kg": 30,
    })
    session_id = response.json()["session_id"]
    base = f"/api/v1/sessions/{session_id}"
    await client.post(f"{base}/advance")
    await client.put(f"{base}/evidence", json={"symptom_ids": ["S01", "S05"]})
    await client.post(f"{base}/advance")
    await client.post(f"{base}/advance")
    await client.post(f"{base}/diagnosis", json={"diagnosis": diagnosis})
    await client.post(f"{base}/advance")
    return base


@pytest.mark.asyncio
class TestHealthEndpoints:
    """Tests for health check endpoints."""

    async def test_root_endpoint(self, async_client):
        response = await async_client.get("/")
        assert response.status_code == 200

        data = response.json()
        assert data["status"] == "healthy"
        assert "version" in data

    async def test_health_endpoint(self, async_client):
        response = await async_client.get("/health")
        assert response.status_code == 200
        assert response.json()["reference_source"] == "built-in"


@pytest.mark.asyncio
class TestDiagnosisEndpoints:
    """Tests for catalog and one-shot diagnosis."""

    async def test_list_symptoms(self, async_client):
        response = await async_client.get("/api/v1/symptoms")
        assert response.status_code == 200

        data = response.json()
        assert len(data["symptoms"]) == 18
        assert data["categories"]["very_strong"]["weight"] == 4
        assert data["diseases"] == ["Malaria", "Typhoid Fever"]

    async def test_diagnose_co_infection(self, async_client):
        response = await async_client.post("/api/v1/diagnosis", json={"symptom_ids": ["S01", "S05"]})
        assert response.status_code == 200

        data = response.json()
        assert data["score"]["per_disease"]["Malaria"]["probability_percent"] == 88
        assert data["verdict"]["label"] == "Possible co-infection of Malaria and Typhoid Fever"
        assert data["verdict"]["requires_imaging"] is True
        assert data["summary"]["differential_count"] == 2

    async def test_diagnose_no_clear(self, async_client):
        response = await async_client.post("/api/v1/diagnosis", json={"symptom_ids": ["S15"]})
        assert response.json()["verdict"]["label"] == "No clear diagnosis"

    async def test_empty_selection_rejected(self, async_client):
        response = await async_client.post("/api/v1/diagnosis", json={"symptom_ids": []})
        assert response.status_code == 422

    async def test_unknown_ids_only(self, async_client):
        response = await async_client.post("/api/v1/diagnosis", json={"symptom_ids": ["NOPE"]})
        assert response.status_code == 422
        assert response.json()["error"] == "VALIDATION_ERROR"


@pytest.mark.asyncio
class TestTreatmentEndpoints:

    async def test_guideline_found(self, async_client):
        response = await async_client.get("/api/v1/guidelines/Malaria & Typhoid Fever")
        data = response.json()
        assert data["found"] is True
        assert data["guideline"]["notes"] == "Combined therapy for co-infection"
        assert [l["drug_name"] for l in data["guideline"]["first_line"]] == [
            "Artemether-lumefantrine", "Azithromycin",
        ]
        assert data["guideline"]["second_line"] == []

    async def test_guideline_miss_is_not_an_error(self, async_client):
        response = await async_client.get("/api/v1/guidelines/No clear diagnosis")
        assert response.status_code == 200
        assert response.json()["found"] is False

    async def test_dosage(self, async_client):
        response = await async_client.get(
            "/api/v1/dosage", params={"drug_name": "Artemether-lumefantrine", "weight_kg": 20},
        )
        assert response.json()["dosage"] == "2 tablets twice daily"

    async def test_dosage_without_weight(self, async_client):
        response = await async_client.get("/api/v1/dosage", params={"drug_name": "Paracetamol"})
        assert response.json()["dosage"] == "As prescribed"


@pytest.mark.asyncio
class TestSafetyEndpoint:

    async def test_interaction_and_allergy(self, async_client):
        response = await async_client.post("/api/v1/safety-check", json={
            "drug_names": ["Warfarin", "Azithromycin"],
            "allergies": [{"allergy_name": "azithro"}],
        })
        data = response.json()
        assert data["warning_count"] == 2
        assert [w["kind"] for w in data["warnings"]] == ["interaction", "allergy"]

    async def test_custom_graph_and_token_matching(self, async_client):
        response = await async_client.post("/api/v1/safety-check", json={
            "drug_names": ["Paracetamol"],
            "allergies": [{"allergy_name": "ace"}],
            "interactions": {},
            "matching": "token",
        })
        assert response.json()["warning_count"] == 0


@pytest.mark.asyncio
class TestWorkflowSessions:
    """Tests for the session endpoints end to end."""

    async def test_unknown_session(self, async_client):
        response = await async_client.get("/api/v1/sessions/missing")
        assert response.status_code == 404
        assert response.json()["error"] == "SESSION_NOT_FOUND"

    async def test_guard_failure(self, async_client):
        response = await async_client.post("/api/v1/sessions", json={"clinician_id": "DOC-001"})
        assert response.status_code == 201
        session_id = response.json()["session_id"]

        response = await async_client.post(f"/api/v1/sessions/{session_id}/advance")
        assert response.status_code == 422
        assert response.json()["details"]["field"] == "patient_id"

    async def test_invalid_findings(self, async_client):
        response = await async_client.post("/api/v1/sessions", json={
            "clinician_id": "DOC-001", "patient_id": "PAT-001",
        })
        session_id = response.json()["session_id"]
        response = await async_client.put(
            f"/api/v1/sessions/{session_id}/findings",
            json={"systolic_bp": 70, "diastolic_bp": 90},
        )
        assert response.status_code == 422

    async def test_full_workflow(self, async_client):
        base = await _session_at_treatment(async_client)

        response = await async_client.get(base)
        assert response.json()["state"] == "treatment_planned"

        response = await async_client.post(f"{base}/apply-guideline")
        data = response.json()
        assert data["applied"] is True
        assert len(data["session"]["prescription_draft"]) == 2

        response = await async_client.post(f"{base}/items", json={"drug_name": "Warfarin"})
        warnings = response.json()["safety_warnings"]
        assert [w["message"] for w in warnings] == ["Azithromycin may interact with Warfarin"]

        response = await async_client.delete(f"{base}/items/2")
        assert response.json()["safety_warnings"] == []

        response = await async_client.post(f"{base}/save")
        assert response.status_code == 200
        data = response.json()
        assert data["record_id"].startswith("DX-")
        assert data["session"]["state"] == "saved"

        response = await async_client.get(base)
        assert response.status_code == 404

    async def test_empty_plan_needs_confirmation(self, async_client):
        base = await _session_at_treatment(async_client)

        response = await async_client.post(f"{base}/save")
        assert response.status_code == 422

        await async_client.post(f"{base}/confirm-empty-plan")
        response = await async_client.post(f"{base}/save")
        assert response.status_code == 200

    async def test_update_item(self, async_client):
        base = await _session_at_treatment(async_client, diagnosis="Malaria")
        await async_client.post(f"{base}/items", json={"drug_name": "Paracetamol"})

        response = await async_client.patch(f"{base}/items/0", json={"quantity": 20})
        assert response.json()["prescription_draft"][0]["quantity"] == 20

        response = await async_client.patch(f"{base}/items/0", json={})
        assert response.status_code == 400

    async def test_null_update_is_not_a_server_error(self, async_client):
        base = await _session_at_treatment(async_client, diagnosis="Malaria")
        await async_client.post(f"{base}/items", json={"drug_name": "Paracetamol", "duration_days": 5})

        response = await async_client.patch(f"{base}/items/0", json={"duration_days": None})
        assert response.status_code == 400

        response = await async_client.patch(
            f"{base}/items/0", json={"duration_days": None, "quantity": 12},
        )
        assert response.status_code == 200
        item = response.json()["prescription_draft"][0]
        assert item["duration_days"] == 5
        assert item["quantity"] == 12


    async def test_back_and_cancel(self, async_client):
        base = await _session_at_treatment(async_client)

        response = await async_client.post(f"{base}/back", json={"target_state": "evidence_reviewed"})
        data = response.json()
        assert data["state"] == "evidence_reviewed"
        assert data["evidence"] == ["S01", "S05"]

        response = await async_client.post(f"{base}/back", json={"target_state": "saved"})
        assert response.status_code == 409

        response = await async_client.delete(base)
        assert response.status_code == 204


@pytest.mark.asyncio
class TestReferenceCaching:
    """Stateless endpoints reuse one reference fetch."""

    async def test_reference_tables_fetched_once(self, async_client, monkeypatch):
        class CountingProvider(InMemoryReferenceData):
            catalog_fetches = 0

            async def fetch_symptom_catalog(self):
                CountingProvider.catalog_fetches += 1
                return await super().fetch_symptom_catalog()

        monkeypatch.setattr(main, "_provider", CountingProvider())
        monkeypatch.setattr(main, "_reference_bundle", None)
        monkeypatch.setattr(main, "_diagnostic_engine", None)

        await async_client.post("/api/v1/diagnosis", json={"symptom_ids": ["S01", "S05"]})
        await async_client.post("/api/v1/diagnosis", json={"symptom_ids": ["S15"]})
        await async_client.get("/api/v1/symptoms")
        await async_client.get("/api/v1/guidelines/Malaria")

        assert CountingProvider.catalog_fetches == 1

    async def test_failed_load_is_retried(self, async_client, monkeypatch):
        class FlakyProvider(InMemoryReferenceData):
            calls = 0

            async def fetch_symptom_catalog(self):
                FlakyProvider.calls += 1
                if FlakyProvider.calls == 1:
                    raise ExternalServiceError("records API down", operation="fetch_symptom_catalog")
                return await super().fetch_symptom_catalog()

        monkeypatch.setattr(main, "_provider", FlakyProvider())
        monkeypatch.setattr(main, "_reference_bundle", None)
        monkeypatch.setattr(main, "_diagnostic_engine", None)

        response = await async_client.get("/api/v1/symptoms")
        assert response.status_code == 503
        assert response.json()["details"]["retryable"] is True

        response = await async_client.get("/api/v1/symptoms")
        assert response.status_code == 200
