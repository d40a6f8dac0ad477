"""
HTTP reference-data collaborator.

Talks to the hospital records API over httpx. Retry and timeout policy
belongs to that API and to httpx's configured timeout; every transport or
HTTP failure is surfaced as a retryable ExternalServiceError.

Endpoints:
    GET  /symptoms                    → [{symptom_id, symptom_name, category_name, category_weight}]
    GET  /diseases                    → {disease_name: {icd10, very_strong: [...], ...}}
    GET  /guidelines                  → {disease_name: {first_line, second_line, notes}}
    GET  /interactions                → {drug_name: [drug_name, ...]}
    GET  /patients/{patient_id}/allergies → [{allergy_name, severity, reaction_description}]
    POST /diagnoses                   → {"id": "..."}
"""
from __future__ import annotations

from typing import Any, Dict, List, Optional

import httpx

from cdss.utils import get_logger
from cdss.utils.exceptions import ExternalServiceError

logger = get_logger(__name__)


class ReferenceApiClient:
    """
    Reference-data provider and record sink backed by the records API.
    """

    def __init__(
        self,
        base_url: str,
        timeout: float = 10.0,
        api_key: Optional[str] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        headers = {"Accept": "application/json"}
        if api_key:
            headers["Authorization"] = f"Bearer {api_key}"
        self._headers = headers
        self._transport = transport

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=self.base_url,
            timeout=self.timeout,
            headers=self._headers,
            transport=self._transport,
        )

    async def _request(self, method: str, path: str, operation: str, **kwargs: Any) -> Any:
        try:
            async with self._client() as client:
                response = await client.request(method, path, **kwargs)
                response.raise_for_status()
                return response.json()
        except httpx.HTTPStatusError as exc:
            logger.error(f"ReferenceApiClient {operation}: HTTP {exc.response.status_code}")
            raise ExternalServiceError(
                f"{operation} failed with HTTP {exc.response.status_code}",
                operation=operation,
                details={"status_code": exc.response.status_code},
            ) from exc
        except (httpx.HTTPError, ValueError) as exc:
            logger.error(f"ReferenceApiClient {operation}: {exc}")
            raise ExternalServiceError(
                f"{operation} failed: {exc}",
                operation=operation,
            ) from exc

    async def fetch_symptom_catalog(self) -> List[Dict[str, Any]]:
        return await self._request("GET", "/symptoms", "fetch_symptom_catalog")

    async def fetch_disease_table(self) -> Dict[str, Dict[str, Any]]:
        return await self._request("GET", "/diseases", "fetch_disease_table")

    async def fetch_guideline_table(self) -> Dict[str, Dict[str, Any]]:
        return await self._request("GET", "/guidelines", "fetch_guideline_table")

    async def fetch_interaction_graph(self) -> Dict[str, List[str]]:
        return await self._request("GET", "/interactions", "fetch_interaction_graph")

    async def fetch_patient_allergies(self, patient_id: str) -> List[Dict[str, Any]]:
        return await self._request(
            "GET", f"/patients/{patient_id}/allergies", "fetch_patient_allergies"
        )

    async def save_record(self, record: Dict[str, Any]) -> str:
        body = await self._request("POST", "/diagnoses", "save_record", json=record)
        return str(body.get("id", "")) if isinstance(body, dict) else ""
