"""
External collaborator interfaces and in-memory implementations.

The pipeline reads reference data and writes the final record through these
two protocols only. How the data is stored is the collaborator's business.
"""
from __future__ import annotations

import copy
import uuid
from typing import Any, Dict, List, Mapping, Optional, Protocol

from cdss.core.evidence import DEFAULT_DISEASE_TABLE, DEFAULT_SYMPTOM_ROWS
from cdss.core.safety import DEFAULT_INTERACTIONS
from cdss.core.treatment import DEFAULT_GUIDELINE_TABLE
from cdss.utils import get_logger

logger = get_logger(__name__)


class ReferenceDataProvider(Protocol):
    async def fetch_symptom_catalog(self) -> List[Dict[str, Any]]: ...

    async def fetch_disease_table(self) -> Dict[str, Dict[str, Any]]: ...

    async def fetch_guideline_table(self) -> Dict[str, Dict[str, Any]]: ...

    async def fetch_interaction_graph(self) -> Dict[str, List[str]]: ...

    async def fetch_patient_allergies(self, patient_id: str) -> List[Dict[str, Any]]: ...


class RecordSink(Protocol):
    async def save_record(self, record: Dict[str, Any]) -> str: ...


class InMemoryReferenceData:
    """
    Serves reference tables from memory.

    Defaults to the built-in tables; tests inject their own fixtures.
    """

    def __init__(
        self,
        symptom_rows: Optional[List[Dict[str, Any]]] = None,
        disease_table: Optional[Mapping[str, Dict[str, Any]]] = None,
        guideline_table: Optional[Mapping[str, Dict[str, Any]]] = None,
        interactions: Optional[Mapping[str, List[str]]] = None,
        allergies: Optional[Mapping[str, List[Dict[str, Any]]]] = None,
    ):
        self.symptom_rows = symptom_rows if symptom_rows is not None else DEFAULT_SYMPTOM_ROWS
        self.disease_table = disease_table if disease_table is not None else DEFAULT_DISEASE_TABLE
        self.guideline_table = guideline_table if guideline_table is not None else DEFAULT_GUIDELINE_TABLE
        self.interactions = interactions if interactions is not None else DEFAULT_INTERACTIONS
        self.allergies: Dict[str, List[Dict[str, Any]]] = dict(allergies or {})

    # Copies so callers can never edit the shared tables
    async def fetch_symptom_catalog(self) -> List[Dict[str, Any]]:
        return copy.deepcopy(list(self.symptom_rows))

    async def fetch_disease_table(self) -> Dict[str, Dict[str, Any]]:
        return copy.deepcopy(dict(self.disease_table))

    async def fetch_guideline_table(self) -> Dict[str, Dict[str, Any]]:
        return copy.deepcopy(dict(self.guideline_table))

    async def fetch_interaction_graph(self) -> Dict[str, List[str]]:
        return copy.deepcopy(dict(self.interactions))

    async def fetch_patient_allergies(self, patient_id: str) -> List[Dict[str, Any]]:
        return copy.deepcopy(self.allergies.get(patient_id, []))


class InMemoryRecordSink:
    """Keeps saved records in a dict keyed by generated record id."""

    def __init__(self):
        self.records: Dict[str, Dict[str, Any]] = {}

    async def save_record(self, record: Dict[str, Any]) -> str:
        record_id = f"DX-{uuid.uuid4().hex[:12]}"
        self.records[record_id] = copy.deepcopy(record)
        logger.info(f"InMemoryRecordSink: stored {record_id} for patient {record.get('patient_id')}")
        return record_id
