"""
Pytest Configuration and Fixtures

Shared fixtures for decision-support pipeline tests.
"""
import pytest

from cdss.core.diagnosis import DiagnosticEngine
from cdss.core.evidence import (
    DEFAULT_DISEASE_TABLE,
    DEFAULT_SYMPTOM_ROWS,
    EvidenceCatalog,
    load_disease_profiles,
)
from cdss.core.safety import DEFAULT_INTERACTIONS, InteractionGraph
from cdss.core.treatment import GuidelineResolver
from cdss.core.workflow import DiagnosisSession, DiagnosisWorkflowService, ReferenceBundle
from cdss.services import InMemoryRecordSink, InMemoryReferenceData


@pytest.fixture
def catalog() -> EvidenceCatalog:
    """Built-in 18-symptom catalog (S01-S18)."""
    return EvidenceCatalog.from_rows(DEFAULT_SYMPTOM_ROWS)


@pytest.fixture
def profiles():
    """Malaria and Typhoid Fever profiles, in that order."""
    return load_disease_profiles(DEFAULT_DISEASE_TABLE)


@pytest.fixture
def engine(catalog, profiles) -> DiagnosticEngine:
    return DiagnosticEngine(catalog, profiles)


@pytest.fixture
def interaction_graph() -> InteractionGraph:
    return InteractionGraph(DEFAULT_INTERACTIONS)


@pytest.fixture
def reference_bundle(catalog, profiles, interaction_graph) -> ReferenceBundle:
    return ReferenceBundle(
        catalog=catalog,
        profiles=tuple(profiles),
        guidelines=GuidelineResolver.default(),
        interactions=interaction_graph,
    )


@pytest.fixture
def session(reference_bundle) -> DiagnosisSession:
    """Fresh session with no patient bound."""
    return DiagnosisSession(reference_bundle, clinician_id="DOC-001", session_id="SESSION-1")


@pytest.fixture
def provider() -> InMemoryReferenceData:
    """In-memory reference data with one allergic patient."""
    return InMemoryReferenceData(allergies={
        "PAT-ALLERGIC": [
            {"allergy_name": "azithro", "severity": "severe", "reaction_description": "Rash"},
        ],
    })


@pytest.fixture
def sink() -> InMemoryRecordSink:
    return InMemoryRecordSink()


@pytest.fixture
def workflow_service(provider, sink) -> DiagnosisWorkflowService:
    return DiagnosisWorkflowService(provider, sink)
