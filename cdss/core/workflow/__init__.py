"""
Diagnosis Workflow

State machine threading one patient's evidence through scoring,
classification, treatment planning and the safety check, plus the async
service that talks to the external collaborators.

Usage:
    from cdss.core.workflow import DiagnosisWorkflowService

    service = DiagnosisWorkflowService(provider, sink)
    session = await service.start_session("DOC-1", patient_id="PAT-1")
    session.advance()
    session.set_evidence(["S01", "S05"])
    ...
    record_id = await service.save(session)
"""
from .findings import ClinicalFindings, HARD_LIMITS
from .session import (
    WorkflowState,
    ReferenceBundle,
    DiagnosisRecord,
    DiagnosisSession,
)
from .service import DiagnosisWorkflowService, load_reference_bundle

__all__ = [
    "ClinicalFindings",
    "HARD_LIMITS",
    "WorkflowState",
    "ReferenceBundle",
    "DiagnosisRecord",
    "DiagnosisSession",
    "DiagnosisWorkflowService",
    "load_reference_bundle",
]
