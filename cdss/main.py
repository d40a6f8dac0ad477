"""
Clinical Decision Support - FastAPI Application

API endpoints for:
- Symptom catalog and one-shot diagnosis (score + classify)
- Treatment guideline and dosage lookup
- Prescription safety checks
- Diagnosis workflow sessions (patient → evidence → findings → verdict →
  treatment → save)
"""
from datetime import datetime
from typing import Dict, Optional

from fastapi import FastAPI, HTTPException, Query, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from cdss import __version__, config
from cdss.core.diagnosis import DiagnosticEngine, summarise
from cdss.core.evidence import CATEGORY_WEIGHTS, disease_names
from cdss.core.safety import (
    InteractionGraph,
    PatientAllergy,
    SubstringAllergyMatcher,
    TokenAllergyMatcher,
    check_safety,
)
from cdss.core.treatment import PrescriptionItem, dosage_for
from cdss.core.workflow import (
    ClinicalFindings,
    DiagnosisSession,
    DiagnosisWorkflowService,
    ReferenceBundle,
    load_reference_bundle,
)
from cdss.models.schemas import (
    BackRequest,
    CategoryOut,
    ChooseDiagnosisRequest,
    ClinicalFindingsIn,
    DiagnoseRequest,
    DiagnoseResponse,
    DosageResponse,
    EvidenceRequest,
    GuidelineAppliedResponse,
    GuidelineResponse,
    HealthResponse,
    PrescriptionItemIn,
    PrescriptionItemUpdate,
    SafetyCheckRequest,
    SafetyCheckResponse,
    SaveResponse,
    SelectPatientRequest,
    SessionResponse,
    StartSessionRequest,
    SymptomCatalogResponse,
    SymptomOut,
)
from cdss.services import InMemoryRecordSink, InMemoryReferenceData, ReferenceApiClient
from cdss.utils import get_logger, setup_logging
from cdss.utils.exceptions import (
    ClinicalDecisionError,
    ExternalServiceError,
    ReferenceDataError,
    SessionNotFoundError,
    ValidationError,
    WorkflowStateError,
)

setup_logging(config.LOG_LEVEL, config.LOG_FILE or None)
logger = get_logger(__name__)


# ---- External collaborators ----

if config.REFERENCE_API_URL:
    _api_client = ReferenceApiClient(config.REFERENCE_API_URL, timeout=config.REFERENCE_API_TIMEOUT)
    _provider = _api_client
    _sink = _api_client
    REFERENCE_SOURCE = "api"
else:
    _provider = InMemoryReferenceData()
    _sink = InMemoryRecordSink()
    REFERENCE_SOURCE = "built-in"

_workflow_service = DiagnosisWorkflowService(
    provider=_provider,
    sink=_sink,
    display_threshold=config.DIFFERENTIAL_DISPLAY_THRESHOLD,
    default_weight_kg=config.DEFAULT_PATIENT_WEIGHT_KG,
)

# ---- In-memory session storage (sessions end at save or cancel) ----
_sessions: Dict[str, DiagnosisSession] = {}

# ---- Reference tables for stateless endpoints (loaded lazily, then reused) ----
_reference_bundle: Optional[ReferenceBundle] = None
_diagnostic_engine: Optional[DiagnosticEngine] = None

START_TIME = datetime.now()


# ---- FastAPI Application ----

app = FastAPI(
    title="Clinical Decision Support API",
    description="Rule-based diagnosis, treatment guidelines and prescription safety checks",
    version=__version__,
    docs_url="/docs",
    redoc_url="/redoc",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # Configure appropriately for production
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

_STATUS_BY_ERROR = {
    ValidationError: 422,
    WorkflowStateError: 409,
    ReferenceDataError: 422,
    ExternalServiceError: 503,
    SessionNotFoundError: 404,
}


@app.exception_handler(ClinicalDecisionError)
async def clinical_error_handler(request: Request, exc: ClinicalDecisionError):
    status_code = next(
        (code for cls, code in _STATUS_BY_ERROR.items() if isinstance(exc, cls)), 500
    )
    if status_code >= 500:
        logger.error(f"{request.url.path}: {exc.message}")
    return JSONResponse(status_code=status_code, content=exc.to_dict())


# ---- Utility Functions ----

def _get_session(session_id: str) -> DiagnosisSession:
    session = _sessions.get(session_id)
    if session is None:
        raise SessionNotFoundError(session_id)
    return session


def _session_response(session: DiagnosisSession) -> SessionResponse:
    return SessionResponse(**session.to_dict())


async def _reference() -> ReferenceBundle:
    """Reference tables for the stateless endpoints, fetched once per process."""
    global _reference_bundle, _diagnostic_engine
    if _reference_bundle is None:
        bundle = await load_reference_bundle(_provider)
        _diagnostic_engine = DiagnosticEngine(
            bundle.catalog, bundle.profiles, config.DIFFERENTIAL_DISPLAY_THRESHOLD
        )
        _reference_bundle = bundle
    return _reference_bundle


async def _engine() -> DiagnosticEngine:
    await _reference()
    return _diagnostic_engine



# ---- Health ----

@app.get("/", response_model=HealthResponse, tags=["Health"])
@app.get("/health", response_model=HealthResponse, tags=["Health"])
async def health_check():
    """Health check endpoint."""
    return HealthResponse(
        status="healthy",
        version=__version__,
        timestamp=datetime.now().isoformat(),
        uptime_seconds=(datetime.now() - START_TIME).total_seconds(),
        reference_source=REFERENCE_SOURCE,
    )


# ---- Catalog & Diagnosis ----

@app.get("/api/v1/symptoms", response_model=SymptomCatalogResponse, tags=["Diagnosis"])
async def list_symptoms():
    """Symptom catalog with category weights."""
    bundle = await _reference()
    return SymptomCatalogResponse(
        symptoms=[SymptomOut(**row) for row in bundle.catalog.to_rows()],
        categories={
            category.value: CategoryOut(weight=weight, description=category.description)
            for category, weight in CATEGORY_WEIGHTS.items()
        },
        diseases=disease_names(bundle.profiles),
    )


@app.post("/api/v1/diagnosis", response_model=DiagnoseResponse, tags=["Diagnosis"])
async def diagnose(request: DiagnoseRequest):
    """
    Score the selected symptoms and classify the result.
    """
    engine = await _engine()
    score_result, verdict = engine.diagnose(request.symptom_ids)
    return DiagnoseResponse(
        score=score_result.to_dict(),
        verdict=verdict.to_dict(),
        summary=summarise(verdict),
    )


# ---- Treatment ----

@app.get("/api/v1/guidelines/{disease}", response_model=GuidelineResponse, tags=["Treatment"])
async def get_guideline(disease: str):
    """
    Treatment guideline for an exact diagnosis name.

    A miss is not an error: the clinician writes the prescription manually.
    """
    bundle = await _reference()
    guideline = bundle.guidelines.resolve(disease)
    if guideline is None:
        return GuidelineResponse(
            disease=disease,
            found=False,
            message="No guideline defined; build the prescription manually",
        )
    return GuidelineResponse(disease=disease, found=True, guideline=guideline.to_dict())


@app.get("/api/v1/dosage", response_model=DosageResponse, tags=["Treatment"])
async def get_dosage(
    drug_name: str = Query(..., min_length=1),
    weight_kg: Optional[float] = Query(None, gt=0),
):
    """Weight-banded dosage suggestion."""
    return DosageResponse(
        drug_name=drug_name,
        weight_kg=weight_kg,
        dosage=dosage_for(drug_name, weight_kg),
    )


# ---- Safety ----

@app.post("/api/v1/safety-check", response_model=SafetyCheckResponse, tags=["Safety"])
async def safety_check(request: SafetyCheckRequest):
    """Interaction and allergy warnings for a list of drugs."""
    if request.interactions is not None:
        graph = InteractionGraph(request.interactions)
    else:
        graph = (await _reference()).interactions
    matcher = TokenAllergyMatcher() if request.matching == "token" else SubstringAllergyMatcher()
    allergies = [
        PatientAllergy(a.allergy_name, a.severity or "", a.reaction_description or "")
        for a in request.allergies
    ]
    warnings = check_safety(request.drug_names, graph, allergies, matcher)
    return SafetyCheckResponse(
        warning_count=len(warnings),
        warnings=[w.to_dict() for w in warnings],
    )


# ---- Workflow Sessions ----

@app.post("/api/v1/sessions", response_model=SessionResponse, status_code=201, tags=["Workflow"])
async def start_session(request: StartSessionRequest):
    session = await _workflow_service.start_session(
        clinician_id=request.clinician_id,
        patient_id=request.patient_id,
        patient_weight_kg=request.patient_weight_kg,
    )
    _sessions[session.session_id] = session
    return _session_response(session)


@app.get("/api/v1/sessions/{session_id}", response_model=SessionResponse, tags=["Workflow"])
async def get_session(session_id: str):
    return _session_response(_get_session(session_id))


@app.delete("/api/v1/sessions/{session_id}", status_code=204, tags=["Workflow"])
async def cancel_session(session_id: str):
    """Discard an unsaved session. Nothing is persisted before save."""
    _get_session(session_id)
    del _sessions[session_id]
    logger.info(f"Session {session_id} cancelled")


@app.post("/api/v1/sessions/{session_id}/patient", response_model=SessionResponse, tags=["Workflow"])
async def select_patient(session_id: str, request: SelectPatientRequest):
    session = _get_session(session_id)
    await _workflow_service.select_patient(session, request.patient_id, request.weight_kg)
    return _session_response(session)


@app.put("/api/v1/sessions/{session_id}/evidence", response_model=SessionResponse, tags=["Workflow"])
async def set_evidence(session_id: str, request: EvidenceRequest):
    session = _get_session(session_id)
    session.set_evidence(request.symptom_ids)
    return _session_response(session)


@app.put("/api/v1/sessions/{session_id}/findings", response_model=SessionResponse, tags=["Workflow"])
async def record_findings(session_id: str, request: ClinicalFindingsIn):
    session = _get_session(session_id)
    session.record_findings(ClinicalFindings.from_dict(request.model_dump()))
    return _session_response(session)


@app.post("/api/v1/sessions/{session_id}/advance", response_model=SessionResponse, tags=["Workflow"])
async def advance_session(session_id: str):
    session = _get_session(session_id)
    session.advance()
    return _session_response(session)


@app.post("/api/v1/sessions/{session_id}/back", response_model=SessionResponse, tags=["Workflow"])
async def back_session(session_id: str, request: BackRequest):
    session = _get_session(session_id)
    session.back(request.target_state)
    return _session_response(session)


@app.post("/api/v1/sessions/{session_id}/diagnosis", response_model=SessionResponse, tags=["Workflow"])
async def choose_diagnosis(session_id: str, request: ChooseDiagnosisRequest):
    session = _get_session(session_id)
    session.choose_diagnosis(request.diagnosis)
    return _session_response(session)


@app.post(
    "/api/v1/sessions/{session_id}/apply-guideline",
    response_model=GuidelineAppliedResponse,
    tags=["Workflow"],
)
async def apply_guideline(session_id: str):
    session = _get_session(session_id)
    applied = session.apply_guideline()
    return GuidelineAppliedResponse(applied=applied, session=_session_response(session))


@app.post("/api/v1/sessions/{session_id}/items", response_model=SessionResponse, tags=["Workflow"])
async def add_item(session_id: str, request: PrescriptionItemIn):
    session = _get_session(session_id)
    session.add_item(PrescriptionItem(**request.model_dump()))
    return _session_response(session)


@app.patch(
    "/api/v1/sessions/{session_id}/items/{index}",
    response_model=SessionResponse,
    tags=["Workflow"],
)
async def update_item(session_id: str, index: int, request: PrescriptionItemUpdate):
    session = _get_session(session_id)
    changes = request.model_dump(exclude_unset=True, exclude_none=True)
    if not changes:
        raise HTTPException(status_code=400, detail="No fields to update")
    session.update_item(index, **changes)
    return _session_response(session)


@app.delete(
    "/api/v1/sessions/{session_id}/items/{index}",
    response_model=SessionResponse,
    tags=["Workflow"],
)
async def remove_item(session_id: str, index: int):
    session = _get_session(session_id)
    session.remove_item(index)
    return _session_response(session)


@app.post(
    "/api/v1/sessions/{session_id}/confirm-empty-plan",
    response_model=SessionResponse,
    tags=["Workflow"],
)
async def confirm_empty_plan(session_id: str):
    session = _get_session(session_id)
    session.confirm_empty_plan()
    return _session_response(session)


@app.post("/api/v1/sessions/{session_id}/save", response_model=SaveResponse, tags=["Workflow"])
async def save_session(session_id: str):
    """
    Persist the diagnosis record. Safety warnings are included, never blocking.
    """
    session = _get_session(session_id)
    record_id = await _workflow_service.save(session)
    response = SaveResponse(record_id=record_id, session=_session_response(session))
    del _sessions[session_id]
    return response


# ---- Run with uvicorn ----
if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
