"""
API request/response models.
"""
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from cdss.core.workflow import WorkflowState


class HealthResponse(BaseModel):
    status: str
    version: str
    timestamp: str
    uptime_seconds: float
    reference_source: str


# ---- Catalog ----

class SymptomOut(BaseModel):
    symptom_id: str
    symptom_name: str
    category_name: str
    category_weight: int


class CategoryOut(BaseModel):
    weight: int
    description: str


class SymptomCatalogResponse(BaseModel):
    symptoms: List[SymptomOut]
    categories: Dict[str, CategoryOut]
    diseases: List[str]


# ---- One-shot diagnosis ----

class DiagnoseRequest(BaseModel):
    """Selected symptom ids for a single scoring pass."""
    symptom_ids: List[str] = Field(..., min_length=1)


class DiagnoseResponse(BaseModel):
    score: Dict[str, Any]
    verdict: Dict[str, Any]
    summary: Dict[str, Any]


# ---- Treatment ----

class GuidelineResponse(BaseModel):
    disease: str
    found: bool
    guideline: Optional[Dict[str, Any]] = None
    message: str = ""


class DosageResponse(BaseModel):
    drug_name: str
    weight_kg: Optional[float] = None
    dosage: str


# ---- Safety ----

class AllergyIn(BaseModel):
    allergy_name: str = Field(..., min_length=1)
    severity: Optional[str] = None
    reaction_description: Optional[str] = None


class SafetyCheckRequest(BaseModel):
    drug_names: List[str]
    allergies: List[AllergyIn] = Field(default_factory=list)
    interactions: Optional[Dict[str, List[str]]] = None  # None → reference graph
    matching: str = Field("substring", pattern="^(substring|token)$")


class SafetyCheckResponse(BaseModel):
    warning_count: int
    warnings: List[Dict[str, Any]]


# ---- Sessions ----

class StartSessionRequest(BaseModel):
    clinician_id: str = Field(..., min_length=1)
    patient_id: Optional[str] = None
    patient_weight_kg: Optional[float] = Field(None, gt=0)


class SelectPatientRequest(BaseModel):
    patient_id: str = Field(..., min_length=1)
    weight_kg: Optional[float] = Field(None, gt=0)


class EvidenceRequest(BaseModel):
    symptom_ids: List[str]


class ClinicalFindingsIn(BaseModel):
    temperature_c: Optional[float] = None
    systolic_bp: Optional[int] = None
    diastolic_bp: Optional[int] = None
    heart_rate: Optional[int] = None
    respiratory_rate: Optional[int] = None
    oxygen_saturation: Optional[float] = None
    physical_exam: str = ""
    notes: str = ""


class BackRequest(BaseModel):
    target_state: WorkflowState


class ChooseDiagnosisRequest(BaseModel):
    diagnosis: str = Field(..., min_length=1)


class PrescriptionItemIn(BaseModel):
    drug_name: str = Field(..., min_length=1)
    dosage: str = ""
    instructions: str = ""
    duration_days: int = Field(7, ge=0)
    quantity: int = Field(10, ge=0)


class PrescriptionItemUpdate(BaseModel):
    """Partial edit of a draft item; omitted or null fields keep their value."""
    drug_name: Optional[str] = Field(None, min_length=1)
    dosage: Optional[str] = None
    instructions: Optional[str] = None
    duration_days: Optional[int] = Field(None, ge=0)
    quantity: Optional[int] = Field(None, ge=0)


class SessionResponse(BaseModel):
    session_id: str
    state: WorkflowState
    patient_id: Optional[str] = None
    clinician_id: str
    evidence: List[str]
    clinical_findings: Dict[str, Any]
    score: Optional[Dict[str, Any]] = None
    verdict: Optional[Dict[str, Any]] = None
    final_diagnosis: Optional[str] = None
    prescription_draft: List[Dict[str, Any]]
    empty_plan_confirmed: bool
    safety_warnings: List[Dict[str, Any]]


class GuidelineAppliedResponse(BaseModel):
    applied: bool
    session: SessionResponse


class SaveResponse(BaseModel):
    record_id: str
    session: SessionResponse
