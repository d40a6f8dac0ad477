"""
Diagnosis Workflow — session state machine

    PATIENT_SELECTED → EVIDENCE_REVIEWED → CLINICAL_FINDINGS_RECORDED
        → VERDICT_COMPUTED → TREATMENT_PLANNED → SAVED

Each forward step has a guard; a failed guard raises ValidationError and the
session stays where it is. `back()` returns to any earlier state and keeps
everything entered so far. The final SAVED step is performed by the
workflow service because it hands the record to the external collaborator.

A session owns its evidence and prescription draft; nothing is shared with
other sessions.
"""
from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

from cdss.core.diagnosis import DiagnosisVerdict, DiagnosticEngine, ScoreResult
from cdss.core.evidence import DiseaseProfile, EvidenceCatalog
from cdss.core.safety import (
    AllergyMatcher,
    InteractionGraph,
    PatientAllergy,
    SafetyWarning,
    check_safety,
)
from cdss.core.treatment import (
    GuidelineResolver,
    PrescriptionItem,
    TreatmentGuideline,
    dosage_for,
    guideline_to_draft,
)
from cdss.utils import get_session_logger
from cdss.utils.exceptions import ValidationError, WorkflowStateError

from .findings import ClinicalFindings


class WorkflowState(str, Enum):
    PATIENT_SELECTED           = "patient_selected"
    EVIDENCE_REVIEWED          = "evidence_reviewed"
    CLINICAL_FINDINGS_RECORDED = "clinical_findings_recorded"
    VERDICT_COMPUTED           = "verdict_computed"
    TREATMENT_PLANNED          = "treatment_planned"
    SAVED                      = "saved"

    @property
    def index(self) -> int:
        return _STATE_ORDER.index(self)


_STATE_ORDER: List[WorkflowState] = list(WorkflowState)


@dataclass(frozen=True)
class ReferenceBundle:
    """Read-only reference data injected into a session at start."""
    catalog: EvidenceCatalog
    profiles: Tuple[DiseaseProfile, ...]
    guidelines: GuidelineResolver
    interactions: InteractionGraph


@dataclass(frozen=True)
class DiagnosisRecord:
    """The single record handed to the persistence collaborator on save."""
    session_id: str
    patient_id: str
    clinician_id: str
    selected_symptom_ids: Tuple[str, ...]
    diagnosis_label: str
    verdict_label: str
    confidence_tier: str
    requires_imaging: bool
    icd10: str
    differentials: Tuple[Dict[str, Any], ...]
    clinical_findings: Dict[str, Any]
    prescription_draft_items: Tuple[Dict[str, Any], ...]
    safety_warnings_shown: Tuple[Dict[str, Any], ...]
    timestamp: str = field(default_factory=lambda: datetime.now(timezone.utc).isoformat())

    def to_dict(self) -> Dict[str, Any]:
        return {
            "session_id": self.session_id,
            "patient_id": self.patient_id,
            "clinician_id": self.clinician_id,
            "selected_symptom_ids": list(self.selected_symptom_ids),
            "diagnosis_label": self.diagnosis_label,
            "verdict_label": self.verdict_label,
            "confidence_tier": self.confidence_tier,
            "requires_imaging": self.requires_imaging,
            "icd10": self.icd10,
            "differentials": list(self.differentials),
            "clinical_findings": self.clinical_findings,
            "prescription_draft_items": list(self.prescription_draft_items),
            "safety_warnings_shown": list(self.safety_warnings_shown),
            "timestamp": self.timestamp,
        }


class DiagnosisSession:
    """
    One clinician's pass through the diagnosis wizard for one patient.
    """

    def __init__(
        self,
        reference: ReferenceBundle,
        clinician_id: str,
        session_id: Optional[str] = None,
        matcher: Optional[AllergyMatcher] = None,
        display_threshold: float = 60.0,
        default_weight_kg: Optional[float] = None,
    ):
        self.session_id = session_id or uuid.uuid4().hex
        self._log = get_session_logger(__name__, self.session_id)
        self.reference = reference
        self.clinician_id = clinician_id
        self.engine = DiagnosticEngine(reference.catalog, reference.profiles, display_threshold)
        self._matcher = matcher
        self._default_weight_kg = default_weight_kg

        self.state = WorkflowState.PATIENT_SELECTED
        self.patient_id: Optional[str] = None
        self.patient_weight_kg: Optional[float] = None
        self.allergies: Tuple[PatientAllergy, ...] = ()
        self._evidence: List[str] = []
        self.findings = ClinicalFindings()
        self.score_result: Optional[ScoreResult] = None
        self.verdict: Optional[DiagnosisVerdict] = None
        self.final_diagnosis: Optional[str] = None
        self._draft: List[PrescriptionItem] = []
        self.empty_plan_confirmed = False
        self.warnings: Tuple[SafetyWarning, ...] = ()
        self.record: Optional[DiagnosisRecord] = None

    # ------------------------------------------------------------------
    # Read access
    # ------------------------------------------------------------------

    @property
    def evidence(self) -> Tuple[str, ...]:
        return tuple(self._evidence)

    @property
    def draft(self) -> Tuple[PrescriptionItem, ...]:
        return tuple(self._draft)

    @property
    def weight_for_dosage(self) -> Optional[float]:
        return self.patient_weight_kg if self.patient_weight_kg is not None else self._default_weight_kg

    # ------------------------------------------------------------------
    # Guards on editing
    # ------------------------------------------------------------------

    def _require_state(self, allowed: Iterable[WorkflowState], action: str) -> None:
        allowed = tuple(allowed)
        if self.state not in allowed:
            raise WorkflowStateError(
                f"Cannot {action} in state {self.state.value}",
                state=self.state.value,
                details={"allowed": [s.value for s in allowed]},
            )

    def _require_before(self, limit: WorkflowState, action: str) -> None:
        self._require_state(_STATE_ORDER[: limit.index], action)

    # ------------------------------------------------------------------
    # Patient / evidence / findings
    # ------------------------------------------------------------------

    def bind_patient(
        self,
        patient_id: str,
        allergies: Iterable[PatientAllergy] = (),
        weight_kg: Optional[float] = None,
    ) -> None:
        self._require_state([WorkflowState.PATIENT_SELECTED], "select a patient")
        if not str(patient_id or "").strip():
            raise ValidationError("Patient id is required", field="patient_id")
        self.patient_id = str(patient_id)
        self.allergies = tuple(allergies)
        self.patient_weight_kg = weight_kg
        self._log.info(f"patient {self.patient_id} bound")

    def set_evidence(self, symptom_ids: Iterable[str]) -> None:
        self._require_before(WorkflowState.VERDICT_COMPUTED, "edit evidence")
        unique: List[str] = []
        for sid in symptom_ids:
            key = str(sid)
            if key not in unique:
                unique.append(key)
        self._evidence = unique

    def add_symptom(self, symptom_id: str) -> None:
        self.set_evidence(self._evidence + [str(symptom_id)])

    def remove_symptom(self, symptom_id: str) -> None:
        self.set_evidence([s for s in self._evidence if s != str(symptom_id)])

    def record_findings(self, findings: ClinicalFindings) -> None:
        self._require_before(WorkflowState.SAVED, "record clinical findings")
        findings.validate()
        self.findings = findings

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------

    def _move_to(self, target: WorkflowState) -> None:
        self._log.info(f"{self.state.value} → {target.value}")
        self.state = target

    def _guard_failed(self, message: str, field_name: str) -> ValidationError:
        self._log.warning(f"guard failed in {self.state.value}: {message}")
        return ValidationError(message, field=field_name)

    def advance(self) -> WorkflowState:
        """
        Move one step forward if the current step's guard passes.

        Raises:
            ValidationError:    guard failed; state unchanged.
            WorkflowStateError: the step cannot be taken with advance()
                                (saving goes through the workflow service).
        """
        if self.state is WorkflowState.PATIENT_SELECTED:
            if self.patient_id is None:
                raise self._guard_failed("Select a patient first", "patient_id")
            self._move_to(WorkflowState.EVIDENCE_REVIEWED)

        elif self.state is WorkflowState.EVIDENCE_REVIEWED:
            self._move_to(WorkflowState.CLINICAL_FINDINGS_RECORDED)

        elif self.state is WorkflowState.CLINICAL_FINDINGS_RECORDED:
            if not self._evidence:
                raise self._guard_failed("Please select at least one symptom", "evidence")
            try:
                self.score_result, self.verdict = self.engine.diagnose(self._evidence)
            except ValidationError as exc:
                raise self._guard_failed(exc.message, "evidence") from exc
            if self.final_diagnosis not in self.verdict.selectable_diagnoses():
                self.final_diagnosis = None
            self._move_to(WorkflowState.VERDICT_COMPUTED)

        elif self.state is WorkflowState.VERDICT_COMPUTED:
            if self.final_diagnosis is None:
                raise self._guard_failed("Please select a final diagnosis", "final_diagnosis")
            self._move_to(WorkflowState.TREATMENT_PLANNED)
            self._recompute_warnings()

        else:
            raise WorkflowStateError(
                f"advance() is not available in state {self.state.value}; "
                "save through the workflow service",
                state=self.state.value,
            )
        return self.state

    def back(self, target: WorkflowState) -> WorkflowState:
        """Return to an earlier state; entered data is kept."""
        if self.state is WorkflowState.SAVED:
            raise WorkflowStateError("Session already saved", state=self.state.value)
        if target.index >= self.state.index:
            raise WorkflowStateError(
                f"Cannot go back from {self.state.value} to {target.value}",
                state=self.state.value,
            )
        self._move_to(target)
        return self.state

    # ------------------------------------------------------------------
    # Diagnosis choice
    # ------------------------------------------------------------------

    def choose_diagnosis(self, diagnosis: str) -> None:
        self._require_state([WorkflowState.VERDICT_COMPUTED], "choose a final diagnosis")
        choices = self.verdict.selectable_diagnoses() if self.verdict else []
        if diagnosis not in choices:
            raise ValidationError(
                f"{diagnosis!r} is not one of the listed differentials",
                field="final_diagnosis",
                details={"choices": choices},
            )
        self.final_diagnosis = diagnosis

    def final_icd10(self) -> str:
        if self.score_result is None or self.final_diagnosis is None:
            return ""
        diseases: Sequence[str] = (self.final_diagnosis,)
        if self.verdict.is_co_infection and self.final_diagnosis == self.verdict.guideline_key:
            diseases = self.verdict.diagnosed_diseases
        scores = self.score_result.per_disease
        return ", ".join(scores[d].icd10 for d in diseases if d in scores and scores[d].icd10)

    # ------------------------------------------------------------------
    # Treatment planning
    # ------------------------------------------------------------------

    def guideline(self) -> Optional[TreatmentGuideline]:
        return self.reference.guidelines.resolve(self.final_diagnosis)

    def apply_guideline(self) -> bool:
        """Replace the draft with the guideline's first-line drugs. False on a miss."""
        self._require_state([WorkflowState.TREATMENT_PLANNED], "apply a guideline")
        guideline = self.guideline()
        if guideline is None:
            return False
        self._draft = guideline_to_draft(guideline, self.weight_for_dosage)
        self._recompute_warnings()
        return True

    def add_item(self, item: PrescriptionItem) -> None:
        self._require_state([WorkflowState.TREATMENT_PLANNED], "edit the prescription")
        if not item.calculated_dosage:
            item = item.with_changes(
                calculated_dosage=dosage_for(item.drug_name, self.weight_for_dosage)
            )
        self._draft.append(item)
        self._recompute_warnings()

    def update_item(self, index: int, **changes: Any) -> PrescriptionItem:
        self._require_state([WorkflowState.TREATMENT_PLANNED], "edit the prescription")
        self._check_index(index)
        updated = self._draft[index].with_changes(**changes)
        if "drug_name" in changes and "calculated_dosage" not in changes:
            updated = updated.with_changes(
                calculated_dosage=dosage_for(updated.drug_name, self.weight_for_dosage)
            )
        self._draft[index] = updated
        self._recompute_warnings()
        return updated

    def remove_item(self, index: int) -> PrescriptionItem:
        self._require_state([WorkflowState.TREATMENT_PLANNED], "edit the prescription")
        self._check_index(index)
        removed = self._draft.pop(index)
        self._recompute_warnings()
        return removed

    def confirm_empty_plan(self) -> None:
        self._require_state([WorkflowState.TREATMENT_PLANNED], "confirm an empty plan")
        self.empty_plan_confirmed = True

    def _check_index(self, index: int) -> None:
        if not 0 <= index < len(self._draft):
            raise ValidationError(
                f"No prescription item at position {index}",
                field="item_index",
            )

    def _recompute_warnings(self) -> None:
        self.warnings = tuple(check_safety(
            [item.drug_name for item in self._draft],
            self.reference.interactions,
            self.allergies,
            self._matcher,
        ))

    # ------------------------------------------------------------------
    # Save
    # ------------------------------------------------------------------

    def prepare_record(self) -> DiagnosisRecord:
        """
        Check the save guard and build the record to persist.

        Warnings are recomputed and included; they never block saving.
        """
        self._require_state([WorkflowState.TREATMENT_PLANNED], "save")
        if not self._draft and not self.empty_plan_confirmed:
            raise self._guard_failed(
                "Add at least one medication or confirm an empty treatment plan",
                "prescription_draft",
            )
        self._recompute_warnings()
        return DiagnosisRecord(
            session_id=self.session_id,
            patient_id=self.patient_id,
            clinician_id=self.clinician_id,
            selected_symptom_ids=self.evidence,
            diagnosis_label=self.final_diagnosis,
            verdict_label=self.verdict.label,
            confidence_tier=self.verdict.confidence_tier.value,
            requires_imaging=self.verdict.requires_imaging,
            icd10=self.final_icd10(),
            differentials=tuple(d.to_dict() for d in self.verdict.differentials),
            clinical_findings=self.findings.to_dict(),
            prescription_draft_items=tuple(i.to_dict() for i in self._draft),
            safety_warnings_shown=tuple(w.to_dict() for w in self.warnings),
        )

    def mark_saved(self, record: DiagnosisRecord) -> None:
        self._require_state([WorkflowState.TREATMENT_PLANNED], "save")
        self.record = record
        self._move_to(WorkflowState.SAVED)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "session_id": self.session_id,
            "state": self.state.value,
            "patient_id": self.patient_id,
            "clinician_id": self.clinician_id,
            "evidence": list(self._evidence),
            "clinical_findings": self.findings.to_dict(),
            "score": self.score_result.to_dict() if self.score_result else None,
            "verdict": self.verdict.to_dict() if self.verdict else None,
            "final_diagnosis": self.final_diagnosis,
            "prescription_draft": [i.to_dict() for i in self._draft],
            "empty_plan_confirmed": self.empty_plan_confirmed,
            "safety_warnings": [w.to_dict() for w in self.warnings],
        }
