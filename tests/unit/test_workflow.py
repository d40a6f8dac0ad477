"""
Unit Tests for the Diagnosis Workflow

Tests for the session state machine, clinical findings, and the async
workflow service.
"""
import pytest

from cdss.core.safety import PatientAllergy, WarningKind
from cdss.core.treatment import GuidelineResolver, PrescriptionItem
from cdss.core.workflow import (
    ClinicalFindings,
    DiagnosisSession,
    ReferenceBundle,
    WorkflowState,
    load_reference_bundle,
)
from cdss.services import InMemoryReferenceData
from cdss.utils.exceptions import ExternalServiceError, ValidationError, WorkflowStateError


def _to_verdict(session, evidence=("S01", "S05"), patient_id="PAT-001"):
    session.bind_patient(patient_id, weight_kg=30)
    session.advance()
    session.set_evidence(list(evidence))
    session.advance()
    session.advance()
    return session


def _to_treatment(session, diagnosis="Malaria & Typhoid Fever", **kwargs):
    _to_verdict(session, **kwargs)
    session.choose_diagnosis(diagnosis)
    session.advance()
    return session


class TestClinicalFindings:
    """Tests for vitals plausibility."""

    def test_empty_findings_valid(self):
        findings = ClinicalFindings()
        assert findings.violations() == []

    def test_plausible_vitals(self):
        findings = ClinicalFindings(temperature_c=39.2, systolic_bp=120, diastolic_bp=80, heart_rate=104)
        findings.validate()
        assert findings.to_dict()["heart_rate"] == 104

    def test_impossible_temperature(self):
        with pytest.raises(ValidationError) as exc_info:
            ClinicalFindings(temperature_c=55).validate()
        assert exc_info.value.field == "clinical_findings"

    def test_systolic_must_exceed_diastolic(self):
        findings = ClinicalFindings(systolic_bp=80, diastolic_bp=90)
        assert any("systolic_bp" in v for v in findings.violations())

    def test_from_dict_ignores_unknown_and_none(self):
        findings = ClinicalFindings.from_dict({"heart_rate": 90, "spo2": 97, "notes": None})
        assert findings.heart_rate == 90
        assert findings.notes == ""


class TestTransitions:
    """Tests for forward guards and back navigation."""

    def test_patient_required(self, session):
        with pytest.raises(ValidationError):
            session.advance()
        assert session.state == WorkflowState.PATIENT_SELECTED

    def test_evidence_required_for_verdict(self, session):
        session.bind_patient("PAT-001")
        session.advance()
        session.advance()
        with pytest.raises(ValidationError) as exc_info:
            session.advance()
        assert exc_info.value.field == "evidence"
        assert session.state == WorkflowState.CLINICAL_FINDINGS_RECORDED

    def test_unknown_only_evidence_blocks_verdict(self, session):
        session.bind_patient("PAT-001")
        session.advance()
        session.set_evidence(["NOPE"])
        session.advance()
        with pytest.raises(ValidationError):
            session.advance()
        assert session.verdict is None

    def test_verdict_computed(self, session):
        _to_verdict(session)
        assert session.state == WorkflowState.VERDICT_COMPUTED
        assert session.verdict.label == "Possible co-infection of Malaria and Typhoid Fever"
        assert session.score_result.get("Malaria").probability_percent == 88

    def test_final_diagnosis_required_for_treatment(self, session):
        _to_verdict(session)
        with pytest.raises(ValidationError):
            session.advance()
        assert session.state == WorkflowState.VERDICT_COMPUTED

    def test_back_keeps_entered_data(self, session):
        _to_verdict(session)
        session.back(WorkflowState.EVIDENCE_REVIEWED)
        assert session.state == WorkflowState.EVIDENCE_REVIEWED
        assert session.evidence == ("S01", "S05")
        assert session.patient_id == "PAT-001"

    def test_back_must_go_backwards(self, session):
        _to_verdict(session)
        with pytest.raises(WorkflowStateError):
            session.back(WorkflowState.TREATMENT_PLANNED)

    def test_evidence_locked_after_verdict(self, session):
        _to_verdict(session)
        with pytest.raises(WorkflowStateError):
            session.add_symptom("S15")

    def test_evidence_editable_after_going_back(self, session):
        _to_verdict(session)
        session.choose_diagnosis("Malaria")
        session.back(WorkflowState.EVIDENCE_REVIEWED)
        session.set_evidence(["S15"])
        session.advance()
        session.advance()
        assert session.verdict.label == "No clear diagnosis"
        # Malaria is no longer a listed differential
        assert session.final_diagnosis is None

    def test_patient_cannot_change_after_first_step(self, session):
        session.bind_patient("PAT-001")
        session.advance()
        with pytest.raises(WorkflowStateError):
            session.bind_patient("PAT-002")

    def test_add_and_remove_symptom(self, session):
        session.add_symptom("S01")
        session.add_symptom("S01")
        session.add_symptom("S05")
        session.remove_symptom("S01")
        assert session.evidence == ("S05",)

    def test_invalid_findings_not_recorded(self, session):
        with pytest.raises(ValidationError):
            session.record_findings(ClinicalFindings(oxygen_saturation=120))
        assert session.findings == ClinicalFindings()


class TestDiagnosisChoice:

    def test_must_be_listed(self, session):
        _to_verdict(session)
        with pytest.raises(ValidationError) as exc_info:
            session.choose_diagnosis("Dengue")
        assert "Malaria" in exc_info.value.details["choices"]

    def test_single_differential(self, session):
        _to_verdict(session)
        session.choose_diagnosis("Typhoid Fever")
        assert session.final_icd10() == "A01.0"

    def test_co_infection_icd10(self, session):
        _to_verdict(session)
        session.choose_diagnosis("Malaria & Typhoid Fever")
        assert session.final_icd10() == "B54, A01.0"


class TestTreatmentPlanning:
    """Tests for guideline drafts and live safety warnings."""

    def test_apply_co_infection_guideline(self, session):
        _to_treatment(session)
        assert session.apply_guideline() is True
        assert [i.drug_name for i in session.draft] == ["Artemether-lumefantrine", "Azithromycin"]
        assert session.draft[0].calculated_dosage == "3 tablets twice daily"
        assert session.warnings == ()

    def test_apply_guideline_miss_leaves_draft(self, reference_bundle):
        bundle = ReferenceBundle(
            catalog=reference_bundle.catalog,
            profiles=reference_bundle.profiles,
            guidelines=GuidelineResolver([]),
            interactions=reference_bundle.interactions,
        )
        session = _to_treatment(DiagnosisSession(bundle, clinician_id="DOC-001"), diagnosis="Malaria")
        session.add_item(PrescriptionItem(drug_name="Paracetamol"))
        assert session.guideline() is None
        assert session.apply_guideline() is False
        assert [i.drug_name for i in session.draft] == ["Paracetamol"]


    def test_warning_appears_and_disappears(self, session):
        _to_treatment(session)
        session.apply_guideline()
        session.add_item(PrescriptionItem(drug_name="Warfarin"))
        assert [w.message for w in session.warnings] == ["Azithromycin may interact with Warfarin"]

        session.remove_item(2)
        assert session.warnings == ()

    def test_update_item_recomputes_dosage_and_warnings(self, session):
        _to_treatment(session)
        session.add_item(PrescriptionItem(drug_name="Paracetamol"))
        assert session.draft[0].calculated_dosage == "As prescribed"
        session.add_item(PrescriptionItem(drug_name="Warfarin"))

        session.update_item(0, drug_name="Ciprofloxacin")
        assert session.draft[0].calculated_dosage == "500mg twice daily"
        assert len(session.warnings) == 1

    def test_allergy_warning_in_draft(self, session):
        session.bind_patient("PAT-001", [PatientAllergy("azithro", "severe")], weight_kg=30)
        session.advance()
        session.set_evidence(["S04", "S09"])
        session.advance()
        session.advance()
        session.choose_diagnosis("Typhoid Fever")
        session.advance()
        session.apply_guideline()
        assert [w.kind for w in session.warnings] == [WarningKind.ALLERGY]

    def test_bad_item_index(self, session):
        _to_treatment(session)
        with pytest.raises(ValidationError):
            session.remove_item(0)

    def test_invalid_update_leaves_item_unchanged(self, session):
        _to_treatment(session)
        session.add_item(PrescriptionItem(drug_name="Paracetamol", duration_days=5))
        with pytest.raises(ValidationError):
            session.update_item(0, duration_days=None)
        assert session.draft[0].duration_days == 5


    def test_draft_locked_outside_treatment(self, session):
        _to_verdict(session)
        with pytest.raises(WorkflowStateError):
            session.add_item(PrescriptionItem(drug_name="Paracetamol"))


class TestSaveGuard:

    def test_empty_plan_requires_confirmation(self, session):
        _to_treatment(session)
        with pytest.raises(ValidationError) as exc_info:
            session.prepare_record()
        assert exc_info.value.field == "prescription_draft"

        session.confirm_empty_plan()
        record = session.prepare_record()
        assert record.prescription_draft_items == ()

    def test_record_contents(self, session):
        _to_treatment(session)
        session.apply_guideline()
        session.add_item(PrescriptionItem(drug_name="Warfarin"))
        record = session.prepare_record()

        assert record.patient_id == "PAT-001"
        assert record.clinician_id == "DOC-001"
        assert record.selected_symptom_ids == ("S01", "S05")
        assert record.diagnosis_label == "Malaria & Typhoid Fever"
        assert record.verdict_label == "Possible co-infection of Malaria and Typhoid Fever"
        assert record.requires_imaging is True
        assert [d["disease"] for d in record.differentials] == ["Malaria", "Typhoid Fever"]
        assert record.differentials[0]["probability"] == 88
        assert len(record.prescription_draft_items) == 3
        assert len(record.safety_warnings_shown) == 1

    def test_advance_cannot_save(self, session):
        _to_treatment(session)
        with pytest.raises(WorkflowStateError):
            session.advance()


@pytest.mark.asyncio
class TestWorkflowService:
    """Tests for the async collaborator edge."""

    async def test_load_reference_bundle(self, provider):
        bundle = await load_reference_bundle(provider)
        assert len(bundle.catalog) == 18
        assert [p.name for p in bundle.profiles] == ["Malaria", "Typhoid Fever"]
        assert bundle.guidelines.resolve("Malaria") is not None

    async def test_start_session_binds_patient_allergies(self, workflow_service):
        session = await workflow_service.start_session("DOC-001", patient_id="PAT-ALLERGIC")
        assert session.patient_id == "PAT-ALLERGIC"
        assert session.allergies[0].allergy_name == "azithro"

    async def test_full_save(self, workflow_service, sink):
        session = await workflow_service.start_session("DOC-001", "PAT-ALLERGIC", 30)
        session.advance()
        session.set_evidence(["S01", "S05"])
        session.advance()
        session.advance()
        session.choose_diagnosis("Malaria & Typhoid Fever")
        session.advance()
        session.apply_guideline()

        record_id = await workflow_service.save(session)

        assert session.state == WorkflowState.SAVED
        saved = sink.records[record_id]
        assert saved["diagnosis_label"] == "Malaria & Typhoid Fever"
        assert [d["disease"] for d in saved["differentials"]] == ["Malaria", "Typhoid Fever"]
        # advisory only: the allergy warning is recorded, not blocking
        assert saved["safety_warnings_shown"][0]["kind"] == "allergy"
        with pytest.raises(WorkflowStateError):
            session.back(WorkflowState.PATIENT_SELECTED)

    async def test_failed_save_keeps_state(self, workflow_service):
        class FailingSink:
            async def save_record(self, record):
                raise ExternalServiceError("records API down", operation="save_record")

        workflow_service.sink = FailingSink()
        session = await workflow_service.start_session("DOC-001", "PAT-001")
        session.advance()
        session.set_evidence(["S02"])
        session.advance()
        session.advance()
        session.choose_diagnosis("Malaria")
        session.advance()
        session.apply_guideline()

        with pytest.raises(ExternalServiceError) as exc_info:
            await workflow_service.save(session)
        assert exc_info.value.retryable is True
        assert session.state == WorkflowState.TREATMENT_PLANNED
        assert len(session.draft) == 2

    async def test_os_error_wrapped(self):
        class BrokenProvider(InMemoryReferenceData):
            async def fetch_symptom_catalog(self):
                raise ConnectionError("refused")

        with pytest.raises(ExternalServiceError):
            await load_reference_bundle(BrokenProvider())


class TestSessionLogging:

    def test_transitions_logged_with_session_id(self, session, caplog):
        caplog.set_level("INFO", logger="cdss.core.workflow.session")
        session.bind_patient("PAT-001")
        session.advance()
        assert "[session SESSION-1] patient_selected → evidence_reviewed" in caplog.text
