"""
Diagnosis Workflow Service

The asynchronous edge of the pipeline. It fetches reference data from the
collaborator when a session starts, fetches allergies when a patient is
bound, and submits the record on save. Everything between those points is
synchronous session logic.

The service does not retry: a collaborator failure surfaces as
ExternalServiceError and the session stays in its current state, so the
caller can simply try again.
"""
from __future__ import annotations

import asyncio
from typing import Optional

from cdss.core.evidence import EvidenceCatalog, load_disease_profiles
from cdss.core.safety import AllergyMatcher, InteractionGraph, PatientAllergy
from cdss.core.treatment import GuidelineResolver
from cdss.services.reference_data import RecordSink, ReferenceDataProvider
from cdss.utils import get_logger
from cdss.utils.exceptions import ExternalServiceError

from .session import DiagnosisSession, ReferenceBundle

logger = get_logger(__name__)


async def load_reference_bundle(provider: ReferenceDataProvider) -> ReferenceBundle:
    """Fetch all reference tables concurrently and build the read-only bundle."""
    try:
        rows, diseases, guidelines, interactions = await asyncio.gather(
            provider.fetch_symptom_catalog(),
            provider.fetch_disease_table(),
            provider.fetch_guideline_table(),
            provider.fetch_interaction_graph(),
        )
    except ExternalServiceError:
        raise
    except (OSError, asyncio.TimeoutError) as exc:
        logger.error(f"Reference data fetch failed: {exc}")
        raise ExternalServiceError(
            f"Reference data fetch failed: {exc}",
            operation="load_reference_data",
        ) from exc

    return ReferenceBundle(
        catalog=EvidenceCatalog.from_rows(rows),
        profiles=tuple(load_disease_profiles(diseases)),
        guidelines=GuidelineResolver.from_table(guidelines),
        interactions=InteractionGraph(interactions),
    )


class DiagnosisWorkflowService:
    """Starts, binds and saves diagnosis sessions against external collaborators."""

    def __init__(
        self,
        provider: ReferenceDataProvider,
        sink: RecordSink,
        matcher: Optional[AllergyMatcher] = None,
        display_threshold: float = 60.0,
        default_weight_kg: Optional[float] = None,
    ):
        self.provider = provider
        self.sink = sink
        self.matcher = matcher
        self.display_threshold = display_threshold
        self.default_weight_kg = default_weight_kg

    async def start_session(
        self,
        clinician_id: str,
        patient_id: Optional[str] = None,
        patient_weight_kg: Optional[float] = None,
    ) -> DiagnosisSession:
        reference = await load_reference_bundle(self.provider)
        session = DiagnosisSession(
            reference=reference,
            clinician_id=clinician_id,
            matcher=self.matcher,
            display_threshold=self.display_threshold,
            default_weight_kg=self.default_weight_kg,
        )
        logger.info(f"Session {session.session_id} started by clinician {clinician_id}")
        if patient_id is not None:
            await self.select_patient(session, patient_id, patient_weight_kg)
        return session

    async def select_patient(
        self,
        session: DiagnosisSession,
        patient_id: str,
        weight_kg: Optional[float] = None,
    ) -> None:
        try:
            rows = await self.provider.fetch_patient_allergies(patient_id)
        except ExternalServiceError:
            raise
        except (OSError, asyncio.TimeoutError) as exc:
            logger.error(f"Allergy fetch for {patient_id} failed: {exc}")
            raise ExternalServiceError(
                f"Allergy fetch failed: {exc}",
                operation="fetch_patient_allergies",
            ) from exc
        allergies = [PatientAllergy.from_dict(r) for r in rows]
        session.bind_patient(patient_id, allergies, weight_kg)

    async def save(self, session: DiagnosisSession) -> str:
        """
        Persist the session's record and move it to SAVED.

        Returns:
            The record id assigned by the collaborator.
        """
        record = session.prepare_record()
        try:
            record_id = await self.sink.save_record(record.to_dict())
        except ExternalServiceError:
            logger.error(f"Session {session.session_id}: save failed; still in {session.state.value}")
            raise
        except (OSError, asyncio.TimeoutError) as exc:
            logger.error(f"Session {session.session_id}: save failed: {exc}")
            raise ExternalServiceError(
                f"Saving diagnosis failed: {exc}",
                operation="save_record",
            ) from exc
        session.mark_saved(record)
        logger.info(
            f"Session {session.session_id} saved as {record_id} "
            f"({len(record.safety_warnings_shown)} warning(s) shown)"
        )
        return record_id
