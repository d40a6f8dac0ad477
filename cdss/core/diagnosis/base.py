"""
Diagnosis Layer — Base Types

Immutable result contracts produced by the scorer and the classifier and
consumed by the workflow, the HTTP layer and the saved record.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional, Tuple


class ConfidenceTier(str, Enum):
    """Confidence attached to a verdict or a single differential."""
    LOW    = "low"
    MEDIUM = "medium"
    HIGH   = "high"


@dataclass(frozen=True)
class DiseaseScore:
    """Weighted evidence for one disease."""
    disease: str
    raw_score: int
    probability: float                 # unrounded, used for thresholds
    probability_percent: int           # rounded half-up, used for display
    supporting_symptoms: Tuple[str, ...] = ()
    icd10: str = ""


@dataclass(frozen=True)
class ScoreResult:
    """
    Scorer output for one evidence set.

    `scores` keeps disease-profile order. Recomputed whenever the evidence
    changes; never edited in place.
    """
    scores: Tuple[DiseaseScore, ...]
    has_very_strong_signal: bool
    evidence_count: int
    selected_symptoms: Tuple[str, ...] = ()

    def get(self, disease: str) -> Optional[DiseaseScore]:
        for s in self.scores:
            if s.disease == disease:
                return s
        return None

    def probability(self, disease: str) -> float:
        s = self.get(disease)
        return s.probability if s is not None else 0.0

    @property
    def per_disease(self) -> Dict[str, DiseaseScore]:
        return {s.disease: s for s in self.scores}

    def to_dict(self) -> dict:
        return {
            "per_disease": {
                s.disease: {
                    "raw_score": s.raw_score,
                    "probability_percent": s.probability_percent,
                }
                for s in self.scores
            },
            "has_very_strong_signal": self.has_very_strong_signal,
            "evidence_count": self.evidence_count,
        }


@dataclass(frozen=True)
class Differential:
    """One candidate disease in the ranked differential list."""
    disease: str
    probability: int
    confidence_tier: ConfidenceTier
    supporting_symptoms: Tuple[str, ...] = ()
    icd10: str = ""

    def to_dict(self) -> dict:
        return {
            "disease": self.disease,
            "probability": self.probability,
            "confidence_tier": self.confidence_tier.value,
            "supporting_symptoms": list(self.supporting_symptoms),
            "icd10": self.icd10,
        }


@dataclass(frozen=True)
class DiagnosisVerdict:
    """
    Classification of one score result.

    A pure function of evidence, disease profiles and thresholds: identical
    evidence always produces an equal verdict.
    """
    label: str
    confidence_tier: ConfidenceTier
    requires_imaging: bool
    differentials: Tuple[Differential, ...] = ()
    probabilities: Tuple[Tuple[str, int], ...] = ()
    diagnosed_diseases: Tuple[str, ...] = ()
    guideline_key: Optional[str] = None
    recommendations: Tuple[str, ...] = field(default=())

    @property
    def is_co_infection(self) -> bool:
        return len(self.diagnosed_diseases) > 1 and self.guideline_key is not None

    def selectable_diagnoses(self) -> List[str]:
        """
        Names a clinician may confirm as the final diagnosis: every listed
        differential plus the combined co-infection key when it applies.
        """
        choices = [d.disease for d in self.differentials]
        if self.is_co_infection and self.guideline_key not in choices:
            choices.insert(0, self.guideline_key)
        return choices

    def to_dict(self) -> dict:
        return {
            "label": self.label,
            "confidence_tier": self.confidence_tier.value,
            "requires_imaging": self.requires_imaging,
            "probabilities": dict(self.probabilities),
            "differentials": [d.to_dict() for d in self.differentials],
            "guideline_key": self.guideline_key,
            "recommendations": list(self.recommendations),
        }
