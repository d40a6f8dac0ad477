"""
Diagnosis Layer

Weighted evidence scoring and threshold classification.

Usage:
    from cdss.core.diagnosis import score, classify

    result = score(symptom_ids, catalog, profiles)
    verdict = classify(result)
"""
from .base import ConfidenceTier, DiseaseScore, ScoreResult, Differential, DiagnosisVerdict
from .scorer import score, round_half_up
from .classifier import classify, summarise, co_infection_key, NO_CLEAR_DIAGNOSIS
from .engine import DiagnosticEngine

__all__ = [
    "ConfidenceTier",
    "DiseaseScore",
    "ScoreResult",
    "Differential",
    "DiagnosisVerdict",
    "score",
    "round_half_up",
    "classify",
    "summarise",
    "co_infection_key",
    "NO_CLEAR_DIAGNOSIS",
    "DiagnosticEngine",
]
