"""
Diagnosis Classifier

Maps a ScoreResult to a diagnosis label, confidence tier, imaging flag and a
ranked differential list.

Rules, evaluated in order against unrounded probabilities:
  1. two diseases ≥ CO_INFECTION   → "Possible co-infection of A and B", high
  2. one disease  ≥ SINGLE         → that disease; high if ≥ SINGLE_HIGH else medium
  3. any disease  ≥ SUSPECTED      → "Suspected infection (A or B)", medium
  4. otherwise                     → "No clear diagnosis", low

The imaging flag mirrors the very-strong signal and ignores the rules above.
"""
from __future__ import annotations

from typing import Dict, List, Optional, Sequence, Tuple

from cdss.utils import get_logger

from .base import ConfidenceTier, DiagnosisVerdict, Differential, ScoreResult

logger = get_logger(__name__)

# ── Thresholds (percent) ──────────────────────────────────────────────────────
CO_INFECTION_THRESHOLD = 60.0
SINGLE_DISEASE_THRESHOLD = 70.0
SINGLE_DISEASE_HIGH_THRESHOLD = 85.0
SUSPECTED_THRESHOLD = 50.0
DIFFERENTIAL_DISPLAY_THRESHOLD = 60.0

# Differential tiers
DIFFERENTIAL_HIGH = 70.0
DIFFERENTIAL_MEDIUM = 50.0

NO_CLEAR_DIAGNOSIS = "No clear diagnosis"
IMAGING_RECOMMENDATION = "Chest X-ray recommended due to very strong signs"

# Keyed by lower-case disease name
DISEASE_RECOMMENDATIONS: Dict[str, Tuple[str, ...]] = {
    "malaria": (
        "Artemisinin-based combination therapy (ACT)",
        "Paracetamol for fever management",
    ),
    "typhoid fever": (
        "Antibiotics: Azithromycin or Ceftriaxone",
        "Adequate hydration and nutrition",
    ),
}


def co_infection_key(first: str, second: str) -> str:
    """Guideline-table key for a two-disease co-infection."""
    return f"{first} & {second}"


def differential_tier(probability: float) -> ConfidenceTier:
    if probability >= DIFFERENTIAL_HIGH:
        return ConfidenceTier.HIGH
    if probability >= DIFFERENTIAL_MEDIUM:
        return ConfidenceTier.MEDIUM
    return ConfidenceTier.LOW


def _recommendations(diseases: Sequence[str], requires_imaging: bool) -> Tuple[str, ...]:
    recs: List[str] = []
    for disease in diseases:
        for rec in DISEASE_RECOMMENDATIONS.get(disease.lower(), ()):
            if rec not in recs:
                recs.append(rec)
    if requires_imaging:
        recs.append(IMAGING_RECOMMENDATION)
    return tuple(recs)


def _differentials(score_result: ScoreResult, display_threshold: float) -> Tuple[Differential, ...]:
    listed = [
        s for s in score_result.scores if s.probability >= display_threshold
    ]
    # sorted() is stable, so ties keep disease-profile order
    listed = sorted(listed, key=lambda s: s.probability, reverse=True)
    return tuple(
        Differential(
            disease=s.disease,
            probability=s.probability_percent,
            confidence_tier=differential_tier(s.probability),
            supporting_symptoms=s.supporting_symptoms,
            icd10=s.icd10,
        )
        for s in listed
    )


def classify(
    score_result: ScoreResult,
    disease_names: Optional[Sequence[str]] = None,
    display_threshold: float = DIFFERENTIAL_DISPLAY_THRESHOLD,
) -> DiagnosisVerdict:
    """
    Classify a score result.

    Args:
        score_result:      Scorer output.
        disease_names:     Disease order for rule evaluation and labels;
                           defaults to the score result's profile order.
        display_threshold: Minimum probability for a differential entry.
    """
    names = list(disease_names) if disease_names is not None else [
        s.disease for s in score_result.scores
    ]
    probs = {name: score_result.probability(name) for name in names}

    diagnosed: Tuple[str, ...] = ()
    guideline_key: Optional[str] = None

    co_infected = [n for n in names if probs[n] >= CO_INFECTION_THRESHOLD]
    single = next((n for n in names if probs[n] >= SINGLE_DISEASE_THRESHOLD), None)

    if len(co_infected) >= 2:
        first, second = co_infected[0], co_infected[1]
        label = f"Possible co-infection of {first} and {second}"
        tier = ConfidenceTier.HIGH
        diagnosed = (first, second)
        guideline_key = co_infection_key(first, second)
    elif single is not None:
        label = single
        tier = (
            ConfidenceTier.HIGH
            if probs[single] >= SINGLE_DISEASE_HIGH_THRESHOLD
            else ConfidenceTier.MEDIUM
        )
        diagnosed = (single,)
        guideline_key = single
    elif any(p >= SUSPECTED_THRESHOLD for p in probs.values()):
        label = f"Suspected infection ({' or '.join(names)})"
        tier = ConfidenceTier.MEDIUM
        diagnosed = tuple(names)
    else:
        label = NO_CLEAR_DIAGNOSIS
        tier = ConfidenceTier.LOW

    requires_imaging = score_result.has_very_strong_signal

    verdict = DiagnosisVerdict(
        label=label,
        confidence_tier=tier,
        requires_imaging=requires_imaging,
        differentials=_differentials(score_result, display_threshold),
        probabilities=tuple(
            (s.disease, s.probability_percent) for s in score_result.scores
        ),
        diagnosed_diseases=diagnosed,
        guideline_key=guideline_key,
        recommendations=_recommendations(diagnosed, requires_imaging),
    )
    logger.info(
        f"Classifier: {verdict.label} [{verdict.confidence_tier.value}]"
        + (" + imaging" if requires_imaging else "")
    )
    return verdict


def summarise(verdict: DiagnosisVerdict) -> Dict:
    """
    Build a compact summary dict suitable for JSON API responses.

    Example output:
    {
        "label": "Malaria",
        "confidence_tier": "medium",
        "requires_imaging": false,
        "probabilities": {"Malaria": 75, "Typhoid Fever": 25},
        "differential_count": 1,
        "top_differential": "Malaria",
        "differentials": [{...}]
    }
    """
    return {
        "label": verdict.label,
        "confidence_tier": verdict.confidence_tier.value,
        "requires_imaging": verdict.requires_imaging,
        "probabilities": dict(verdict.probabilities),
        "differential_count": len(verdict.differentials),
        "top_differential": verdict.differentials[0].disease if verdict.differentials else None,
        "differentials": [d.to_dict() for d in verdict.differentials],
        "recommendations": list(verdict.recommendations),
    }
