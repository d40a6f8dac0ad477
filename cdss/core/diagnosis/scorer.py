"""
Diagnostic Scorer

Turns a set of selected symptom ids into per-disease weighted scores and
evidence-relative probabilities.

    raw(D)         = Σ weight(s) for selected s whose name is in D's symptom sets
    probability(D) = raw(D) / (|evidence| × 4) × 100

The denominator grows with the evidence count, so probabilities are only
comparable within one session. Mixed-weight evidence cannot reach 100 even
when every symptom points at one disease.
"""
from __future__ import annotations

import math
from typing import Iterable, List, Sequence

from cdss.core.evidence import (
    CategoryStrength,
    DiseaseProfile,
    EvidenceCatalog,
    MAX_CATEGORY_WEIGHT,
)
from cdss.utils import get_logger
from cdss.utils.exceptions import ValidationError

from .base import DiseaseScore, ScoreResult

logger = get_logger(__name__)


def round_half_up(value: float) -> int:
    """87.5 → 88, matching how the clinic's screens display percentages."""
    return int(math.floor(value + 0.5))


def score(
    evidence: Iterable[str],
    catalog: EvidenceCatalog,
    profiles: Sequence[DiseaseProfile],
) -> ScoreResult:
    """
    Score an evidence set against every disease profile.

    Args:
        evidence: Selected symptom ids. Order and duplicates are irrelevant;
                  ids missing from the catalog are ignored.
        catalog:  Symptom catalog supplying each symptom's category weight.
        profiles: Disease profiles, in primary-disease order.

    Raises:
        ValidationError: if no selected id resolves to a catalog symptom.
    """
    symptoms = catalog.resolve(evidence)
    if not symptoms:
        raise ValidationError(
            "Select at least one known symptom before scoring",
            field="evidence",
        )

    denominator = len(symptoms) * MAX_CATEGORY_WEIGHT
    has_very_strong = any(s.category is CategoryStrength.VERY_STRONG for s in symptoms)

    scores: List[DiseaseScore] = []
    for profile in profiles:
        matched = [s for s in symptoms if profile.has_symptom(s.name)]
        raw = sum(s.weight for s in matched)
        probability = raw * 100 / denominator
        scores.append(DiseaseScore(
            disease=profile.name,
            raw_score=raw,
            probability=probability,
            probability_percent=round_half_up(probability),
            supporting_symptoms=tuple(s.name for s in matched),
            icd10=profile.icd10,
        ))

    logger.debug(
        f"Scorer: {len(symptoms)} symptom(s) → "
        + ", ".join(f"{s.disease}={s.raw_score}/{denominator}" for s in scores)
    )

    return ScoreResult(
        scores=tuple(scores),
        has_very_strong_signal=has_very_strong,
        evidence_count=len(symptoms),
        selected_symptoms=tuple(s.name for s in symptoms),
    )
