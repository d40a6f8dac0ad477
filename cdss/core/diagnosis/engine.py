"""
Diagnostic Engine

Binds one set of reference data (catalog + disease profiles) to the scorer
and classifier so callers diagnose with a single call.

Usage:
    from cdss.core.diagnosis import DiagnosticEngine

    engine = DiagnosticEngine(catalog, profiles)
    score_result, verdict = engine.diagnose(["S01", "S05"])
"""
from __future__ import annotations

from typing import Iterable, List, Sequence, Tuple

from cdss.core.evidence import DiseaseProfile, EvidenceCatalog, disease_names

from .base import DiagnosisVerdict, ScoreResult
from .classifier import DIFFERENTIAL_DISPLAY_THRESHOLD, classify
from .scorer import score


class DiagnosticEngine:
    """
    Scorer + classifier over injected reference data.

    Stateless apart from the read-only tables, so one instance may serve
    any number of sessions.
    """

    def __init__(
        self,
        catalog: EvidenceCatalog,
        profiles: Sequence[DiseaseProfile],
        display_threshold: float = DIFFERENTIAL_DISPLAY_THRESHOLD,
    ):
        self.catalog = catalog
        self.profiles: Tuple[DiseaseProfile, ...] = tuple(profiles)
        self.display_threshold = display_threshold

    @property
    def disease_names(self) -> List[str]:
        return disease_names(self.profiles)

    def score(self, evidence: Iterable[str]) -> ScoreResult:
        return score(evidence, self.catalog, self.profiles)

    def classify(self, score_result: ScoreResult) -> DiagnosisVerdict:
        return classify(score_result, self.disease_names, self.display_threshold)

    def diagnose(self, evidence: Iterable[str]) -> Tuple[ScoreResult, DiagnosisVerdict]:
        score_result = self.score(evidence)
        return score_result, self.classify(score_result)
