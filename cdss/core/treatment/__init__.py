"""
Treatment Layer

Guideline lookup, weight-banded dosage suggestions and prescription draft
items.
"""
from .guidelines import (
    GuidelineLine,
    TreatmentGuideline,
    GuidelineResolver,
    DEFAULT_GUIDELINE_TABLE,
    resolve_guideline,
    guideline_to_draft,
)
from .dosage import dosage_for, DEFAULT_DOSAGE
from .prescription import PrescriptionItem, parse_duration_days, doses_per_day

__all__ = [
    "GuidelineLine",
    "TreatmentGuideline",
    "GuidelineResolver",
    "DEFAULT_GUIDELINE_TABLE",
    "resolve_guideline",
    "guideline_to_draft",
    "dosage_for",
    "DEFAULT_DOSAGE",
    "PrescriptionItem",
    "parse_duration_days",
    "doses_per_day",
]
