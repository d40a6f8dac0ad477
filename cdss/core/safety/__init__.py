"""
Prescription Safety Layer

Drug interaction and allergy contraindication checks over a prescription
draft.

Usage:
    from cdss.core.safety import check_safety, InteractionGraph, PatientAllergy

    warnings = check_safety(["Azithromycin"], graph, [PatientAllergy("azithro")])
"""
from .checker import (
    WarningKind,
    WarningSeverity,
    PatientAllergy,
    SafetyWarning,
    InteractionGraph,
    DEFAULT_INTERACTIONS,
    check_safety,
)
from .matchers import AllergyMatcher, SubstringAllergyMatcher, TokenAllergyMatcher

__all__ = [
    "WarningKind",
    "WarningSeverity",
    "PatientAllergy",
    "SafetyWarning",
    "InteractionGraph",
    "DEFAULT_INTERACTIONS",
    "check_safety",
    "AllergyMatcher",
    "SubstringAllergyMatcher",
    "TokenAllergyMatcher",
]
