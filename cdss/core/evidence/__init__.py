"""
Evidence Catalog

Symptom strength categories, the symptom catalog, and disease profiles.

Usage:
    from cdss.core.evidence import EvidenceCatalog, load_disease_profiles

    catalog = EvidenceCatalog.from_rows(rows)
    profiles = load_disease_profiles(table)
"""
from .base import (
    CategoryStrength,
    CATEGORY_WEIGHTS,
    MAX_CATEGORY_WEIGHT,
    Symptom,
    DiseaseProfile,
    EvidenceCatalog,
    load_disease_profiles,
    disease_names,
    normalize_name,
)
from .reference_data import (
    DEFAULT_SYMPTOM_ROWS,
    DEFAULT_DISEASE_TABLE,
    default_catalog,
    default_disease_profiles,
)

__all__ = [
    "CategoryStrength",
    "CATEGORY_WEIGHTS",
    "MAX_CATEGORY_WEIGHT",
    "Symptom",
    "DiseaseProfile",
    "EvidenceCatalog",
    "load_disease_profiles",
    "disease_names",
    "normalize_name",
    "DEFAULT_SYMPTOM_ROWS",
    "DEFAULT_DISEASE_TABLE",
    "default_catalog",
    "default_disease_profiles",
]
