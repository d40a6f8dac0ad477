"""
Built-in reference tables.

Served by the in-memory collaborator when no reference API is configured, and
used as fixture data by the tests. Values follow the malaria/typhoid expert
rules the clinic works from.
"""
from __future__ import annotations

from typing import List

from .base import DiseaseProfile, EvidenceCatalog, load_disease_profiles

# Symptom catalog rows, in the order the collaborator lists them
DEFAULT_SYMPTOM_ROWS = [
    # Very strong (4)
    {"symptom_id": "S01", "symptom_name": "Abdominal pain",        "category_name": "very_strong", "category_weight": 4},
    {"symptom_id": "S02", "symptom_name": "Vomiting",              "category_name": "very_strong", "category_weight": 4},
    {"symptom_id": "S03", "symptom_name": "Sore throat",           "category_name": "very_strong", "category_weight": 4},
    {"symptom_id": "S04", "symptom_name": "Stomach issues",        "category_name": "very_strong", "category_weight": 4},
    # Strong (3)
    {"symptom_id": "S05", "symptom_name": "Headache",              "category_name": "strong",      "category_weight": 3},
    {"symptom_id": "S06", "symptom_name": "Fatigue",               "category_name": "strong",      "category_weight": 3},
    {"symptom_id": "S07", "symptom_name": "Cough",                 "category_name": "strong",      "category_weight": 3},
    {"symptom_id": "S08", "symptom_name": "Constipation",          "category_name": "strong",      "category_weight": 3},
    {"symptom_id": "S09", "symptom_name": "Persistent high fever", "category_name": "strong",      "category_weight": 3},
    # Weak (2)
    {"symptom_id": "S10", "symptom_name": "Chest pain",            "category_name": "weak",        "category_weight": 2},
    {"symptom_id": "S11", "symptom_name": "Back pain",             "category_name": "weak",        "category_weight": 2},
    {"symptom_id": "S12", "symptom_name": "Muscle pain",           "category_name": "weak",        "category_weight": 2},
    {"symptom_id": "S13", "symptom_name": "Weakness",              "category_name": "weak",        "category_weight": 2},
    {"symptom_id": "S14", "symptom_name": "Tiredness",             "category_name": "weak",        "category_weight": 2},
    # Very weak (1)
    {"symptom_id": "S15", "symptom_name": "Diarrhea",              "category_name": "very_weak",   "category_weight": 1},
    {"symptom_id": "S16", "symptom_name": "Sweating",              "category_name": "very_weak",   "category_weight": 1},
    {"symptom_id": "S17", "symptom_name": "Rash",                  "category_name": "very_weak",   "category_weight": 1},
    {"symptom_id": "S18", "symptom_name": "Loss of appetite",      "category_name": "very_weak",   "category_weight": 1},
]

# Disease → symptom sets. Order matters: the first two are the primary pair.
DEFAULT_DISEASE_TABLE = {
    "Malaria": {
        "icd10": "B54",
        "very_strong": ["Abdominal pain", "Vomiting", "Sore throat"],
        "strong": ["Headache", "Fatigue", "Cough", "Constipation"],
        "weak": ["Chest pain", "Back pain", "Muscle Pain"],
        "very_weak": ["Diarrhea", "Sweating", "Rash", "Loss of appetite"],
    },
    "Typhoid Fever": {
        "icd10": "A01.0",
        "very_strong": ["Abdominal pain", "Stomach issues"],
        "strong": ["Headache", "Persistent high fever"],
        "weak": ["Weakness", "Tiredness"],
        "very_weak": ["Rash", "Loss of appetite"],
    },
}


def default_catalog() -> EvidenceCatalog:
    return EvidenceCatalog.from_rows(DEFAULT_SYMPTOM_ROWS)


def default_disease_profiles() -> List[DiseaseProfile]:
    return load_disease_profiles(DEFAULT_DISEASE_TABLE)
