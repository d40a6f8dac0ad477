"""
Evidence Catalog — Base Types

Static reference data for the diagnostic scorer: the closed set of symptom
strength categories with their weights, the symptom catalog, and the
disease → symptom-set profiles.

Category names arriving from the reference-data collaborator are parsed into
`CategoryStrength`; an unknown name is a reference-data error, never a silent
weight-1 default.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, FrozenSet, Iterable, List, Mapping, Optional, Sequence, Tuple

from cdss.utils import get_logger
from cdss.utils.exceptions import ReferenceDataError

logger = get_logger(__name__)


class CategoryStrength(str, Enum):
    """
    How strongly a symptom implies disease presence.

    VERY_STRONG – weight 4, also triggers the imaging recommendation
    STRONG      – weight 3
    WEAK        – weight 2
    VERY_WEAK   – weight 1
    """
    VERY_STRONG = "very_strong"
    STRONG      = "strong"
    WEAK        = "weak"
    VERY_WEAK   = "very_weak"

    @property
    def weight(self) -> int:
        return CATEGORY_WEIGHTS[self]

    @property
    def description(self) -> str:
        return CATEGORY_DESCRIPTIONS[self]

    @classmethod
    def from_name(cls, name: str) -> "CategoryStrength":
        """Parse a category name ("very_strong", "Very Strong", "very-strong")."""
        key = str(name or "").strip().lower().replace("-", "_").replace(" ", "_")
        try:
            return cls(key)
        except ValueError:
            raise ReferenceDataError(
                f"Unknown symptom category: {name!r}. "
                f"Valid: {[c.value for c in cls]}",
                table="symptom_catalog",
                details={"category_name": name},
            )


CATEGORY_WEIGHTS: Dict[CategoryStrength, int] = {
    CategoryStrength.VERY_STRONG: 4,
    CategoryStrength.STRONG:      3,
    CategoryStrength.WEAK:        2,
    CategoryStrength.VERY_WEAK:   1,
}

CATEGORY_DESCRIPTIONS: Dict[CategoryStrength, str] = {
    CategoryStrength.VERY_STRONG: "Very Strong Signs - Requires chest X-ray",
    CategoryStrength.STRONG:      "Strong Signs",
    CategoryStrength.WEAK:        "Weak Signs",
    CategoryStrength.VERY_WEAK:   "Very Weak Signs",
}

MAX_CATEGORY_WEIGHT = max(CATEGORY_WEIGHTS.values())


def normalize_name(name: str) -> str:
    """Canonical form used for every symptom/drug name comparison."""
    return " ".join(str(name or "").split()).lower()


@dataclass(frozen=True)
class Symptom:
    """A selectable symptom with its evidence strength."""
    id: str
    name: str
    category: CategoryStrength

    @property
    def weight(self) -> int:
        return self.category.weight

    @property
    def category_name(self) -> str:
        return self.category.value

    def to_dict(self) -> dict:
        return {
            "symptom_id": self.id,
            "symptom_name": self.name,
            "category_name": self.category_name,
            "category_weight": self.weight,
        }


@dataclass(frozen=True)
class DiseaseProfile:
    """
    Which symptoms belong to a disease, grouped by category.

    Membership is tested by exact case-insensitive name match against the
    precomputed `symptom_names` set; substrings never match.
    """
    name: str
    symptom_sets: Mapping[CategoryStrength, Tuple[str, ...]]
    icd10: str = ""
    symptom_names: FrozenSet[str] = field(init=False, repr=False, compare=False)

    def __post_init__(self):
        names = frozenset(
            normalize_name(n) for names in self.symptom_sets.values() for n in names
        )
        object.__setattr__(self, "symptom_names", names)

    def has_symptom(self, symptom_name: str) -> bool:
        return normalize_name(symptom_name) in self.symptom_names

    def to_dict(self) -> dict:
        return {
            "disease_name": self.name,
            "icd10": self.icd10,
            "symptom_sets": {
                category.value: list(names) for category, names in self.symptom_sets.items()
            },
        }


class EvidenceCatalog:
    """
    Read-only symptom catalog keyed by symptom id.

    Built once per session from the collaborator's rows and injected into the
    scorer; it is never consulted as global state.
    """

    def __init__(self, symptoms: Iterable[Symptom]):
        self._symptoms: Dict[str, Symptom] = {}
        for symptom in symptoms:
            if symptom.id in self._symptoms:
                raise ReferenceDataError(
                    f"Duplicate symptom id {symptom.id!r} in catalog",
                    table="symptom_catalog",
                )
            self._symptoms[symptom.id] = symptom

    @classmethod
    def from_rows(cls, rows: Iterable[Mapping[str, Any]]) -> "EvidenceCatalog":
        """
        Build a catalog from collaborator rows.

        Each row carries `symptom_id`, `symptom_name`, `category_name` and,
        optionally, `category_weight`. A weight that disagrees with the
        category is rejected.
        """
        symptoms = []
        for index, row in enumerate(rows):
            try:
                category = CategoryStrength.from_name(row.get("category_name", ""))
                weight = row.get("category_weight")
                if weight is not None and int(weight) != category.weight:
                    raise ReferenceDataError(
                        f"Symptom {row.get('symptom_name')!r}: weight {weight} does not "
                        f"match category {category.value} ({category.weight})",
                        table="symptom_catalog",
                    )
                symptoms.append(Symptom(
                    id=str(row["symptom_id"]),
                    name=str(row["symptom_name"]),
                    category=category,
                ))
            except (KeyError, TypeError, ValueError, AttributeError) as exc:
                raise ReferenceDataError(
                    f"Malformed symptom catalog row {index}: {exc!r}",
                    table="symptom_catalog",
                    details={"row": index},
                ) from exc

        catalog = cls(symptoms)
        logger.info(f"EvidenceCatalog loaded: {len(catalog)} symptom(s)")
        return catalog

    def __len__(self) -> int:
        return len(self._symptoms)

    def __contains__(self, symptom_id: object) -> bool:
        return str(symptom_id) in self._symptoms

    def __iter__(self):
        return iter(self._symptoms.values())

    def get(self, symptom_id: str) -> Optional[Symptom]:
        return self._symptoms.get(str(symptom_id))

    def resolve(self, symptom_ids: Iterable[str]) -> List[Symptom]:
        """Resolve ids to symptoms, de-duplicated, skipping unknown ids."""
        resolved: List[Symptom] = []
        seen = set()
        for symptom_id in symptom_ids:
            key = str(symptom_id)
            if key in seen:
                continue
            seen.add(key)
            symptom = self._symptoms.get(key)
            if symptom is None:
                logger.debug(f"EvidenceCatalog: unknown symptom id {key!r}, ignoring")
                continue
            resolved.append(symptom)
        return resolved

    def to_rows(self) -> List[dict]:
        return [s.to_dict() for s in self._symptoms.values()]


def load_disease_profiles(
    table: Mapping[str, Mapping[str, Any]],
) -> List[DiseaseProfile]:
    """
    Build disease profiles from a `{disease_name: {...}}` table.

    Each entry maps category names to symptom-name lists; an optional
    `icd10` key carries the disease code. Table order is preserved, and it
    defines the primary disease order used by the classifier.
    """
    if not isinstance(table, Mapping):
        raise ReferenceDataError("Disease table must map disease names to entries", table="disease_profiles")
    profiles = []
    for disease_name, entry in table.items():
        if not isinstance(entry, Mapping):
            raise ReferenceDataError(
                f"Disease {disease_name!r}: expected a mapping of category → symptoms",
                table="disease_profiles",
            )
        sets: Dict[CategoryStrength, Tuple[str, ...]] = {}
        icd10 = ""
        for key, value in entry.items():
            if key == "icd10":
                icd10 = str(value or "")
                continue
            if value is not None and not isinstance(value, (list, tuple)):
                raise ReferenceDataError(
                    f"Disease {disease_name!r}: {key} must list symptom names",
                    table="disease_profiles",
                )
            sets[CategoryStrength.from_name(key)] = tuple(str(n) for n in value or ())
        profiles.append(DiseaseProfile(name=disease_name, symptom_sets=sets, icd10=icd10))
    logger.info(f"Disease profiles loaded: {[p.name for p in profiles]}")
    return profiles


def disease_names(profiles: Sequence[DiseaseProfile]) -> List[str]:
    return [p.name for p in profiles]
