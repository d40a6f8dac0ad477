"""
Prescription Safety Checker

Recomputes the full advisory warning list for a prescription draft:

  - interaction: two drugs in the draft are linked in the interaction graph,
    in either direction
  - allergy:     a drug matches one of the patient's recorded allergies

Warnings are advisory. The checker keeps no memory between calls, so a
warning disappears as soon as the draft no longer triggers it.
"""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from itertools import combinations
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Set, Tuple

from cdss.core.evidence import normalize_name
from cdss.utils import get_logger

from .matchers import AllergyMatcher, SubstringAllergyMatcher

logger = get_logger(__name__)


class WarningKind(str, Enum):
    INTERACTION = "interaction"
    ALLERGY     = "allergy"


class WarningSeverity(str, Enum):
    CAUTION         = "caution"           # review before dispensing
    CONTRAINDICATED = "contraindicated"   # hard contraindication


@dataclass(frozen=True)
class PatientAllergy:
    allergy_name: str
    severity: str = ""
    reaction_description: str = ""

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "PatientAllergy":
        return cls(
            allergy_name=str(data.get("allergy_name", "")),
            severity=str(data.get("severity") or ""),
            reaction_description=str(data.get("reaction_description") or ""),
        )

    def to_dict(self) -> dict:
        return {
            "allergy_name": self.allergy_name,
            "severity": self.severity,
            "reaction_description": self.reaction_description,
        }


@dataclass(frozen=True)
class SafetyWarning:
    kind: WarningKind
    message: str
    severity_implied: WarningSeverity
    drugs: Tuple[str, ...] = ()
    allergy: Optional[str] = None
    allergy_severity: str = ""

    def to_dict(self) -> dict:
        return {
            "kind": self.kind.value,
            "message": self.message,
            "severity_implied": self.severity_implied.value,
            "drugs": list(self.drugs),
            "allergy": self.allergy,
            "allergy_severity": self.allergy_severity,
        }


class InteractionGraph:
    """
    Drug → interacting drugs, read-only.

    The source table may list a pair under one drug only; `interacts` checks
    both directions.
    """

    def __init__(self, edges: Mapping[str, Iterable[str]]):
        self._edges: Dict[str, Set[str]] = {}
        for drug, others in edges.items():
            self._edges.setdefault(normalize_name(drug), set()).update(
                normalize_name(o) for o in others
            )

    def interacts(self, first: str, second: str) -> bool:
        a, b = normalize_name(first), normalize_name(second)
        return b in self._edges.get(a, ()) or a in self._edges.get(b, ())

    def __len__(self) -> int:
        return len(self._edges)


# Simplified interaction database
DEFAULT_INTERACTIONS: Dict[str, List[str]] = {
    "Artemether-lumefantrine": ["Ketoconazole", "Rifampicin", "Anticonvulsants"],
    "Azithromycin": ["Warfarin", "Digoxin", "Cyclosporine"],
    "Ciprofloxacin": ["Theophylline", "Warfarin", "Antacids"],
    "Quinine": ["Digoxin", "Warfarin", "Antacids"],
    "Doxycycline": ["Antacids", "Iron supplements", "Warfarin"],
}


def _interaction_warnings(drugs: Sequence[str], graph: InteractionGraph) -> List[SafetyWarning]:
    warnings = []
    seen: Set[frozenset] = set()
    for first, second in combinations(drugs, 2):
        pair = frozenset((normalize_name(first), normalize_name(second)))
        if len(pair) < 2 or pair in seen:
            continue
        if graph.interacts(first, second):
            seen.add(pair)
            warnings.append(SafetyWarning(
                kind=WarningKind.INTERACTION,
                message=f"{first} may interact with {second}",
                severity_implied=WarningSeverity.CAUTION,
                drugs=(first, second),
            ))
    return warnings


def _allergy_warnings(
    drugs: Sequence[str],
    allergies: Sequence[PatientAllergy],
    matcher: AllergyMatcher,
) -> List[SafetyWarning]:
    warnings = []
    for drug in drugs:
        for allergy in allergies:
            if matcher.matches(drug, allergy.allergy_name):
                warnings.append(SafetyWarning(
                    kind=WarningKind.ALLERGY,
                    message=(
                        f"PATIENT ALLERGY: {drug} contraindicated due to "
                        f"{allergy.allergy_name} allergy"
                    ),
                    severity_implied=WarningSeverity.CONTRAINDICATED,
                    drugs=(drug,),
                    allergy=allergy.allergy_name,
                    allergy_severity=allergy.severity,
                ))
    return warnings


def check_safety(
    draft_drug_names: Iterable[str],
    interaction_graph: InteractionGraph,
    patient_allergies: Iterable[PatientAllergy],
    matcher: Optional[AllergyMatcher] = None,
) -> List[SafetyWarning]:
    """
    Full warning list for the current draft.

    Args:
        draft_drug_names:  Drug names in draft order.
        interaction_graph: Known interactions.
        patient_allergies: The patient's recorded allergies.
        matcher:           Allergy matching strategy; substring by default.

    Returns:
        Interaction warnings (one per unordered pair) followed by allergy
        warnings.
    """
    drugs = [d for d in draft_drug_names if str(d or "").strip()]
    allergies = list(patient_allergies)
    warnings = _interaction_warnings(drugs, interaction_graph)
    warnings += _allergy_warnings(drugs, allergies, matcher or SubstringAllergyMatcher())

    for w in warnings:
        logger.warning(f"SafetyChecker [{w.kind.value}]: {w.message}")
    return warnings
