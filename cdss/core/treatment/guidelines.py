"""
Treatment Guideline Resolver

Reference regimens keyed by the exact diagnosis name. Co-infection has its
own explicit entry ("Malaria & Typhoid Fever") instead of a runtime merge of
the two single-disease regimens.

A miss is a normal outcome: the clinician builds the prescription by hand.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple

from cdss.utils import get_logger
from cdss.utils.exceptions import ReferenceDataError

from .dosage import dosage_for
from .prescription import PrescriptionItem, doses_per_day, parse_duration_days

logger = get_logger(__name__)

FIRST_LINE = 1
SECOND_LINE = 2


@dataclass(frozen=True)
class GuidelineLine:
    """One drug in a regimen."""
    drug_name: str
    dosage: str
    frequency: str
    duration_days: int
    therapy_line: int = FIRST_LINE

    def to_dict(self) -> dict:
        return {
            "drug_name": self.drug_name,
            "dosage": self.dosage,
            "frequency": self.frequency,
            "duration_days": self.duration_days,
            "therapy_line": self.therapy_line,
        }


@dataclass(frozen=True)
class TreatmentGuideline:
    """Ordered therapy lines for one diagnosis; first-line drugs come first."""
    disease: str
    lines: Tuple[GuidelineLine, ...]
    notes: str = ""

    @property
    def first_line(self) -> Tuple[GuidelineLine, ...]:
        return tuple(l for l in self.lines if l.therapy_line == FIRST_LINE)

    @property
    def second_line(self) -> Tuple[GuidelineLine, ...]:
        return tuple(l for l in self.lines if l.therapy_line == SECOND_LINE)

    def to_dict(self) -> dict:
        return {
            "disease": self.disease,
            "first_line": [l.to_dict() for l in self.first_line],
            "second_line": [l.to_dict() for l in self.second_line],
            "notes": self.notes,
        }


# WHO/MOH treatment guidelines
DEFAULT_GUIDELINE_TABLE: Dict[str, Dict[str, Any]] = {
    "Malaria": {
        "first_line": [
            {"drug": "Artemether-lumefantrine", "dosage": "20mg/120mg", "duration": 3, "frequency": "Twice daily"},
            {"drug": "Artesunate-amodiaquine", "dosage": "100mg/270mg", "duration": 3, "frequency": "Once daily"},
        ],
        "second_line": [
            {"drug": "Quinine", "dosage": "600mg", "duration": 7, "frequency": "Three times daily"},
            {"drug": "Doxycycline", "dosage": "100mg", "duration": 7, "frequency": "Once daily"},
        ],
        "notes": "For severe malaria, use parenteral artesunate for minimum 24 hours",
    },
    "Typhoid Fever": {
        "first_line": [
            {"drug": "Azithromycin", "dosage": "500mg", "duration": 7, "frequency": "Once daily"},
            {"drug": "Ceftriaxone", "dosage": "2g", "duration": 10, "frequency": "Once daily IV"},
        ],
        "second_line": [
            {"drug": "Ciprofloxacin", "dosage": "500mg", "duration": 7, "frequency": "Twice daily"},
            {"drug": "Cefixime", "dosage": "400mg", "duration": 7, "frequency": "Once daily"},
        ],
        "notes": "Consider drug susceptibility testing in resistant cases",
    },
    "Malaria & Typhoid Fever": {
        "first_line": [
            {"drug": "Artemether-lumefantrine", "dosage": "20mg/120mg", "duration": 3, "frequency": "Twice daily"},
            {"drug": "Azithromycin", "dosage": "500mg", "duration": 7, "frequency": "Once daily"},
        ],
        "notes": "Combined therapy for co-infection",
    },
}


def _parse_lines(disease: str, entries: Iterable[Mapping[str, Any]], therapy_line: int) -> List[GuidelineLine]:
    lines = []
    try:
        for entry in entries or ():
            lines.append(GuidelineLine(
                drug_name=str(entry["drug"]),
                dosage=str(entry.get("dosage", "")),
                frequency=str(entry.get("frequency", "")),
                duration_days=parse_duration_days(entry.get("duration"), default=0),
                therapy_line=therapy_line,
            ))
    except (KeyError, TypeError, ValueError, AttributeError) as exc:
        raise ReferenceDataError(
            f"Malformed guideline line for {disease!r}: {exc!r}",
            table="treatment_guidelines",
        ) from exc
    return lines


class GuidelineResolver:
    """Exact-match lookup over an injected guideline table."""

    def __init__(self, guidelines: Iterable[TreatmentGuideline]):
        self._guidelines: Dict[str, TreatmentGuideline] = {g.disease: g for g in guidelines}

    @classmethod
    def from_table(cls, table: Mapping[str, Mapping[str, Any]]) -> "GuidelineResolver":
        guidelines = []
        for disease, entry in table.items():
            if not isinstance(entry, Mapping):
                raise ReferenceDataError(
                    f"Guideline for {disease!r} must be a mapping",
                    table="treatment_guidelines",
                )
            lines = _parse_lines(disease, entry.get("first_line"), FIRST_LINE)
            lines += _parse_lines(disease, entry.get("second_line"), SECOND_LINE)
            guidelines.append(TreatmentGuideline(
                disease=disease,
                lines=tuple(lines),
                notes=str(entry.get("notes", "")),
            ))
        logger.info(f"GuidelineResolver loaded: {len(guidelines)} guideline(s)")
        return cls(guidelines)

    @classmethod
    def default(cls) -> "GuidelineResolver":
        return cls.from_table(DEFAULT_GUIDELINE_TABLE)

    def diseases(self) -> List[str]:
        return list(self._guidelines)

    def resolve(self, diagnosis_label: Optional[str]) -> Optional[TreatmentGuideline]:
        """Guideline for the exact label, or None when none is defined."""
        guideline = self._guidelines.get(diagnosis_label or "")
        if guideline is None:
            logger.info(f"GuidelineResolver: no guideline for {diagnosis_label!r}; manual entry")
        return guideline


def resolve_guideline(
    diagnosis_label: Optional[str],
    resolver: Optional[GuidelineResolver] = None,
) -> Optional[TreatmentGuideline]:
    return (resolver or GuidelineResolver.default()).resolve(diagnosis_label)


def guideline_to_draft(
    guideline: TreatmentGuideline,
    patient_weight_kg: Optional[float] = None,
) -> List[PrescriptionItem]:
    """
    Turn a guideline's first-line drugs into prescription draft items.

    Quantity covers the full course: duration × doses per day.
    """
    items = []
    for line in guideline.first_line:
        items.append(PrescriptionItem(
            drug_name=line.drug_name,
            dosage=line.dosage,
            instructions=f"{line.dosage} {line.frequency} for {line.duration_days} days",
            duration_days=line.duration_days,
            quantity=line.duration_days * doses_per_day(line.frequency),
            calculated_dosage=dosage_for(line.drug_name, patient_weight_kg),
        ))
    return items
