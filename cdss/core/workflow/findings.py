"""
Clinical findings recorded during the diagnosis workflow.

Vitals are optional annotations and never feed the scorer. Values that are
physically impossible, or a systolic pressure at or below the diastolic,
are rejected so bad readings never reach the saved record.
"""
from __future__ import annotations

from dataclasses import dataclass, fields
from typing import Any, Dict, List, Mapping, Optional, Tuple

from cdss.utils.exceptions import ValidationError

# HARD limits: outside these the reading is an entry error, not a patient state
HARD_LIMITS: Dict[str, Tuple[float, float]] = {
    "temperature_c":       (25.0, 45.0),
    "systolic_bp":         (50.0, 260.0),
    "diastolic_bp":        (20.0, 200.0),
    "heart_rate":          (20.0, 300.0),
    "respiratory_rate":    (2.0, 70.0),
    "oxygen_saturation":   (50.0, 100.0),
}


@dataclass(frozen=True)
class ClinicalFindings:
    temperature_c: Optional[float] = None
    systolic_bp: Optional[int] = None
    diastolic_bp: Optional[int] = None
    heart_rate: Optional[int] = None
    respiratory_rate: Optional[int] = None
    oxygen_saturation: Optional[float] = None
    physical_exam: str = ""
    notes: str = ""

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "ClinicalFindings":
        known = {f.name for f in fields(cls)}
        return cls(**{k: v for k, v in data.items() if k in known and v is not None})

    def violations(self) -> List[str]:
        problems = []
        for name, (low, high) in HARD_LIMITS.items():
            value = getattr(self, name)
            if value is not None and not (low <= value <= high):
                problems.append(f"{name}={value} outside possible range [{low}, {high}]")
        if (
            self.systolic_bp is not None
            and self.diastolic_bp is not None
            and self.systolic_bp <= self.diastolic_bp
        ):
            problems.append(
                f"systolic_bp ({self.systolic_bp}) must exceed diastolic_bp ({self.diastolic_bp})"
            )
        return problems

    def validate(self) -> None:
        problems = self.violations()
        if problems:
            raise ValidationError(
                "Implausible clinical findings: " + "; ".join(problems),
                field="clinical_findings",
                details={"violations": problems},
            )

    def to_dict(self) -> Dict[str, Any]:
        return {f.name: getattr(self, f.name) for f in fields(self)}
