"""
Prescription draft items.

A draft is the ordered list of items a clinician is editing during the
Treatment step. Items are replaced, never edited in place, so every change
goes through the session and re-triggers the safety check.
"""
from __future__ import annotations

import re
from dataclasses import dataclass, replace
from typing import Any, Dict, Optional

from cdss.utils.exceptions import ValidationError


@dataclass(frozen=True)
class PrescriptionItem:
    drug_name: str
    dosage: str = ""
    instructions: str = ""
    duration_days: int = 7
    quantity: int = 10
    calculated_dosage: str = ""

    def __post_init__(self):
        if not str(self.drug_name or "").strip():
            raise ValidationError("Drug name is required", field="drug_name")
        for name in ("duration_days", "quantity"):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, int):
                raise ValidationError(f"{name} must be a whole number", field=name)
            if value < 0:
                raise ValidationError(f"{name} cannot be negative", field=name)

    def with_changes(self, **changes: Any) -> "PrescriptionItem":
        return replace(self, **changes)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "drug_name": self.drug_name,
            "dosage": self.dosage,
            "instructions": self.instructions,
            "duration_days": self.duration_days,
            "quantity": self.quantity,
            "calculated_dosage": self.calculated_dosage,
        }


_DURATION_RE = re.compile(r"\d+")


def parse_duration_days(duration: Any, default: int = 7) -> int:
    """'10-14 days' → 10, '3' → 3, 'As needed' → default."""
    if isinstance(duration, int):
        return duration
    match = _DURATION_RE.search(str(duration or ""))
    return int(match.group()) if match else default


def doses_per_day(frequency: Optional[str]) -> int:
    text = (frequency or "").lower()
    if "three times" in text:
        return 3
    if "twice" in text:
        return 2
    return 1
