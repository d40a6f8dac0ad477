"""
Weight-banded dosage calculator.

Simplified WHO-style step functions. Decision support only: the result is a
suggestion the clinician can overwrite, never a certified dose.
"""
from __future__ import annotations

import math
from typing import Callable, Dict, Optional

from cdss.core.evidence import normalize_name

DEFAULT_DOSAGE = "As prescribed"


def _artemether_lumefantrine(weight_kg: float) -> str:
    if weight_kg < 15:
        return "1 tablet twice daily"
    if weight_kg < 25:
        return "2 tablets twice daily"
    if weight_kg < 35:
        return "3 tablets twice daily"
    return "4 tablets twice daily"


# Keyed by normalized drug name; these need a patient weight
WEIGHT_BANDED_RULES: Dict[str, Callable[[float], str]] = {
    "artemether-lumefantrine": _artemether_lumefantrine,
}

# Same dose at every weight
FIXED_DOSAGES: Dict[str, str] = {
    "azithromycin": "500mg once daily",
    "ciprofloxacin": "500mg twice daily",
}


def _usable_weight(patient_weight_kg) -> Optional[float]:
    if patient_weight_kg is None:
        return None
    try:
        weight = float(patient_weight_kg)
    except (TypeError, ValueError):
        return None
    return None if math.isnan(weight) else weight


def dosage_for(drug_name: str, patient_weight_kg: Optional[float]) -> str:
    """
    Suggested dosage for a drug at a patient weight.

    Fixed-dose drugs ignore the weight. Banded drugs without a usable weight,
    and drugs with no rule at all, fall back to "As prescribed". Always
    returns a non-empty string.
    """
    key = normalize_name(drug_name)
    if key in FIXED_DOSAGES:
        return FIXED_DOSAGES[key]
    rule = WEIGHT_BANDED_RULES.get(key)
    weight = _usable_weight(patient_weight_kg)
    if rule is None or weight is None:
        return DEFAULT_DOSAGE
    return rule(weight) or DEFAULT_DOSAGE
