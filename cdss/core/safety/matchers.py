"""
Allergy matchers.

The checker asks a matcher whether a drug is covered by a recorded allergy.
The substring matcher is the clinic's established behaviour; it can flag
unrelated drugs that merely contain the allergy text, so a token matcher is
available for deployments that want stricter matching.
"""
from __future__ import annotations

import re
from typing import Protocol

from cdss.core.evidence import normalize_name

_TOKEN_RE = re.compile(r"[a-z0-9]+")


class AllergyMatcher(Protocol):
    def matches(self, drug_name: str, allergy_name: str) -> bool:
        ...


class SubstringAllergyMatcher:
    """Drug name contains the allergy name, case-insensitive."""

    def matches(self, drug_name: str, allergy_name: str) -> bool:
        allergy = normalize_name(allergy_name)
        if not allergy:
            return False
        return allergy in normalize_name(drug_name)


class TokenAllergyMatcher:
    """
    Every allergy token must start a token of the drug name.

    "Sulfa" matches "Sulfamethoxazole"; "ace" does not match "Paracetamol".
    """

    def matches(self, drug_name: str, allergy_name: str) -> bool:
        allergy_tokens = _TOKEN_RE.findall(normalize_name(allergy_name))
        if not allergy_tokens:
            return False
        drug_tokens = _TOKEN_RE.findall(normalize_name(drug_name))
        return all(
            any(token.startswith(a) for token in drug_tokens)
            for a in allergy_tokens
        )
