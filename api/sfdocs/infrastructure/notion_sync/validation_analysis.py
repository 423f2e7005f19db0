"""
Análisis heurístico de reglas de validación.

Genera las columnas derivadas de la tabla validationRules:
- Purpose: clasificación por patrones de la fórmula
- Logic Breakdown: operadores, funciones y campos referenciados
- Merge Analysis: reglas hermanas similares (score >= 30, top 3)
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import List, Optional, Sequence

from sfdocs.domain.entities.metadata import MetadataRecord

_IDENTIFIER_RE = re.compile(r"\b[A-Za-z_][A-Za-z0-9_]*__c\b|\b[A-Za-z_][A-Za-z0-9_]*\b")

FORMULA_FUNCTIONS = ("isblank", "isnull", "len", "today", "now", "text", "value", "regex")
_RESERVED_WORDS = frozenset(("true", "false", "null", "and", "or", "not") + FORMULA_FUNCTIONS)

_FUNCTION_NOTES = (
    ("ISBLANK(", "ISBLANK() - checks if field is empty or null"),
    ("ISNULL(", "ISNULL() - checks if field is null"),
    ("LEN(", "LEN() - gets the length of a text field"),
    ("TODAY()", "TODAY() - gets current date"),
    ("NOW()", "NOW() - gets current date and time"),
    ("TEXT(", "TEXT() - converts value to text format"),
    ("VALUE(", "VALUE() - converts text to number"),
    ("REGEX(", "REGEX() - validates against regular expression pattern"),
)

# (patrones, descripción); gana el primero que coincide
_PURPOSE_RULES = (
    (("isblank", "isnull"), "Ensures required fields are populated and not empty."),
    (("len(", "length"), "Validates field length constraints (minimum/maximum characters)."),
    (("regex", "contains"), "Validates data format and content patterns."),
    (("date", "datetime"), "Ensures date/time fields meet chronological requirements."),
    (("amount", "currency"), "Validates monetary values and financial constraints."),
    (("stage", "status"), "Ensures proper workflow progression and state management."),
    (("owner", "assigned"), "Validates ownership and assignment requirements."),
    (("probability", "close"), "Ensures opportunity probability and close date logic."),
)

MERGE_SCORE_THRESHOLD = 30
MAX_MERGE_CANDIDATES = 3


def _formula(rule: MetadataRecord) -> str:
    value = getattr(rule, "error_condition_formula", None) or rule.details.get(
        "errorConditionFormula"
    )
    return str(value or "")


def _message(rule: MetadataRecord) -> str:
    value = getattr(rule, "error_message", None) or rule.details.get("errorMessage")
    return str(value or "")


def _identifiers(formula: str) -> List[str]:
    return _IDENTIFIER_RE.findall(formula)


def analyze_purpose(formula: str, error_message: str = "") -> str:
    condition = (formula or "").lower()
    for patterns, description in _PURPOSE_RULES:
        if any(p in condition for p in patterns):
            return f"Purpose: {description}"
    return "Purpose: Validates business logic and data integrity requirements."


def analyze_logic(formula: str) -> str:
    if not formula:
        return "Logic Breakdown: No error condition formula available."

    lines = ["Logic Breakdown:", f"Formula: {formula}", "Components:"]
    if "||" in formula:
        lines.append("• Uses OR logic (||) - triggers if ANY condition is true")
    if "&&" in formula:
        lines.append("• Uses AND logic (&&) - triggers if ALL conditions are true")
    for token, note in _FUNCTION_NOTES:
        if token in formula:
            lines.append(f"• {note}")

    fields: List[str] = []
    for identifier in _identifiers(formula):
        if identifier.lower() in _RESERVED_WORDS or identifier in fields:
            continue
        fields.append(identifier)
    if fields:
        lines.append("Fields Referenced:")
        lines.extend(f"• {f}" for f in fields)
    return "\n".join(lines)


@dataclass(frozen=True)
class MergeCandidate:
    rule: MetadataRecord
    score: int
    reasons: tuple


def _similarity(current: MetadataRecord, other: MetadataRecord) -> Optional[MergeCandidate]:
    current_condition = _formula(current).lower()
    other_condition = _formula(other).lower()
    current_message = _message(current).lower()
    other_message = _message(other).lower()

    score = 0
    reasons: List[str] = []

    other_fields = set(_identifiers(other_condition))
    common_fields = []
    for f in _identifiers(current_condition):
        if f in other_fields and f not in common_fields:
            common_fields.append(f)
    if common_fields:
        score += 30
        reasons.append(f"Both reference fields: {', '.join(common_fields)}")

    common_funcs = [
        fn for fn in FORMULA_FUNCTIONS if fn in current_condition and fn in other_condition
    ]
    if common_funcs:
        score += 20
        reasons.append(f"Both use functions: {', '.join(common_funcs)}")

    if current_message and other_message and (
        other_message[:20] in current_message or current_message[:20] in other_message
    ):
        score += 25
        reasons.append("Similar error messages")

    if ("||" in current_condition and "||" in other_condition) or (
        "&&" in current_condition and "&&" in other_condition
    ):
        score += 15
        reasons.append("Similar logical operators")

    if score < MERGE_SCORE_THRESHOLD:
        return None
    return MergeCandidate(rule=other, score=score, reasons=tuple(reasons))


def find_merge_candidates(
    rule: MetadataRecord, siblings: Sequence[MetadataRecord]
) -> List[MergeCandidate]:
    candidates = []
    for other in siblings:
        if other.api_name == rule.api_name:
            continue
        candidate = _similarity(rule, other)
        if candidate is not None:
            candidates.append(candidate)
    # sort estable: a igual score se respeta el orden original
    candidates.sort(key=lambda c: c.score, reverse=True)
    return candidates


def analyze_merge(rule: MetadataRecord, siblings: Sequence[MetadataRecord]) -> str:
    if len(siblings) <= 1:
        return "Merge Analysis: No other rules available for merge analysis."

    candidates = find_merge_candidates(rule, siblings)
    if not candidates:
        return (
            "Merge Analysis: No potential merges found. This rule appears to be unique. "
            "No other rules share similar field references, functions, or logical patterns."
        )

    lines = [f"Merge Analysis: Found {len(candidates)} potential merge candidates:"]
    for index, candidate in enumerate(candidates[:MAX_MERGE_CANDIDATES], start=1):
        lines.append(
            f"{index}. {candidate.rule.display_name} (Score: {candidate.score}%) "
            f"API Name: {candidate.rule.api_name}"
        )
        lines.extend(f"• {reason}" for reason in candidate.reasons)
    lines.append(
        "How to Merge: Combine conditions using OR (||) or AND (&&) operators, "
        "and create a unified error message."
    )
    return "\n".join(lines)
