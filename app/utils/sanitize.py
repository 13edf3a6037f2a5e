"""Sanitization utilities for user input.

Every text sanitizer only ever removes characters, and the cleaning pass is
repeated until the text stops changing, so sanitizing twice gives the same
result as sanitizing once.
"""

import math
import re
from dataclasses import dataclass
from datetime import date
from typing import Any, Callable, List, Optional

from app.schemas.workout import SetDetail

SCRIPT_BLOCK_RE = re.compile(r"<script\b[^<]*(?:(?!</script>)<[^<]*)*</script>", re.IGNORECASE)
HTML_TAG_RE = re.compile(r"<[^>]*>")
SQL_KEYWORD_RE = re.compile(
    r"\b(SELECT|INSERT|UPDATE|DELETE|DROP|CREATE|ALTER|EXEC|EXECUTE)\b",
    re.IGNORECASE,
)
# Letters, numbers, whitespace and basic punctuation
TEXT_DISALLOWED_RE = re.compile(r"[^\w\s.,!?'\-\":;()]", re.ASCII)
NAME_DISALLOWED_RE = re.compile(r"[^\w\s\-']", re.ASCII)
REPEATED_PUNCTUATION_RE = re.compile(r"([.,!?'\-\":;]){3,}")

MAX_INSTRUCTIONS_LENGTH = 140
MAX_WORKOUT_NAME_LENGTH = 100
MAX_NOTES_LENGTH = 500


@dataclass(frozen=True)
class FieldPolicy:
    max_length: int
    disallowed: re.Pattern
    strip_sql: bool = False
    collapse_punctuation: bool = False
    fallback: Callable[[], Optional[str]] = lambda: None


def default_workout_name(today: Optional[date] = None) -> str:
    today = today or date.today()
    return f"Workout {today:%b} {today.day} {today.year}"


INSTRUCTIONS_POLICY = FieldPolicy(
    max_length=MAX_INSTRUCTIONS_LENGTH,
    disallowed=TEXT_DISALLOWED_RE,
    strip_sql=True,
    collapse_punctuation=True,
)
WORKOUT_NAME_POLICY = FieldPolicy(
    max_length=MAX_WORKOUT_NAME_LENGTH,
    disallowed=NAME_DISALLOWED_RE,
    fallback=default_workout_name,
)
NOTES_POLICY = FieldPolicy(
    max_length=MAX_NOTES_LENGTH,
    disallowed=TEXT_DISALLOWED_RE,
)


def _clean_once(text: str, policy: FieldPolicy) -> str:
    text = text.strip()
    text = SCRIPT_BLOCK_RE.sub("", text)
    text = HTML_TAG_RE.sub("", text)
    text = policy.disallowed.sub("", text)
    if policy.strip_sql:
        text = SQL_KEYWORD_RE.sub("", text)
    if policy.collapse_punctuation:
        text = REPEATED_PUNCTUATION_RE.sub(r"\1\1", text)
    text = text[:policy.max_length]
    return text.strip()


def sanitize_text(value: Optional[str], policy: FieldPolicy) -> Optional[str]:
    """Clean ``value`` according to ``policy``.

    Returns the policy fallback when the input is not a string or nothing is
    left after cleaning.
    """
    if not value or not isinstance(value, str):
        return policy.fallback()

    cleaned = value
    while True:
        next_pass = _clean_once(cleaned, policy)
        if next_pass == cleaned:
            break
        cleaned = next_pass

    return cleaned or policy.fallback()


def sanitize_special_instructions(value: Optional[str]) -> Optional[str]:
    """Sanitize special instructions against XSS and prompt injection."""
    return sanitize_text(value, INSTRUCTIONS_POLICY)


def sanitize_workout_name(value: Optional[str]) -> str:
    return sanitize_text(value, WORKOUT_NAME_POLICY)


def sanitize_exercise_notes(value: Optional[str]) -> Optional[str]:
    return sanitize_text(value, NOTES_POLICY)


SET_VALUE_FIELDS = ("reps", "weight_kg", "rest_seconds")

_INVALID = object()


def _to_number(value: Any) -> float:
    """Numeric value of an int, float or numeric string, else NaN."""
    if isinstance(value, bool):
        return math.nan
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, str):
        try:
            return float(value.strip())
        except ValueError:
            return math.nan
    return math.nan


def _optional_amount(value: Any):
    if value is None or value == "":
        return None
    number = _to_number(value)
    if not math.isfinite(number) or number < 0:
        return _INVALID
    return number


def sanitize_set_details(details: Any) -> List[SetDetail]:
    """Keep the usable logged sets, ordered by set number.

    Entries without a set number of at least 1, or with a negative or
    non-numeric reps, weight or rest value, are skipped. Counts are floored,
    weights rounded to two decimals, and notes cleaned like exercise notes.
    """
    if not isinstance(details, list):
        return []

    sanitized = []
    for detail in details:
        if not isinstance(detail, dict):
            continue

        set_number = _to_number(detail.get("set_number"))
        if not math.isfinite(set_number) or set_number < 1:
            continue

        amounts = {field: _optional_amount(detail.get(field)) for field in SET_VALUE_FIELDS}
        if any(amount is _INVALID for amount in amounts.values()):
            continue

        reps, weight, rest = amounts["reps"], amounts["weight_kg"], amounts["rest_seconds"]
        sanitized.append(SetDetail(
            set_number=math.floor(set_number),
            reps=math.floor(reps) if reps is not None else None,
            weight_kg=round(weight, 2) if weight is not None else None,
            rest_seconds=math.floor(rest) if rest is not None else None,
            notes=sanitize_exercise_notes(detail.get("notes")),
        ))

    sanitized.sort(key=lambda detail: detail.set_number)
    return sanitized
