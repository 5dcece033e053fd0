"""Outcome label matching shared by placement, settlement and odds lookup.

Labels are compared after normalization: trimmed, case-folded and with internal
whitespace collapsed, so "  Manchester   united " matches "Manchester United".
"""

import re

_WHITESPACE = re.compile(r"\s+")


def normalize_outcome(value: str) -> str:
    return _WHITESPACE.sub(" ", value.strip()).lower()


def match_outcome_exact(value: str, outcomes: list[str]) -> str | None:
    """Return the canonical label equal to ``value`` after normalization."""
    wanted = normalize_outcome(value)
    if not wanted:
        return None
    for outcome in outcomes:
        if normalize_outcome(outcome) == wanted:
            return outcome
    return None


def match_outcome_fuzzy(value: str, outcomes: list[str]) -> str | None:
    """Substring match in either direction; first label in declared order wins."""
    wanted = normalize_outcome(value)
    if not wanted:
        return None
    for outcome in outcomes:
        label = normalize_outcome(outcome)
        if label and (wanted in label or label in wanted):
            return outcome
    return None


def match_outcome_by_name(value: str, outcomes: list[str]) -> tuple[str | None, bool]:
    """Exact match first, then the substring fallback.

    Returns ``(label, used_fallback)``; ``(None, False)`` when nothing matches.
    """
    exact = match_outcome_exact(value, outcomes)
    if exact is not None:
        return exact, False
    fuzzy = match_outcome_fuzzy(value, outcomes)
    return fuzzy, fuzzy is not None
