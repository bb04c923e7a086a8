"""
Merge matcher output into a ranked, deduplicated violation list.
"""

from typing import Iterable, List

from pydantic import BaseModel, Field

from copyright_core.models import Severity, Violation

ALL_CLEAR_MESSAGE = "✅ No copyright issues detected! Your prompt is safe to use."


class Aggregation(BaseModel):
    """Violations with their derived flags and summary message."""
    violations: List[Violation] = Field(default_factory=list)
    has_blocking: bool = False
    has_severe: bool = False
    has_moderate: bool = False
    has_minor: bool = False
    message: str = ALL_CLEAR_MESSAGE


def merge_violations(exact_hits: Iterable[Violation], fuzzy_hits: Iterable[Violation]) -> List[Violation]:
    """
    Combine exact and fuzzy hits, keeping the first violation per literal.

    Exact hits go in first, so an exact match wins over a fuzzy match with
    the same literal. The equality check is case-sensitive.
    """
    merged: List[Violation] = []
    seen = set()
    for violation in list(exact_hits) + list(fuzzy_hits):
        if violation.pattern in seen:
            continue
        seen.add(violation.pattern)
        merged.append(violation)
    return merged


def rank_violations(violations: Iterable[Violation]) -> List[Violation]:
    """Stable sort by severity: severe, moderate, minor."""
    return sorted(violations, key=lambda v: v.severity.rank)


def summarize(count: int, has_blocking: bool, has_moderate: bool) -> str:
    """User-facing summary. Exactly one branch applies."""
    if count == 0:
        return ALL_CLEAR_MESSAGE
    if has_blocking:
        return f"🚫 Found {count} copyright issue(s) including severe violations that must be fixed."
    if has_moderate:
        return f"⚠️ Found {count} copyright issue(s) that should be addressed."
    return f"ℹ️ Found {count} minor issue(s). Consider revising for best results."


def aggregate(
    exact_hits: Iterable[Violation],
    fuzzy_hits: Iterable[Violation],
    include_minor: bool = True,
) -> Aggregation:
    """
    Deduplicate, rank and summarize matcher output.

    Args:
        exact_hits: Exact matcher output, in catalog order.
        fuzzy_hits: Fuzzy matcher output, in search order.
        include_minor: When False, minor violations are dropped before the
            flags and message are derived.

    Returns:
        The ranked violations with presence flags and a summary message.
    """
    violations = rank_violations(merge_violations(exact_hits, fuzzy_hits))
    if not include_minor:
        violations = [v for v in violations if v.severity != Severity.MINOR]

    has_severe = any(v.severity == Severity.SEVERE for v in violations)
    has_moderate = any(v.severity == Severity.MODERATE for v in violations)
    has_minor = any(v.severity == Severity.MINOR for v in violations)

    return Aggregation(
        violations=violations,
        has_blocking=has_severe,
        has_severe=has_severe,
        has_moderate=has_moderate,
        has_minor=has_minor,
        message=summarize(len(violations), has_severe, has_moderate),
    )
