"""
Rule-based prompt revision: literal find-and-replace of each violation.

Replacements are applied in violation order to a progressively rewritten
prompt, so a later pattern can match text inserted by an earlier
suggestion. That order dependence is intended and covered by tests.
"""

from typing import Iterable

from copyright_core.matchers import literal_regex
from copyright_core.models import Violation


def replace_literal(text: str, literal: str, replacement: str) -> str:
    """Replace every case-insensitive occurrence of `literal` with `replacement`."""
    if not literal:
        return text
    # A callable replacement keeps backslashes in suggestions literal
    return literal_regex(literal).sub(lambda _: replacement, text)


def substitute(prompt: str, violations: Iterable[Violation]) -> str:
    """
    Rewrite a prompt by substituting each violation's suggestion.

    Violations without a suggestion are skipped; they stay flagged to the
    user but are not rewritten. Never raises.

    Args:
        prompt: Original prompt.
        violations: Violations in ranked order.

    Returns:
        The rewritten prompt.
    """
    revised = prompt
    for violation in violations:
        if violation.suggestion:
            revised = replace_literal(revised, violation.pattern, violation.suggestion)
    return revised
