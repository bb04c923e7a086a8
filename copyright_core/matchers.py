"""
Pattern matchers for prompt screening.

Two strategies are combined by the detection engine:

* Exact matching: case-insensitive substring containment of each exact
  catalog literal in the prompt.
* Fuzzy matching: the prompt is tokenized into significant words and sent
  to the catalog's indexed text search as a disjunctive (OR) query.
"""

import asyncio
import re
import unicodedata
from dataclasses import dataclass, field
from typing import Iterable, List, Optional

from copyright_core.catalog import PatternCatalog
from copyright_core.logger import get_logger, warning, snippet
from copyright_core.models import Pattern, PatternType, TextSpan, Violation

logger = get_logger(__name__)

# Shorter tokens carry no signal for the index search
MIN_TOKEN_LENGTH = 3
QUERY_SEPARATOR = " | "

_NON_WORD = re.compile(r"[^\w\s]")


def tokenize(text: str) -> List[str]:
    """
    Split text into significant, lower-cased search tokens.

    The text is NFC-normalized first so decomposed accents stay inside their
    word. Punctuation is replaced by a space (so "spider-man" yields "spider"
    and "man"), the text is split on whitespace and tokens of two characters or
    fewer are discarded.

    Args:
        text: Free text, e.g. a user prompt.

    Returns:
        Tokens in order of appearance, duplicates preserved.
    """
    normalized = unicodedata.normalize("NFC", text)
    cleaned = _NON_WORD.sub(" ", normalized.lower())
    return [token for token in cleaned.split() if len(token) >= MIN_TOKEN_LENGTH]


def build_search_query(text: str) -> Optional[str]:
    """
    Build the OR query for the indexed text search.

    Returns:
        Tokens joined by " | ", or None when no significant token remains.
    """
    tokens = tokenize(text)
    if not tokens:
        return None
    return QUERY_SEPARATOR.join(tokens)


def literal_regex(literal: str) -> "re.Pattern[str]":
    """
    Case-insensitive matcher for a catalog literal.

    Detection, positions and substitution all go through this, so a term
    reported as found is always one that can be located and replaced.
    """
    return re.compile(re.escape(literal), flags=re.IGNORECASE)


def find_position(prompt: str, literal: str) -> Optional[TextSpan]:
    """Span of the first case-insensitive occurrence of `literal`, if any."""
    match = literal_regex(literal).search(prompt)
    if match is None:
        return None
    return TextSpan(start=match.start(), end=match.end())


class ExactMatcher:
    """Case-insensitive substring matching over exact-type patterns."""

    def find(
        self,
        prompt: str,
        patterns: Iterable[Pattern],
        include_positions: bool = False,
    ) -> List[Violation]:
        """
        Find every active exact pattern contained in the prompt.

        Violations are emitted in catalog iteration order and carry the
        catalog's literal, not the prompt's casing.

        Args:
            prompt: The user prompt.
            patterns: Materialized exact-type patterns.
            include_positions: Attach the first occurrence span.

        Returns:
            One violation per matching pattern. Empty for an empty catalog.
        """
        violations: List[Violation] = []

        for pattern in patterns:
            if not pattern.active or pattern.pattern_type != PatternType.EXACT:
                continue
            position = find_position(prompt, pattern.pattern)
            if position is not None:
                violations.append(Violation.from_pattern(pattern, position if include_positions else None))

        logger.debug(f"Exact matching found {len(violations)} violation(s)")
        return violations


@dataclass
class FuzzyMatchResult:
    """Fuzzy hits plus a warning when the search degraded to no results."""
    violations: List[Violation] = field(default_factory=list)
    warning: Optional[str] = None


class FuzzyMatcher:
    """
    Token-based disjunctive search against the catalog's indexed text.

    A failing or slow search never aborts a check: the matcher returns no
    violations and a warning instead.
    """

    def __init__(self, catalog: PatternCatalog, timeout: Optional[float] = None):
        self.catalog = catalog
        self.timeout = timeout

    async def find(self, prompt: str, include_positions: bool = False) -> FuzzyMatchResult:
        query = build_search_query(prompt)
        if query is None:
            logger.debug("No significant tokens in prompt, skipping fuzzy search")
            return FuzzyMatchResult()

        try:
            patterns = await asyncio.wait_for(self.catalog.search_indexed(query), timeout=self.timeout)
        except asyncio.TimeoutError:
            warning("Fuzzy search timed out", timeout=self.timeout, prompt=snippet(prompt))
            return FuzzyMatchResult(warning="Fuzzy search timed out; results are based on exact matches only.")
        except Exception as e:
            warning(
                "Fuzzy search failed",
                exception_type=type(e).__name__,
                exception_message=str(e),
                prompt=snippet(prompt),
            )
            return FuzzyMatchResult(warning="Fuzzy search unavailable; results are based on exact matches only.")

        violations = [
            Violation.from_pattern(
                pattern,
                find_position(prompt, pattern.pattern) if include_positions else None,
            )
            for pattern in patterns
            if pattern.active and pattern.pattern_type == PatternType.FUZZY
        ]
        logger.debug(f"Fuzzy search returned {len(violations)} candidate(s)")
        return FuzzyMatchResult(violations=violations)
