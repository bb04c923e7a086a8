"""
Read-only access to the copyright pattern catalog.

The catalog lives in a Supabase table (`copyright_patterns`). Accessors
return fresh, immutable Pattern snapshots on every call; nothing is cached
across requests.

Required Environment Variables (Supabase accessor):
    SUPABASE_URL: The Supabase project URL.
    SUPABASE_KEY: The Supabase API key.

Usage:
    from copyright_core.catalog import SupabasePatternCatalog, create_supabase_client

    catalog = SupabasePatternCatalog(create_supabase_client(settings))
    exact_patterns = await catalog.list_active(PatternType.EXACT)
"""

import asyncio
from typing import Any, Iterable, List, Mapping, Optional, Protocol, Sequence

from pydantic import ValidationError
from supabase import Client, create_client

from copyright_core.config import Settings
from copyright_core.logger import get_logger, exception
from copyright_core.models import Pattern, PatternType

logger = get_logger(__name__)

PATTERNS_TABLE = "copyright_patterns"
SEARCH_COLUMN = "fts"
PATTERN_COLUMNS = "id, pattern, pattern_type, severity, category, explanation, replacement_suggestion, active"


class PatternCatalog(Protocol):
    """Contract every catalog accessor fulfils. Only active patterns are returned."""

    async def list_active(self, pattern_type: PatternType) -> List[Pattern]:
        ...

    async def search_indexed(self, query: str) -> List[Pattern]:
        ...


def create_supabase_client(settings: Settings) -> Client:
    """
    Creates a Supabase client from settings.

    Raises:
        ValueError: If the Supabase URL or key is missing.

    Returns:
        A configured Supabase client instance.
    """
    if not settings.supabase_url or not settings.supabase_key:
        error_msg = "Missing required Supabase environment variables: SUPABASE_URL, SUPABASE_KEY"
        logger.error(error_msg)
        raise ValueError(error_msg)

    client = create_client(settings.supabase_url, settings.supabase_key)
    logger.info("Successfully created Supabase client")
    return client


def parse_rows(rows: Optional[Iterable[Mapping[str, Any]]], pattern_type: PatternType) -> List[Pattern]:
    """
    Convert catalog rows into Patterns, dropping rows that fail validation.

    A malformed row (unknown severity, empty pattern, ...) is logged and
    skipped so one bad record cannot take the whole catalog down.
    """
    patterns: List[Pattern] = []
    for row in rows or []:
        try:
            patterns.append(Pattern.from_row(row, pattern_type))
        except ValidationError as e:
            exception("Skipping malformed catalog row", exc=e, row_id=row.get("id"), pattern=row.get("pattern"))
    return patterns


class SupabasePatternCatalog:
    """Pattern catalog backed by the Supabase `copyright_patterns` table."""

    def __init__(self, client: Client, table: str = PATTERNS_TABLE):
        self.client = client
        self.table = table

    def _list_active_sync(self, pattern_type: PatternType) -> List[Pattern]:
        response = (
            self.client.table(self.table)
            .select(PATTERN_COLUMNS)
            .eq("pattern_type", pattern_type.value)
            .eq("active", True)
            .execute()
        )
        return parse_rows(response.data, pattern_type)

    def _search_indexed_sync(self, query: str) -> List[Pattern]:
        response = (
            self.client.table(self.table)
            .select(PATTERN_COLUMNS)
            .text_search(SEARCH_COLUMN, query)
            .eq("pattern_type", PatternType.FUZZY.value)
            .eq("active", True)
            .execute()
        )
        return parse_rows(response.data, PatternType.FUZZY)

    async def list_active(self, pattern_type: PatternType) -> List[Pattern]:
        """
        Fetch all active patterns of one matching strategy.

        The Supabase client is synchronous, so the request runs in a worker
        thread to keep the event loop free.
        """
        patterns = await asyncio.to_thread(self._list_active_sync, pattern_type)
        logger.debug(f"Fetched {len(patterns)} active {pattern_type.value} pattern(s)")
        return patterns

    async def search_indexed(self, query: str) -> List[Pattern]:
        """Full-text search over active fuzzy patterns with a tsquery string."""
        patterns = await asyncio.to_thread(self._search_indexed_sync, query)
        logger.debug(f"Indexed search returned {len(patterns)} pattern(s)")
        return patterns


class InMemoryPatternCatalog:
    """
    Fixture-backed catalog with the same contract as the Supabase accessor.

    `search_indexed` emulates a disjunctive tsquery: a fuzzy pattern matches
    when any query term equals one of the pattern's own tokens.
    """

    def __init__(self, patterns: Sequence[Pattern]):
        self.patterns = list(patterns)

    async def list_active(self, pattern_type: PatternType) -> List[Pattern]:
        return [p for p in self.patterns if p.active and p.pattern_type == pattern_type]

    async def search_indexed(self, query: str) -> List[Pattern]:
        # Imported here to avoid a circular import with matchers
        from copyright_core.matchers import tokenize

        terms = {term.strip() for term in query.split("|") if term.strip()}
        return [
            p for p in self.patterns
            if p.active
            and p.pattern_type == PatternType.FUZZY
            and terms.intersection(tokenize(p.pattern))
        ]
