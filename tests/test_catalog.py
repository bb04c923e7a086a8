"""
Tests for the pattern catalog accessors.

The Supabase client is a MagicMock; the query builder chain returns itself
so the filters applied can be asserted.
"""

import pytest
from unittest.mock import MagicMock, patch

from copyright_core import catalog as catalog_module
from copyright_core.catalog import (
    InMemoryPatternCatalog,
    SupabasePatternCatalog,
    create_supabase_client,
    parse_rows,
)
from copyright_core.config import Settings
from copyright_core.models import PatternType, Severity

ROWS = [
    {
        "id": 1,
        "pattern": "Mickey Mouse",
        "pattern_type": "exact",
        "severity": "severe",
        "category": "character",
        "explanation": "Disney character",
        "replacement_suggestion": "a cartoon mouse",
        "active": True,
    },
    {
        "id": 2,
        "pattern": "Coca-Cola",
        "severity": "moderate",
        "category": "brand",
        "explanation": "Beverage brand",
        "replacement_suggestion": None,
    },
]


def mock_supabase(rows):
    client = MagicMock()
    query = client.table.return_value
    for method in ("select", "eq", "text_search"):
        getattr(query, method).return_value = query
    query.execute.return_value = MagicMock(data=rows)
    return client, query


class TestParseRows:

    def test_rows_become_patterns(self):
        patterns = parse_rows(ROWS, PatternType.EXACT)

        assert [p.pattern for p in patterns] == ["Mickey Mouse", "Coca-Cola"]
        assert patterns[0].id == "1"
        assert patterns[1].pattern_type == PatternType.EXACT
        assert patterns[1].active is True
        assert patterns[1].severity == Severity.MODERATE

    def test_malformed_rows_are_skipped(self):
        rows = ROWS + [
            {"id": 3, "pattern": "", "severity": "severe", "category": "character", "explanation": "x"},
            {"id": 4, "pattern": "Elsa", "severity": "catastrophic", "category": "character", "explanation": "x"},
        ]
        assert len(parse_rows(rows, PatternType.EXACT)) == 2

    def test_no_rows(self):
        assert parse_rows(None, PatternType.FUZZY) == []


class TestSupabasePatternCatalog:

    @pytest.mark.asyncio
    async def test_list_active_filters_by_type_and_active(self):
        client, query = mock_supabase(ROWS)

        patterns = await SupabasePatternCatalog(client).list_active(PatternType.EXACT)

        assert len(patterns) == 2
        client.table.assert_called_once_with("copyright_patterns")
        query.eq.assert_any_call("pattern_type", "exact")
        query.eq.assert_any_call("active", True)
        query.text_search.assert_not_called()

    @pytest.mark.asyncio
    async def test_search_indexed_uses_text_search(self):
        client, query = mock_supabase([dict(ROWS[0], pattern_type="fuzzy")])

        patterns = await SupabasePatternCatalog(client).search_indexed("mickey | mouse")

        query.text_search.assert_called_once_with("fts", "mickey | mouse")
        query.eq.assert_any_call("pattern_type", "fuzzy")
        assert patterns[0].pattern_type == PatternType.FUZZY

    @pytest.mark.asyncio
    async def test_client_errors_propagate(self):
        client, query = mock_supabase([])
        query.execute.side_effect = ConnectionError("unreachable")

        with pytest.raises(ConnectionError):
            await SupabasePatternCatalog(client).list_active(PatternType.EXACT)


class TestCreateSupabaseClient:

    def test_missing_credentials(self):
        with pytest.raises(ValueError):
            create_supabase_client(Settings(supabase_url="https://example.supabase.co"))

    def test_client_created(self):
        settings = Settings(supabase_url="https://example.supabase.co", supabase_key="key")
        with patch.object(catalog_module, "create_client") as mock_create:
            client = create_supabase_client(settings)
        mock_create.assert_called_once_with("https://example.supabase.co", "key")
        assert client is mock_create.return_value


class TestInMemoryPatternCatalog:

    @pytest.mark.asyncio
    async def test_list_active(self, catalog):
        exact = await catalog.list_active(PatternType.EXACT)
        assert [p.pattern for p in exact] == ["Mickey Mouse", "Coca-Cola", "Pixar style"]

    @pytest.mark.asyncio
    async def test_search_is_disjunctive(self, catalog):
        hits = await catalog.search_indexed("ocean | spider")
        assert [p.pattern for p in hits] == ["Spider-Man"]

    @pytest.mark.asyncio
    async def test_search_without_hits(self):
        assert await InMemoryPatternCatalog([]).search_indexed("anything") == []
