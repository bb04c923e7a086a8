"""
Shared fixtures: a small pattern catalog and a checker wired to it.
"""

from datetime import datetime, timezone
from unittest.mock import AsyncMock, MagicMock

import pytest

from copyright_core.catalog import InMemoryPatternCatalog
from copyright_core.config import Settings
from copyright_core.gate import AllowAllGate
from copyright_core.models import Category, Pattern, PatternType, Severity
from copyright_core.service import CopyrightChecker

FIXED_NOW = datetime(2024, 1, 1, tzinfo=timezone.utc)


def make_pattern(pattern, pattern_type=PatternType.EXACT, severity=Severity.SEVERE,
                 category=Category.CHARACTER, suggestion=None, active=True, explanation=None):
    return Pattern(
        pattern=pattern,
        pattern_type=pattern_type,
        severity=severity,
        category=category,
        explanation=explanation or f"{pattern} is protected",
        replacement_suggestion=suggestion,
        active=active,
    )


@pytest.fixture
def patterns():
    """Catalog fixture covering every severity and both matching strategies."""
    return [
        make_pattern("Mickey Mouse", suggestion="a cheerful cartoon mouse",
                     explanation="Mickey Mouse is a trademarked Disney character"),
        make_pattern("Coca-Cola", severity=Severity.MODERATE, category=Category.BRAND,
                     suggestion="a cola soft drink"),
        make_pattern("Pixar style", severity=Severity.MINOR, category=Category.STYLE,
                     suggestion="3D animated style"),
        make_pattern("Darth Vader", suggestion="a masked villain", active=False),
        make_pattern("Spider-Man", pattern_type=PatternType.FUZZY,
                     suggestion="a wall-crawling superhero"),
        # Same literal as the exact pattern; must never appear twice
        make_pattern("Mickey Mouse", pattern_type=PatternType.FUZZY, severity=Severity.MINOR,
                     explanation="Fuzzy duplicate"),
    ]


@pytest.fixture
def catalog(patterns):
    return InMemoryPatternCatalog(patterns)


@pytest.fixture
def settings():
    return Settings()


@pytest.fixture
def fixed_clock():
    return lambda: FIXED_NOW


@pytest.fixture
def checker(catalog, settings, fixed_clock):
    """Checker with no generative strategy and no rate limiting."""
    return CopyrightChecker(
        catalog=catalog,
        gate=AllowAllGate(),
        strategy=None,
        settings=settings,
        clock=fixed_clock,
    )


@pytest.fixture
def mock_strategy():
    """Generative strategy whose rewrite is an AsyncMock."""
    strategy = MagicMock()
    strategy.rewrite = AsyncMock(return_value="A cheerful cartoon mouse riding a bicycle")
    return strategy


@pytest.fixture(name="make_pattern")
def make_pattern_fixture():
    """Factory for one-off patterns."""
    return make_pattern
