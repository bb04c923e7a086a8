"""
Detection engine: exact and fuzzy matching combined into one ranked result.
"""

import asyncio
from typing import List, Optional

from pydantic import BaseModel, Field

from copyright_core.aggregator import Aggregation, aggregate
from copyright_core.catalog import PatternCatalog
from copyright_core.errors import CatalogUnavailableError
from copyright_core.logger import get_logger, exception, snippet
from copyright_core.matchers import ExactMatcher, FuzzyMatcher, FuzzyMatchResult
from copyright_core.models import Pattern, PatternType

logger = get_logger(__name__)


class DetectionReport(BaseModel):
    """Aggregated detection output plus advisories from degraded matchers."""
    aggregation: Aggregation
    advisories: List[str] = Field(default_factory=list)


class DetectionEngine:
    """
    Finds, deduplicates and ranks violations in a prompt.

    The exact pattern fetch and the fuzzy search are independent and run
    concurrently. Their results are merged exact-first regardless of which
    finishes first.

    Args:
        catalog: Pattern catalog accessor for this request.
        timeout: Upper bound in seconds for each catalog call.
    """

    def __init__(self, catalog: PatternCatalog, timeout: Optional[float] = None):
        self.catalog = catalog
        self.timeout = timeout
        self.exact_matcher = ExactMatcher()
        self.fuzzy_matcher = FuzzyMatcher(catalog, timeout=timeout)

    async def _fetch_exact_patterns(self) -> List[Pattern]:
        try:
            return await asyncio.wait_for(
                self.catalog.list_active(PatternType.EXACT), timeout=self.timeout
            )
        except asyncio.TimeoutError as e:
            logger.error(f"Fetching exact patterns timed out after {self.timeout}s")
            raise CatalogUnavailableError("Timed out fetching exact patterns", cause=e) from e
        except Exception as e:
            exception("Error fetching exact patterns", exc=e)
            raise CatalogUnavailableError(cause=e) from e

    async def detect(
        self,
        prompt: str,
        include_minor: bool = True,
        include_positions: bool = False,
    ) -> DetectionReport:
        """
        Run both matchers over a prompt.

        Args:
            prompt: A validated prompt.
            include_minor: Keep minor violations in the result.
            include_positions: Attach first-occurrence spans.

        Returns:
            The aggregation and any advisory from a degraded fuzzy search.

        Raises:
            CatalogUnavailableError: If the exact patterns cannot be fetched.
        """
        exact_result, fuzzy_result = await asyncio.gather(
            self._fetch_exact_patterns(),
            self.fuzzy_matcher.find(prompt, include_positions=include_positions),
            return_exceptions=True,
        )
        if isinstance(exact_result, BaseException):
            raise exact_result
        if isinstance(fuzzy_result, asyncio.CancelledError):
            raise fuzzy_result
        if isinstance(fuzzy_result, BaseException):
            # FuzzyMatcher handles its own failures; anything left is a bug
            exception("Unexpected fuzzy matcher error", exc=fuzzy_result, prompt=snippet(prompt))
            fuzzy_result = FuzzyMatchResult(
                warning="Fuzzy search unavailable; results are based on exact matches only."
            )

        exact_hits = self.exact_matcher.find(prompt, exact_result, include_positions=include_positions)
        aggregation = aggregate(exact_hits, fuzzy_result.violations, include_minor=include_minor)

        advisories = [fuzzy_result.warning] if fuzzy_result.warning else []
        logger.info(
            f"Detection finished with {len(aggregation.violations)} violation(s)",
            extra={"context": {"exact": len(exact_hits), "fuzzy": len(fuzzy_result.violations)}},
        )
        return DetectionReport(aggregation=aggregation, advisories=advisories)
