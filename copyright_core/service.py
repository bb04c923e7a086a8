"""
The copyright check: admission, validation, detection and revision.

`CopyrightChecker.check()` is the one operation the package exposes. It
never raises for a failed check; every failure is reported in the returned
CheckResult.

Usage:
    checker = CopyrightChecker.from_settings(Settings.from_env())
    result = await checker.check("Mickey Mouse riding a bicycle")
"""

import asyncio
from datetime import datetime, timezone
from typing import Callable, List, Optional

from copyright_core.catalog import PatternCatalog, SupabasePatternCatalog, create_supabase_client
from copyright_core.config import Settings
from copyright_core.detection import DetectionEngine
from copyright_core.errors import (
    CatalogUnavailableError,
    InvalidInputError,
    RateLimitedError,
)
from copyright_core.gate import AdmissionGate, AllowAllGate, gate_from_settings
from copyright_core.llm import GeminiRewriteStrategy
from copyright_core.logger import get_logger, info, warning, error, exception, snippet
from copyright_core.models import CheckResult, CheckStatus, NotAttempted
from copyright_core.revision import RevisionOrchestrator, RewriteStrategy
from copyright_core.validation import validate_prompt

logger = get_logger(__name__)

RATE_LIMITED_MESSAGE = "Rate limit exceeded. Please try again in a few moments."
CHECK_FAILED_MESSAGE = "An error occurred while checking your prompt. Please try again."

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class CopyrightChecker:
    """
    Screens prompts against the pattern catalog and revises them.

    Collaborators are injected so each can be replaced in tests. Nothing
    request-scoped lives on the checker itself: every call builds its own
    detection engine and revision orchestrator.

    Args:
        catalog: Pattern catalog accessor.
        gate: Admission gate, consulted once per check.
        strategy: Generative rewrite strategy, or None for rule-based only.
        settings: Timeouts and validation limits.
        clock: Source of the result timestamp.
    """

    def __init__(
        self,
        catalog: PatternCatalog,
        gate: Optional[AdmissionGate] = None,
        strategy: Optional[RewriteStrategy] = None,
        settings: Optional[Settings] = None,
        clock: Clock = utc_now,
    ):
        self.catalog = catalog
        self.gate = gate or AllowAllGate()
        self.strategy = strategy
        self.settings = settings or Settings()
        self.clock = clock

    @classmethod
    def from_settings(cls, settings: Settings) -> "CopyrightChecker":
        """Wire the Supabase catalog, the configured gate and Gemini (if any)."""
        return cls(
            catalog=SupabasePatternCatalog(create_supabase_client(settings)),
            gate=gate_from_settings(settings),
            strategy=GeminiRewriteStrategy.from_settings(settings),
            settings=settings,
        )

    def _timestamp(self) -> str:
        return self.clock().isoformat()

    def _failure(self, status: CheckStatus, message: str) -> CheckResult:
        return CheckResult(
            succeeded=False,
            status=status,
            message=message,
            checked_at=self._timestamp(),
        )

    async def _admit(self, key: str) -> None:
        try:
            decision = await self.gate.admit(key)
        except Exception as e:
            # Gate errors must not lock users out
            exception("Error checking rate limit, allowing request", exc=e, key=key)
            return
        if not decision.allowed:
            raise RateLimitedError(key)

    async def check(
        self,
        prompt: Optional[str],
        key: str = "global",
        include_minor: bool = True,
        include_positions: bool = False,
        cancel_event: Optional[asyncio.Event] = None,
    ) -> CheckResult:
        """
        Check a prompt for copyright violations and revise it if needed.

        Args:
            prompt: Raw prompt text from the user.
            key: Admission key, e.g. the client IP.
            include_minor: Report minor violations.
            include_positions: Attach first-occurrence spans to violations.
            cancel_event: Set to abandon the generative rewrite; the
                rule-based revision is still returned.

        Returns:
            The check result. `succeeded` is False only when the request was
            rate limited, the prompt was invalid or the catalog was unavailable.
        """
        try:
            await self._admit(key)
        except RateLimitedError:
            warning("Prompt check rate limited", key=key)
            return self._failure(CheckStatus.RATE_LIMITED, RATE_LIMITED_MESSAGE)

        try:
            prompt = validate_prompt(prompt, max_length=self.settings.max_prompt_length)
        except InvalidInputError as e:
            info("Prompt rejected by validation", reason=e.message)
            return self._failure(CheckStatus.INVALID_INPUT, e.message)

        engine = DetectionEngine(self.catalog, timeout=self.settings.catalog_timeout)
        try:
            report = await engine.detect(
                prompt,
                include_minor=include_minor,
                include_positions=include_positions,
            )
        except CatalogUnavailableError as e:
            error("Pattern catalog unavailable", reason=str(e), prompt=snippet(prompt))
            return self._failure(CheckStatus.CATALOG_UNAVAILABLE, CHECK_FAILED_MESSAGE)
        except Exception as e:
            exception("Error checking prompt", exc=e, prompt=snippet(prompt))
            return self._failure(CheckStatus.CATALOG_UNAVAILABLE, CHECK_FAILED_MESSAGE)

        aggregation = report.aggregation
        advisories: List[str] = list(report.advisories)

        revision = NotAttempted()
        if aggregation.violations:
            orchestrator = RevisionOrchestrator(self.strategy, timeout=self.settings.rewrite_timeout)
            revision = await orchestrator.revise(prompt, aggregation.violations, cancel_event=cancel_event)
            advisory = getattr(revision, "advisory", None) or getattr(revision, "reason", None)
            if advisory:
                advisories.append(advisory)

        return CheckResult(
            succeeded=True,
            status=CheckStatus.OK,
            violations=aggregation.violations,
            has_blocking=aggregation.has_blocking,
            has_severe=aggregation.has_severe,
            has_moderate=aggregation.has_moderate,
            has_minor=aggregation.has_minor,
            message=aggregation.message,
            checked_at=self._timestamp(),
            revision=revision,
            advisories=advisories,
        )

    def check_sync(self, prompt: Optional[str], **kwargs) -> CheckResult:
        """Blocking wrapper around `check()` for callers without an event loop."""
        return asyncio.run(self.check(prompt, **kwargs))
