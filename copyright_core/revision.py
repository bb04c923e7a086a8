"""
Automatic prompt revision with a generative primary and a rule-based fallback.

The orchestrator runs a small state machine:

    ATTEMPT_GENERATIVE --success--> REVISED(llm)
    ATTEMPT_GENERATIVE --failure--> ATTEMPT_RULE_BASED
    ATTEMPT_RULE_BASED --------------> REVISED(rule-based)

Without a configured generative strategy it starts in ATTEMPT_RULE_BASED.
Rule-based substitution is total, so FAILED is only reached if it raises
unexpectedly.

An orchestrator instance belongs to a single check. Its memo table of
generative calls is dropped with it and never shared between requests.
"""

import asyncio
from enum import Enum
from typing import Dict, Optional, Protocol, Sequence, Tuple

from copyright_core.errors import RevisionFailedError
from copyright_core.logger import get_logger, info, warning, exception, snippet
from copyright_core.models import (
    NotAttempted,
    Revised,
    RevisionFailed,
    RevisionMethod,
    RevisionOutcome,
    Violation,
)
from copyright_core.substitution import substitute

logger = get_logger(__name__)

DOWNGRADE_ADVISORY = (
    "Could not generate revised prompt automatically; used rule-based replacements instead."
)

MemoKey = Tuple[str, Tuple[Tuple[str, str, str, Optional[str]], ...]]


class RewriteStrategy(Protocol):
    """A generative rewrite capability. May raise on timeout, transport error or empty output."""

    async def rewrite(self, original_prompt: str, violations: Sequence[Violation]) -> str:
        ...


class RevisionState(str, Enum):
    ATTEMPT_GENERATIVE = "attempt_generative"
    ATTEMPT_RULE_BASED = "attempt_rule_based"


def memo_key(prompt: str, violations: Sequence[Violation]) -> MemoKey:
    """Identity of a generative call: the prompt plus the violation context sent with it."""
    return (
        prompt,
        tuple((v.pattern, v.severity.value, v.explanation, v.suggestion) for v in violations),
    )


class RevisionOrchestrator:
    """
    Produces a RevisionOutcome for one check.

    Args:
        strategy: Generative rewrite strategy, or None when no credential
            is configured.
        timeout: Upper bound in seconds for one generative call.
    """

    def __init__(self, strategy: Optional[RewriteStrategy] = None, timeout: Optional[float] = None):
        self.strategy = strategy
        self.timeout = timeout
        self._memo: Dict[MemoKey, "asyncio.Future[str]"] = {}

    async def revise(
        self,
        original_prompt: str,
        violations: Sequence[Violation],
        cancel_event: Optional[asyncio.Event] = None,
    ) -> RevisionOutcome:
        """
        Revise a prompt so it no longer contains the detected violations.

        Args:
            original_prompt: The user's prompt.
            violations: Ranked violations from detection.
            cancel_event: When set during the generative call, the call is
                abandoned and the rule-based result is returned.

        Returns:
            NotAttempted for no violations, otherwise Revised (with an
            advisory if the generative rewrite was downgraded).
        """
        if not violations:
            return NotAttempted()

        state = RevisionState.ATTEMPT_GENERATIVE if self.strategy else RevisionState.ATTEMPT_RULE_BASED
        advisory: Optional[str] = None

        if state is RevisionState.ATTEMPT_GENERATIVE:
            try:
                text = await self._generate(original_prompt, violations, cancel_event)
                info("Prompt revised", method=RevisionMethod.GENERATIVE.value, violations=len(violations))
                return Revised(text=text, method=RevisionMethod.GENERATIVE)
            except RevisionFailedError as e:
                warning(
                    "Generative revision failed, falling back to rule-based",
                    reason=e.reason,
                    prompt=snippet(original_prompt),
                )
                advisory = DOWNGRADE_ADVISORY
                state = RevisionState.ATTEMPT_RULE_BASED

        # state is ATTEMPT_RULE_BASED
        try:
            text = substitute(original_prompt, violations)
        except Exception as e:
            exception("Rule-based revision failed", exc=e, prompt=snippet(original_prompt))
            return RevisionFailed(reason="Could not generate revised prompt automatically")

        info("Prompt revised", method=RevisionMethod.RULE_BASED.value, violations=len(violations))
        return Revised(text=text, method=RevisionMethod.RULE_BASED, advisory=advisory)

    async def _generate(
        self,
        prompt: str,
        violations: Sequence[Violation],
        cancel_event: Optional[asyncio.Event],
    ) -> str:
        """Run (or join) the memoized generative call for this prompt and violation set."""
        if cancel_event is not None and cancel_event.is_set():
            raise RevisionFailedError("Generative rewrite cancelled")

        key = memo_key(prompt, violations)
        call = self._memo.get(key)
        if call is None:
            call = asyncio.ensure_future(self._call_strategy(prompt, violations))
            self._memo[key] = call
        else:
            logger.debug("Reusing memoized generative rewrite")

        if cancel_event is None:
            # Cancelling the awaiting task cancels the call too
            return await call

        waiter = asyncio.ensure_future(cancel_event.wait())
        try:
            await asyncio.wait({call, waiter}, return_when=asyncio.FIRST_COMPLETED)
        except asyncio.CancelledError:
            self._abandon(key, call)
            raise
        finally:
            waiter.cancel()

        if not call.done():
            self._abandon(key, call)
            raise RevisionFailedError("Generative rewrite cancelled")
        return call.result()

    def _abandon(self, key: MemoKey, call: "asyncio.Future[str]") -> None:
        # An abandoned call is never memoized; a later attempt starts afresh
        call.cancel()
        if self._memo.get(key) is call:
            del self._memo[key]

    async def _call_strategy(self, prompt: str, violations: Sequence[Violation]) -> str:
        assert self.strategy is not None
        try:
            text = await asyncio.wait_for(
                self.strategy.rewrite(prompt, list(violations)),
                timeout=self.timeout,
            )
        except asyncio.TimeoutError as e:
            raise RevisionFailedError(f"Generative rewrite timed out after {self.timeout}s") from e
        except RevisionFailedError:
            raise
        except Exception as e:
            raise RevisionFailedError(f"Generative rewrite failed: {e}") from e

        if not isinstance(text, str) or not text.strip():
            raise RevisionFailedError("Generative rewrite returned an empty response")
        return text
