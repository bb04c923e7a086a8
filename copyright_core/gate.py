"""
Admission control for prompt checks.

A check asks the gate once, before any detection work. Two gates ship with
the package:

* AllowAllGate admits everything. Used when rate limiting is disabled.
* SlidingWindowGate keeps an in-memory sliding window counter per key
  (10 requests per 60 seconds by default). For multiple replicas, put a
  shared store behind the same `admit` contract.
"""

import time
from typing import Callable, Dict, List, Mapping, Optional, Protocol

from pydantic import BaseModel, Field

from copyright_core.config import Settings
from copyright_core.logger import get_logger

logger = get_logger(__name__)

DEFAULT_WINDOW_SECONDS = 60.0


class AdmissionDecision(BaseModel):
    """Result of asking the gate whether a request may proceed."""
    allowed: bool
    limit: Optional[int] = Field(default=None, description="Requests allowed per window.")
    remaining: Optional[int] = Field(default=None, description="Requests left in the window.")
    reset: Optional[float] = Field(default=None, description="Seconds until a slot frees up.")


class AdmissionGate(Protocol):
    async def admit(self, key: str) -> AdmissionDecision:
        ...


class AllowAllGate:
    """Admits every request."""

    async def admit(self, key: str) -> AdmissionDecision:
        logger.warning("Rate limiting not configured. Allowing request.")
        return AdmissionDecision(allowed=True)


class SlidingWindowGate:
    """
    In-memory sliding window rate limiter keyed by client identifier.

    Args:
        limit: Requests allowed per window.
        window_seconds: Window length.
        clock: Monotonic time source, injectable for tests.
    """

    def __init__(
        self,
        limit: int,
        window_seconds: float = DEFAULT_WINDOW_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.limit = limit
        self.window_seconds = window_seconds
        self.clock = clock
        self._request_log: Dict[str, List[float]] = {}
        self._last_sweep = clock()

    def _cleanup_old_entries(self, key: str, now: float) -> None:
        """Remove request timestamps older than the window, and the key once it is empty."""
        cutoff = now - self.window_seconds
        recent = [ts for ts in self._request_log.get(key, []) if ts > cutoff]
        if recent:
            self._request_log[key] = recent
        else:
            self._request_log.pop(key, None)

    def _sweep(self, now: float) -> None:
        # Keys are client controlled; drop idle ones at most once per window
        if now - self._last_sweep < self.window_seconds:
            return
        self._last_sweep = now
        for key in list(self._request_log):
            self._cleanup_old_entries(key, now)

    async def admit(self, key: str) -> AdmissionDecision:
        now = self.clock()
        self._sweep(now)
        self._cleanup_old_entries(key, now)
        log = self._request_log.get(key, [])

        if len(log) >= self.limit:
            reset = max(0.0, log[0] + self.window_seconds - now) if log else self.window_seconds
            logger.warning(f"[RateLimit] Client {key} exceeded {self.limit}/{self.window_seconds:g}s")
            return AdmissionDecision(allowed=False, limit=self.limit, remaining=0, reset=reset)

        log.append(now)
        self._request_log[key] = log
        return AdmissionDecision(
            allowed=True,
            limit=self.limit,
            remaining=self.limit - len(log),
            reset=self.window_seconds,
        )


def gate_from_settings(settings: Settings) -> AdmissionGate:
    """Sliding window gate, or AllowAllGate when the limit is 0."""
    if settings.rate_limit_per_minute <= 0:
        return AllowAllGate()
    return SlidingWindowGate(limit=settings.rate_limit_per_minute)


def get_client_ip(headers: Mapping[str, str], fallback: str = "unknown") -> str:
    """
    Best-effort client identifier from proxy headers.

    Tries `x-forwarded-for` (first hop), then `x-real-ip`.
    """
    forwarded = headers.get("x-forwarded-for")
    if forwarded:
        first = forwarded.split(",")[0].strip()
        if first:
            return first

    real_ip = headers.get("x-real-ip")
    if real_ip and real_ip.strip():
        return real_ip.strip()

    return fallback
