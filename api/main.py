"""
FastAPI application for copyright-safe prompt checking.

This module exposes the prompt check over HTTP. Check failures (rate
limiting, invalid input, unavailable catalog) are reported in the returned
CheckResult rather than as error status codes.
"""

import asyncio
from functools import lru_cache

from fastapi import Depends, FastAPI, Request

from copyright_core.config import Settings
from copyright_core.gate import get_client_ip
from copyright_core.logger import get_logger
from copyright_core.models import CheckPromptRequest, CheckResult
from copyright_core.service import CopyrightChecker

logger = get_logger(__name__)

DISCONNECT_POLL_SECONDS = 0.5

app = FastAPI(
    title="Copyright Prompt Check API",
    description="API for screening prompts against known copyrighted terms",
    version="1.0.0"
)


@lru_cache(maxsize=1)
def get_checker() -> CopyrightChecker:
    """Build the checker once per process from environment settings."""
    return CopyrightChecker.from_settings(Settings.from_env())


async def watch_disconnect(request: Request, cancel_event: asyncio.Event, interval: float = DISCONNECT_POLL_SECONDS) -> None:
    """Set `cancel_event` once the client has gone away."""
    while not cancel_event.is_set():
        if await request.is_disconnected():
            logger.info("Client disconnected, abandoning generative rewrite")
            cancel_event.set()
            return
        await asyncio.sleep(interval)


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {"status": "ok"}


@app.post("/check", response_model=CheckResult)
async def check_prompt(
    payload: CheckPromptRequest,
    request: Request,
    checker: CopyrightChecker = Depends(get_checker),
) -> CheckResult:
    """
    Check a prompt for copyright violations and return a revised prompt.

    Args:
        payload: The prompt and reporting options.
        request: Incoming request, used to derive the rate limit key and to
            abandon the generative rewrite if the client disconnects.
        checker: Checker dependency.

    Returns:
        CheckResult: Violations, summary flags and the revision outcome.
    """
    fallback = request.client.host if request.client else "unknown"
    key = get_client_ip(request.headers, fallback=fallback)
    logger.info("Incoming prompt check", extra={"context": {"key": key}})

    cancel_event = asyncio.Event()
    watcher = asyncio.create_task(watch_disconnect(request, cancel_event))
    try:
        return await checker.check(
            payload.prompt,
            key=key,
            include_minor=payload.include_minor,
            include_positions=payload.include_positions,
            cancel_event=cancel_event,
        )
    finally:
        watcher.cancel()
