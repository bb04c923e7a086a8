"""
Error taxonomy for a prompt check.

Only RateLimitedError, InvalidInputError and CatalogUnavailableError turn a
check into a failed result. RevisionFailedError is recoverable: it downgrades
the revision to rule-based substitution and leaves an advisory behind. A
failed fuzzy search is handled inside the fuzzy matcher and never raises.
"""

from typing import Optional


class CopyrightCheckError(Exception):
    """Base class for every error raised inside the checker."""


class RateLimitedError(CopyrightCheckError):
    """The admission gate refused the request."""

    def __init__(self, key: str):
        super().__init__(f"Admission denied for key '{key}'")
        self.key = key


class InvalidInputError(CopyrightCheckError):
    """The prompt failed validation. `message` is shown to the user verbatim."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class CatalogUnavailableError(CopyrightCheckError):
    """The exact-pattern catalog could not be read."""

    def __init__(self, message: str = "Failed to check copyright patterns", cause: Optional[BaseException] = None):
        super().__init__(message)
        self.cause = cause


class RevisionFailedError(CopyrightCheckError):
    """The generative rewrite did not produce usable text."""

    def __init__(self, reason: str):
        super().__init__(reason)
        self.reason = reason
