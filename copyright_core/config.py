"""
Runtime configuration for the copyright checker.

Values come from the process environment. A local `.env` file is loaded
first for development; in deployed environments set the variables in the
runtime settings instead.

Environment Variables:
    SUPABASE_URL / SUPABASE_KEY: Pattern catalog store.
    GOOGLE_API_KEY: Gemini API key. Without it (and without Vertex AI
        settings) revisions are rule-based only.
    GOOGLE_GENAI_USE_VERTEXAI / GOOGLE_CLOUD_PROJECT / GOOGLE_CLOUD_LOCATION:
        Vertex AI credentials for Gemini.
    REWRITE_MODEL, REWRITE_TEMPERATURE, REWRITE_MAX_OUTPUT_TOKENS:
        Passed verbatim to the rewrite strategy.
    CATALOG_TIMEOUT_SECONDS, REWRITE_TIMEOUT_SECONDS: I/O bounds.
    MAX_PROMPT_LENGTH: Longest accepted prompt.
    RATE_LIMIT_PER_MINUTE: Admission limit per key, 0 disables it.
"""

import os
from typing import Mapping, Optional

from dotenv import load_dotenv
from pydantic import BaseModel, Field

from copyright_core.logger import get_logger

logger = get_logger(__name__)

DEFAULT_REWRITE_MODEL = "gemini-2.5-flash"
DEFAULT_REWRITE_TEMPERATURE = 0.7
DEFAULT_REWRITE_MAX_OUTPUT_TOKENS = 300
DEFAULT_CATALOG_TIMEOUT = 5.0
DEFAULT_REWRITE_TIMEOUT = 15.0
DEFAULT_MAX_PROMPT_LENGTH = 1000
DEFAULT_RATE_LIMIT = 10


class Settings(BaseModel):
    """Everything the checker reads from its environment."""

    supabase_url: Optional[str] = Field(default=None, description="Supabase project URL.")
    supabase_key: Optional[str] = Field(default=None, description="Supabase API key.")

    google_api_key: Optional[str] = Field(default=None, description="Gemini API key.")
    use_vertexai: bool = Field(default=False, description="Use Vertex AI instead of an API key.")
    google_cloud_project: Optional[str] = Field(default=None, description="Vertex AI project.")
    google_cloud_location: str = Field(default="us-central1", description="Vertex AI location.")

    rewrite_model: str = Field(default=DEFAULT_REWRITE_MODEL)
    rewrite_temperature: float = Field(default=DEFAULT_REWRITE_TEMPERATURE)
    rewrite_max_output_tokens: int = Field(default=DEFAULT_REWRITE_MAX_OUTPUT_TOKENS)

    catalog_timeout: float = Field(default=DEFAULT_CATALOG_TIMEOUT, gt=0)
    rewrite_timeout: float = Field(default=DEFAULT_REWRITE_TIMEOUT, gt=0)

    max_prompt_length: int = Field(default=DEFAULT_MAX_PROMPT_LENGTH, gt=0)
    rate_limit_per_minute: int = Field(default=DEFAULT_RATE_LIMIT, ge=0)

    @property
    def generative_configured(self) -> bool:
        """True when some Gemini credential is present."""
        if self.use_vertexai:
            return bool(self.google_cloud_project)
        return bool(self.google_api_key)

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "Settings":
        """
        Build settings from environment variables.

        Args:
            environ: Mapping to read from. Defaults to `os.environ` after
                loading a `.env` file.

        Returns:
            A populated Settings instance.
        """
        if environ is None:
            load_dotenv()
            environ = os.environ

        def _get(name: str) -> Optional[str]:
            value = environ.get(name)
            if value is None:
                return None
            value = value.strip()
            return value or None

        return cls(
            supabase_url=_get("SUPABASE_URL"),
            supabase_key=_get("SUPABASE_KEY"),
            google_api_key=_get("GOOGLE_API_KEY"),
            use_vertexai=(_get("GOOGLE_GENAI_USE_VERTEXAI") or "").lower() == "true",
            google_cloud_project=_get("GOOGLE_CLOUD_PROJECT"),
            google_cloud_location=_get("GOOGLE_CLOUD_LOCATION") or "us-central1",
            rewrite_model=_get("REWRITE_MODEL") or DEFAULT_REWRITE_MODEL,
            rewrite_temperature=_number(environ, "REWRITE_TEMPERATURE", DEFAULT_REWRITE_TEMPERATURE, float),
            rewrite_max_output_tokens=_number(environ, "REWRITE_MAX_OUTPUT_TOKENS", DEFAULT_REWRITE_MAX_OUTPUT_TOKENS, int),
            catalog_timeout=_number(environ, "CATALOG_TIMEOUT_SECONDS", DEFAULT_CATALOG_TIMEOUT, float, positive=True),
            rewrite_timeout=_number(environ, "REWRITE_TIMEOUT_SECONDS", DEFAULT_REWRITE_TIMEOUT, float, positive=True),
            max_prompt_length=_number(environ, "MAX_PROMPT_LENGTH", DEFAULT_MAX_PROMPT_LENGTH, int, positive=True),
            rate_limit_per_minute=_number(environ, "RATE_LIMIT_PER_MINUTE", DEFAULT_RATE_LIMIT, int),
        )


def _number(environ: Mapping[str, str], name: str, default, cast, positive: bool = False):
    """Parse a numeric variable, falling back to the default when it is malformed."""
    raw = environ.get(name)
    if raw is None or not raw.strip():
        return default
    try:
        value = cast(raw.strip())
    except ValueError:
        logger.warning(f"Invalid value for {name}: {raw!r}, using default {default}")
        return default
    if value < 0 or (positive and value == 0):
        logger.warning(f"Out of range value for {name}: {raw!r}, using default {default}")
        return default
    return value
