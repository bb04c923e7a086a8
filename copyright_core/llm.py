"""
Generative prompt rewriting with Google's Gemini models.

This module configures a `google-genai` client (API key or Vertex AI) and
provides the rewrite strategy used as the primary revision method. Model,
temperature and token ceiling are taken verbatim from settings.
"""

from typing import Optional, Sequence

from google import genai
from google.api_core.exceptions import GoogleAPIError
from google.genai import errors as genai_errors
from google.genai import types

from copyright_core.config import Settings
from copyright_core.errors import RevisionFailedError
from copyright_core.logger import get_logger, snippet
from copyright_core.models import Violation

logger = get_logger(__name__)

SYSTEM_INSTRUCTION = (
    "You are a copyright-safe prompt rewriter. Your job is to rewrite image generation "
    "prompts to avoid copyright violations while preserving creative intent. Replace "
    "copyrighted terms with generic, original alternatives that capture the same essence "
    "without infringing on intellectual property."
)


def create_genai_client(settings: Settings) -> Optional[genai.Client]:
    """
    Initialize a Generative AI client from settings.

    Returns:
        A configured client, or None when no credential is configured, in
        which case revisions fall back to rule-based substitution.
    """
    if not settings.generative_configured:
        logger.warning("No Gemini credentials configured, revisions will be rule-based")
        return None

    if settings.use_vertexai:
        logger.info("Configuring Google Generative AI with Vertex AI")
        client = genai.Client(
            vertexai=True,
            project=settings.google_cloud_project,
            location=settings.google_cloud_location,
            http_options=types.HttpOptions(api_version="v1"),
        )
        logger.info(f"Successfully initialized Vertex AI client in {settings.google_cloud_location}")
        return client

    logger.info("Configuring Google Generative AI with API Key")
    client = genai.Client(
        api_key=settings.google_api_key,
        http_options=types.HttpOptions(api_version="v1"),
    )
    logger.info("Successfully initialized API Key client")
    return client


def format_violation_list(violations: Sequence[Violation]) -> str:
    """One bullet per violation: pattern, severity and explanation."""
    return "\n".join(
        f'- "{v.pattern}" ({v.severity.value}): {v.explanation}' for v in violations
    )


def build_rewrite_prompt(original_prompt: str, violations: Sequence[Violation]) -> str:
    """User message sent to the model for a rewrite."""
    return (
        f'Original prompt: "{original_prompt}"\n\n'
        f"Copyright violations detected:\n{format_violation_list(violations)}\n\n"
        "Please rewrite this prompt to be copyright-safe while maintaining the creative vision. "
        "Use generic alternatives instead of specific copyrighted characters, brands, or "
        "trademarked terms. Respond with the rewritten prompt only."
    )


class GeminiRewriteStrategy:
    """
    Rewrites prompts with a Gemini model.

    Any API error or an empty response surfaces as RevisionFailedError so
    the orchestrator can fall back to rule-based substitution.
    """

    def __init__(
        self,
        client: genai.Client,
        model: str,
        temperature: float,
        max_output_tokens: int,
    ):
        self.client = client
        self.model = model
        self.temperature = temperature
        self.max_output_tokens = max_output_tokens

    @classmethod
    def from_settings(cls, settings: Settings) -> Optional["GeminiRewriteStrategy"]:
        """Strategy built from settings, or None without credentials."""
        client = create_genai_client(settings)
        if client is None:
            return None
        return cls(
            client=client,
            model=settings.rewrite_model,
            temperature=settings.rewrite_temperature,
            max_output_tokens=settings.rewrite_max_output_tokens,
        )

    async def rewrite(self, original_prompt: str, violations: Sequence[Violation]) -> str:
        """
        Ask the model for a copyright-safe version of the prompt.

        Args:
            original_prompt: The user's prompt.
            violations: Detected violations used as rewrite context.

        Returns:
            The rewritten prompt text.

        Raises:
            RevisionFailedError: On API errors or an empty response.
        """
        config = types.GenerateContentConfig(
            system_instruction=SYSTEM_INSTRUCTION,
            temperature=self.temperature,
            max_output_tokens=self.max_output_tokens,
        )

        raw_text = None
        try:
            logger.debug(f"Rewrite request - Model: {self.model}, prompt: {snippet(original_prompt)}")
            response = await self.client.aio.models.generate_content(
                model=self.model,
                contents=build_rewrite_prompt(original_prompt, violations),
                config=config,
            )

            raw_text = getattr(response, "text", None)
            if not raw_text and response.candidates:
                try:
                    if response.candidates[0].content and response.candidates[0].content.parts:
                        raw_text = response.candidates[0].content.parts[0].text
                except (IndexError, AttributeError) as e:
                    logger.warning(f"Could not extract raw text from candidate parts: {e}")
                    raw_text = None
        except (GoogleAPIError, genai_errors.APIError) as e:
            logger.error(f"Google API error during prompt rewrite: {str(e)}")
            raise RevisionFailedError(f"Generative rewrite failed: {e}") from e

        if not isinstance(raw_text, str) or not raw_text.strip():
            logger.error("LLM returned an empty rewrite")
            raise RevisionFailedError("Generative rewrite returned an empty response")

        logger.info(f"Rewrite completed - Model: {self.model}")
        return raw_text.strip()
