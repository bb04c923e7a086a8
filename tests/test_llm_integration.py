"""
Tests for the Gemini rewrite strategy.

The genai client is replaced by a MagicMock whose async
`aio.models.generate_content` is an AsyncMock, so no network calls are made.
"""

import pytest
from unittest.mock import patch, MagicMock, AsyncMock

from google.api_core.exceptions import GoogleAPIError

from copyright_core import llm
from copyright_core.config import Settings
from copyright_core.errors import RevisionFailedError
from copyright_core.llm import (
    GeminiRewriteStrategy,
    build_rewrite_prompt,
    create_genai_client,
    format_violation_list,
)
from copyright_core.models import Category, Severity, Violation


class TestGeminiRewriteStrategy:
    """Tests for prompt rewriting with a mocked Gemini client."""

    @pytest.fixture
    def violations(self):
        return [
            Violation(
                pattern="Mickey Mouse",
                severity=Severity.SEVERE,
                category=Category.CHARACTER,
                explanation="Trademarked Disney character",
                suggestion="a cheerful cartoon mouse",
            ),
            Violation(
                pattern="Coca-Cola",
                severity=Severity.MODERATE,
                category=Category.BRAND,
                explanation="Registered beverage brand",
            ),
        ]

    @pytest.fixture
    def mock_client(self):
        client = MagicMock()
        client.aio.models.generate_content = AsyncMock()
        return client

    def strategy(self, client):
        return GeminiRewriteStrategy(client, model="gemini-2.5-flash", temperature=0.7, max_output_tokens=300)

    @pytest.mark.asyncio
    async def test_rewrite_success(self, mock_client, violations):
        """The response text is returned stripped."""
        mock_response = MagicMock()
        mock_response.text = "  A cheerful cartoon mouse drinking a cola  \n"
        mock_response.candidates = []
        mock_client.aio.models.generate_content.return_value = mock_response

        result = await self.strategy(mock_client).rewrite("Mickey Mouse drinking Coca-Cola", violations)

        assert result == "A cheerful cartoon mouse drinking a cola"
        mock_client.aio.models.generate_content.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_rewrite_sends_model_settings(self, mock_client, violations):
        """Model, temperature and token ceiling are passed verbatim."""
        mock_response = MagicMock()
        mock_response.text = "rewritten"
        mock_client.aio.models.generate_content.return_value = mock_response

        await self.strategy(mock_client).rewrite("Mickey Mouse drinking Coca-Cola", violations)

        kwargs = mock_client.aio.models.generate_content.call_args.kwargs
        assert kwargs["model"] == "gemini-2.5-flash"
        assert kwargs["config"].temperature == 0.7
        assert kwargs["config"].max_output_tokens == 300
        assert '"Mickey Mouse drinking Coca-Cola"' in kwargs["contents"]
        assert '- "Coca-Cola" (moderate): Registered beverage brand' in kwargs["contents"]

    @pytest.mark.asyncio
    async def test_rewrite_falls_back_to_candidate_parts(self, mock_client, violations):
        """Text is read from the first candidate part when `.text` is empty."""
        mock_part = MagicMock()
        mock_part.text = "From candidate part"
        mock_candidate = MagicMock()
        mock_candidate.content.parts = [mock_part]
        mock_response = MagicMock()
        mock_response.text = None
        mock_response.candidates = [mock_candidate]
        mock_client.aio.models.generate_content.return_value = mock_response

        result = await self.strategy(mock_client).rewrite("Mickey Mouse", violations)

        assert result == "From candidate part"

    @pytest.mark.asyncio
    async def test_rewrite_empty_response(self, mock_client, violations):
        """An empty response is a failed revision."""
        mock_response = MagicMock()
        mock_response.text = ""
        mock_response.candidates = []
        mock_client.aio.models.generate_content.return_value = mock_response

        with pytest.raises(RevisionFailedError) as exc_info:
            await self.strategy(mock_client).rewrite("Mickey Mouse", violations)

        assert "empty" in exc_info.value.reason

    @pytest.mark.asyncio
    async def test_rewrite_api_error(self, mock_client, violations):
        """Google API errors are reported as RevisionFailedError."""
        mock_client.aio.models.generate_content.side_effect = GoogleAPIError("API Error")

        with pytest.raises(RevisionFailedError) as exc_info:
            await self.strategy(mock_client).rewrite("Mickey Mouse", violations)

        assert "API Error" in str(exc_info.value)


class TestClientConfiguration:

    def test_no_credentials_means_no_strategy(self):
        assert create_genai_client(Settings()) is None
        assert GeminiRewriteStrategy.from_settings(Settings()) is None

    def test_api_key_client(self):
        settings = Settings(google_api_key="test-key", rewrite_model="gemini-test", rewrite_temperature=0.2)
        with patch.object(llm.genai, "Client") as mock_client_cls:
            strategy = GeminiRewriteStrategy.from_settings(settings)

        assert strategy.client is mock_client_cls.return_value
        assert strategy.model == "gemini-test"
        assert strategy.temperature == 0.2
        assert mock_client_cls.call_args.kwargs["api_key"] == "test-key"

    def test_vertex_client(self):
        settings = Settings(use_vertexai=True, google_cloud_project="my-project", google_cloud_location="europe-west1")
        with patch.object(llm.genai, "Client") as mock_client_cls:
            create_genai_client(settings)

        kwargs = mock_client_cls.call_args.kwargs
        assert kwargs["vertexai"] is True
        assert kwargs["project"] == "my-project"
        assert kwargs["location"] == "europe-west1"


def test_prompt_formatting():
    violation = Violation(
        pattern="Spider-Man",
        severity=Severity.SEVERE,
        category=Category.CHARACTER,
        explanation="Marvel character",
    )
    assert format_violation_list([violation]) == '- "Spider-Man" (severe): Marvel character'
    prompt = build_rewrite_prompt("Spider-Man in Paris", [violation])
    assert prompt.startswith('Original prompt: "Spider-Man in Paris"')
