"""Tests for the Ollama-backed LLM gateway."""

import asyncio
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock, patch

import httpx
import pytest

from legacylens.services.llm_gateway import LLMError, LLMGateway

API_BASE = "http://ollama.test:11434"


def tags_response(payload, status_code: int = 200) -> httpx.Response:
    return httpx.Response(
        status_code,
        json=payload,
        request=httpx.Request("GET", f"{API_BASE}/api/tags"),
    )


def mock_async_client(mock_client_cls, response=None, side_effect=None) -> AsyncMock:
    client = AsyncMock()
    client.get.return_value = response
    client.get.side_effect = side_effect
    mock_client_cls.return_value.__aenter__.return_value = client
    mock_client_cls.return_value.__aexit__.return_value = False
    return client


@pytest.fixture
def gateway():
    return LLMGateway(
        model="ollama/codellama:7b-instruct",
        api_base=API_BASE,
        timeout_seconds=0.05,
        check_timeout_seconds=0.05,
    )


class TestAvailability:
    """is_available never raises."""

    @pytest.mark.asyncio
    @patch("legacylens.services.llm_gateway.httpx.AsyncClient")
    async def test_required_model_installed(self, mock_client_cls, gateway):
        gateway.required_model_tag = "codellama"
        client = mock_async_client(
            mock_client_cls,
            tags_response({"models": [{"name": "llama3:8b"}, {"name": "codellama:7b-instruct"}]}),
        )

        assert await gateway.is_available() is True
        client.get.assert_awaited_once_with(f"{API_BASE}/api/tags")

    @pytest.mark.asyncio
    @patch("legacylens.services.llm_gateway.httpx.AsyncClient")
    async def test_required_model_missing(self, mock_client_cls, gateway):
        gateway.required_model_tag = "codellama"
        mock_async_client(mock_client_cls, tags_response({"models": [{"name": "llama3:8b"}]}))

        assert await gateway.is_available() is False

    @pytest.mark.asyncio
    @patch("legacylens.services.llm_gateway.httpx.AsyncClient")
    async def test_server_error(self, mock_client_cls, gateway):
        mock_async_client(mock_client_cls, tags_response({}, status_code=500))

        assert await gateway.is_available() is False

    @pytest.mark.asyncio
    @patch("legacylens.services.llm_gateway.httpx.AsyncClient")
    async def test_connection_refused(self, mock_client_cls, gateway):
        mock_async_client(mock_client_cls, side_effect=httpx.ConnectError("refused"))

        assert await gateway.is_available() is False

    @pytest.mark.asyncio
    async def test_disabled(self, gateway):
        with patch("legacylens.services.llm_gateway.settings") as mock_settings:
            mock_settings.llm_enabled = False
            assert await gateway.is_available() is False


class TestGenerate:
    """Completions through LiteLLM."""

    @pytest.mark.asyncio
    @patch("litellm.acompletion", new_callable=AsyncMock)
    async def test_returns_message_content(self, mock_completion, gateway):
        mock_completion.return_value = SimpleNamespace(
            choices=[SimpleNamespace(message=SimpleNamespace(content="Line 3: unchecked input"))]
        )

        answer = await gateway.generate("Scan for security issues.", "my $x = <STDIN>;")

        assert answer == "Line 3: unchecked input"
        kwargs = mock_completion.call_args.kwargs
        assert kwargs["model"] == "ollama/codellama:7b-instruct"
        assert kwargs["api_base"] == API_BASE
        prompt = kwargs["messages"][0]["content"]
        assert prompt.startswith("Scan for security issues.")
        assert "my $x = <STDIN>;" in prompt

    @pytest.mark.asyncio
    @patch("litellm.acompletion", new_callable=AsyncMock)
    async def test_empty_content(self, mock_completion, gateway):
        mock_completion.return_value = SimpleNamespace(
            choices=[SimpleNamespace(message=SimpleNamespace(content=None))]
        )

        assert await gateway.generate("p", "c") == ""

    @pytest.mark.asyncio
    @patch("litellm.acompletion", new_callable=AsyncMock)
    async def test_provider_failure(self, mock_completion, gateway):
        mock_completion.side_effect = RuntimeError("model not found")

        with pytest.raises(LLMError) as exc_info:
            await gateway.generate("p", "c")
        assert exc_info.value.service == "llm"

    @pytest.mark.asyncio
    @patch("litellm.acompletion")
    async def test_timeout(self, mock_completion, gateway):
        async def slow(**kwargs):
            await asyncio.sleep(1)

        mock_completion.side_effect = slow

        with pytest.raises(LLMError) as exc_info:
            await gateway.generate("p", "c")
        assert "timed out" in str(exc_info.value)
