"""LLM Gateway - local Ollama models through LiteLLM.

The gateway is the single AI client used by the analysis engine and the
suggestion generator:
- generate(prompt, content): one completion for a prompt about a piece of code
- is_available(): liveness check against the Ollama tag listing

Both calls are bounded by timeouts; a timeout surfaces as LLMError.

Note: LiteLLM is imported lazily to avoid fork-safety issues with Celery prefork pool.
"""

import asyncio
import logging
import os
from typing import Protocol

import httpx

from legacylens.core.config import settings
from legacylens.core.exceptions import ExternalServiceError

logger = logging.getLogger(__name__)

# Module-level flag to track if litellm is initialized
_litellm_initialized = False


def _ensure_litellm():
    """Lazy initialize LiteLLM on first use."""
    global _litellm_initialized
    if _litellm_initialized:
        return

    import litellm

    # Use environment variable instead of deprecated set_verbose
    if settings.debug:
        os.environ["LITELLM_LOG"] = "DEBUG"

    litellm.drop_params = True  # Drop unsupported params instead of error

    # Disable LiteLLM's internal logging callbacks to prevent LoggingWorker timeout errors
    litellm.success_callback = []
    litellm.failure_callback = []
    litellm._async_success_callback = []
    litellm._async_failure_callback = []

    _litellm_initialized = True
    logger.debug("LiteLLM initialized")


class LLMError(ExternalServiceError):
    """LLM Gateway error."""

    def __init__(self, message: str):
        super().__init__("llm", message)


class AIClient(Protocol):
    """What the analysis engine needs from a generative model."""

    async def generate(self, prompt: str, content: str) -> str: ...

    async def is_available(self) -> bool: ...


class LLMGateway:
    """
    AI client backed by a local Ollama server.

    Model naming follows LiteLLM's convention, e.g. ``ollama/codellama:7b-instruct``.
    """

    CODE_PROMPT_TEMPLATE = """{prompt}

Code to analyze:
```
{content}
```

Please provide specific, actionable suggestions for improvement."""

    def __init__(
        self,
        model: str | None = None,
        api_base: str | None = None,
        timeout_seconds: float | None = None,
        check_timeout_seconds: float | None = None,
    ):
        self.model = model or settings.llm_model
        self.api_base = (api_base or settings.ollama_api_url).rstrip("/")
        self.timeout_seconds = timeout_seconds or settings.llm_timeout_seconds
        self.check_timeout_seconds = check_timeout_seconds or settings.llm_check_timeout_seconds
        self.required_model_tag = settings.llm_required_model_tag

    async def generate(self, prompt: str, content: str) -> str:
        """
        Generate a completion for a prompt about a piece of code.

        Args:
            prompt: Instructions for the model
            content: Source code appended under a "Code to analyze" fence

        Returns:
            The model's response text (may be empty)

        Raises:
            LLMError: On timeout or any provider failure
        """
        _ensure_litellm()
        from litellm import acompletion

        full_prompt = self.CODE_PROMPT_TEMPLATE.format(prompt=prompt, content=content)

        try:
            response = await asyncio.wait_for(
                acompletion(
                    model=self.model,
                    messages=[{"role": "user", "content": full_prompt}],
                    api_base=self.api_base,
                    temperature=settings.llm_temperature,
                    top_p=settings.llm_top_p,
                    timeout=self.timeout_seconds,
                ),
                timeout=self.timeout_seconds,
            )
        except TimeoutError:
            raise LLMError(f"Completion timed out after {self.timeout_seconds}s")
        except Exception as e:
            logger.error(f"LLM completion failed: {e}")
            raise LLMError(f"Completion failed: {str(e)}")

        return response.choices[0].message.content or ""

    async def is_available(self) -> bool:
        """Check that Ollama answers and has the required model installed.

        Never raises; any failure reads as unavailable.
        """
        if not settings.llm_enabled:
            return False

        try:
            async with httpx.AsyncClient(timeout=self.check_timeout_seconds) as client:
                response = await asyncio.wait_for(
                    client.get(f"{self.api_base}/api/tags"),
                    timeout=self.check_timeout_seconds,
                )
                response.raise_for_status()
                payload = response.json()
        except (httpx.HTTPError, TimeoutError, ValueError) as e:
            logger.warning(f"LLM availability check failed: {e}")
            return False

        models = payload.get("models", []) if isinstance(payload, dict) else []
        available = any(
            self.required_model_tag in str(m.get("name", "")) for m in models if isinstance(m, dict)
        )
        if not available:
            logger.warning(
                f"LLM availability check: no model matching '{self.required_model_tag}' installed at {self.api_base}"
            )
        return available


# Singleton instance
_llm_gateway: LLMGateway | None = None


def get_llm_gateway() -> LLMGateway:
    """Get or create LLM Gateway singleton."""
    global _llm_gateway
    if _llm_gateway is None:
        _llm_gateway = LLMGateway()
    return _llm_gateway
