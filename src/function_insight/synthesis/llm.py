"""LLM service adapters.

The synthesis client depends only on ``LLMService.complete``. Adapters map
provider failures onto TransientLLMError (retry) or PermanentLLMError (give
up immediately).
"""

import os
from typing import Optional, Protocol

from openai import (
    APIConnectionError,
    APIStatusError,
    OpenAI,
    OpenAIError,
    RateLimitError,
)

from ..config import AnalysisConfig
from ..exceptions import PermanentLLMError, TransientLLMError
from ..logging_config import get_logger

logger = get_logger(__name__)

SYSTEM_PROMPT = (
    "You are a senior engineer reviewing a single function. "
    "Answer with one JSON object and nothing else."
)


class LLMService(Protocol):
    def complete(self, prompt: str) -> str:
        """Return the model's reply to ``prompt``.

        Raises:
            TransientLLMError: Retryable failure
            PermanentLLMError: Non-retryable failure
        """
        ...


class OpenAIService:
    """LLMService backed by any OpenAI-compatible chat completions API."""

    def __init__(
        self,
        api_key: str,
        model: str,
        base_url: Optional[str] = None,
        timeout: float = 60.0,
        temperature: float = 0.2,
    ):
        # Retries are owned by the synthesis client
        self.client = OpenAI(api_key=api_key, base_url=base_url, timeout=timeout, max_retries=0)
        self.model = model
        self.temperature = temperature

    def complete(self, prompt: str) -> str:
        messages = [
            {"role": "system", "content": SYSTEM_PROMPT},
            {"role": "user", "content": prompt},
        ]
        try:
            response = self.client.chat.completions.create(
                model=self.model,
                messages=messages,
                temperature=self.temperature,
            )
        except (APIConnectionError, RateLimitError) as e:
            # APITimeoutError is an APIConnectionError
            raise TransientLLMError(str(e), getattr(e, "status_code", None))
        except APIStatusError as e:
            if e.status_code >= 500:
                raise TransientLLMError(str(e), e.status_code)
            raise PermanentLLMError(str(e), e.status_code)
        except OpenAIError as e:
            raise PermanentLLMError(str(e))

        if not response.choices:
            return ""
        return response.choices[0].message.content or ""


class UnconfiguredLLMService:
    """Stand-in used when no API key is available: every call fails permanently."""

    def __init__(self, reason: str):
        self.reason = reason

    def complete(self, prompt: str) -> str:
        raise PermanentLLMError(self.reason)


def create_llm_service(config: AnalysisConfig) -> LLMService:
    """Build the LLM service described by ``config``.

    The API key is read from the environment variable named by
    ``config.llm_api_key_env``. Without a key, synthesis degrades to a
    partial result rather than failing the analysis.
    """
    api_key = os.environ.get(config.llm_api_key_env)
    if not api_key:
        logger.warning(
            f"{config.llm_api_key_env} is not set; narrative synthesis will be unavailable"
        )
        return UnconfiguredLLMService(f"{config.llm_api_key_env} is not set")
    return OpenAIService(
        api_key=api_key,
        model=config.llm_model,
        base_url=config.llm_base_url,
        timeout=config.llm_timeout_seconds,
        temperature=config.llm_temperature,
    )
