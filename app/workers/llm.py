from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Optional

from pydantic_ai import Agent
from pydantic_ai.models import Model
from pydantic_ai.models.openai import OpenAIChatModel
from pydantic_ai.providers.litellm import LiteLLMProvider

from app.config import get_settings
from app.infra.logging_config import get_logger

logger = get_logger("llm")

SUMMARY_INSTRUCTIONS = (
    "You analyze chat transcripts. Answer with a single JSON object and no "
    "surrounding prose."
)


@dataclass
class SummaryCompletion:
    """Raw provider output plus the metadata recorded on the summary."""

    text: str
    model_name: str
    tokens_used: int = 0


class LLMRunner:
    """One-shot completion against the configured provider, bounded by a timeout."""

    def __init__(
        self,
        model_name: str,
        api_key: Optional[str] = None,
        api_base: Optional[str] = None,
        timeout_seconds: float = 60,
        model: Optional[Model] = None,
    ) -> None:
        if model is None:
            provider = LiteLLMProvider(api_key=api_key, api_base=api_base)
            model = OpenAIChatModel(model_name, provider=provider)
        logger.info("Initializing LLM runner with model %s", model_name)
        self.model_name = model_name
        self._timeout_seconds = timeout_seconds
        self._agent = Agent(model, instructions=SUMMARY_INSTRUCTIONS)

    async def complete(self, prompt: str) -> SummaryCompletion:
        """
        Run the prompt exactly once.

        Raises:
            asyncio.TimeoutError: when the provider does not answer in time.
        """
        result = await asyncio.wait_for(
            self._agent.run(prompt), timeout=self._timeout_seconds
        )
        usage = result.usage()
        return SummaryCompletion(
            text=str(result.output or ""),
            model_name=self.model_name,
            tokens_used=usage.total_tokens or 0,
        )


def build_summary_runner_from_env() -> LLMRunner:
    settings = get_settings()
    logger.info(
        "LLM runner config: model=%s, api_key=%s, api_base=%s",
        settings.llm_model,
        "set" if settings.litellm_api_key else "not set",
        settings.litellm_api_base or "(default)",
    )
    if not settings.litellm_api_key:
        logger.warning(
            "LITELLM_API_KEY is not set; set it to a valid OpenAI or LiteLLM API key to avoid 401 errors."
        )
    return LLMRunner(
        model_name=settings.llm_model,
        api_key=settings.litellm_api_key,
        api_base=settings.litellm_api_base,
        timeout_seconds=settings.summary_timeout_seconds,
    )
