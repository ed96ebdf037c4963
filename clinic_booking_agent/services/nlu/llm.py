"""
Language-model access through OpenAI-compatible chat-completions endpoints.

Providers are tried in order, and each provider tries its models in order;
the first non-empty completion wins.
"""

from typing import List, Optional, Protocol, Sequence

from openai import AsyncOpenAI, OpenAIError

from ...config import ProviderConfig, Settings, build_provider_configs
from ...core.exceptions import LanguageModelError
from ...utils.logging import get_logger

logger = get_logger("clinic.llm")


class LanguageModelClient(Protocol):
    """Anything that turns a system and user prompt into raw text."""

    async def complete(self, system_prompt: str, user_prompt: str) -> str:
        ...


class ChatCompletionProvider:
    """One provider with an ordered list of models."""

    def __init__(self, config: ProviderConfig, client: Optional[AsyncOpenAI] = None):
        self.config = config
        self.name = config.name
        self.client = client or AsyncOpenAI(
            api_key=config.api_key,
            base_url=config.base_url,
            timeout=config.timeout,
            max_retries=0,
        )

    async def complete(self, system_prompt: str, user_prompt: str) -> str:
        last_error: Optional[Exception] = None
        for model in self.config.models:
            try:
                response = await self.client.chat.completions.create(
                    model=model,
                    messages=[
                        {"role": "system", "content": system_prompt},
                        {"role": "user", "content": user_prompt},
                    ],
                    temperature=0.1,
                    max_tokens=500,
                )
            except OpenAIError as e:
                logger.warning(f"llm: {self.name}/{model} failed: {e}")
                last_error = e
                continue

            content = response.choices[0].message.content if response.choices else None
            if content and content.strip():
                logger.debug(f"llm: {self.name}/{model} answered")
                return content
            logger.warning(f"llm: {self.name}/{model} returned an empty completion")
            last_error = LanguageModelError(f"{self.name}/{model} returned empty content")

        raise LanguageModelError(f"provider {self.name} failed: {last_error}")


class LanguageModelGateway:
    """Falls back across providers; raises LanguageModelError when all fail."""

    def __init__(self, providers: Sequence[LanguageModelClient]):
        self.providers: List[LanguageModelClient] = list(providers)

    @classmethod
    def from_settings(cls, settings: Settings) -> "LanguageModelGateway":
        configs = build_provider_configs(settings)
        if not configs:
            logger.warning("llm: no language model providers configured; parser will use fallbacks")
        return cls([ChatCompletionProvider(config) for config in configs])

    async def complete(self, system_prompt: str, user_prompt: str) -> str:
        if not self.providers:
            raise LanguageModelError("no language model providers configured")

        errors = []
        for provider in self.providers:
            name = getattr(provider, "name", provider.__class__.__name__)
            try:
                return await provider.complete(system_prompt, user_prompt)
            except LanguageModelError as e:
                errors.append(f"{name}: {e}")
                logger.warning(f"llm: falling back after {name} failed")
        raise LanguageModelError("all language model providers failed: " + "; ".join(errors))
