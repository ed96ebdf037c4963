"""
Language-model provider configuration.
"""

from typing import List, Optional
from pydantic import BaseModel

from .settings import Settings


class ProviderConfig(BaseModel):
    """One OpenAI-compatible chat-completions provider."""

    name: str
    api_key: str
    base_url: Optional[str] = None
    models: List[str]
    timeout: float = 15.0


def _split_models(raw: str) -> List[str]:
    return [m.strip() for m in raw.split(",") if m.strip()]


def build_provider_configs(settings: Settings) -> List[ProviderConfig]:
    """Build the ordered provider chain from settings.

    Providers without an API key or without models are skipped.
    """
    candidates = [
        ("groq", settings.groq_api_key, settings.groq_base_url, settings.groq_models),
        ("gemini", settings.gemini_api_key, settings.gemini_base_url, settings.gemini_models),
        ("openai", settings.openai_api_key, settings.openai_base_url, settings.openai_models),
    ]
    configs = []
    for name, key, base_url, models in candidates:
        model_list = _split_models(models)
        if not key or not model_list:
            continue
        configs.append(
            ProviderConfig(
                name=name,
                api_key=key,
                base_url=base_url,
                models=model_list,
                timeout=settings.llm_timeout,
            )
        )
    return configs
