from ai.providers.base import AIProvider
from ai.providers.anthropic import AnthropicProvider
from ai.providers.openai_provider import OpenAIProvider
from ai.providers.google import GoogleProvider

PROVIDERS: dict[str, type[AIProvider]] = {
    "google": GoogleProvider,
    "openai": OpenAIProvider,
    "anthropic": AnthropicProvider,
}

# Substrings a configured model id must contain to be sent to that provider.
_MODEL_MARKERS = {
    "google": ("gemini",),
    "openai": ("gpt", "o1", "o3", "o4"),
    "anthropic": ("claude",),
}


def _model_matches(provider_name: str, model_id: str | None) -> bool:
    m = (model_id or "").strip().lower()
    if not m:
        return False
    return any(marker in m for marker in _MODEL_MARKERS.get(provider_name, ("",)))


def get_provider(
    provider_name: str,
    api_key: str,
    model: str | None = None,
    timeout_seconds: float = 30,
) -> AIProvider:
    """Build the configured provider; a model id meant for another vendor falls back to the default."""
    name = (provider_name or "").strip().lower()
    cls = PROVIDERS.get(name)
    if not cls:
        raise ValueError(f"Unknown provider: {provider_name}")
    return cls(
        api_key=api_key,
        model=model if _model_matches(name, model) else None,
        timeout_seconds=timeout_seconds,
    )
