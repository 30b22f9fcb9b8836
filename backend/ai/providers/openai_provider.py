from typing import Any

from ai.providers.base import AIProvider


class OpenAIProvider(AIProvider):
    """OpenAI / GPT provider."""

    BASE_URL = "https://api.openai.com/v1/chat/completions"
    DEFAULT_MODEL = "gpt-4o-mini"
    DEFAULT_MAX_COMPLETION_TOKENS = 512
    PROVIDER_NAME = "OpenAI"

    async def generate(self, prompt: str, system: str = "") -> str:
        messages: list[dict[str, str]] = []
        if system:
            messages.append({"role": "system", "content": system})
        messages.append({"role": "user", "content": prompt})

        payload: dict[str, Any] = {
            "model": self.get_model(),
            "messages": messages,
            "max_completion_tokens": self.DEFAULT_MAX_COMPLETION_TOKENS,
        }
        data = await self._post_json(
            self.BASE_URL,
            payload,
            headers={"Authorization": f"Bearer {self.api_key}", "Content-Type": "application/json"},
        )
        choice = (data.get("choices") or [{}])[0]
        return choice.get("message", {}).get("content") or ""
