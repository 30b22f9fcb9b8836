from ai.providers.base import AIProvider


class AnthropicProvider(AIProvider):
    """Anthropic / Claude provider."""

    BASE_URL = "https://api.anthropic.com/v1/messages"
    DEFAULT_MODEL = "claude-haiku-4-5-20251001"
    PROVIDER_NAME = "Anthropic"

    async def generate(self, prompt: str, system: str = "") -> str:
        payload: dict = {
            "model": self.get_model(),
            "max_tokens": 512,
            "messages": [{"role": "user", "content": prompt}],
        }
        if system:
            payload["system"] = system

        data = await self._post_json(
            self.BASE_URL,
            payload,
            headers={
                "x-api-key": self.api_key,
                "anthropic-version": "2023-06-01",
                "content-type": "application/json",
            },
        )
        content = ""
        for block in data.get("content", []):
            if block.get("type") == "text":
                content += block.get("text", "")
        return content
