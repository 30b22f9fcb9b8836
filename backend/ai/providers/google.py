from ai.providers.base import AIProvider


class GoogleProvider(AIProvider):
    """Google Gemini provider."""

    BASE_URL = "https://generativelanguage.googleapis.com/v1beta/models"
    DEFAULT_MODEL = "gemini-2.5-flash"
    PROVIDER_NAME = "Google"

    def _endpoint(self, model: str) -> str:
        return f"{self.BASE_URL}/{model}:generateContent"

    async def generate(self, prompt: str, system: str = "") -> str:
        payload: dict = {"contents": [{"role": "user", "parts": [{"text": prompt}]}]}
        if system:
            payload["system_instruction"] = {"parts": [{"text": system}]}

        data = await self._post_json(
            self._endpoint(self.get_model()),
            payload,
            headers={"Content-Type": "application/json", "x-goog-api-key": self.api_key},
        )

        content = ""
        candidates = data.get("candidates", [])
        if candidates:
            for part in candidates[0].get("content", {}).get("parts", []):
                content += part.get("text", "")
        return content
