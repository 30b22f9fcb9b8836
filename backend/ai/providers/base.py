from abc import ABC, abstractmethod

import httpx

from services.errors import ExternalServiceError


class AIProvider(ABC):
    """Abstract base class for text-generation providers."""

    DEFAULT_MODEL: str = ""
    PROVIDER_NAME: str = ""

    def __init__(self, api_key: str, model: str | None = None, timeout_seconds: float = 30):
        self.api_key = api_key
        self._model = model
        self.timeout_seconds = timeout_seconds

    @abstractmethod
    async def generate(self, prompt: str, system: str = "") -> str:
        """Send a single prompt and return the generated text.

        Raises:
            ExternalServiceError on transport failure, timeout or a non-200 reply.
        """
        ...

    def get_model(self) -> str:
        return self._model or self.DEFAULT_MODEL

    async def _post_json(self, url: str, payload: dict, headers: dict | None = None) -> dict:
        try:
            async with httpx.AsyncClient(timeout=self.timeout_seconds) as client:
                resp = await client.post(url, headers=headers or {}, json=payload)
        except httpx.HTTPError as e:
            raise ExternalServiceError(f"{self.PROVIDER_NAME} request failed: {e.__class__.__name__}") from e
        if resp.status_code != 200:
            raise ExternalServiceError(f"{self.PROVIDER_NAME} API error: {resp.status_code}")
        try:
            return resp.json()
        except ValueError as e:
            raise ExternalServiceError(f"{self.PROVIDER_NAME} returned invalid JSON") from e
