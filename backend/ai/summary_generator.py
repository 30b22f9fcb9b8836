import asyncio
import logging

from ai.providers import AIProvider, get_provider
from config import settings

logger = logging.getLogger(__name__)

SUMMARY_PLACEHOLDER = "Another ordinary, special day"
REFLECTION_PLACEHOLDER = "Let me think about that..."

MY_DAY_PROMPT = """You are a diary companion who is good at noticing the small details of daily life.
Write a one-line "my day" summary from the user's records for today.

Rules:
1. No more than {max_chars} characters.
2. Do not try to cover everything. Pick the one moment or feeling that best represents the day.
3. Let the tone follow the content: playful, warm, poetic or wry are all fine.
4. Sound like a friend talking, not an official report.
5. Return only the summary text, with no quotes, trailing punctuation or explanation.

Today's records:
{content}"""

REFLECTION_PROMPT = """Based on the user's diary entry and their question, offer a thoughtful insight or reflection.
Keep it concise and meaningful (at most {max_chars} characters).

User's entry insight: {insight}
User's question: {question}"""


def _clean(text: str | None, max_chars: int) -> str:
    cleaned = (text or "").strip().strip('"').strip("“”").strip()
    return cleaned[:max_chars].rstrip()


class SummaryGenerator:
    """Turns entry content into a short summary or reflection.

    Provider failures, timeouts and a missing API key all produce a fixed
    placeholder; callers never see a provider error.
    """

    def __init__(
        self,
        provider: AIProvider | None,
        *,
        timeout_seconds: float | None = None,
        summary_max_chars: int | None = None,
        reflection_max_chars: int | None = None,
    ):
        self.provider = provider
        self.timeout_seconds = timeout_seconds or settings.AI_TIMEOUT_SECONDS
        self.summary_max_chars = summary_max_chars or settings.SUMMARY_MAX_CHARS
        self.reflection_max_chars = reflection_max_chars or settings.REFLECTION_MAX_CHARS

    async def _complete(self, prompt: str, placeholder: str, max_chars: int) -> str:
        if self.provider is None:
            logger.warning("AI provider not configured; returning placeholder")
            return placeholder
        try:
            text = await asyncio.wait_for(self.provider.generate(prompt), timeout=self.timeout_seconds)
        except asyncio.TimeoutError:
            logger.warning(f"AI generation timed out after {self.timeout_seconds}s")
            return placeholder
        except Exception as e:
            logger.warning(f"AI generation failed: {e}")
            return placeholder
        return _clean(text, max_chars) or placeholder

    async def summarize(self, rendered_content: str) -> str:
        prompt = MY_DAY_PROMPT.format(max_chars=self.summary_max_chars, content=rendered_content)
        return await self._complete(prompt, SUMMARY_PLACEHOLDER, self.summary_max_chars)

    async def reflect(self, prior_insight: str, user_question: str) -> str:
        prompt = REFLECTION_PROMPT.format(
            max_chars=self.reflection_max_chars,
            insight=(prior_insight or "").strip() or "None provided",
            question=user_question,
        )
        return await self._complete(prompt, REFLECTION_PLACEHOLDER, self.reflection_max_chars)


def get_summary_generator() -> SummaryGenerator:
    """FastAPI dependency; tests override it with a stub."""
    provider = None
    if settings.AI_API_KEY:
        try:
            provider = get_provider(
                settings.AI_PROVIDER,
                settings.AI_API_KEY,
                model=settings.AI_MODEL,
                timeout_seconds=settings.AI_TIMEOUT_SECONDS,
            )
        except ValueError as e:
            logger.warning(f"Invalid AI provider configuration: {e}")
    return SummaryGenerator(provider)
