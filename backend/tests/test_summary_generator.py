from __future__ import annotations

import asyncio
import sys
from pathlib import Path


ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from ai.providers import GoogleProvider, OpenAIProvider, get_provider  # noqa: E402
from ai.providers.base import AIProvider  # noqa: E402
from ai.summary_generator import (  # noqa: E402
    REFLECTION_PLACEHOLDER,
    SUMMARY_PLACEHOLDER,
    SummaryGenerator,
)
from services.errors import ExternalServiceError  # noqa: E402


class _FakeProvider(AIProvider):
    DEFAULT_MODEL = "fake-1"

    def __init__(self, reply: str = "", error: Exception | None = None, delay: float = 0.0):
        super().__init__(api_key="test")
        self.reply = reply
        self.error = error
        self.delay = delay
        self.prompts: list[str] = []

    async def generate(self, prompt: str, system: str = "") -> str:
        self.prompts.append(prompt)
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error:
            raise self.error
        return self.reply


def test_summarize_returns_cleaned_provider_text():
    provider = _FakeProvider(reply='  "Sunny walk, great coffee"  \n')
    generator = SummaryGenerator(provider)

    summary = asyncio.run(generator.summarize("Thoughts: walked in the sun"))

    assert summary == "Sunny walk, great coffee"
    assert "Thoughts: walked in the sun" in provider.prompts[0]


def test_summarize_truncates_to_character_budget():
    provider = _FakeProvider(reply="x" * 200)
    generator = SummaryGenerator(provider, summary_max_chars=30)

    assert asyncio.run(generator.summarize("anything")) == "x" * 30


def test_provider_error_becomes_placeholder():
    provider = _FakeProvider(error=ExternalServiceError("Google API error: 500"))
    generator = SummaryGenerator(provider)

    assert asyncio.run(generator.summarize("anything")) == SUMMARY_PLACEHOLDER
    assert asyncio.run(generator.reflect("insight", "why?")) == REFLECTION_PLACEHOLDER


def test_unexpected_exception_never_escapes():
    generator = SummaryGenerator(_FakeProvider(error=RuntimeError("socket exploded")))
    assert asyncio.run(generator.summarize("anything")) == SUMMARY_PLACEHOLDER


def test_slow_provider_is_abandoned_after_timeout():
    provider = _FakeProvider(reply="too late", delay=1.0)
    generator = SummaryGenerator(provider, timeout_seconds=0.05)

    assert asyncio.run(generator.summarize("anything")) == SUMMARY_PLACEHOLDER


def test_missing_provider_returns_placeholder():
    generator = SummaryGenerator(None)
    assert asyncio.run(generator.reflect("", "what now?")) == REFLECTION_PLACEHOLDER


def test_empty_reply_falls_back_to_placeholder():
    generator = SummaryGenerator(_FakeProvider(reply="   "))
    assert asyncio.run(generator.summarize("anything")) == SUMMARY_PLACEHOLDER


def test_reflect_includes_prior_insight_and_question():
    provider = _FakeProvider(reply="Rest is productive too.")
    generator = SummaryGenerator(provider)

    answer = asyncio.run(generator.reflect("I slept all day", "Was that lazy?"))

    assert answer == "Rest is productive too."
    assert "I slept all day" in provider.prompts[0]
    assert "Was that lazy?" in provider.prompts[0]


def test_reflect_without_prior_insight_says_so():
    provider = _FakeProvider(reply="ok")
    asyncio.run(SummaryGenerator(provider).reflect("", "Hello?"))
    assert "None provided" in provider.prompts[0]


def test_get_provider_selects_class_and_ignores_foreign_model_ids():
    google = get_provider("google", "key", model="gpt-4o")
    assert isinstance(google, GoogleProvider)
    assert google.get_model() == GoogleProvider.DEFAULT_MODEL

    openai = get_provider("OpenAI", "key", model="gpt-4o")
    assert isinstance(openai, OpenAIProvider)
    assert openai.get_model() == "gpt-4o"
