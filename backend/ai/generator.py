from __future__ import annotations

import logging

from ai.providers import AIProvider, get_provider
from config import settings

logger = logging.getLogger(__name__)


class CoachGenerator:
    """Turns a prompt plus system instruction into coaching text, or None on any failure."""

    def __init__(self, provider: AIProvider | None, max_tokens: int = 150, temperature: float = 0.7):
        self.provider = provider
        self.max_tokens = max_tokens
        self.temperature = temperature

    async def generate(self, prompt: str, system: str) -> str | None:
        if self.provider is None:
            return None
        try:
            result = await self.provider.chat(
                messages=[{"role": "user", "content": prompt}],
                system=system,
                max_tokens=self.max_tokens,
                temperature=self.temperature,
            )
        except Exception as e:
            logger.warning(f"AI generation failed: {e}")
            return None

        text = str((result or {}).get("content") or "").strip()
        if not text:
            logger.warning("AI generation returned empty content")
            return None
        return text


def build_generator() -> CoachGenerator:
    if not settings.AI_API_KEY:
        return CoachGenerator(provider=None)
    try:
        provider = get_provider(
            settings.AI_PROVIDER,
            settings.AI_API_KEY,
            model=settings.AI_MODEL or None,
            base_url=settings.AI_API_URL or None,
            timeout_seconds=settings.AI_TIMEOUT_SECONDS,
        )
    except ValueError as e:
        logger.warning(f"AI provider misconfigured, using fallback text only: {e}")
        return CoachGenerator(provider=None)
    return CoachGenerator(
        provider=provider,
        max_tokens=settings.AI_MAX_TOKENS,
        temperature=settings.AI_TEMPERATURE,
    )


def get_generator() -> CoachGenerator:
    return build_generator()
