from __future__ import annotations

from functools import lru_cache

from anthropic import Anthropic
from openai import OpenAI

from .errors import ConfigurationError


@lru_cache(maxsize=4)
def get_anthropic_client(api_key: str | None, timeout: float) -> Anthropic:
    """
    Client for the primary generation provider (Claude).

    - Bounded by ``timeout`` (LLM_TIMEOUT_SECONDS of the caller's settings).
    - SDK-level retries are disabled; the only second attempt a request ever
      gets is the fallback provider.

    Cached per (key, timeout) so callers sharing settings share one client.
    """
    if not api_key or not api_key.strip():
        raise ConfigurationError("No primary LLM API key configured. Set ANTHROPIC_API_KEY.")

    return Anthropic(
        api_key=api_key.strip(),
        timeout=timeout,
        max_retries=0,
    )


@lru_cache(maxsize=4)
def get_groq_client(api_key: str | None, base_url: str, timeout: float) -> OpenAI:
    """
    OpenAI-compatible client routed to Groq for the fallback provider.
    """
    if not api_key or not api_key.strip():
        raise ConfigurationError("No fallback LLM API key configured. Set GROQ_API_KEY.")

    return OpenAI(
        base_url=base_url,
        api_key=api_key.strip(),
        timeout=timeout,
        max_retries=0,
    )
