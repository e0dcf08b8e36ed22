# backend/app/services/providers.py
"""
Generation providers behind one capability: ``generate(prompt, schema)``.

Each provider makes exactly one call and either returns a validated
``StructuredResult`` or raises. Transport failures, timeouts, unparseable
output and output missing a required field all surface as exceptions; the
orchestrator decides what happens next.
"""
from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, Generic, Optional, Type, TypeVar
import json
import logging
import re

from pydantic import BaseModel, ValidationError as PydanticValidationError

from ..core.config import Settings, get_settings
from .llm import get_anthropic_client, get_groq_client

logger = logging.getLogger(__name__)

T = TypeVar("T", bound=BaseModel)

_CODE_FENCE_RE = re.compile(r"^```(?:json)?\s*|\s*```$", re.IGNORECASE)


class ProviderOutputError(Exception):
    """Provider answered, but not with a usable structured result."""


@dataclass(frozen=True)
class Prompt:
    system: str
    user: str


@dataclass
class StructuredResult(Generic[T]):
    data: T
    model: str
    usage: Dict[str, int] = field(default_factory=dict)


def parse_structured_output(text: str | None, schema: Type[T]) -> T:
    """
    Extract one JSON object from model text and validate it against ``schema``.

    Tolerates markdown code fences and leading/trailing prose around the
    object; anything else is a ProviderOutputError.
    """
    raw = (text or "").strip()
    if not raw:
        raise ProviderOutputError("empty response")

    raw = _CODE_FENCE_RE.sub("", raw).strip()
    try:
        payload = json.loads(raw)
    except json.JSONDecodeError:
        start, end = raw.find("{"), raw.rfind("}")
        if start == -1 or end <= start:
            raise ProviderOutputError("response is not JSON")
        try:
            payload = json.loads(raw[start : end + 1])
        except json.JSONDecodeError as e:
            raise ProviderOutputError(f"response is not JSON: {e}") from e

    if not isinstance(payload, dict):
        raise ProviderOutputError("response JSON is not an object")

    try:
        return schema.model_validate(payload)
    except PydanticValidationError as e:
        missing = [".".join(str(p) for p in err["loc"]) for err in e.errors()]
        raise ProviderOutputError(f"response failed validation: {', '.join(missing)}") from e


class GenerationProvider(ABC):
    """One content-generation backend."""

    name: str = "provider"

    @abstractmethod
    def generate(self, prompt: Prompt, schema: Type[T]) -> StructuredResult[T]:
        ...


class AnthropicProvider(GenerationProvider):
    name = "claude"

    def __init__(self, settings: Settings | None = None, client: Any = None) -> None:
        self.settings = settings or get_settings()
        self._client = client

    @property
    def client(self):
        # Resolved lazily so a missing key fails this call, not app start-up
        if self._client is None:
            self._client = get_anthropic_client(
                self.settings.ANTHROPIC_API_KEY,
                self.settings.LLM_TIMEOUT_SECONDS,
            )
        return self._client

    def generate(self, prompt: Prompt, schema: Type[T]) -> StructuredResult[T]:
        model = self.settings.PRIMARY_LLM_MODEL
        resp = self.client.messages.create(
            model=model,
            max_tokens=self.settings.LLM_MAX_OUTPUT_TOKENS,
            temperature=self.settings.LLM_TEMPERATURE,
            system=prompt.system,
            messages=[{"role": "user", "content": prompt.user}],
        )

        text = "".join(
            getattr(block, "text", "") or ""
            for block in (resp.content or [])
            if getattr(block, "type", "text") == "text"
        )
        if getattr(resp, "stop_reason", None) == "max_tokens":
            raise ProviderOutputError("response truncated at max_tokens")

        usage = getattr(resp, "usage", None)
        return StructuredResult(
            data=parse_structured_output(text, schema),
            model=getattr(resp, "model", None) or model,
            usage={
                "input_tokens": getattr(usage, "input_tokens", 0) or 0,
                "output_tokens": getattr(usage, "output_tokens", 0) or 0,
                "cached_input_tokens": getattr(usage, "cache_read_input_tokens", 0) or 0,
            },
        )


class GroqProvider(GenerationProvider):
    name = "groq"

    def __init__(self, settings: Settings | None = None, client: Any = None) -> None:
        self.settings = settings or get_settings()
        self._client = client

    @property
    def client(self):
        if self._client is None:
            self._client = get_groq_client(
                self.settings.GROQ_API_KEY,
                self.settings.GROQ_BASE_URL,
                self.settings.LLM_TIMEOUT_SECONDS,
            )
        return self._client

    def generate(self, prompt: Prompt, schema: Type[T]) -> StructuredResult[T]:
        model = self.settings.FALLBACK_LLM_MODEL
        resp = self.client.chat.completions.create(
            model=model,
            messages=[
                {"role": "system", "content": prompt.system},
                {"role": "user", "content": prompt.user},
            ],
            temperature=self.settings.LLM_TEMPERATURE,
            max_tokens=self.settings.LLM_MAX_OUTPUT_TOKENS,
            response_format={"type": "json_object"},
        )

        if not resp.choices:
            raise ProviderOutputError("response has no choices")
        choice = resp.choices[0]
        if getattr(choice, "finish_reason", None) == "length":
            raise ProviderOutputError("response truncated at max_tokens")

        usage = getattr(resp, "usage", None)
        return StructuredResult(
            data=parse_structured_output(choice.message.content, schema),
            model=getattr(resp, "model", None) or model,
            usage={
                "input_tokens": getattr(usage, "prompt_tokens", 0) or 0,
                "output_tokens": getattr(usage, "completion_tokens", 0) or 0,
            },
        )


def default_providers(settings: Settings | None = None) -> tuple[GenerationProvider, GenerationProvider]:
    settings = settings or get_settings()
    return AnthropicProvider(settings), GroqProvider(settings)
