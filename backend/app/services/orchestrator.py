from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Literal, Optional
import logging

from ..core.config import Settings, get_settings
from ..schemas.briefs import GenerationResult
from ..schemas.profile import Profile
from .errors import GenerationFailed
from .llm_costs import load_pricebook, usage_record
from .providers import GenerationProvider, Prompt, StructuredResult, default_providers
from .writer import UserContext, build_brief_prompt

logger = logging.getLogger(__name__)

ProviderSlot = Literal["primary", "secondary"]


@dataclass
class ProviderAttempt:
    """Outcome of exactly one provider call: a result or the error it raised."""

    provider: GenerationProvider
    result: Optional[StructuredResult[GenerationResult]] = None
    error: Optional[Exception] = None

    @property
    def ok(self) -> bool:
        return self.result is not None


@dataclass
class GenerationOutcome:
    data: GenerationResult
    provider: ProviderSlot
    provider_name: str
    model: str
    fallback_used: bool
    usage: Dict[str, Any] = field(default_factory=dict)


def attempt(provider: GenerationProvider, prompt: Prompt) -> ProviderAttempt:
    try:
        return ProviderAttempt(provider, result=provider.generate(prompt, GenerationResult))
    except Exception as e:
        # Any failure of this one call (transport, timeout, bad output) is data for the caller
        return ProviderAttempt(provider, error=e)


class GenerationOrchestrator:
    """
    Two-provider chain: PRIMARY, then FALLBACK only if PRIMARY failed.

    Calls are strictly sequential and each provider is called at most once per
    ``generate``; there is no retry loop.
    """

    def __init__(
        self,
        primary: GenerationProvider | None = None,
        secondary: GenerationProvider | None = None,
        settings: Settings | None = None,
    ) -> None:
        self.settings = settings or get_settings()
        if primary is None or secondary is None:
            default_primary, default_secondary = default_providers(self.settings)
            primary = primary or default_primary
            secondary = secondary or default_secondary
        self.primary = primary
        self.secondary = secondary
        self._pricebook = load_pricebook(self.settings)

    def generate(
        self,
        profile: Profile,
        user_context: UserContext,
        goal: str,
        request_id: str | None = None,
    ) -> GenerationOutcome:
        prompt = build_brief_prompt(profile, user_context, goal)

        first = attempt(self.primary, prompt)
        if first.ok:
            return self._outcome(first, "primary", fallback_used=False)

        logger.warning(
            "Primary provider %s failed, falling back to %s: %r",
            self.primary.name,
            self.secondary.name,
            first.error,
            extra={"request_id": request_id, "provider": self.primary.name, "step": "generate:fallback"},
        )

        second = attempt(self.secondary, prompt)
        if second.ok:
            return self._outcome(second, "secondary", fallback_used=True)

        logger.error(
            "Brief generation failed on both providers. primary=%r secondary=%r",
            first.error,
            second.error,
            extra={"request_id": request_id, "provider": self.secondary.name, "step": "generate:failed"},
        )
        raise GenerationFailed(first.error, second.error)

    def _outcome(self, done: ProviderAttempt, slot: ProviderSlot, fallback_used: bool) -> GenerationOutcome:
        result = done.result
        return GenerationOutcome(
            data=result.data,
            provider=slot,
            provider_name=done.provider.name,
            model=result.model,
            fallback_used=fallback_used,
            usage=usage_record(self._pricebook, done.provider.name, result.model, result.usage),
        )
