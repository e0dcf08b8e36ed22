from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any, Dict, Optional

from ..core.config import Settings, get_settings


@dataclass(frozen=True)
class ModelRate:
    input_per_mtok: float
    output_per_mtok: float
    cached_input_per_mtok: Optional[float] = None


def _build_default_pricebook() -> Dict[str, ModelRate]:
    # USD per 1M tokens, from the Anthropic and Groq public price lists.
    return {
        "claude-sonnet-4-5": ModelRate(
            input_per_mtok=3.000,
            output_per_mtok=15.000,
            cached_input_per_mtok=0.300,
        ),
        "claude-haiku-4-5": ModelRate(
            input_per_mtok=1.000,
            output_per_mtok=5.000,
            cached_input_per_mtok=0.100,
        ),
        "llama-3.3-70b-versatile": ModelRate(
            input_per_mtok=0.590,
            output_per_mtok=0.790,
        ),
        "llama-3.1-8b-instant": ModelRate(
            input_per_mtok=0.050,
            output_per_mtok=0.080,
        ),
    }


def load_pricebook(settings: Settings | None = None) -> Dict[str, ModelRate]:
    """Default prices, overridden per model by LLM_PRICEBOOK_JSON when it parses."""
    settings = settings or get_settings()
    pricebook = _build_default_pricebook()
    override_raw = settings.LLM_PRICEBOOK_JSON
    if not override_raw:
        return pricebook

    try:
        override = json.loads(override_raw)
    except json.JSONDecodeError:
        return pricebook

    if not isinstance(override, dict):
        return pricebook

    for key, value in override.items():
        if not isinstance(value, dict):
            continue
        try:
            pricebook[normalize_model_name(key)] = ModelRate(
                input_per_mtok=float(value["input_per_mtok"]),
                output_per_mtok=float(value["output_per_mtok"]),
                cached_input_per_mtok=float(value.get("cached_input_per_mtok"))
                if value.get("cached_input_per_mtok") is not None
                else None,
            )
        except (KeyError, ValueError, TypeError):
            continue
    return pricebook


def normalize_model_name(model: str | None) -> str:
    m = (model or "").strip().lower()
    if "/" in m:
        m = m.split("/")[-1]
    if ":" in m:
        m = m.split(":")[0]
    # Dated snapshots ("claude-sonnet-4-5-20250929") price like their alias
    parts = m.rsplit("-", 1)
    if len(parts) == 2 and parts[1].isdigit() and len(parts[1]) == 8:
        m = parts[0]
    return m


def cost_for_tokens(
    pricebook: Dict[str, ModelRate],
    model: str | None,
    input_tokens: int,
    output_tokens: int,
    cached_input_tokens: int = 0,
) -> float:
    rate = pricebook.get(normalize_model_name(model))
    if not rate:
        return 0.0

    paid_input = max(0, int(input_tokens) - max(0, int(cached_input_tokens)))
    cached_input = max(0, int(cached_input_tokens))
    output = max(0, int(output_tokens))

    total = 0.0
    total += (paid_input / 1_000_000) * rate.input_per_mtok
    total += (output / 1_000_000) * rate.output_per_mtok
    if cached_input:
        cached_rate = rate.cached_input_per_mtok or rate.input_per_mtok
        total += (cached_input / 1_000_000) * cached_rate
    return total


def usage_record(
    pricebook: Dict[str, ModelRate],
    provider_name: str,
    model: str | None,
    usage: Dict[str, int] | None,
) -> Dict[str, Any]:
    """
    Token counts and estimated cost of the one call that served a request,
    in the shape stored on usage-log metadata.
    """
    usage = usage or {}
    input_tokens = int(usage.get("input_tokens") or 0)
    output_tokens = int(usage.get("output_tokens") or 0)
    cached_input_tokens = int(usage.get("cached_input_tokens") or 0)
    return {
        "provider": provider_name,
        "model": model or "",
        "input_tokens": input_tokens,
        "output_tokens": output_tokens,
        "cached_input_tokens": cached_input_tokens,
        "cost_usd": round(
            cost_for_tokens(pricebook, model, input_tokens, output_tokens, cached_input_tokens),
            6,
        ),
    }
