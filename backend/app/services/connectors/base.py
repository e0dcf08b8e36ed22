from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Awaitable, Callable, Dict, Optional

import httpx

from ...schemas.profile import Profile
from ..errors import ProfileNotFound, UpstreamError
from ..profile_normalize import SecondaryData


class ConnectorResult(dict):
    """Light wrapper, but can add metadata later."""


SecondaryLookup = Callable[[httpx.AsyncClient, str], Awaitable[ConnectorResult]]


class BaseProfileConnector(ABC):
    """
    One profile-data provider.

    ``lookup`` is the primary call and raises the UpstreamProfileError family.
    ``secondary_lookups`` are best-effort extras keyed by the internal id the
    primary document carries; the fetcher runs them concurrently and treats
    any failure as "no data".
    """

    name: str

    @abstractmethod
    async def lookup(self, client: httpx.AsyncClient, handle: str) -> ConnectorResult:
        ...

    @abstractmethod
    def normalize(self, doc: Dict[str, Any], handle: str, extras: SecondaryData) -> Profile:
        ...

    def internal_id(self, doc: Dict[str, Any]) -> Optional[str]:
        return None

    def secondary_lookups(self) -> Dict[str, SecondaryLookup]:
        return {}

    def apply_secondary(self, extras: SecondaryData, name: str, payload: Dict[str, Any]) -> None:
        """Fold one secondary payload into ``extras``."""
        return None


def raise_for_profile_status(resp: httpx.Response, provider: str) -> None:
    """
    Map a non-2xx primary lookup response onto the error taxonomy.

    404 -> ProfileNotFound, 401/403 -> auth_failed, 429 -> rate_limited,
    anything else -> other. The upstream status travels with the error.
    """
    status = resp.status_code
    if 200 <= status < 300:
        return

    if status == 404:
        raise ProfileNotFound("LinkedIn profile not found", upstream_status=404)

    if status in (401, 403):
        raise UpstreamError(
            f"{provider} authentication failed. Please check your API key.",
            kind="auth_failed",
            upstream_status=status,
        )

    if status == 429:
        raise UpstreamError(
            f"{provider} rate limit exceeded. Please try again later.",
            kind="rate_limited",
            upstream_status=429,
        )

    raise UpstreamError(
        f"{provider} error: {resp.text[:500]}",
        kind="other",
        upstream_status=status,
    )
