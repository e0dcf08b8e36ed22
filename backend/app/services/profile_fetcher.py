from __future__ import annotations

import asyncio
from typing import Any, Dict, Optional
import logging

import httpx

from ..core.config import Settings, get_settings
from ..schemas.profile import Profile
from .connectors import BaseProfileConnector, get_profile_connector
from .errors import UpstreamError, UpstreamTimeout
from .handles import normalize_handle
from .profile_normalize import SecondaryData

logger = logging.getLogger(__name__)


class ProfileFetcher:
    """
    Fetch and normalise one LinkedIn profile.

    - Stateless per call; nothing is cached or persisted.
    - The primary lookup is bounded by PROFILE_TIMEOUT_SECONDS and its failures
      propagate as the UpstreamProfileError family.
    - Secondary lookups run concurrently and are joined before normalisation;
      any one failing leaves its section empty without affecting the others.
    """

    def __init__(
        self,
        settings: Settings | None = None,
        connector: BaseProfileConnector | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.settings = settings or get_settings()
        self.connector = connector or get_profile_connector(self.settings)
        # Injected in tests (httpx.MockTransport); None means the real network.
        self._transport = transport

    def fetch(self, handle_or_url: str, request_id: str | None = None) -> Profile:
        handle = normalize_handle(handle_or_url)
        # Route handlers are sync and run in a worker thread with no event loop
        return asyncio.run(self._fetch(handle, request_id))

    async def fetch_async(self, handle_or_url: str, request_id: str | None = None) -> Profile:
        handle = normalize_handle(handle_or_url)
        return await self._fetch(handle, request_id)

    async def _fetch(self, handle: str, request_id: str | None) -> Profile:
        log_extra = {"connector": self.connector.name, "request_id": request_id}

        async with httpx.AsyncClient(
            timeout=self.settings.PROFILE_TIMEOUT_SECONDS,
            transport=self._transport,
        ) as client:
            try:
                doc = await self.connector.lookup(client, handle)
            except httpx.TimeoutException as e:
                logger.warning("Profile lookup timed out for %s", handle, extra=log_extra)
                raise UpstreamTimeout("LinkedIn API request timed out") from e
            except httpx.HTTPError as e:
                logger.warning("Profile lookup transport error for %s: %s", handle, e, extra=log_extra)
                raise UpstreamError(f"Failed to fetch LinkedIn profile: {e}") from e

            extras = SecondaryData()
            internal_id = self.connector.internal_id(doc)
            lookups = self.connector.secondary_lookups()
            if internal_id and lookups:
                payloads = await self._run_secondary(client, internal_id, lookups, log_extra)
                for name, payload in payloads.items():
                    if payload is None:
                        continue
                    try:
                        self.connector.apply_secondary(extras, name, payload)
                    except Exception as e:
                        logger.warning(
                            "Discarding malformed secondary payload '%s': %s",
                            name,
                            e,
                            extra={**log_extra, "step": f"secondary:{name}"},
                        )

        profile = self.connector.normalize(doc, handle, extras)
        logger.info(
            "Fetched profile %s (%d experiences, %d posts)",
            handle,
            len(profile.experiences),
            len(profile.activities),
            extra=log_extra,
        )
        return profile

    async def _run_secondary(
        self,
        client: httpx.AsyncClient,
        internal_id: str,
        lookups: Dict[str, Any],
        log_extra: Dict[str, Any],
    ) -> Dict[str, Optional[Dict[str, Any]]]:
        async def _run_step(name: str, lookup) -> Optional[Dict[str, Any]]:
            try:
                return dict(await lookup(client, internal_id))
            except Exception as e:
                logger.warning(
                    "Secondary lookup '%s' failed: %s",
                    name,
                    e,
                    extra={**log_extra, "step": f"secondary:{name}"},
                )
                return None

        names = list(lookups)
        results = await asyncio.gather(*(_run_step(n, lookups[n]) for n in names))
        return dict(zip(names, results))
