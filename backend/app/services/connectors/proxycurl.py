from __future__ import annotations

from typing import Any, Dict, Optional
import logging

import httpx

from .base import BaseProfileConnector, ConnectorResult, raise_for_profile_status
from ...core.config import Settings, get_settings
from ...schemas.profile import Profile
from ..errors import ConfigurationError, UpstreamError
from ..handles import CANONICAL_PROFILE_PREFIX
from ..profile_normalize import SecondaryData, normalize_proxycurl

logger = logging.getLogger(__name__)


class ProxycurlConnector(BaseProfileConnector):
    """
    Proxycurl person-profile connector.

    Single lookup by canonical profile URL; the response is already close to
    our canonical shape and carries no internal id, so no secondary lookups run.
    """

    name = "proxycurl"

    def __init__(self, settings: Settings | None = None) -> None:
        self.settings = settings or get_settings()
        self.api_key: Optional[str] = self.settings.PROXYCURL_API_KEY
        self.base_url = self.settings.PROXYCURL_BASE_URL

    async def lookup(self, client: httpx.AsyncClient, handle: str) -> ConnectorResult:
        if not self.api_key:
            raise ConfigurationError("Proxycurl API key not configured")

        resp = await client.get(
            f"{self.base_url}/linkedin",
            params={
                "url": f"{CANONICAL_PROFILE_PREFIX}{handle}",
                "skills": "include",
                "use_cache": "if-present",
            },
            headers={"Authorization": f"Bearer {self.api_key}"},
        )

        if not resp.is_success:
            logger.warning(
                "Proxycurl returned %s for %s",
                resp.status_code,
                handle,
                extra={"connector": self.name},
            )
        raise_for_profile_status(resp, "Proxycurl")

        try:
            body = resp.json()
        except ValueError:
            raise UpstreamError("Proxycurl returned a non-JSON response", upstream_status=resp.status_code)

        if not isinstance(body, dict) or not body:
            raise UpstreamError("No profile data returned from Proxycurl")
        return ConnectorResult(body)

    def normalize(self, doc: Dict[str, Any], handle: str, extras: SecondaryData) -> Profile:
        return normalize_proxycurl(doc, handle)
