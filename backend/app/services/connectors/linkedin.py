# backend/app/services/connectors/linkedin.py
# Fresh LinkedIn Scraper (RapidAPI) is our default profile provider.

from __future__ import annotations

from typing import Any, Dict, Optional
import logging

import httpx
from tenacity import retry, wait_exponential, stop_after_attempt, retry_if_exception_type

from .base import BaseProfileConnector, ConnectorResult, SecondaryLookup, raise_for_profile_status
from ...core.config import Settings, get_settings
from ...schemas.profile import Profile
from ..errors import ConfigurationError, UpstreamError
from ..profile_normalize import (
    SecondaryData,
    best_image,
    comments_from,
    contact_info_from,
    fresh_linkedin_internal_id,
    normalize_fresh_linkedin,
    posts_to_activities,
    reactions_from,
    recommendations_from,
)

logger = logging.getLogger(__name__)


class FreshLinkedInConnector(BaseProfileConnector):
    """
    RapidAPI "Fresh LinkedIn Scraper" connector.

    Primary lookup is by public username:

        GET /api/v1/user/profile?username=<handle>
        -> {"success": true, "data": {...profile fields, "urn": "..."}}

    The returned URN unlocks six secondary endpoints (images, posts, comments,
    reactions, recommendations, contact-info), each shaped
    ``{"success": bool, "data": [...] | {...}}``.
    """

    name = "fresh_linkedin"

    def __init__(self, settings: Settings | None = None) -> None:
        self.settings = settings or get_settings()
        self.api_key: Optional[str] = self.settings.RAPIDAPI_KEY
        self.host = self.settings.RAPIDAPI_HOST
        self.base_url = f"https://{self.host}"
        self.item_limit = self.settings.PROFILE_SECONDARY_ITEM_LIMIT

    def _headers(self) -> Dict[str, str]:
        if not self.api_key:
            raise ConfigurationError("RapidAPI key not configured")
        return {
            "x-rapidapi-host": self.host,
            "x-rapidapi-key": self.api_key,
        }

    async def lookup(self, client: httpx.AsyncClient, handle: str) -> ConnectorResult:
        resp = await client.get(
            f"{self.base_url}/api/v1/user/profile",
            params={"username": handle},
            headers=self._headers(),
        )

        if not resp.is_success:
            logger.warning(
                "LinkedIn profile lookup returned %s for %s: %s",
                resp.status_code,
                handle,
                resp.text[:500],
                extra={"connector": self.name},
            )
        raise_for_profile_status(resp, "RapidAPI")

        try:
            body = resp.json()
        except ValueError:
            raise UpstreamError("LinkedIn API returned a non-JSON response", upstream_status=resp.status_code)

        if not isinstance(body, dict):
            raise UpstreamError("LinkedIn API returned an unexpected payload")

        if body.get("success") is False:
            raise UpstreamError(body.get("message") or "Failed to fetch LinkedIn profile")

        data = body.get("data")
        if not isinstance(data, dict) or not data:
            raise UpstreamError("No profile data returned from LinkedIn API")

        return ConnectorResult(data)

    def internal_id(self, doc: Dict[str, Any]) -> Optional[str]:
        return fresh_linkedin_internal_id(doc)

    # -------------------------------------------------------------------------
    # Secondary endpoints (best-effort)
    # -------------------------------------------------------------------------

    @retry(
        wait=wait_exponential(multiplier=0.5, min=0.5, max=2),
        stop=stop_after_attempt(2),
        retry=retry_if_exception_type((httpx.ConnectError, httpx.RemoteProtocolError)),
        reraise=True,
    )
    async def _get_secondary(
        self,
        client: httpx.AsyncClient,
        path: str,
        urn: str,
        paged: bool = True,
    ) -> ConnectorResult:
        params: Dict[str, Any] = {"urn": urn}
        if paged:
            params["page"] = 1
        resp = await client.get(
            f"{self.base_url}{path}",
            params=params,
            headers=self._headers(),
            timeout=self.settings.PROFILE_SECONDARY_TIMEOUT_SECONDS,
        )
        resp.raise_for_status()
        body = resp.json()
        return ConnectorResult(body if isinstance(body, dict) else {})

    async def fetch_images(self, client: httpx.AsyncClient, urn: str) -> ConnectorResult:
        return await self._get_secondary(client, "/api/v1/user/images", urn)

    async def fetch_posts(self, client: httpx.AsyncClient, urn: str) -> ConnectorResult:
        return await self._get_secondary(client, "/api/v1/user/posts", urn)

    async def fetch_comments(self, client: httpx.AsyncClient, urn: str) -> ConnectorResult:
        return await self._get_secondary(client, "/api/v1/user/comments", urn)

    async def fetch_reactions(self, client: httpx.AsyncClient, urn: str) -> ConnectorResult:
        return await self._get_secondary(client, "/api/v1/user/reactions", urn)

    async def fetch_recommendations(self, client: httpx.AsyncClient, urn: str) -> ConnectorResult:
        return await self._get_secondary(client, "/api/v1/user/recommendations", urn)

    async def fetch_contact_info(self, client: httpx.AsyncClient, urn: str) -> ConnectorResult:
        return await self._get_secondary(client, "/api/v1/user/contact-info", urn, paged=False)

    def secondary_lookups(self) -> Dict[str, SecondaryLookup]:
        return {
            "image": self.fetch_images,
            "posts": self.fetch_posts,
            "comments": self.fetch_comments,
            "reactions": self.fetch_reactions,
            "recommendations": self.fetch_recommendations,
            "contact_info": self.fetch_contact_info,
        }

    def apply_secondary(self, extras: SecondaryData, name: str, payload: Dict[str, Any]) -> None:
        if name == "image":
            extras.image_url = best_image(payload)
        elif name == "posts":
            extras.activities = posts_to_activities(payload, self.item_limit)
        elif name == "comments":
            extras.comments = comments_from(payload, self.item_limit)
        elif name == "reactions":
            extras.reactions = reactions_from(payload, self.item_limit)
        elif name == "recommendations":
            extras.recommendations = recommendations_from(payload, self.item_limit)
        elif name == "contact_info":
            extras.contact = contact_info_from(payload)

    def normalize(self, doc: Dict[str, Any], handle: str, extras: SecondaryData) -> Profile:
        return normalize_fresh_linkedin(doc, handle, extras)
