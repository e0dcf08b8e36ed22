from __future__ import annotations

from typing import Callable, Dict

from .base import BaseProfileConnector, ConnectorResult, raise_for_profile_status
from .linkedin import FreshLinkedInConnector
from .proxycurl import ProxycurlConnector
from ...core.config import Settings, get_settings
from ..errors import ConfigurationError

# Profile providers are selected by settings.PROFILE_PROVIDER; add new ones here.
CONNECTORS: Dict[str, Callable[[Settings], BaseProfileConnector]] = {
    "fresh_linkedin": FreshLinkedInConnector,
    "proxycurl": ProxycurlConnector,
}


def get_profile_connector(settings: Settings | None = None) -> BaseProfileConnector:
    settings = settings or get_settings()
    factory = CONNECTORS.get(settings.PROFILE_PROVIDER)
    if factory is None:
        raise ConfigurationError(f"Unknown PROFILE_PROVIDER '{settings.PROFILE_PROVIDER}'")
    return factory(settings)


__all__ = [
    "BaseProfileConnector",
    "ConnectorResult",
    "FreshLinkedInConnector",
    "ProxycurlConnector",
    "get_profile_connector",
    "raise_for_profile_status",
]
