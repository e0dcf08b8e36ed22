from __future__ import annotations

from typing import Any, Dict


class PrereqError(Exception):
    """
    Base class for every error the brief pipeline surfaces to its callers.

    ``code`` is the stable tag clients switch on (e.g. to show an upgrade
    prompt for USAGE_LIMIT_EXCEEDED); ``status_code`` is the HTTP status the
    route layer maps it to.
    """

    code = "INTERNAL_ERROR"
    status_code = 500

    def __init__(self, message: str | None = None, **details: Any) -> None:
        self.message = message or self.__class__.__name__
        self.details: Dict[str, Any] = details
        super().__init__(self.message)


class ConfigurationError(PrereqError):
    code = "INTERNAL_ERROR"
    status_code = 500


class ValidationError(PrereqError):
    code = "BAD_REQUEST"
    status_code = 400


class InvalidHandle(ValidationError):
    code = "INVALID_LINKEDIN_URL"


class AuthError(PrereqError):
    code = "UNAUTHORIZED"
    status_code = 401


class NotFound(PrereqError):
    code = "NOT_FOUND"
    status_code = 404


class BriefNotFound(NotFound):
    def __init__(self) -> None:
        super().__init__("Brief not found")


class QuotaExceeded(PrereqError):
    code = "USAGE_LIMIT_EXCEEDED"
    status_code = 403

    def __init__(self, used: int, limit: int, plan: str) -> None:
        super().__init__(
            "Monthly brief limit reached. Upgrade your plan for more briefs.",
            used=used,
            limit=limit,
            plan=plan,
        )
        self.used = used
        self.limit = limit
        self.plan = plan


class UpstreamProfileError(PrereqError):
    """Primary profile lookup failed. ``kind`` drives caller retry policy."""

    code = "LINKEDIN_API_ERROR"
    status_code = 502
    kind = "other"

    def __init__(self, message: str, upstream_status: int | None = None) -> None:
        super().__init__(message, kind=self.kind, upstream_status=upstream_status)
        self.upstream_status = upstream_status


class ProfileNotFound(UpstreamProfileError):
    code = "NOT_FOUND"
    status_code = 404
    kind = "not_found"


class UpstreamTimeout(UpstreamProfileError):
    status_code = 504
    kind = "timeout"


class UpstreamError(UpstreamProfileError):
    KINDS = ("rate_limited", "auth_failed", "other")

    def __init__(
        self,
        message: str,
        kind: str = "other",
        upstream_status: int | None = None,
    ) -> None:
        if kind not in self.KINDS:
            kind = "other"
        self.kind = kind
        if kind == "rate_limited":
            self.code = "RATE_LIMIT_EXCEEDED"
            self.status_code = 429
        super().__init__(message, upstream_status=upstream_status)


class GenerationFailed(PrereqError):
    code = "GENERATION_FAILED"
    status_code = 500

    def __init__(self, primary_error: Exception, secondary_error: Exception) -> None:
        super().__init__(
            "Brief generation failed on both providers",
            primary_error=repr(primary_error),
            secondary_error=repr(secondary_error),
        )
        self.primary_error = primary_error
        self.secondary_error = secondary_error


class PersistenceError(PrereqError):
    code = "INTERNAL_ERROR"
    status_code = 500
