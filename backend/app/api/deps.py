from uuid import uuid4
import logging

from fastapi import Depends, Header, Security
from fastapi.security.api_key import APIKeyHeader
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..core.config import get_settings
from ..core.db import get_db, utcnow
from ..models.user import User
from ..services.errors import AuthError
from ..services.handlers import BriefRequestHandlers, ProfileSyncHandler

api_key_header = APIKeyHeader(name="X-API-Key", auto_error=False)
logger = logging.getLogger(__name__)

MAX_EXTERNAL_ID_LEN = 255


def verify_api_key(api_key: str | None = Security(api_key_header)) -> None:
    """
    Header-based service key shared with the identity-provider gateway.

    - In dev, if API_AUTH_KEY is not set, the check is skipped.
    - Otherwise, require X-API-Key == API_AUTH_KEY.
    """
    settings = get_settings()
    expected = settings.API_AUTH_KEY

    if settings.ENV == "dev" and not expected:
        return

    if not expected:
        # In non-dev environments, missing config is treated as misconfiguration
        raise AuthError("API key not configured")

    if api_key != expected:
        raise AuthError("Invalid API key")


def get_current_user(
    _: None = Depends(verify_api_key),
    x_user_id: str | None = Header(default=None),
    x_user_email: str | None = Header(default=None),
    x_user_name: str | None = Header(default=None),
    db: Session = Depends(get_db),
) -> User:
    """
    Resolve the identity asserted by the upstream identity provider.

    The gateway forwards the verified subject in ``X-User-Id``; first sight of
    a subject creates its ``User`` row on the free plan.
    """
    external_id = (x_user_id or "").strip()
    if not external_id or len(external_id) > MAX_EXTERNAL_ID_LEN:
        raise AuthError("Authentication required")

    user = db.query(User).filter(User.external_id == external_id).first()
    if user:
        return user

    now = utcnow()
    user = User(
        external_id=external_id,
        email=(x_user_email or "").strip() or None,
        name=(x_user_name or "").strip() or None,
        plan="free",
        created_at=now,
        updated_at=now,
    )
    db.add(user)
    try:
        db.commit()
    except IntegrityError:
        # Another request created the same subject first
        db.rollback()
        user = db.query(User).filter(User.external_id == external_id).first()
        if not user:
            raise
        return user

    db.refresh(user)
    logger.info("Created user on first sign-in", extra={"user_id": str(user.id)})
    return user


def get_request_id(x_request_id: str | None = Header(default=None)) -> str:
    return (x_request_id or "").strip()[:64] or str(uuid4())


def get_brief_handlers(db: Session = Depends(get_db)) -> BriefRequestHandlers:
    return BriefRequestHandlers(db, settings=get_settings())


def get_profile_sync_handler(db: Session = Depends(get_db)) -> ProfileSyncHandler:
    return ProfileSyncHandler(db, settings=get_settings())
