from __future__ import annotations

from contextlib import contextmanager
from dataclasses import dataclass
from typing import Any, Dict, Iterator, List, Tuple
from uuid import UUID
import logging

from sqlalchemy import func, or_
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..core.config import Settings, get_settings
from ..core.db import utcnow
from ..models.brief import Brief
from ..models.usage_log import UsageAction, UsageLog
from ..schemas.briefs import GenerationResult
from ..schemas.profile import Profile
from .errors import BriefNotFound, PersistenceError, ValidationError

logger = logging.getLogger(__name__)

# Never writable through update(); refresh and patch must leave these alone
PROTECTED_FIELDS = frozenset({"id", "user_id", "created_at", "updated_at"})

SORT_COLUMNS = {
    "created_at": Brief.created_at,
    "profile_name": Brief.profile_name,
}


@dataclass(frozen=True)
class BriefFilters:
    search: str | None = None
    meeting_goal: str | None = None
    is_saved: bool | None = None


def profile_snapshot(profile: Profile, result: GenerationResult) -> Dict[str, Any]:
    """Full profile as stored on the brief, with the generation's enhanced insights."""
    snapshot = profile.model_dump(mode="json")
    snapshot["enhanced_insights"] = result.enhanced_insights()
    return snapshot


def summary_fields(profile: Profile) -> Dict[str, Any]:
    """Denormalised listing columns, always derived from the same profile as the snapshot."""
    return {
        "profile_name": profile.full_name or None,
        "profile_headline": profile.headline,
        "profile_photo_url": profile.profile_pic_url,
        "profile_location": profile.location,
        "profile_company": profile.current_company,
    }


def build_refresh_patch(
    profile: Profile,
    result: GenerationResult,
    meeting_goal: str | None = None,
) -> Dict[str, Any]:
    """
    Merge rule for a refresh.

    Content fields and the profile snapshot (with its summary columns) are
    replaced wholesale; the goal only when a new one was supplied. Everything
    else on the brief is left as it was.
    """
    patch: Dict[str, Any] = {
        **result.content_fields(),
        **summary_fields(profile),
        "profile_data": profile_snapshot(profile, result),
    }
    if meeting_goal:
        patch["meeting_goal"] = meeting_goal
    return patch


def _escape_like(term: str) -> str:
    return term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


class BriefStore:
    """
    Persistence for briefs and the usage log.

    Every brief read and write is scoped by (id, owner); a brief owned by
    someone else is reported exactly like a brief that does not exist.
    Methods only flush; callers decide the transaction boundary with
    ``transaction()``.
    """

    def __init__(self, db: Session, settings: Settings | None = None) -> None:
        self.db = db
        self.settings = settings or get_settings()

    @contextmanager
    def transaction(self) -> Iterator[Session]:
        try:
            yield self.db
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error("Persistence failure, transaction rolled back: %s", e)
            raise PersistenceError("Failed to save changes") from e
        except Exception:
            self.db.rollback()
            raise

    # -------------------------------------------------------------------------
    # Briefs
    # -------------------------------------------------------------------------

    def create(self, data: Dict[str, Any]) -> Brief:
        now = utcnow()
        brief = Brief(**data)
        brief.created_at = now
        brief.updated_at = now
        if brief.is_saved is None:
            brief.is_saved = False
        self.db.add(brief)
        self.db.flush()
        return brief

    def get_owned(self, brief_id: UUID, owner_id: UUID) -> Brief:
        brief = (
            self.db.query(Brief)
            .filter(Brief.id == brief_id, Brief.user_id == owner_id)
            .first()
        )
        if brief is None:
            raise BriefNotFound()
        return brief

    def update(self, brief_id: UUID, owner_id: UUID, patch: Dict[str, Any]) -> Brief:
        bad = PROTECTED_FIELDS.intersection(patch)
        if bad:
            raise ValidationError(f"Cannot update protected fields: {', '.join(sorted(bad))}")

        brief = self.get_owned(brief_id, owner_id)
        for key, value in patch.items():
            if key not in Brief.__table__.columns:
                raise ValidationError(f"Unknown brief field: {key}")
            setattr(brief, key, value)
        brief.updated_at = utcnow()
        self.db.flush()
        return brief

    def delete(self, brief_id: UUID, owner_id: UUID) -> None:
        deleted = (
            self.db.query(Brief)
            .filter(Brief.id == brief_id, Brief.user_id == owner_id)
            .delete(synchronize_session=False)
        )
        if not deleted:
            raise BriefNotFound()

    def list(
        self,
        owner_id: UUID,
        filters: BriefFilters | None = None,
        offset: int = 0,
        limit: int | None = None,
        sort: str = "created_at",
        order: str = "desc",
    ) -> Tuple[List[Brief], int]:
        """
        One page of the owner's briefs plus the size of the whole filtered set.

        ``limit`` is clamped to [1, MAX_PAGE_SIZE]; unknown sort keys fall back
        to creation time.
        """
        filters = filters or BriefFilters()
        limit = max(1, min(limit or self.settings.DEFAULT_PAGE_SIZE, self.settings.MAX_PAGE_SIZE))
        offset = max(0, offset)

        q = self.db.query(Brief).filter(Brief.user_id == owner_id)

        search = (filters.search or "").strip()
        if search:
            pattern = f"%{_escape_like(search)}%"
            q = q.filter(
                or_(
                    Brief.profile_name.ilike(pattern, escape="\\"),
                    Brief.profile_headline.ilike(pattern, escape="\\"),
                    Brief.profile_company.ilike(pattern, escape="\\"),
                )
            )
        if filters.meeting_goal:
            q = q.filter(Brief.meeting_goal == filters.meeting_goal)
        if filters.is_saved is not None:
            q = q.filter(Brief.is_saved == filters.is_saved)

        total = q.order_by(None).count()

        column = SORT_COLUMNS.get(sort, Brief.created_at)
        ordering = column.asc() if order == "asc" else column.desc()
        tiebreak = Brief.id.asc() if order == "asc" else Brief.id.desc()
        rows = q.order_by(ordering, tiebreak).offset(offset).limit(limit).all()
        return rows, total

    def count_briefs(self, owner_id: UUID) -> int:
        return (
            self.db.query(func.count(Brief.id)).filter(Brief.user_id == owner_id).scalar()
            or 0
        )

    # -------------------------------------------------------------------------
    # Usage log
    # -------------------------------------------------------------------------

    def append_usage_log(
        self,
        user_id: UUID,
        action: UsageAction | str,
        metadata: Dict[str, Any] | None = None,
    ) -> UsageLog:
        entry = UsageLog(
            user_id=user_id,
            action=action.value if isinstance(action, UsageAction) else action,
            meta=dict(metadata or {}),
            created_at=utcnow(),
        )
        self.db.add(entry)
        self.db.flush()
        return entry
