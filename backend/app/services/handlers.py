from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, List
from uuid import UUID, uuid4
import logging

from sqlalchemy.orm import Session

from ..core.config import Settings, get_settings
from ..core.db import utcnow
from ..models.brief import Brief
from ..models.usage_log import UsageAction
from ..models.user import User
from .brief_store import BriefFilters, BriefStore, build_refresh_patch, profile_snapshot, summary_fields
from .errors import ValidationError
from .handles import canonical_profile_url, normalize_handle
from .orchestrator import GenerationOrchestrator, GenerationOutcome
from .profile_fetcher import ProfileFetcher
from .quota import GENERATION_ACTIONS, REFRESH_ACTIONS, QuotaGate, month_start
from .writer import UserContext, resolve_meeting_goal

logger = logging.getLogger(__name__)


@dataclass
class BriefPage:
    briefs: List[Brief]
    total: int
    page: int
    limit: int

    @property
    def has_more(self) -> bool:
        return self.page * self.limit < self.total


@dataclass
class UsageStats:
    plan: str
    limit: int
    used: int
    remaining: int
    total_briefs: int
    period_start: datetime


def _usage_metadata(outcome: GenerationOutcome, **extra: Any) -> Dict[str, Any]:
    return {
        **extra,
        "ai_provider": outcome.provider_name,
        "provider": outcome.provider,
        "fallback_used": outcome.fallback_used,
        "llm_usage": outcome.usage,
    }


class BriefRequestHandlers:
    """
    One method per brief operation. The caller has already authenticated and
    passes the resolved ``User``.

    generate and refresh check quota before any upstream call, then fetch,
    generate and persist. The brief write and its usage-log entry commit
    together or not at all.
    """

    def __init__(
        self,
        db: Session,
        fetcher: ProfileFetcher | None = None,
        orchestrator: GenerationOrchestrator | None = None,
        settings: Settings | None = None,
    ) -> None:
        self.settings = settings or get_settings()
        self.db = db
        self.store = BriefStore(db, self.settings)
        self.quota = QuotaGate(db, self.settings)
        self._fetcher = fetcher
        self._orchestrator = orchestrator

    # Built on first use so read-only operations never need provider config
    @property
    def fetcher(self) -> ProfileFetcher:
        if self._fetcher is None:
            self._fetcher = ProfileFetcher(self.settings)
        return self._fetcher

    @property
    def orchestrator(self) -> GenerationOrchestrator:
        if self._orchestrator is None:
            self._orchestrator = GenerationOrchestrator(settings=self.settings)
        return self._orchestrator

    def generate(
        self,
        user: User,
        linkedin_url: str,
        meeting_goal: str | None,
        custom_goal: str | None = None,
        request_id: str | None = None,
    ) -> Brief:
        request_id = request_id or str(uuid4())
        log_extra = {"request_id": request_id, "user_id": str(user.id)}

        handle = normalize_handle(linkedin_url)
        goal = resolve_meeting_goal(meeting_goal, custom_goal)
        logger.info("Generating brief for %s", handle, extra={**log_extra, "step": "generate:start"})

        self.quota.enforce(user, GENERATION_ACTIONS, request_id=request_id)

        profile = self.fetcher.fetch(handle, request_id=request_id)
        outcome = self.orchestrator.generate(
            profile, UserContext.from_user(user), goal, request_id=request_id
        )

        canonical_url = canonical_profile_url(handle)
        with self.store.transaction():
            brief = self.store.create(
                {
                    "user_id": user.id,
                    "linkedin_url": canonical_url,
                    "meeting_goal": goal,
                    **summary_fields(profile),
                    "profile_data": profile_snapshot(profile, outcome.data),
                    **outcome.data.content_fields(),
                    "is_saved": False,
                }
            )
            self.store.append_usage_log(
                user.id,
                UsageAction.BRIEF_GENERATED,
                _usage_metadata(
                    outcome,
                    brief_id=str(brief.id),
                    linkedin_url=canonical_url,
                    meeting_goal=goal,
                ),
            )

        logger.info(
            "Brief generated via %s",
            outcome.provider_name,
            extra={**log_extra, "brief_id": str(brief.id), "provider": outcome.provider, "step": "generate:done"},
        )
        return brief

    def refresh(
        self,
        user: User,
        brief_id: UUID,
        meeting_goal: str | None = None,
        custom_goal: str | None = None,
        request_id: str | None = None,
    ) -> Brief:
        request_id = request_id or str(uuid4())
        log_extra = {"request_id": request_id, "user_id": str(user.id), "brief_id": str(brief_id)}

        existing = self.store.get_owned(brief_id, user.id)
        new_goal = resolve_meeting_goal(meeting_goal, custom_goal) if meeting_goal else None
        if new_goal is None and custom_goal:
            raise ValidationError("custom_goal requires meeting_goal 'custom'")
        goal = new_goal or existing.meeting_goal
        logger.info("Refreshing brief", extra={**log_extra, "step": "refresh:start"})

        self.quota.enforce(user, REFRESH_ACTIONS, request_id=request_id)

        # Always re-fetched; a refresh exists to pick up profile changes
        profile = self.fetcher.fetch(existing.linkedin_url, request_id=request_id)
        outcome = self.orchestrator.generate(
            profile, UserContext.from_user(user), goal, request_id=request_id
        )

        with self.store.transaction():
            brief = self.store.update(
                brief_id, user.id, build_refresh_patch(profile, outcome.data, new_goal)
            )
            self.store.append_usage_log(
                user.id,
                UsageAction.BRIEF_REFRESHED,
                _usage_metadata(
                    outcome,
                    brief_id=str(brief.id),
                    linkedin_url=brief.linkedin_url,
                    meeting_goal=goal,
                ),
            )

        logger.info(
            "Brief refreshed via %s",
            outcome.provider_name,
            extra={**log_extra, "provider": outcome.provider, "step": "refresh:done"},
        )
        return brief

    def get(self, user: User, brief_id: UUID) -> Brief:
        return self.store.get_owned(brief_id, user.id)

    def list(
        self,
        user: User,
        search: str | None = None,
        meeting_goal: str | None = None,
        is_saved: bool | None = None,
        page: int = 1,
        limit: int | None = None,
        sort: str = "created_at",
        order: str = "desc",
    ) -> BriefPage:
        page = max(1, page)
        limit = max(1, min(limit or self.settings.DEFAULT_PAGE_SIZE, self.settings.MAX_PAGE_SIZE))
        briefs, total = self.store.list(
            user.id,
            BriefFilters(search=search, meeting_goal=meeting_goal, is_saved=is_saved),
            offset=(page - 1) * limit,
            limit=limit,
            sort=sort,
            order=order,
        )
        return BriefPage(briefs=briefs, total=total, page=page, limit=limit)

    def patch(self, user: User, brief_id: UUID, is_saved: bool) -> Brief:
        with self.store.transaction():
            brief = self.store.update(brief_id, user.id, {"is_saved": is_saved})
        return brief

    def delete(self, user: User, brief_id: UUID) -> None:
        with self.store.transaction():
            self.store.delete(brief_id, user.id)
        logger.info("Brief deleted", extra={"user_id": str(user.id), "brief_id": str(brief_id)})

    def usage_stats(self, user: User, now: datetime | None = None) -> UsageStats:
        period_start = month_start(now)
        limit = self.quota.limit_for_plan(user.plan)
        decision = self.quota.check(user.id, period_start, limit, REFRESH_ACTIONS)
        return UsageStats(
            plan=user.plan or "free",
            limit=limit,
            used=decision.used,
            remaining=decision.remaining,
            total_briefs=self.store.count_briefs(user.id),
            period_start=period_start,
        )


class ProfileSyncHandler:
    """Connects the requesting user's own LinkedIn profile, used for common ground."""

    def __init__(
        self,
        db: Session,
        fetcher: ProfileFetcher | None = None,
        settings: Settings | None = None,
    ) -> None:
        self.settings = settings or get_settings()
        self.db = db
        self.store = BriefStore(db, self.settings)
        self._fetcher = fetcher

    @property
    def fetcher(self) -> ProfileFetcher:
        if self._fetcher is None:
            self._fetcher = ProfileFetcher(self.settings)
        return self._fetcher

    def connect(self, user: User, linkedin_url: str, request_id: str | None = None) -> User:
        handle = normalize_handle(linkedin_url)
        return self._sync(user, handle, request_id)

    def resync(self, user: User, request_id: str | None = None) -> User:
        if not user.linkedin_url:
            raise ValidationError("No LinkedIn profile connected")
        return self._sync(user, normalize_handle(user.linkedin_url), request_id)

    def disconnect(self, user: User) -> User:
        with self.store.transaction():
            user.linkedin_url = None
            user.linkedin_data = None
            user.updated_at = utcnow()
        return user

    def _sync(self, user: User, handle: str, request_id: str | None) -> User:
        request_id = request_id or str(uuid4())
        profile = self.fetcher.fetch(handle, request_id=request_id)
        canonical_url = canonical_profile_url(handle)

        with self.store.transaction():
            user.linkedin_url = canonical_url
            user.linkedin_data = profile.model_dump(mode="json")
            user.updated_at = utcnow()
            # Fill gaps only; values the user set themselves win
            if not user.name and profile.full_name:
                user.name = profile.full_name
            if not user.company and profile.current_company:
                user.company = profile.current_company
            if not user.role and profile.experiences and profile.experiences[0].title:
                user.role = profile.experiences[0].title
            self.store.append_usage_log(
                user.id,
                UsageAction.PROFILE_SYNCED,
                {"linkedin_url": canonical_url},
            )

        logger.info(
            "Synced own LinkedIn profile",
            extra={"request_id": request_id, "user_id": str(user.id), "step": "profile_sync"},
        )
        return user
