from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Iterable
from uuid import UUID
import logging

from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..core.config import Settings, get_settings
from ..core.db import utcnow
from ..models.usage_log import UsageAction, UsageLog
from .errors import PersistenceError, QuotaExceeded

logger = logging.getLogger(__name__)

DEFAULT_PLAN = "free"

# Generation is gated on fresh briefs only; refresh counts both actions
GENERATION_ACTIONS = frozenset({UsageAction.BRIEF_GENERATED.value})
REFRESH_ACTIONS = frozenset(
    {UsageAction.BRIEF_GENERATED.value, UsageAction.BRIEF_REFRESHED.value}
)


def month_start(now: datetime | None = None) -> datetime:
    """
    First instant of ``now``'s calendar month in UTC, as a naive UTC datetime.

    Naive inputs are taken to already be UTC, matching how timestamps are stored.
    """
    now = now or utcnow()
    if now.tzinfo is not None:
        now = now.astimezone(timezone.utc).replace(tzinfo=None)
    return now.replace(day=1, hour=0, minute=0, second=0, microsecond=0)


@dataclass(frozen=True)
class QuotaDecision:
    allowed: bool
    used: int
    limit: int
    period_start: datetime

    @property
    def remaining(self) -> int:
        return max(0, self.limit - self.used)


class QuotaGate:
    """
    Single decision point for monthly usage limits.

    Reads the append-only usage log; never writes. Two concurrent requests can
    both read a count one below the limit, so at most one extra generation can
    slip through under a race.
    """

    def __init__(self, db: Session, settings: Settings | None = None) -> None:
        self.db = db
        self.settings = settings or get_settings()

    def limit_for_plan(self, plan: str | None) -> int:
        limits = self.settings.PLAN_LIMITS
        if plan and plan in limits:
            return limits[plan]
        return limits.get(DEFAULT_PLAN, 0)

    def count(self, user_id: UUID, period_start: datetime, actions: Iterable[str]) -> int:
        try:
            return (
                self.db.query(func.count(UsageLog.id))
                .filter(
                    UsageLog.user_id == user_id,
                    UsageLog.action.in_(list(actions)),
                    UsageLog.created_at >= period_start,
                )
                .scalar()
                or 0
            )
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error("Usage count query failed: %s", e, extra={"user_id": str(user_id), "step": "quota"})
            raise PersistenceError("Failed to read usage") from e

    def check(
        self,
        user_id: UUID,
        period_start: datetime,
        limit: int,
        actions: Iterable[str] = GENERATION_ACTIONS,
    ) -> QuotaDecision:
        used = self.count(user_id, period_start, actions)
        return QuotaDecision(
            allowed=used < limit,
            used=used,
            limit=limit,
            period_start=period_start,
        )

    def enforce(
        self,
        user,
        actions: Iterable[str] = GENERATION_ACTIONS,
        now: datetime | None = None,
        request_id: str | None = None,
    ) -> QuotaDecision:
        plan = user.plan or DEFAULT_PLAN
        decision = self.check(user.id, month_start(now), self.limit_for_plan(plan), actions)
        if not decision.allowed:
            logger.info(
                "Quota exceeded (%d/%d on plan %s)",
                decision.used,
                decision.limit,
                plan,
                extra={"request_id": request_id, "user_id": str(user.id), "step": "quota"},
            )
            raise QuotaExceeded(used=decision.used, limit=decision.limit, plan=plan)
        return decision
