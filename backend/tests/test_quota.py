"""
Tests for quota.py - monthly usage limits read from the usage log.
"""
from datetime import datetime, timedelta, timezone
from unittest.mock import MagicMock

import pytest
from sqlalchemy.exc import OperationalError

from app.services.errors import PersistenceError, QuotaExceeded
from app.services.quota import (
    GENERATION_ACTIONS,
    REFRESH_ACTIONS,
    QuotaGate,
    month_start,
)


class TestMonthStart:
    def test_naive_is_utc(self):
        assert month_start(datetime(2026, 3, 17, 15, 4, 5)) == datetime(2026, 3, 1)

    def test_aware_is_converted_to_utc(self):
        # 2026-04-01 01:30 in UTC+05:00 is still March in UTC
        local = datetime(2026, 4, 1, 1, 30, tzinfo=timezone(timedelta(hours=5)))
        assert month_start(local) == datetime(2026, 3, 1)


class TestLimits:
    def test_plan_table(self, db, settings):
        gate = QuotaGate(db, settings)
        assert gate.limit_for_plan("free") == 5
        assert gate.limit_for_plan("starter") == 30
        assert gate.limit_for_plan("pro") == 100

    @pytest.mark.parametrize("plan", [None, "", "enterprise"])
    def test_unknown_plan_falls_back_to_free(self, db, settings, plan):
        assert QuotaGate(db, settings).limit_for_plan(plan) == 5


class TestCheck:
    def test_allows_strictly_below_limit(self, db, settings, make_user, add_usage):
        user = make_user()
        add_usage(user, "brief_generated", count=4)

        decision = QuotaGate(db, settings).check(user.id, month_start(), 5, GENERATION_ACTIONS)

        assert decision.allowed is True
        assert decision.used == 4
        assert decision.remaining == 1

    def test_denies_at_limit(self, db, settings, make_user, add_usage):
        user = make_user()
        add_usage(user, "brief_generated", count=5)

        decision = QuotaGate(db, settings).check(user.id, month_start(), 5, GENERATION_ACTIONS)

        assert decision.allowed is False
        assert decision.remaining == 0

    def test_previous_month_does_not_count(self, db, settings, make_user, add_usage):
        user = make_user()
        add_usage(user, "brief_generated", count=5, at=datetime(2026, 1, 31, 23, 59, 59))
        add_usage(user, "brief_generated", count=1, at=datetime(2026, 2, 1, 0, 0, 0))

        gate = QuotaGate(db, settings)
        february = gate.check(user.id, month_start(datetime(2026, 2, 10)), 5)
        january = gate.check(user.id, month_start(datetime(2026, 1, 10)), 5)

        assert february.used == 1
        assert february.allowed is True
        assert january.used == 6

    def test_action_sets(self, db, settings, make_user, add_usage):
        user = make_user()
        add_usage(user, "brief_generated", count=3)
        add_usage(user, "brief_refreshed", count=2)
        add_usage(user, "profile_synced", count=4)

        gate = QuotaGate(db, settings)
        assert gate.check(user.id, month_start(), 5, GENERATION_ACTIONS).used == 3
        assert gate.check(user.id, month_start(), 5, REFRESH_ACTIONS).used == 5

    def test_other_users_do_not_count(self, db, settings, make_user, add_usage):
        user, other = make_user(), make_user()
        add_usage(other, "brief_generated", count=5)

        assert QuotaGate(db, settings).check(user.id, month_start(), 5).used == 0


class TestEnforce:
    def test_raises_tagged_error(self, db, settings, make_user, add_usage):
        user = make_user(plan="free")
        add_usage(user, "brief_generated", count=5)

        with pytest.raises(QuotaExceeded) as exc:
            QuotaGate(db, settings).enforce(user, GENERATION_ACTIONS)

        assert exc.value.code == "USAGE_LIMIT_EXCEEDED"
        assert exc.value.used == 5
        assert exc.value.limit == 5
        assert exc.value.plan == "free"

    def test_higher_plan_allows(self, db, settings, make_user, add_usage):
        user = make_user(plan="starter")
        add_usage(user, "brief_generated", count=5)

        decision = QuotaGate(db, settings).enforce(user, GENERATION_ACTIONS)
        assert decision.allowed is True
        assert decision.limit == 30

    def test_database_failure_is_persistence_error(self, settings, make_user):
        user = make_user()
        broken = MagicMock()
        broken.query.side_effect = OperationalError("SELECT count(*)", {}, Exception("database is down"))

        with pytest.raises(PersistenceError):
            QuotaGate(broken, settings).enforce(user, GENERATION_ACTIONS)
        broken.rollback.assert_called_once()
