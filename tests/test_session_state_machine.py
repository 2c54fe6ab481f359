"""
State-machine tests for ``OnboardingSession`` (model level, no HTTP).

    pending_question -> active | completed
    active           -> expired | completed
    expired          -> completed
    completed        -> (terminal)

Remaining time is always max(0, budget - elapsed) and never increases
while the session is open.
"""

from datetime import datetime, timedelta, timezone

import pytest

from onboarding.core.exceptions import AlreadyCompletedError
from onboarding.models.onboarding_session import (
    DEFAULT_BUDGET,
    SESSION_TRANSITIONS,
    STATUS_ACTIVE,
    STATUS_COMPLETED,
    STATUS_EXPIRED,
    STATUS_PENDING_QUESTION,
    OnboardingSession,
    validate_session_transition,
)

T0 = datetime(2026, 3, 14, 9, 0, tzinfo=timezone.utc)
BUDGET_MS = 12 * 60 * 60 * 1000


def _session(**kwargs) -> OnboardingSession:
    return OnboardingSession(team_code="abc123xyz", is_completed=False, **kwargs)


class TestTransitionsTable:
    @pytest.mark.parametrize("old,new", [
        (STATUS_PENDING_QUESTION, STATUS_ACTIVE),
        (STATUS_PENDING_QUESTION, STATUS_COMPLETED),
        (STATUS_ACTIVE, STATUS_EXPIRED),
        (STATUS_ACTIVE, STATUS_COMPLETED),
        (STATUS_EXPIRED, STATUS_COMPLETED),
    ])
    def test_valid_edges(self, old, new):
        assert validate_session_transition(old, new)

    @pytest.mark.parametrize("old,new", [
        (STATUS_COMPLETED, STATUS_ACTIVE),
        (STATUS_COMPLETED, STATUS_PENDING_QUESTION),
        (STATUS_EXPIRED, STATUS_ACTIVE),
        (STATUS_ACTIVE, STATUS_PENDING_QUESTION),
    ])
    def test_invalid_edges(self, old, new):
        assert not validate_session_transition(old, new)

    def test_completed_is_terminal(self):
        assert SESSION_TRANSITIONS[STATUS_COMPLETED] == []


class TestClock:
    def test_pending_session_has_full_budget(self):
        s = _session()
        assert s.status(T0) == STATUS_PENDING_QUESTION
        assert s.remaining_time_ms(T0) == BUDGET_MS
        assert s.remaining_time_ms(T0 + timedelta(days=3)) == BUDGET_MS

    def test_first_bind_starts_clock(self):
        s = _session()
        assert s.bind_question(1, T0) is True
        assert s.start_time == T0
        assert s.status(T0) == STATUS_ACTIVE

    def test_rebind_keeps_start_time(self):
        s = _session()
        s.bind_question(1, T0)
        assert s.bind_question(2, T0 + timedelta(hours=1)) is False
        assert s.question_type == 2
        assert s.start_time == T0

    def test_remaining_time_decreases(self):
        s = _session(start_time=T0, question_type=0)
        assert s.remaining_time_ms(T0 + timedelta(hours=1)) == BUDGET_MS - 3_600_000
        samples = [s.remaining_time_ms(T0 + timedelta(minutes=m)) for m in range(0, 800, 37)]
        assert samples == sorted(samples, reverse=True)
        assert all(0 <= v <= BUDGET_MS for v in samples)

    def test_expiry_boundary(self):
        s = _session(start_time=T0, question_type=0)
        assert not s.is_expired(T0 + DEFAULT_BUDGET)
        assert s.is_expired(T0 + DEFAULT_BUDGET + timedelta(milliseconds=1))
        assert s.status(T0 + timedelta(hours=13)) == STATUS_EXPIRED
        assert s.remaining_time_ms(T0 + timedelta(hours=13)) == 0

    def test_naive_start_time_treated_as_utc(self):
        s = _session(start_time=T0.replace(tzinfo=None), question_type=0)
        assert s.remaining_time_ms(T0 + timedelta(hours=2)) == BUDGET_MS - 7_200_000

    def test_custom_budget(self):
        s = _session(start_time=T0, question_type=0)
        assert s.is_expired(T0 + timedelta(hours=2), budget=timedelta(hours=1))


class TestComplete:
    def test_complete_is_idempotent(self):
        s = _session(start_time=T0, question_type=0)
        assert s.complete(T0 + timedelta(hours=1)) is True
        assert s.complete(T0 + timedelta(hours=2)) is False
        assert s.end_time == T0 + timedelta(hours=1)
        assert s.status(T0 + timedelta(hours=30)) == STATUS_COMPLETED

    def test_expired_session_can_complete(self):
        s = _session(start_time=T0, question_type=0)
        later = T0 + timedelta(hours=14)
        assert s.status(later) == STATUS_EXPIRED
        assert s.complete(later) is True
        assert s.status(later) == STATUS_COMPLETED

    def test_to_dict_shape(self):
        s = _session(start_time=T0, question_type=1)
        data = s.to_dict(T0 + timedelta(hours=1))
        assert data["teamCode"] == "abc123xyz"
        assert data["questionType"] == 1
        assert data["startTime"] == "2026-03-14T09:00:00+00:00"
        assert data["endTime"] is None
        assert data["isCompleted"] is False
        assert data["status"] == STATUS_ACTIVE
        assert data["remainingTimeMs"] == BUDGET_MS - 3_600_000


class TestGuardedTransitions:
    def test_bind_on_completed_session_is_rejected(self):
        s = _session()
        s.complete(T0)
        with pytest.raises(AlreadyCompletedError):
            s.bind_question(1, T0 + timedelta(minutes=5))
        assert s.start_time is None
        assert s.question_type is None

    def test_rebind_after_completion_is_rejected(self):
        s = _session(start_time=T0, question_type=0)
        s.complete(T0 + timedelta(hours=1))
        with pytest.raises(AlreadyCompletedError):
            s.bind_question(2, T0 + timedelta(hours=2))
        assert s.question_type == 0

    def test_rebind_on_expired_session_is_allowed(self):
        s = _session(start_time=T0, question_type=0)
        assert s.bind_question(1, T0 + timedelta(hours=13)) is False
        assert s.question_type == 1
        assert s.status(T0 + timedelta(hours=13)) == STATUS_EXPIRED

    def test_complete_from_pending(self):
        s = _session()
        assert s.complete(T0) is True
        assert s.status(T0) == STATUS_COMPLETED
        assert s.end_time == T0
