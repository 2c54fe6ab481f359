"""
Onboarding session model: the per-team, time-boxed session.

State machine (derived from the row, never stored as a column):

    pending_question  start_time is null; the clock has not started
    active            start_time set and within the time budget
    expired           start_time set, budget lapsed, not completed
    completed         is_completed = True (terminal)

    pending_question -> active | completed
    active           -> expired | completed
    expired          -> completed

"No session" and "restart" are not row transitions: a restart deletes the
row and inserts a fresh one (see session_service.start_session).

The server is passive about time. A lapsed clock only changes the derived
status and remaining time; is_completed flips solely through complete().
"""

from __future__ import annotations

from datetime import datetime, timedelta

from onboarding.core.exceptions import AlreadyCompletedError
from onboarding.models import db
from onboarding.utils.helpers import as_utc, isoformat, utcnow

DEFAULT_BUDGET = timedelta(hours=12)

STATUS_PENDING_QUESTION = "pending_question"
STATUS_ACTIVE = "active"
STATUS_EXPIRED = "expired"
STATUS_COMPLETED = "completed"

SESSION_TRANSITIONS = {
    STATUS_PENDING_QUESTION: [STATUS_ACTIVE, STATUS_COMPLETED],
    STATUS_ACTIVE:           [STATUS_EXPIRED, STATUS_COMPLETED],
    STATUS_EXPIRED:          [STATUS_COMPLETED],
    STATUS_COMPLETED:        [],
}


def validate_session_transition(old_status, new_status):
    """Return True if the OnboardingSession status transition is valid."""
    return new_status in SESSION_TRANSITIONS.get(old_status, [])


class OnboardingSession(db.Model):
    """At most one row per team code (unique constraint on team_code)."""

    __tablename__ = "onboarding_sessions"
    __table_args__ = (
        db.UniqueConstraint("team_code", name="uq_onboarding_sessions_team_code"),
    )

    id = db.Column(db.Integer, primary_key=True)
    team_code = db.Column(
        db.String(32),
        db.ForeignKey("team_codes.code", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    team_id = db.Column(db.Integer, nullable=True, comment="Lookup only, no FK cascade.")
    question_type = db.Column(db.Integer, nullable=True)
    start_time = db.Column(db.DateTime, nullable=True, comment="Null until a question type is chosen.")
    end_time = db.Column(db.DateTime, nullable=True)
    is_completed = db.Column(db.Boolean, nullable=False, default=False)
    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)

    # ── Clock ────────────────────────────────────────────────────────────

    def elapsed(self, now: datetime | None = None) -> timedelta:
        """Time since the clock started; zero while no question is chosen."""
        if self.start_time is None:
            return timedelta(0)
        now = as_utc(now) or utcnow()
        return max(timedelta(0), now - as_utc(self.start_time))

    def remaining_time_ms(self, now: datetime | None = None, budget: timedelta = DEFAULT_BUDGET) -> int:
        """max(0, budget - elapsed), in whole milliseconds."""
        remaining = budget - self.elapsed(now)
        return max(0, remaining // timedelta(milliseconds=1))

    def is_expired(self, now: datetime | None = None, budget: timedelta = DEFAULT_BUDGET) -> bool:
        return self.start_time is not None and self.elapsed(now) > budget

    def status(self, now: datetime | None = None, budget: timedelta = DEFAULT_BUDGET) -> str:
        if self.is_completed:
            return STATUS_COMPLETED
        if self.start_time is None:
            return STATUS_PENDING_QUESTION
        if self.is_expired(now, budget):
            return STATUS_EXPIRED
        return STATUS_ACTIVE

    # ── Transitions ──────────────────────────────────────────────────────

    def bind_question(self, question_type: int, now: datetime | None = None) -> bool:
        """Set the question type; the first binding starts the clock.

        Returns True when this call started the clock.

        Raises:
            AlreadyCompletedError: The session is terminal.
        """
        now = now or utcnow()
        current = self.status(now)
        if self.start_time is None:
            if not validate_session_transition(current, STATUS_ACTIVE):
                raise AlreadyCompletedError(self.team_code)
            self.question_type = question_type
            self.start_time = now
            return True
        if not SESSION_TRANSITIONS.get(current):
            raise AlreadyCompletedError(self.team_code)
        self.question_type = question_type
        return False

    def complete(self, now: datetime | None = None) -> bool:
        """Mark the session completed. Idempotent.

        Returns True if the session moved to completed, False if it was
        already terminal (nothing is touched in that case).
        """
        if self.is_completed:
            return False
        now = now or utcnow()
        current = self.status(now)
        if not validate_session_transition(current, STATUS_COMPLETED):
            raise ValueError(f"Invalid session transition: {current} -> {STATUS_COMPLETED}")
        self.is_completed = True
        self.end_time = now
        return True

    def to_dict(self, now: datetime | None = None, budget: timedelta = DEFAULT_BUDGET) -> dict:
        return {
            "id": self.id,
            "teamCode": self.team_code,
            "teamId": self.team_id,
            "questionType": self.question_type,
            "startTime": isoformat(self.start_time),
            "endTime": isoformat(self.end_time),
            "isCompleted": bool(self.is_completed),
            "status": self.status(now, budget),
            "remainingTimeMs": self.remaining_time_ms(now, budget),
        }

    def __repr__(self):
        return f"<OnboardingSession {self.team_code} q={self.question_type} done={self.is_completed}>"
