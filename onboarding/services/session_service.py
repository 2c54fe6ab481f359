"""Onboarding Session Store: one time-boxed session per registered team code.

Operations map 1:1 to the /session endpoints:

    start_session              POST   create / resume / restart
    update_session             PUT    bind question type, complete
    complete_with_submission   PATCH  store the submission and complete
    check_status               GET    /submission/check summary

A restart (expired session or forceRestart) deletes the old row and inserts
a fresh one. The delete is flushed first so the unique team_code key never
sees two rows.
"""

from __future__ import annotations

import logging

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError

from onboarding.core.exceptions import (
    AlreadyCompletedError,
    SessionExpiredError,
    SessionNotFoundError,
    ValidationError,
)
from onboarding.core.payloads import (
    CompleteSessionRequest,
    StartSessionRequest,
    UpdateSessionRequest,
)
from onboarding.models import db
from onboarding.models.onboarding_session import OnboardingSession
from onboarding.services import submission_service, team_code_service
from onboarding.utils.helpers import (
    commit_or_raise,
    deadline_enforced,
    normalize_team_code,
    session_budget,
    utcnow,
)

logger = logging.getLogger(__name__)


def _find_session(team_code: str) -> OnboardingSession | None:
    team_code = normalize_team_code(team_code)
    if team_code is None:
        return None
    return db.session.execute(
        select(OnboardingSession).where(OnboardingSession.team_code == team_code)
    ).scalar_one_or_none()


def _require_session(team_code: str) -> OnboardingSession:
    session = _find_session(team_code)
    if session is None:
        raise SessionNotFoundError(team_code)
    return session


# ── POST /session ────────────────────────────────────────────────────────────


def start_session(req: StartSessionRequest) -> dict:
    """Create, resume or restart the team's session.

    - No session: create one. The clock starts only if a question type is given.
    - Session within budget, no forceRestart: returned unchanged, or
      AlreadyCompletedError if it is completed.
    - Budget lapsed, or forceRestart: replaced by a fresh one, completed or not.
      A stored submission is untouched, so the team still cannot submit twice.

    Raises:
        InvalidTeamCodeError: Code unknown or not registered.
        AlreadyCompletedError: Session finished within the budget.
    """
    team_code = team_code_service.require_registered(req.team_code)
    now = utcnow()
    budget = session_budget()

    existing = _find_session(team_code.code)
    if existing is not None:
        expired = existing.is_expired(now, budget)
        if not expired and not req.force_restart:
            if existing.is_completed:
                raise AlreadyCompletedError(team_code.code)
            logger.info("Session resumed team_code=%s", team_code.code)
            return existing.to_dict(now, budget)
        db.session.delete(existing)
        db.session.flush()
        logger.info(
            "Session restarted team_code=%s reason=%s",
            team_code.code, "expired" if expired else "forceRestart",
        )

    session = OnboardingSession(
        team_code=team_code.code,
        team_id=team_code.team_id,
        is_completed=False,
        created_at=now,
    )
    if req.question_type is not None:
        session.bind_question(req.question_type, now)
    db.session.add(session)

    try:
        commit_or_raise()
    except IntegrityError:
        # Lost the create race: another request inserted the row first.
        winner = _find_session(team_code.code)
        if winner is None:
            raise
        if winner.is_completed:
            raise AlreadyCompletedError(team_code.code)
        logger.info("Session create race resolved to existing row team_code=%s", team_code.code)
        return winner.to_dict(now, budget)

    logger.info(
        "Session created team_code=%s question_type=%s clock_started=%s",
        team_code.code, session.question_type, session.start_time is not None,
    )
    return session.to_dict(now, budget)


# ── PUT /session ─────────────────────────────────────────────────────────────


def update_session(req: UpdateSessionRequest) -> dict:
    """Bind a question type and/or mark the session completed.

    Completing an already-completed session is a no-op. Changing the question
    type of a completed session is rejected. isCompleted=false never reopens
    a session.
    """
    session = _require_session(req.team_code)
    now = utcnow()
    budget = session_budget()

    if session.is_completed:
        if req.question_type is not None and req.question_type != session.question_type:
            raise AlreadyCompletedError(session.team_code)
        return session.to_dict(now, budget)

    changed = False
    if req.question_type is not None:
        clock_started = session.bind_question(req.question_type, now)
        changed = True
        logger.info(
            "Session question bound team_code=%s question_type=%s clock_started=%s",
            session.team_code, req.question_type, clock_started,
        )
    if req.is_completed:
        changed = session.complete(now) or changed
        logger.info("Session completed team_code=%s", session.team_code)

    if changed:
        commit_or_raise()
    return session.to_dict(now, budget)


# ── PATCH /session ───────────────────────────────────────────────────────────


def complete_with_submission(req: CompleteSessionRequest) -> dict:
    """Store the team's submission and complete the session in one commit.

    The question type comes from the payload, falling back to the one
    bound on the session.

    Returns:
        {"session": dict, "submission": dict}
    """
    session = _require_session(req.team_code)
    now = utcnow()
    budget = session_budget()

    if session.is_completed:
        raise AlreadyCompletedError(session.team_code)
    if deadline_enforced() and session.is_expired(now, budget):
        raise SessionExpiredError(session.team_code)

    question_type = req.question_type if req.question_type is not None else session.question_type
    if question_type is None:
        raise ValidationError(
            "Invalid request parameters",
            details={"submission.questionType": "required when no question is bound to the session"},
        )

    submission = submission_service.store_submission(
        session.team_code,
        question_type,
        explanation=req.explanation,
        files=req.files,
        now=now,
    )
    return {
        "session": session.to_dict(now, budget),
        "submission": submission.to_dict(),
    }


# ── GET /submission/check ────────────────────────────────────────────────────


def check_status(team_code: str) -> dict:
    """Summarize session and submission state for the client's resume logic.

    A stored submission whose session is not completed is repaired here.

    Raises:
        SessionNotFoundError: No session for the code.
    """
    session = _require_session(team_code)
    now = utcnow()
    budget = session_budget()

    submission = submission_service.find_submission(session.team_code)
    if submission is not None:
        submission_service.reconcile_session(session, now)

    return {
        "hasSubmission": submission is not None,
        "hasFileContent": bool(submission and submission.file_names),
        "sessionCompleted": bool(session.is_completed),
        "questionType": session.question_type,
        "status": session.status(now, budget),
        "remainingTimeMs": session.remaining_time_ms(now, budget),
    }
