"""Submission Store: at most one solution submission per team code.

Rules:
  - The unique constraint on submissions.team_code is the only concurrency
    guard. No locking: the loser of an insert race gets IntegrityError and
    is answered with DuplicateSubmissionError, never an overwrite.
  - A successful insert completes the team's onboarding session (if one
    exists) in the same commit.
  - "Submission exists but session not completed" drift is repaired
    whenever it is observed.
  - File content is only serialized when explicitly requested.
"""

from __future__ import annotations

import logging
from datetime import datetime

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError

from onboarding.core.exceptions import (
    AlreadyCompletedError,
    DuplicateSubmissionError,
    SessionExpiredError,
)
from onboarding.core.payloads import CreateSubmissionRequest, SubmissionFileInput
from onboarding.models import db
from onboarding.models.onboarding_session import OnboardingSession
from onboarding.models.submission import Submission, SubmissionFile
from onboarding.services import team_code_service
from onboarding.utils.helpers import (
    commit_or_raise,
    deadline_enforced,
    normalize_team_code,
    session_budget,
    utcnow,
)

logger = logging.getLogger(__name__)


# ── Lookups ──────────────────────────────────────────────────────────────────


def find_submission(team_code: str) -> Submission | None:
    team_code = normalize_team_code(team_code)
    if team_code is None:
        return None
    return db.session.execute(
        select(Submission).where(Submission.team_code == team_code)
    ).scalar_one_or_none()


def _find_session(team_code: str) -> OnboardingSession | None:
    return db.session.execute(
        select(OnboardingSession).where(OnboardingSession.team_code == team_code)
    ).scalar_one_or_none()


def submission_exists(team_code: str) -> bool:
    team_code = normalize_team_code(team_code)
    if team_code is None:
        return False
    return db.session.execute(
        select(Submission.id).where(Submission.team_code == team_code)
    ).first() is not None


def get_submissions(team_code: str, include_file_content: bool = False) -> list[dict]:
    """Return the team's submissions (zero or one) as dicts."""
    team_code = normalize_team_code(team_code)
    rows = db.session.execute(
        select(Submission).where(Submission.team_code == team_code)
    ).scalars().all()
    return [s.to_dict(include_file_content=include_file_content) for s in rows]


# ── Drift repair ─────────────────────────────────────────────────────────────


def reconcile_session(session: OnboardingSession | None, now: datetime | None = None) -> bool:
    """Complete a session whose team already has a submission.

    Returns True when the session was changed and committed.
    """
    if session is None or session.is_completed:
        return False
    session.complete(now)
    commit_or_raise()
    logger.info("Session reconciled to completed team_code=%s (submission already stored)",
                session.team_code)
    return True


# ── Create ───────────────────────────────────────────────────────────────────


def store_submission(
    team_code: str,
    question_type: int,
    explanation: str = "",
    files: tuple[SubmissionFileInput, ...] = (),
    now: datetime | None = None,
) -> Submission:
    """Insert the team's single submission and complete its session.

    Raises:
        DuplicateSubmissionError: A submission exists (carries its metadata).
        AlreadyCompletedError: The session was completed without a submission.
        SessionExpiredError: Budget lapsed and SESSION_DEADLINE_ENFORCED is on.
    """
    now = now or utcnow()
    session = _find_session(team_code)

    existing = find_submission(team_code)
    if existing is not None:
        reconcile_session(session, now)
        logger.warning("Duplicate submission rejected team_code=%s", team_code)
        raise DuplicateSubmissionError(team_code, existing.to_dict())

    if session is not None:
        if session.is_completed:
            raise AlreadyCompletedError(team_code)
        if deadline_enforced() and session.is_expired(now, session_budget()):
            raise SessionExpiredError(team_code)
        team_id = session.team_id
    else:
        registered = team_code_service.find_code(team_code)
        team_id = registered.team_id if registered else None

    submission = Submission(
        team_code=team_code,
        team_id=team_id,
        question_type=question_type,
        explanation=explanation or "",
        file_names=[f.name for f in files],
        submitted_at=now,
        files=[
            SubmissionFile(
                position=idx,
                name=f.name,
                mime_type=f.mime_type,
                size_bytes=f.size_bytes,
                content=f.content,
                last_modified=f.last_modified,
            )
            for idx, f in enumerate(files)
        ],
    )
    db.session.add(submission)
    if session is not None:
        session.complete(now)

    try:
        commit_or_raise()
    except IntegrityError as exc:
        db.session.rollback()
        winner = find_submission(team_code)
        logger.warning("Submission lost insert race team_code=%s", team_code)
        if winner is not None:
            reconcile_session(_find_session(team_code), now)
        raise DuplicateSubmissionError(
            team_code, winner.to_dict() if winner else None,
        ) from exc

    logger.info(
        "Submission stored team_code=%s question_type=%s files=%d session_completed=%s",
        team_code, question_type, len(files), session is not None,
    )
    return submission


def create_submission(req: CreateSubmissionRequest) -> dict:
    """Entry point for POST /submission."""
    submission = store_submission(
        req.team_code,
        req.question_type,
        explanation=req.explanation,
        files=req.files,
    )
    return submission.to_dict()
