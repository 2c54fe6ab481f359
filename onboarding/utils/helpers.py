"""Shared utility functions used by models, services and blueprints.

utcnow / as_utc / isoformat:  timezone handling (SQLite hands back naive datetimes)
session_budget:               configured session time budget
normalize_team_code:          canonical lowercase form of a team code
parse_bool_arg:               query-string flags ("true"/"1"/"yes")
commit_or_raise:              commit helper that maps DB errors to service exceptions
"""
import logging
from datetime import datetime, timedelta, timezone

from flask import current_app
from sqlalchemy.exc import DBAPIError, IntegrityError, OperationalError

from onboarding.core.exceptions import UpstreamUnavailableError
from onboarding.models import db

logger = logging.getLogger(__name__)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: datetime | None) -> datetime | None:
    """Attach UTC to a naive datetime read back from the database."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def isoformat(value: datetime | None) -> str | None:
    value = as_utc(value)
    return value.isoformat() if value else None


def session_budget() -> timedelta:
    """Onboarding session time budget (SESSION_DURATION_HOURS, default 12h)."""
    return timedelta(hours=current_app.config.get("SESSION_DURATION_HOURS", 12))


def deadline_enforced() -> bool:
    return bool(current_app.config.get("SESSION_DEADLINE_ENFORCED", False))


def normalize_team_code(value) -> str | None:
    """Return the trimmed, lowercased team code, or None for non-strings/blank."""
    if not isinstance(value, str):
        return None
    value = value.strip().lower()
    return value or None


def parse_bool_arg(value) -> bool:
    if value is None:
        return False
    return str(value).strip().lower() in ("true", "1", "yes")


# ── Database commit helper ───────────────────────────────────────────────────

def commit_or_raise():
    """Commit the current SQLAlchemy session, rolling back on failure.

    IntegrityError    → re-raised unchanged; the caller decides which
                        conflict it represents (duplicate team, submission...)
    OperationalError  → UpstreamUnavailableError (503, retryable)
    DBAPIError        → UpstreamUnavailableError when the connection was lost,
                        otherwise re-raised (500)

    Usage::

        try:
            commit_or_raise()
        except IntegrityError:
            raise DuplicateSubmissionError(team_code, ...)
    """
    try:
        db.session.commit()
    except IntegrityError as exc:
        db.session.rollback()
        logger.warning("Integrity error on commit: %s", exc.orig)
        raise
    except OperationalError as exc:
        db.session.rollback()
        logger.error("Database operational error on commit: %s", exc.orig)
        raise UpstreamUnavailableError() from exc
    except DBAPIError as exc:
        db.session.rollback()
        if exc.connection_invalidated:
            logger.error("Database connection lost on commit: %s", exc.orig)
            raise UpstreamUnavailableError() from exc
        logger.exception("Unexpected database error on commit")
        raise
