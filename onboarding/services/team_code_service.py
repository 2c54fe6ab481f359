"""Team Code Registry: issues and validates team codes.

Rules:
  - Codes are lowercase alphanumeric, TEAM_CODE_LENGTH characters long.
  - Collisions are retried up to TEAM_CODE_MAX_ATTEMPTS times.
  - Lookups always go through normalize_team_code (trim + lowercase).
  - No commits here: issue_code() adds to the caller's transaction.
"""

from __future__ import annotations

import logging
import secrets
import string

from flask import current_app
from sqlalchemy import select

from onboarding.core.exceptions import CodeGenerationExhaustedError, InvalidTeamCodeError
from onboarding.models import db
from onboarding.models.team import TeamCode
from onboarding.utils.helpers import normalize_team_code

logger = logging.getLogger(__name__)

CODE_ALPHABET = string.ascii_lowercase + string.digits


def _random_code(length: int) -> str:
    return "".join(secrets.choice(CODE_ALPHABET) for _ in range(length))


def find_code(code: str) -> TeamCode | None:
    code = normalize_team_code(code)
    if code is None:
        return None
    return db.session.execute(
        select(TeamCode).where(TeamCode.code == code)
    ).scalar_one_or_none()


def generate_unique_code() -> str:
    """Return a code not present in team_codes.

    Raises:
        CodeGenerationExhaustedError: No free code within the attempt bound.
    """
    length = current_app.config.get("TEAM_CODE_LENGTH", 9)
    max_attempts = current_app.config.get("TEAM_CODE_MAX_ATTEMPTS", 10)
    for attempt in range(1, max_attempts + 1):
        candidate = _random_code(length)
        if find_code(candidate) is None:
            return candidate
        logger.warning("Team code collision on attempt %d/%d", attempt, max_attempts)
    raise CodeGenerationExhaustedError(max_attempts)


def issue_code(team_id: int | None = None) -> TeamCode:
    """Generate a registered TeamCode and add it to the current session (flushed, not committed)."""
    team_code = TeamCode(code=generate_unique_code(), is_registered=True, team_id=team_id)
    db.session.add(team_code)
    db.session.flush()
    return team_code


def validate(code: str) -> dict:
    """Look a code up.

    Returns:
        {"exists": True, "isRegistered": bool, "teamCode": TeamCode dict}

    Raises:
        InvalidTeamCodeError: The code was never issued.
    """
    team_code = find_code(code)
    if team_code is None:
        raise InvalidTeamCodeError(code)
    return {
        "exists": True,
        "isRegistered": bool(team_code.is_registered),
        "teamCode": team_code.to_dict(),
    }


def require_registered(code: str) -> TeamCode:
    """Return the TeamCode, or raise InvalidTeamCodeError unless it is registered."""
    team_code = find_code(code)
    if team_code is None or not team_code.is_registered:
        raise InvalidTeamCodeError(code)
    return team_code
