"""Team Registration Store.

Rules:
  - Team name and team email are unique case-insensitively (name_key / email_key).
  - The duplicate pre-check and the insert are separate statements; a racing
    registration that slips past the pre-check is stopped by the unique keys
    and reported as the same DuplicateTeamError.
  - Code issuance, team insert and code→team back-reference share one commit.
"""

from __future__ import annotations

import logging

from sqlalchemy import or_, select
from sqlalchemy.exc import IntegrityError

from onboarding.core.exceptions import DuplicateTeamError
from onboarding.core.payloads import RegisterTeamRequest
from onboarding.models import db
from onboarding.models.team import Team, TeamMember, name_key
from onboarding.services import team_code_service
from onboarding.utils.helpers import commit_or_raise

logger = logging.getLogger(__name__)


def _find_duplicate(team_key: str, email_key: str) -> str | None:
    """Return "teamName" / "teamEmail" for the first clashing field, else None."""
    existing = db.session.execute(
        select(Team).where(or_(Team.name_key == team_key, Team.email_key == email_key))
    ).scalars().first()
    if existing is None:
        return None
    return "teamName" if existing.name_key == team_key else "teamEmail"


def _duplicate_field_from(exc: IntegrityError) -> str | None:
    message = str(exc.orig)
    if "name_key" in message:
        return "teamName"
    if "email_key" in message:
        return "teamEmail"
    return None


def register_team(req: RegisterTeamRequest) -> dict:
    """Register a team and issue its team code.

    Returns:
        {"teamId": int, "teamCode": str}

    Raises:
        DuplicateTeamError: Name or email already registered.
        CodeGenerationExhaustedError: No free team code.
    """
    team_key = name_key(req.team_name)
    email_key = name_key(req.team_email)

    clash = _find_duplicate(team_key, email_key)
    if clash:
        logger.warning("Duplicate team registration rejected field=%s", clash)
        raise DuplicateTeamError(clash)

    try:
        team_code = team_code_service.issue_code()
        team = Team(
            team_name=req.team_name,
            name_key=team_key,
            team_email=req.team_email,
            email_key=email_key,
            contact_number=req.contact_number,
            university=req.university,
            team_code=team_code.code,
            members=[
                TeamMember(
                    position=idx,
                    full_name=m.full_name,
                    email=m.email,
                    gender=m.gender,
                    food_preference=m.food_preference,
                )
                for idx, m in enumerate(req.members)
            ],
        )
        db.session.add(team)
        db.session.flush()
        team_code.team_id = team.id
        commit_or_raise()
    except IntegrityError as exc:
        db.session.rollback()
        field = _duplicate_field_from(exc)
        if field is None:
            raise
        logger.warning("Duplicate team registration lost insert race field=%s", field)
        raise DuplicateTeamError(field) from exc

    logger.info("Team registered team_id=%s members=%d", team.id, len(req.members))
    return {"teamId": team.id, "teamCode": team_code.code}


def list_teams() -> list[dict]:
    """All teams, newest registration first, in the reduced listing shape."""
    teams = db.session.execute(
        select(Team).order_by(Team.registration_date.desc(), Team.id.desc())
    ).scalars().all()
    return [t.to_summary_dict() for t in teams]
