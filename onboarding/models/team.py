"""Team registration data models.

Three models:
  TeamCode   the shared-secret code a team uses to open its session.
  Team       roster and contact data; name and email unique case-insensitively.
  TeamMember ordered member rows belonging to a Team.
"""

from __future__ import annotations

from onboarding.models import db
from onboarding.utils.helpers import isoformat, utcnow


def name_key(value: str) -> str:
    """Case-insensitive uniqueness key for team names and emails."""
    return " ".join(value.split()).lower()


# ── TeamCode ─────────────────────────────────────────────────────────────────


class TeamCode(db.Model):
    """A unique, lowercase, fixed-length team code.

    Created at registration time and never deleted. ``team_id`` is attached
    once, right after the Team row exists; ``is_registered`` never goes back
    to False.
    """

    __tablename__ = "team_codes"

    id = db.Column(db.Integer, primary_key=True)
    code = db.Column(db.String(32), nullable=False, unique=True, index=True)
    is_registered = db.Column(db.Boolean, nullable=False, default=False)
    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)
    team_id = db.Column(
        db.Integer,
        db.ForeignKey("teams.id", ondelete="SET NULL"),
        nullable=True,
        comment="Back-reference, null until the team row is created.",
    )

    def to_dict(self) -> dict:
        return {
            "code": self.code,
            "isRegistered": bool(self.is_registered),
            "createdAt": isoformat(self.created_at),
            "teamId": self.team_id,
        }

    def __repr__(self):
        return f"<TeamCode {self.code} registered={self.is_registered}>"


# ── Team ─────────────────────────────────────────────────────────────────────


class Team(db.Model):
    """A registered hackathon team.

    ``name_key`` / ``email_key`` hold normalised copies of the team name and
    email; their unique constraints make a racing duplicate registration fail
    at insert time even when the service-level pre-check passed.
    """

    __tablename__ = "teams"
    __table_args__ = (
        db.UniqueConstraint("name_key", name="uq_teams_name_key"),
        db.UniqueConstraint("email_key", name="uq_teams_email_key"),
    )

    id = db.Column(db.Integer, primary_key=True)
    team_name = db.Column(db.String(200), nullable=False)
    name_key = db.Column(db.String(200), nullable=False)
    team_email = db.Column(db.String(255), nullable=False)
    email_key = db.Column(db.String(255), nullable=False)
    contact_number = db.Column(db.String(50), nullable=False)
    university = db.Column(db.String(255), nullable=True)
    team_code = db.Column(db.String(32), nullable=True, index=True)
    registration_date = db.Column(db.DateTime, nullable=False, default=utcnow, index=True)
    status = db.Column(
        db.String(20),
        nullable=False,
        default="registered",
        comment="Reserved for future transitions.",
    )

    members = db.relationship(
        "TeamMember",
        back_populates="team",
        order_by="TeamMember.position",
        cascade="all, delete-orphan",
        lazy="select",
    )

    def to_summary_dict(self) -> dict:
        """Reduced projection for bulk listing, without member records or status."""
        return {
            "id": self.id,
            "teamName": self.team_name,
            "teamEmail": self.team_email,
            "memberNames": [m.full_name for m in self.members if m.full_name],
            "registrationDate": isoformat(self.registration_date),
        }

    def __repr__(self):
        return f"<Team {self.id}: {self.team_name}>"


class TeamMember(db.Model):
    __tablename__ = "team_members"

    id = db.Column(db.Integer, primary_key=True)
    team_id = db.Column(
        db.Integer,
        db.ForeignKey("teams.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    position = db.Column(db.Integer, nullable=False, default=0)
    full_name = db.Column(db.String(200), nullable=False)
    email = db.Column(db.String(255), nullable=False)
    gender = db.Column(db.String(30), nullable=True)
    food_preference = db.Column(db.String(50), nullable=False)

    team = db.relationship("Team", back_populates="members")
