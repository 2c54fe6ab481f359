"""initial onboarding schema

Creates the onboarding tables:
  - team_codes           issued team codes
  - teams                registered teams (name / email unique case-insensitively)
  - team_members         ordered member rows
  - onboarding_sessions  one time-boxed session per team code
  - submissions          one solution submission per team code
  - submission_files     base64 file bodies attached to a submission

Tables created conditionally (IF NOT EXISTS semantics) so databases that
already received them via db.create_all() upgrade cleanly.

Revision ID: 5c1e9a7d2b40
Revises:
Create Date: 2026-10-19 09:12:44.318204
"""
from alembic import op
import sqlalchemy as sa
from sqlalchemy import inspect as sa_inspect


# revision identifiers, used by Alembic.
revision = '5c1e9a7d2b40'
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    bind = op.get_bind()
    existing = set(sa_inspect(bind).get_table_names())

    # ── Teams ─────────────────────────────────────────────────────────────
    if "teams" not in existing:
        op.create_table(
            "teams",
            sa.Column("id", sa.Integer(), nullable=False),
            sa.Column("team_name", sa.String(length=200), nullable=False),
            sa.Column("name_key", sa.String(length=200), nullable=False),
            sa.Column("team_email", sa.String(length=255), nullable=False),
            sa.Column("email_key", sa.String(length=255), nullable=False),
            sa.Column("contact_number", sa.String(length=50), nullable=False),
            sa.Column("university", sa.String(length=255), nullable=True),
            sa.Column("team_code", sa.String(length=32), nullable=True),
            sa.Column("registration_date", sa.DateTime(), nullable=False),
            sa.Column("status", sa.String(length=20), nullable=False,
                      comment="Reserved for future transitions."),
            sa.PrimaryKeyConstraint("id"),
            sa.UniqueConstraint("name_key", name="uq_teams_name_key"),
            sa.UniqueConstraint("email_key", name="uq_teams_email_key"),
        )
        op.create_index("ix_teams_team_code", "teams", ["team_code"])
        op.create_index("ix_teams_registration_date", "teams", ["registration_date"])

    # ── Team codes ────────────────────────────────────────────────────────
    if "team_codes" not in existing:
        op.create_table(
            "team_codes",
            sa.Column("id", sa.Integer(), nullable=False),
            sa.Column("code", sa.String(length=32), nullable=False),
            sa.Column("is_registered", sa.Boolean(), nullable=False),
            sa.Column("created_at", sa.DateTime(), nullable=False),
            sa.Column("team_id", sa.Integer(), nullable=True,
                      comment="Back-reference, null until the team row is created."),
            sa.ForeignKeyConstraint(["team_id"], ["teams.id"], ondelete="SET NULL"),
            sa.PrimaryKeyConstraint("id"),
        )
        op.create_index("ix_team_codes_code", "team_codes", ["code"], unique=True)

    # ── Team members ──────────────────────────────────────────────────────
    if "team_members" not in existing:
        op.create_table(
            "team_members",
            sa.Column("id", sa.Integer(), nullable=False),
            sa.Column("team_id", sa.Integer(), nullable=False),
            sa.Column("position", sa.Integer(), nullable=False),
            sa.Column("full_name", sa.String(length=200), nullable=False),
            sa.Column("email", sa.String(length=255), nullable=False),
            sa.Column("gender", sa.String(length=30), nullable=True),
            sa.Column("food_preference", sa.String(length=50), nullable=False),
            sa.ForeignKeyConstraint(["team_id"], ["teams.id"], ondelete="CASCADE"),
            sa.PrimaryKeyConstraint("id"),
        )
        op.create_index("ix_team_members_team_id", "team_members", ["team_id"])

    # ── Onboarding sessions ───────────────────────────────────────────────
    if "onboarding_sessions" not in existing:
        op.create_table(
            "onboarding_sessions",
            sa.Column("id", sa.Integer(), nullable=False),
            sa.Column("team_code", sa.String(length=32), nullable=False),
            sa.Column("team_id", sa.Integer(), nullable=True, comment="Lookup only, no FK cascade."),
            sa.Column("question_type", sa.Integer(), nullable=True),
            sa.Column("start_time", sa.DateTime(), nullable=True,
                      comment="Null until a question type is chosen."),
            sa.Column("end_time", sa.DateTime(), nullable=True),
            sa.Column("is_completed", sa.Boolean(), nullable=False),
            sa.Column("created_at", sa.DateTime(), nullable=False),
            sa.ForeignKeyConstraint(["team_code"], ["team_codes.code"], ondelete="CASCADE"),
            sa.PrimaryKeyConstraint("id"),
            sa.UniqueConstraint("team_code", name="uq_onboarding_sessions_team_code"),
        )
        op.create_index("ix_onboarding_sessions_team_code", "onboarding_sessions", ["team_code"])

    # ── Submissions ───────────────────────────────────────────────────────
    if "submissions" not in existing:
        op.create_table(
            "submissions",
            sa.Column("id", sa.Integer(), nullable=False),
            sa.Column("team_code", sa.String(length=32), nullable=False),
            sa.Column("team_id", sa.Integer(), nullable=True),
            sa.Column("question_type", sa.Integer(), nullable=False),
            sa.Column("explanation", sa.Text(), nullable=False),
            sa.Column("file_names", sa.JSON(), nullable=False),
            sa.Column("submitted_at", sa.DateTime(), nullable=False),
            sa.PrimaryKeyConstraint("id"),
            sa.UniqueConstraint("team_code", name="uq_submissions_team_code"),
        )
        op.create_index("ix_submissions_team_code", "submissions", ["team_code"])

    if "submission_files" not in existing:
        op.create_table(
            "submission_files",
            sa.Column("id", sa.Integer(), nullable=False),
            sa.Column("submission_id", sa.Integer(), nullable=False),
            sa.Column("position", sa.Integer(), nullable=False),
            sa.Column("name", sa.String(length=255), nullable=False),
            sa.Column("mime_type", sa.String(length=255), nullable=True),
            sa.Column("size_bytes", sa.Integer(), nullable=False),
            sa.Column("content", sa.Text(), nullable=False, comment="Base64-encoded file body."),
            sa.Column("last_modified", sa.BigInteger(), nullable=True, comment="Client epoch millis."),
            sa.ForeignKeyConstraint(["submission_id"], ["submissions.id"], ondelete="CASCADE"),
            sa.PrimaryKeyConstraint("id"),
        )
        op.create_index("ix_submission_files_submission_id", "submission_files", ["submission_id"])


def downgrade():
    for table in (
        "submission_files",
        "submissions",
        "onboarding_sessions",
        "team_members",
        "team_codes",
        "teams",
    ):
        op.drop_table(table)
