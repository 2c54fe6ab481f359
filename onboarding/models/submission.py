"""Solution submission models.

Submission      one per team code (unique constraint is the only concurrency guard).
SubmissionFile  uploaded files, stored inline as base64 text.

``file_names`` duplicates the names of the attached files so status checks
and listings never have to touch the blob table.
"""

from __future__ import annotations

from onboarding.models import db
from onboarding.utils.helpers import isoformat, utcnow


class Submission(db.Model):
    __tablename__ = "submissions"
    __table_args__ = (
        db.UniqueConstraint("team_code", name="uq_submissions_team_code"),
    )

    id = db.Column(db.Integer, primary_key=True)
    team_code = db.Column(db.String(32), nullable=False, index=True)
    team_id = db.Column(db.Integer, nullable=True)
    question_type = db.Column(db.Integer, nullable=False)
    explanation = db.Column(db.Text, nullable=False, default="")
    file_names = db.Column(db.JSON, nullable=False, default=list)
    submitted_at = db.Column(db.DateTime, nullable=False, default=utcnow)

    files = db.relationship(
        "SubmissionFile",
        back_populates="submission",
        order_by="SubmissionFile.position",
        cascade="all, delete-orphan",
        lazy="select",
    )

    def to_dict(self, include_file_content: bool = False) -> dict:
        """Serialize; file blobs only when explicitly requested."""
        result = {
            "id": self.id,
            "teamCode": self.team_code,
            "questionType": self.question_type,
            "explanation": self.explanation,
            "fileNames": list(self.file_names or []),
            "submittedAt": isoformat(self.submitted_at),
        }
        if include_file_content:
            result["files"] = [f.to_dict() for f in self.files]
        return result

    def __repr__(self):
        return f"<Submission {self.team_code} files={len(self.file_names or [])}>"


class SubmissionFile(db.Model):
    __tablename__ = "submission_files"

    id = db.Column(db.Integer, primary_key=True)
    submission_id = db.Column(
        db.Integer,
        db.ForeignKey("submissions.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    position = db.Column(db.Integer, nullable=False, default=0)
    name = db.Column(db.String(255), nullable=False)
    mime_type = db.Column(db.String(255), nullable=True)
    size_bytes = db.Column(db.Integer, nullable=False, default=0)
    content = db.Column(db.Text, nullable=False, default="", comment="Base64-encoded file body.")
    last_modified = db.Column(db.BigInteger, nullable=True, comment="Client epoch millis.")

    submission = db.relationship("Submission", back_populates="files")

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "type": self.mime_type,
            "size": self.size_bytes,
            "content": self.content,
            "lastModified": self.last_modified,
        }
