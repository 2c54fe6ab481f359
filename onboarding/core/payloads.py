"""
Typed request payloads.

Every endpoint body is parsed into one of these frozen dataclasses before it
reaches a service. Parsing is exhaustive: all violated fields are collected
into ``ValidationError.details`` instead of stopping at the first one.

Usage:
    req = StartSessionRequest.from_json(request.get_json(silent=True), question_types=(0, 1, 2))
"""

from __future__ import annotations

import base64
import binascii
from dataclasses import dataclass, field

from email_validator import EmailNotValidError, validate_email

from onboarding.core.exceptions import ValidationError
from onboarding.utils.helpers import normalize_team_code

_MISSING = object()


# ── Field helpers ────────────────────────────────────────────────────────────


def _text(value) -> str:
    return value.strip() if isinstance(value, str) else ""


def _team_code(data: dict, errors: dict) -> str | None:
    code = normalize_team_code(data.get("teamCode"))
    if code is None:
        errors["teamCode"] = "required string"
    return code


def _email(value, field_name: str, errors: dict) -> str | None:
    raw = _text(value)
    if not raw:
        errors[field_name] = "required"
        return None
    try:
        return validate_email(raw, check_deliverability=False).normalized
    except EmailNotValidError as exc:
        errors[field_name] = f"invalid email: {exc}"
        return None


def _question_type(value, question_types, errors: dict, required: bool = False):
    """Parse an optional question type (int, or digit string from multipart forms)."""
    if value is _MISSING or value is None or value == "":
        if required:
            errors["questionType"] = "required"
        return None
    if isinstance(value, str) and value.strip().lstrip("-").isdigit():
        value = int(value)
    if isinstance(value, bool) or not isinstance(value, int):
        errors["questionType"] = "must be an integer"
        return None
    if question_types and value not in question_types:
        errors["questionType"] = f"must be one of {list(question_types)}"
        return None
    return value


def _optional_bool(data: dict, key: str, errors: dict):
    value = data.get(key)
    if value is None:
        return None
    if not isinstance(value, bool):
        errors[key] = "must be a boolean"
        return None
    return value


def _require_object(data, message: str = "Request body must be a JSON object") -> dict:
    if not isinstance(data, dict):
        raise ValidationError(message, details={"body": "expected JSON object"})
    return data


def _raise_if(errors: dict, message: str) -> None:
    if errors:
        raise ValidationError(message, details=errors)


# ── Team registration ────────────────────────────────────────────────────────


@dataclass(frozen=True)
class MemberInput:
    full_name: str
    email: str
    food_preference: str
    gender: str | None = None


@dataclass(frozen=True)
class RegisterTeamRequest:
    team_name: str
    team_email: str
    contact_number: str
    members: tuple[MemberInput, ...]
    university: str | None = None

    @classmethod
    def from_json(cls, data, min_members: int = 2) -> "RegisterTeamRequest":
        """Parse ``{"teamData": {...}}``.

        Members missing any of full name / email / food preference are
        dropped; a member whose fields are all present but whose email is
        malformed is reported.
        """
        data = _require_object(data)
        team = data.get("teamData")
        if not isinstance(team, dict):
            raise ValidationError("Team data is required", details={"teamData": "required object"})

        errors: dict = {}
        team_name = _text(team.get("teamName"))
        if not team_name:
            errors["teamName"] = "required"
        elif len(team_name) > 200:
            errors["teamName"] = "must be <= 200 chars"
        team_email = _email(team.get("teamEmail"), "teamEmail", errors)
        contact_number = _text(team.get("contactNumber") or team.get("phoneNumber"))
        if not contact_number:
            errors["contactNumber"] = "required"
        university = _text(team.get("university")) or None

        raw_members = team.get("members")
        members: list[MemberInput] = []
        if not isinstance(raw_members, list):
            errors["members"] = "required list"
        else:
            for idx, raw in enumerate(raw_members):
                if not isinstance(raw, dict):
                    continue
                full_name = _text(raw.get("fullName"))
                food = _text(raw.get("foodPreference") or raw.get("foodChoice"))
                if not (full_name and _text(raw.get("email")) and food):
                    continue
                email = _email(raw.get("email"), f"members[{idx}].email", errors)
                if email is None:
                    continue
                members.append(MemberInput(
                    full_name=full_name,
                    email=email,
                    food_preference=food,
                    gender=_text(raw.get("gender")) or None,
                ))
            if len(members) < min_members:
                errors["members"] = (
                    f"at least {min_members} members must have full name, email and food preference"
                )

        _raise_if(errors, "Invalid team registration data")
        return cls(
            team_name=team_name,
            team_email=team_email,
            contact_number=contact_number,
            members=tuple(members),
            university=university,
        )


@dataclass(frozen=True)
class ValidateCodeRequest:
    team_code: str

    @classmethod
    def from_json(cls, data) -> "ValidateCodeRequest":
        data = _require_object(data)
        errors: dict = {}
        code = _team_code(data, errors)
        _raise_if(errors, "Invalid team code format")
        return cls(team_code=code)


# ── Sessions ─────────────────────────────────────────────────────────────────


@dataclass(frozen=True)
class StartSessionRequest:
    team_code: str
    question_type: int | None = None
    force_restart: bool = False

    @classmethod
    def from_json(cls, data, question_types=()) -> "StartSessionRequest":
        data = _require_object(data)
        errors: dict = {}
        code = _team_code(data, errors)
        question_type = _question_type(data.get("questionType", _MISSING), question_types, errors)
        force_restart = _optional_bool(data, "forceRestart", errors)
        _raise_if(errors, "Invalid session request")
        return cls(team_code=code, question_type=question_type, force_restart=bool(force_restart))


@dataclass(frozen=True)
class UpdateSessionRequest:
    team_code: str
    question_type: int | None = None
    is_completed: bool | None = None

    @classmethod
    def from_json(cls, data, question_types=()) -> "UpdateSessionRequest":
        data = _require_object(data)
        errors: dict = {}
        code = _team_code(data, errors)
        question_type = _question_type(data.get("questionType", _MISSING), question_types, errors)
        is_completed = _optional_bool(data, "isCompleted", errors)
        if not errors and question_type is None and is_completed is None:
            errors["body"] = "questionType or isCompleted is required"
        _raise_if(errors, "Invalid request parameters")
        return cls(team_code=code, question_type=question_type, is_completed=is_completed)


# ── Submissions ──────────────────────────────────────────────────────────────


@dataclass(frozen=True)
class SubmissionFileInput:
    name: str
    content: str
    size_bytes: int
    mime_type: str | None = None
    last_modified: int | None = None

    @classmethod
    def from_upload(cls, storage) -> "SubmissionFileInput":
        """Build from a werkzeug FileStorage (multipart part)."""
        raw = storage.read()
        return cls(
            name=storage.filename or "upload",
            content=base64.b64encode(raw).decode("ascii"),
            size_bytes=len(raw),
            mime_type=storage.mimetype or None,
        )


def _parse_files(raw_files, errors: dict) -> tuple[SubmissionFileInput, ...]:
    if raw_files is None:
        return ()
    if not isinstance(raw_files, list):
        errors["files"] = "must be a list"
        return ()
    files = []
    for idx, raw in enumerate(raw_files):
        prefix = f"files[{idx}]"
        if not isinstance(raw, dict):
            errors[prefix] = "must be an object"
            continue
        name = _text(raw.get("name"))
        if not name:
            errors[f"{prefix}.name"] = "required"
        content = raw.get("content") or ""
        if not isinstance(content, str):
            errors[f"{prefix}.content"] = "must be a base64 string"
            continue
        try:
            decoded_size = len(base64.b64decode(content, validate=True))
        except (binascii.Error, ValueError):
            errors[f"{prefix}.content"] = "must be valid base64"
            continue
        size = raw.get("size", decoded_size)
        if isinstance(size, bool) or not isinstance(size, int) or size < 0:
            errors[f"{prefix}.size"] = "must be a non-negative integer"
            continue
        last_modified = raw.get("lastModified")
        if last_modified is not None and (isinstance(last_modified, bool) or not isinstance(last_modified, int)):
            errors[f"{prefix}.lastModified"] = "must be an integer timestamp"
            continue
        if name:
            files.append(SubmissionFileInput(
                name=name,
                content=content,
                size_bytes=size,
                mime_type=_text(raw.get("type")) or None,
                last_modified=last_modified,
            ))
    return tuple(files)


@dataclass(frozen=True)
class CreateSubmissionRequest:
    team_code: str
    question_type: int
    explanation: str = ""
    files: tuple[SubmissionFileInput, ...] = field(default_factory=tuple)

    @classmethod
    def from_json(cls, data, question_types=()) -> "CreateSubmissionRequest":
        data = _require_object(data)
        errors: dict = {}
        code = _team_code(data, errors)
        question_type = _question_type(
            data.get("questionType", _MISSING), question_types, errors, required=True,
        )
        explanation = data.get("explanation") or ""
        if not isinstance(explanation, str):
            errors["explanation"] = "must be a string"
        files = _parse_files(data.get("files"), errors)
        _raise_if(errors, "Missing required fields")
        return cls(team_code=code, question_type=question_type, explanation=explanation, files=files)

    @classmethod
    def from_form(cls, form, uploads, question_types=()) -> "CreateSubmissionRequest":
        """Parse a multipart/form-data submission (``form`` and ``files`` multidicts)."""
        errors: dict = {}
        code = _team_code({"teamCode": form.get("teamCode")}, errors)
        question_type = _question_type(
            form.get("questionType", _MISSING), question_types, errors, required=True,
        )
        _raise_if(errors, "Missing required fields")
        files = tuple(
            SubmissionFileInput.from_upload(storage)
            for storage in uploads.getlist("files")
            if storage and storage.filename
        )
        return cls(
            team_code=code,
            question_type=question_type,
            explanation=form.get("explanation") or "",
            files=files,
        )


@dataclass(frozen=True)
class CompleteSessionRequest:
    """``{"teamCode": ..., "submission": {"explanation", "files", "questionType"?}}``."""

    team_code: str
    explanation: str = ""
    files: tuple[SubmissionFileInput, ...] = field(default_factory=tuple)
    question_type: int | None = None

    @classmethod
    def from_json(cls, data, question_types=()) -> "CompleteSessionRequest":
        data = _require_object(data)
        errors: dict = {}
        code = _team_code(data, errors)
        submission = data.get("submission")
        if not isinstance(submission, dict) or not submission:
            errors["submission"] = "required object"
            _raise_if(errors, "Invalid request parameters")
        question_type = _question_type(
            submission.get("questionType", _MISSING), question_types, errors,
        )
        explanation = submission.get("explanation") or ""
        if not isinstance(explanation, str):
            errors["submission.explanation"] = "must be a string"
        files = _parse_files(submission.get("files"), errors)
        _raise_if(errors, "Invalid request parameters")
        return cls(team_code=code, explanation=explanation, files=files, question_type=question_type)
