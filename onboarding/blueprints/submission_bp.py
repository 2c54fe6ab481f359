"""
Submission Blueprint.

Endpoints:
  POST /api/v1/submission        → store the team's single submission (JSON or multipart)
  GET  /api/v1/submission        → list the team's submission(s)
  GET  /api/v1/submission/check  → session / submission status check
"""

from flask import Blueprint, current_app, jsonify, request

from onboarding.core.exceptions import ValidationError
from onboarding.core.payloads import CreateSubmissionRequest
from onboarding.services import session_service, submission_service
from onboarding.utils.helpers import normalize_team_code, parse_bool_arg

submission_bp = Blueprint("submission", __name__, url_prefix="/api/v1")


def _team_code_arg() -> str:
    code = normalize_team_code(request.args.get("teamCode"))
    if code is None:
        raise ValidationError("Team code is required", details={"teamCode": "required query parameter"})
    return code


@submission_bp.route("/submission", methods=["POST"])
def create_submission():
    question_types = current_app.config.get("QUESTION_TYPES", (0, 1, 2))
    if request.mimetype == "multipart/form-data":
        req = CreateSubmissionRequest.from_form(request.form, request.files, question_types)
    else:
        req = CreateSubmissionRequest.from_json(request.get_json(silent=True), question_types)
    submission = submission_service.create_submission(req)
    return jsonify({"success": True, "submission": submission}), 201


@submission_bp.route("/submission", methods=["GET"])
def get_submissions():
    submissions = submission_service.get_submissions(
        _team_code_arg(),
        include_file_content=parse_bool_arg(request.args.get("includeFileContent")),
    )
    return jsonify({"success": True, "submissions": submissions}), 200


@submission_bp.route("/submission/check", methods=["GET"])
def check_submission():
    status = session_service.check_status(_team_code_arg())
    return jsonify({"success": True, **status}), 200
