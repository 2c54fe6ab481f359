"""
Session Blueprint: the per-team onboarding session.

Endpoints:
  POST  /api/v1/session  → create / resume / restart
  PUT   /api/v1/session  → bind question type, mark completed
  PATCH /api/v1/session  → submit solution and complete
"""

from flask import Blueprint, current_app, jsonify, request

from onboarding.core.payloads import (
    CompleteSessionRequest,
    StartSessionRequest,
    UpdateSessionRequest,
)
from onboarding.services import session_service

session_bp = Blueprint("session", __name__, url_prefix="/api/v1")


def _question_types():
    return current_app.config.get("QUESTION_TYPES", (0, 1, 2))


@session_bp.route("/session", methods=["POST"])
def start_session():
    req = StartSessionRequest.from_json(request.get_json(silent=True), _question_types())
    session = session_service.start_session(req)
    return jsonify({"success": True, "session": session}), 200


@session_bp.route("/session", methods=["PUT"])
def update_session():
    req = UpdateSessionRequest.from_json(request.get_json(silent=True), _question_types())
    session = session_service.update_session(req)
    return jsonify({
        "success": True,
        "message": "Session updated successfully",
        "session": session,
    }), 200


@session_bp.route("/session", methods=["PATCH"])
def complete_session():
    """Store the submission carried in the body and close the session."""
    req = CompleteSessionRequest.from_json(request.get_json(silent=True), _question_types())
    result = session_service.complete_with_submission(req)
    return jsonify({
        "success": True,
        "message": "Submission saved successfully",
        "session": result["session"],
        "submission": result["submission"],
    }), 200
