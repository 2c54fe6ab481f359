"""
Team Blueprint: registration and team code lookups.

Endpoints:
  POST /api/v1/team-code          → register team, issue code
  POST /api/v1/validate-teamcode  → check a code exists / is registered
  GET  /api/v1/teams              → reduced team listing
"""

from flask import Blueprint, current_app, jsonify, request

from onboarding.core.exceptions import InvalidTeamCodeError
from onboarding.core.payloads import RegisterTeamRequest, ValidateCodeRequest
from onboarding.services import team_code_service, team_service

team_bp = Blueprint("team", __name__, url_prefix="/api/v1")


@team_bp.route("/team-code", methods=["POST"])
def register_team():
    """Register a team and return its freshly issued team code."""
    req = RegisterTeamRequest.from_json(
        request.get_json(silent=True),
        min_members=current_app.config.get("MIN_COMPLETE_MEMBERS", 2),
    )
    result = team_service.register_team(req)
    return jsonify({"success": True, **result}), 201


@team_bp.route("/validate-teamcode", methods=["POST"])
def validate_team_code():
    req = ValidateCodeRequest.from_json(request.get_json(silent=True))
    try:
        result = team_code_service.validate(req.team_code)
    except InvalidTeamCodeError as exc:
        return jsonify({"valid": False, "error": exc.public_message}), 404
    return jsonify({
        "valid": True,
        "isRegistered": result["isRegistered"],
        "teamCode": result["teamCode"],
    }), 200


@team_bp.route("/teams", methods=["GET"])
def list_teams():
    teams = team_service.list_teams()
    return jsonify({"success": True, "count": len(teams), "teams": teams}), 200
