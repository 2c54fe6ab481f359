"""Standardised API error responses.

Usage
-----
    from onboarding.utils.errors import api_error, E

    return api_error(E.NOT_FOUND, "Session not found")
    return api_error(E.VALIDATION_INVALID, "teamCode is required",
                     details={"teamCode": "required string"})

Services raise ``onboarding.core.exceptions``; ``register_error_handlers``
renders them once for the whole app.
"""

from __future__ import annotations

import logging

from flask import jsonify, request
from sqlalchemy.exc import DBAPIError, IntegrityError, OperationalError
from werkzeug.exceptions import HTTPException

from onboarding.core.exceptions import (
    CodeGenerationExhaustedError,
    ConflictError,
    DuplicateSubmissionError,
    NotFoundError,
    UpstreamUnavailableError,
    ValidationError,
)
from onboarding.models import db

logger = logging.getLogger(__name__)


# ── Error code constants ──────────────────────────────────────────────
class E:
    """Machine-readable error code constants (``ERR_`` prefix)."""

    # Validation – HTTP 400
    VALIDATION_INVALID = "ERR_VALIDATION_INVALID"

    # Not-found – HTTP 404
    NOT_FOUND = "ERR_NOT_FOUND"

    # Conflict / duplicate – HTTP 409
    CONFLICT_DUPLICATE = "ERR_CONFLICT_DUPLICATE"
    CONFLICT_STATE = "ERR_CONFLICT_STATE"

    # Request shape – HTTP 405 / 413 / 415 / 429
    METHOD_NOT_ALLOWED = "ERR_METHOD_NOT_ALLOWED"
    PAYLOAD_TOO_LARGE = "ERR_PAYLOAD_TOO_LARGE"
    UNSUPPORTED_MEDIA_TYPE = "ERR_UNSUPPORTED_MEDIA_TYPE"
    RATE_LIMITED = "ERR_RATE_LIMITED"

    # Store unreachable – HTTP 503
    UPSTREAM_UNAVAILABLE = "ERR_UPSTREAM_UNAVAILABLE"

    # Server – HTTP 500
    INTERNAL = "ERR_INTERNAL"


# ── Default HTTP status mapping ───────────────────────────────────────
_DEFAULT_STATUS: dict[str, int] = {
    E.VALIDATION_INVALID: 400,
    E.NOT_FOUND: 404,
    E.CONFLICT_DUPLICATE: 409,
    E.CONFLICT_STATE: 409,
    E.METHOD_NOT_ALLOWED: 405,
    E.PAYLOAD_TOO_LARGE: 413,
    E.UNSUPPORTED_MEDIA_TYPE: 415,
    E.RATE_LIMITED: 429,
    E.UPSTREAM_UNAVAILABLE: 503,
    E.INTERNAL: 500,
}

_HTTP_CODES: dict[int, str] = {
    400: E.VALIDATION_INVALID,
    404: E.NOT_FOUND,
    405: E.METHOD_NOT_ALLOWED,
    409: E.CONFLICT_DUPLICATE,
    413: E.PAYLOAD_TOO_LARGE,
    415: E.UNSUPPORTED_MEDIA_TYPE,
    429: E.RATE_LIMITED,
    503: E.UPSTREAM_UNAVAILABLE,
}


def api_error(
    code: str,
    message: str,
    *,
    status: int | None = None,
    details: dict | None = None,
    **extra,
):
    """Return a standard JSON error response.

    Parameters
    ----------
    code : str
        Machine-readable error code (use ``E.*`` constants).
    message : str
        Human-readable explanation for the client.
    status : int, optional
        HTTP status override.  Falls back to ``_DEFAULT_STATUS[code]``,
        then to ``400``.
    details : dict, optional
        Field-level breakdown for validation failures.
    extra
        Additional top-level keys (e.g. ``existingSubmission``).

    Returns
    -------
    tuple[Response, int]
        ``(jsonify(body), http_status)``, a drop-in for Flask views.
    """

    http_status = status or _DEFAULT_STATUS.get(code, 400)

    body: dict = {
        "success": False,
        "error": message,
        "code": code,
    }
    if details:
        body["details"] = details
    body.update(extra)

    return jsonify(body), http_status


def register_error_handlers(app):
    """Map service exceptions and DB failures to JSON responses."""

    @app.errorhandler(ValidationError)
    def _handle_validation(error: ValidationError):
        return api_error(E.VALIDATION_INVALID, str(error), details=error.details)

    @app.errorhandler(NotFoundError)
    def _handle_not_found(error: NotFoundError):
        logger.info("Not found: %s", error)
        return api_error(E.NOT_FOUND, error.public_message)

    @app.errorhandler(DuplicateSubmissionError)
    def _handle_duplicate_submission(error: DuplicateSubmissionError):
        return api_error(
            error.code, str(error), status=409,
            existingSubmission=error.existing,
        )

    @app.errorhandler(ConflictError)
    def _handle_conflict(error: ConflictError):
        return api_error(error.code, str(error), status=409)

    @app.errorhandler(IntegrityError)
    def _handle_integrity(error: IntegrityError):
        db.session.rollback()
        logger.warning("Unhandled integrity error endpoint=%s: %s", request.endpoint, error.orig)
        return api_error(E.CONFLICT_DUPLICATE, "Conflicting record already exists", status=409)

    @app.errorhandler(UpstreamUnavailableError)
    def _handle_upstream(error: UpstreamUnavailableError):
        return api_error(E.UPSTREAM_UNAVAILABLE, str(error), status=503)

    @app.errorhandler(OperationalError)
    def _handle_operational(error: OperationalError):
        db.session.rollback()
        logger.error("Database unavailable endpoint=%s: %s", request.endpoint, error.orig)
        return api_error(E.UPSTREAM_UNAVAILABLE, "Database temporarily unavailable", status=503)

    @app.errorhandler(DBAPIError)
    def _handle_dbapi(error: DBAPIError):
        db.session.rollback()
        if error.connection_invalidated:
            logger.error("Database connection lost endpoint=%s: %s", request.endpoint, error.orig)
            return api_error(E.UPSTREAM_UNAVAILABLE, "Database temporarily unavailable", status=503)
        logger.exception("Database error endpoint=%s", request.endpoint)
        return api_error(E.INTERNAL, "Internal server error", status=500)

    @app.errorhandler(CodeGenerationExhaustedError)
    def _handle_code_exhausted(error: CodeGenerationExhaustedError):
        logger.error("%s", error)
        return api_error(E.INTERNAL, "Failed to generate unique team code", status=500)

    @app.errorhandler(HTTPException)
    def _handle_http(error: HTTPException):
        status = error.code or 500
        code = _HTTP_CODES.get(status, E.INTERNAL if status >= 500 else E.VALIDATION_INVALID)
        return api_error(code, error.description or error.name, status=status)

    @app.errorhandler(Exception)
    def _handle_unexpected(error: Exception):
        db.session.rollback()
        logger.exception("Unexpected error endpoint=%s", request.endpoint)
        return api_error(E.INTERNAL, "Internal server error", status=500)
