"""
Service-wide exception hierarchy.

Services raise these; the handlers in ``onboarding.utils.errors`` turn them
into JSON responses once for the whole app, so blueprints never build
error tuples by hand.

    ValidationError            -> 400  malformed / missing input
    NotFoundError              -> 404  unknown team code or session
    ConflictError              -> 409  duplicate team / submission, finished session
    UpstreamUnavailableError   -> 503  database unreachable (transient)
    CodeGenerationExhaustedError -> 500

Usage:
    from onboarding.core.exceptions import NotFoundError, ValidationError

    raise SessionNotFoundError("abc123xyz")
    raise ValidationError("Invalid team data", details={"teamName": "required"})
"""


class NotFoundError(Exception):
    """Raised when a requested resource does not exist.

    Args:
        resource: Human-readable entity name (e.g. "Team code", "Session").
        resource_id: The key that was looked up. Included in logs, not in HTTP response.
    """

    def __init__(self, resource: str, resource_id: int | str | None = None) -> None:
        self.resource = resource
        self.resource_id = resource_id
        msg = f"{resource}"
        if resource_id is not None:
            msg += f" {resource_id!r}"
        msg += " not found"
        super().__init__(msg)

    @property
    def public_message(self) -> str:
        return f"{self.resource} not found"


class InvalidTeamCodeError(NotFoundError):
    """Team code is unknown, or known but not registered."""

    def __init__(self, code: str | None = None) -> None:
        super().__init__("Team code", code)

    @property
    def public_message(self) -> str:
        return "Invalid or unregistered team code"


class SessionNotFoundError(NotFoundError):
    def __init__(self, team_code: str | None = None) -> None:
        super().__init__("Session", team_code)


class ValidationError(Exception):
    """Raised when input is malformed or misses required fields.

    Maps to HTTP 400.

    Args:
        message: Human-readable explanation of what failed.
        details: Field-level breakdown. Keys are field names; values are
                 error descriptions. Every violated field is listed, not
                 only the first one found.
    """

    def __init__(self, message: str, details: dict | None = None) -> None:
        self.details = details or {}
        super().__init__(message)


class ConflictError(Exception):
    """Raised when an operation collides with existing state.

    Maps to HTTP 409.
    """

    code = "ERR_CONFLICT_DUPLICATE"

    def __init__(self, message: str) -> None:
        super().__init__(message)


class DuplicateTeamError(ConflictError):
    """A team with the same name or email (case-insensitive) already exists."""

    def __init__(self, field: str, value: str | None = None) -> None:
        self.field = field
        self.value = value
        super().__init__("A team with this name or email is already registered")


class DuplicateSubmissionError(ConflictError):
    """The team already has its one submission.

    Carries the stored submission's metadata (never file content) so the
    client can reconcile its UI without another request.
    """

    def __init__(self, team_code: str, existing: dict | None = None) -> None:
        self.team_code = team_code
        self.existing = existing or {}
        super().__init__("A submission already exists for this team")


class AlreadyCompletedError(ConflictError):
    """The team's onboarding session is finished; nothing left to do."""

    code = "ERR_CONFLICT_STATE"

    def __init__(self, team_code: str | None = None) -> None:
        self.team_code = team_code
        super().__init__("Your team has already completed the onboarding")


class SessionExpiredError(ConflictError):
    """Write attempted after the session budget lapsed (only when enforced)."""

    code = "ERR_CONFLICT_STATE"

    def __init__(self, team_code: str | None = None) -> None:
        self.team_code = team_code
        super().__init__("The onboarding session time budget has been used up")


class UpstreamUnavailableError(Exception):
    """The persistent store could not be reached. Safe for clients to retry.

    Maps to HTTP 503.
    """

    def __init__(self, message: str = "Database temporarily unavailable") -> None:
        super().__init__(message)


class CodeGenerationExhaustedError(Exception):
    """No unused team code was found within the attempt bound."""

    def __init__(self, attempts: int) -> None:
        self.attempts = attempts
        super().__init__(f"Failed to generate unique team code after {attempts} attempts")
