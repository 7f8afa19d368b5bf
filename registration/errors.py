"""Error taxonomy shared by every handler.

Each error carries the HTTP status it maps to; the handler boundary in
``registration.http`` renders it as ``{"error": message}``.
"""


class RegistrationError(Exception):
    status_code = 400

    def __init__(self, message):
        super().__init__(message)
        self.message = message


class ValidationError(RegistrationError):
    """Malformed or missing input."""


class ConflictError(RegistrationError):
    """Uniqueness or ownership violation."""


class CapacityError(RegistrationError):
    """A limit was reached (team cap, roster size, closed registration)."""


class ForbiddenError(RegistrationError):
    """Business rule forbids the action."""

    status_code = 403


class NotFoundError(RegistrationError):
    status_code = 404


class AuthError(RegistrationError):
    status_code = 401

    def __init__(self, message="Unauthorized"):
        super().__init__(message)


class AdminRequiredError(RegistrationError):
    status_code = 403

    def __init__(self, message="Administrator permissions required"):
        super().__init__(message)


class MethodNotAllowedError(RegistrationError):
    status_code = 405

    def __init__(self, method):
        super().__init__(f"Method {method} not allowed")


class BackendError(RegistrationError):
    """The datastore call failed. The message is logged, never returned."""

    status_code = 500
    public_message = "Internal server error"


class CascadeDeleteError(BackendError):
    """A stage of a team's cascading delete failed; later stages did not run."""

    def __init__(self, team_id, stage, cause):
        super().__init__(f"Cascade delete of team {team_id} failed while deleting {stage}: {cause}")
        self.team_id = team_id
        self.stage = stage
        self.public_message = f"Team deletion failed while deleting {stage}"
