"""Exception hierarchy for the IO manager.

Every error carries the HTTP status it maps to; the application's exception
handlers turn them into the ``{"success": false, "error": ...}`` envelope.
"""


class IOManagerError(Exception):
    """Base exception for all IO manager errors."""

    status_code = 500

    def __init__(self, message: str = "", code: str = "IOM_ERROR"):
        self.message = message
        self.code = code
        super().__init__(message)


class AuthenticationError(IOManagerError):
    """Missing, invalid or expired credentials."""

    status_code = 401

    def __init__(self, message: str = "Unauthorized"):
        super().__init__(message, code="UNAUTHORIZED")


class LoginFailedError(AuthenticationError):
    """A login attempt was rejected.

    ``reason`` is the detailed cause kept for the audit trail; ``message`` is
    what the client sees and never reveals whether the username exists.
    """

    def __init__(
        self,
        message: str = "Invalid credentials",
        reason: str = "",
        user_id: int | None = None,
        username: str | None = None,
    ):
        super().__init__(message)
        self.reason = reason or message
        self.user_id = user_id
        self.username = username


class AuthorizationError(IOManagerError):
    """Valid identity without the required permission."""

    status_code = 403

    def __init__(self, message: str = "Forbidden: Insufficient permissions"):
        super().__init__(message, code="FORBIDDEN")


class ValidationError(IOManagerError):
    """Missing or malformed request fields."""

    status_code = 400

    def __init__(self, message: str = "Invalid request"):
        super().__init__(message, code="VALIDATION_ERROR")


class ConflictError(IOManagerError):
    """Duplicate unique key or a record still referenced elsewhere."""

    status_code = 400

    def __init__(self, message: str = "Record already exists"):
        super().__init__(message, code="CONFLICT")


class NotFoundError(IOManagerError):
    """Referenced record does not exist."""

    status_code = 404

    def __init__(self, message: str = "Record not found"):
        super().__init__(message, code="NOT_FOUND")
