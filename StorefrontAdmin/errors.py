"""Errors raised by services and JSON views.

Each error carries the HTTP status it maps to and a stable ``code`` that API
clients can match on. The message is safe to show to the caller.
"""


class ApiError(Exception):
    status = 500
    code = "INTERNAL_ERROR"
    default_message = "An unexpected error occurred."

    def __init__(self, message=None, code=None):
        self.message = message or self.default_message
        if code:
            self.code = code
        super().__init__(self.message)

    def as_dict(self):
        return {"error": self.message, "code": self.code}


class AuthError(ApiError):
    MISSING_HEADER = "MISSING_HEADER"
    MALFORMED_SCHEME = "MALFORMED_SCHEME"
    INVALID_KEY = "INVALID_KEY"
    DEACTIVATED = "DEACTIVATED"
    EXPIRED = "EXPIRED"
    AUTH_REQUIRED = "AUTH_REQUIRED"

    status = 401
    code = AUTH_REQUIRED
    default_message = "Authentication required."


class ForbiddenError(ApiError):
    status = 403
    code = "INSUFFICIENT_PERMISSIONS"
    default_message = "You do not have permission to perform this action."


class ValidationError(ApiError):
    status = 400
    code = "VALIDATION_ERROR"
    default_message = "Invalid request."


class NotFoundError(ApiError):
    status = 404
    code = "NOT_FOUND"
    default_message = "Not found."


class ConflictError(ApiError):
    # Uniqueness and invariant violations are reported as bad requests.
    status = 400
    code = "CONFLICT"
    default_message = "Conflicts with an existing record."
