class GlassblogError(Exception):
    status_code = 500
    level = "error"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class BackendError(GlassblogError):
    """Data/storage collaborator rejected or failed a call."""
    status_code = 502


class ActionFailed(GlassblogError):
    """A user action failed; `message` is the notice shown to the user."""
    status_code = 502


class ValidationFailure(GlassblogError):
    status_code = 400
    level = "warning"


class NotFound(GlassblogError):
    status_code = 404


class AuthError(GlassblogError):
    status_code = 401
