"""Framework exceptions.

Every error a service raises on purpose derives from PioniaError. The
exception handler registered in main.py turns them into a BaseResponse
whose status is the exception's code, so services never build error
responses by hand.
"""


class PioniaError(Exception):
    """Base class for errors that map onto a structured error response."""

    code: int = 500
    default_message: str = "Something went wrong"

    def __init__(self, message: str | None = None, code: int | None = None):
        self.message = message or self.default_message
        if code is not None:
            self.code = code
        super().__init__(self.message)


class ResourceNotFound(PioniaError):
    """Unknown service/action, deactivated action, or missing record."""

    code = 404
    default_message = "Resource not found"


class UserUnauthenticated(PioniaError):
    code = 401
    default_message = "You must be authenticated to access this resource"


class UserUnauthorized(PioniaError):
    code = 403
    default_message = "You do not have access to this resource"


class InvalidData(PioniaError):
    """Raised by validators and generic services on bad input."""

    code = 400
    default_message = "Invalid data"
