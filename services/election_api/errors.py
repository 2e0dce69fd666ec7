"""Error taxonomy for the election services.

Every service-layer failure is one of these. The HTTP layer maps each class to
its ``status_code``; nothing here knows about requests or responses.
"""


class ElectionError(Exception):
    """Base class for typed service failures."""

    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(ElectionError):
    """Missing or malformed required input."""

    status_code = 400


class ConflictError(ElectionError):
    """Duplicate registration or duplicate vote for a position."""

    status_code = 400


class AuthenticationError(ElectionError):
    """Bad credentials. Same message whether identity or password was wrong."""

    status_code = 401

    def __init__(self, message: str = "Invalid matric number or password"):
        super().__init__(message)


class StorageError(ElectionError):
    """Underlying store unreachable or an operation on it failed."""

    status_code = 500

    def __init__(self, message: str = "Storage operation failed"):
        super().__init__(message)
