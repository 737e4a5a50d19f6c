from enum import Enum


class ErrorKind(str, Enum):
    AUTH = "auth"
    VALIDATION = "validation"
    FORBIDDEN = "forbidden"
    NOT_FOUND = "not_found"
    CONFLICT = "conflict"
    UNKNOWN = "unknown"


STATUS_CODES = {
    ErrorKind.AUTH: 401,
    ErrorKind.VALIDATION: 400,
    ErrorKind.FORBIDDEN: 403,
    ErrorKind.NOT_FOUND: 404,
    ErrorKind.CONFLICT: 409,
    ErrorKind.UNKNOWN: 500,
}


class TaraGError(Exception):
    """Base for failures the HTTP layer turns into a status code by kind."""

    kind = ErrorKind.UNKNOWN

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    @property
    def status_code(self) -> int:
        return STATUS_CODES[self.kind]


class AuthError(TaraGError):
    kind = ErrorKind.AUTH


class ValidationError(TaraGError):
    kind = ErrorKind.VALIDATION


class ForbiddenError(TaraGError):
    kind = ErrorKind.FORBIDDEN


class NotFoundError(TaraGError):
    kind = ErrorKind.NOT_FOUND


class ConflictError(TaraGError):
    kind = ErrorKind.CONFLICT
