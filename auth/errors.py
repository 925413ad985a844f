"""
auth/errors.py -- Error taxonomy for the storage and domain layers.

Two families, never mixed:

  StorageError and subclasses -- raised by auth/store.py. Backend exceptions
      (sqlalchemy.exc.*) are translated into these before leaving the store, so
      nothing above the store knows which database is in use.

  AuthError and subclasses -- raised by auth/service.py. Each carries an
      ErrorKind tag, the operation name, a caller-safe message and the wrapped
      cause. The transport layer maps kind -> status code and only ever shows
      the message; the cause is for logs.

Layer rule: no imports from api/ or core/.
"""

from __future__ import annotations

from enum import Enum

# ---------------------------------------------------------------------------
# Storage layer
# ---------------------------------------------------------------------------


class StorageError(Exception):
    """Base for all store failures. Unrecognized backend errors are wrapped in this."""

    def __init__(self, op: str, message: str = "storage failure") -> None:
        super().__init__(f"{op}: {message}")
        self.op = op


class UserExistsError(StorageError):
    def __init__(self, op: str) -> None:
        super().__init__(op, "user already exists")


class UserNotFoundError(StorageError):
    def __init__(self, op: str) -> None:
        super().__init__(op, "user not found")


class AppNotFoundError(StorageError):
    def __init__(self, op: str) -> None:
        super().__init__(op, "app not found")


# ---------------------------------------------------------------------------
# Domain layer
# ---------------------------------------------------------------------------


class ErrorKind(str, Enum):
    invalid_credentials = "invalid_credentials"
    invalid_app_id = "invalid_app_id"
    already_exists = "already_exists"
    internal = "internal"
    cancelled = "cancelled"


class AuthError(Exception):
    """Domain error raised by AuthService.

    Attributes:
        kind:    ErrorKind tag the transport layer dispatches on.
        op:      Originating operation name, e.g. "auth.Login".
        message: Caller-safe text. Never contains the cause.
        cause:   Wrapped underlying exception (also set as __cause__ by
                 the service's `raise ... from exc`). For logs only.
    """

    kind: ErrorKind = ErrorKind.internal
    message: str = "internal error"

    def __init__(self, op: str, cause: BaseException | None = None) -> None:
        super().__init__(f"{op}: {self.message}")
        self.op = op
        self.cause = cause


class InvalidCredentialsError(AuthError):
    kind = ErrorKind.invalid_credentials
    message = "invalid credentials"


class InvalidAppIdError(AuthError):
    kind = ErrorKind.invalid_app_id
    message = "invalid app id"


class UserAlreadyExistsError(AuthError):
    kind = ErrorKind.already_exists
    message = "user already exists"


class InternalError(AuthError):
    kind = ErrorKind.internal
    message = "internal error"


class CancelledError(AuthError):
    kind = ErrorKind.cancelled
    message = "deadline exceeded"
