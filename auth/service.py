"""
auth/service.py -- AuthService: Login, Register and IsAdmin.

AuthService is the only place where storage errors become domain errors. The
mapping per operation:

  Login       UserNotFoundError  -> InvalidCredentialsError  (same as a bad password)
              password mismatch  -> InvalidCredentialsError
              AppNotFoundError   -> InvalidAppIdError        (app ids are not secret)
              signing failure    -> InternalError
  Register    UserExistsError    -> UserAlreadyExistsError
              hashing failure    -> InternalError
  IsAdmin     UserNotFoundError  -> InvalidCredentialsError  (kept for API compatibility)

  Anywhere    DeadlineExceededError -> CancelledError
              any other failure     -> InternalError

The service holds no mutable state. Each call is independent, so any number of
worker threads can share one instance. bcrypt releases the GIL while hashing,
so password work on one thread does not stall the others.

Layer rule: no imports from api/.
"""

from __future__ import annotations

import logging
from collections.abc import Iterator
from contextlib import contextmanager
from datetime import timedelta

from jose import JWTError

from auth.errors import (
    AppNotFoundError,
    AuthError,
    CancelledError,
    InternalError,
    InvalidAppIdError,
    InvalidCredentialsError,
    StorageError,
    UserAlreadyExistsError,
    UserExistsError,
    UserNotFoundError,
)
from auth.store import AppProvider, UserProvider, UserSaver
from auth.tokens import burn_dummy_check, dummy_hash, hash_password, new_token, verify_password
from core.deadline import Deadline, DeadlineExceededError


class AuthService:
    """Credential checks, registration and admin lookups over injected stores.

    Usage:
        storage = Storage(settings.storage_url)
        service = AuthService(
            logger, storage, storage, storage,
            token_ttl=timedelta(seconds=settings.token_ttl_seconds),
            password_rounds=settings.bcrypt_rounds,
        )
        token = service.login("a@example.com", "secret", app_id=1)
    """

    def __init__(
        self,
        logger: logging.Logger,
        user_saver: UserSaver,
        user_provider: UserProvider,
        app_provider: AppProvider,
        token_ttl: timedelta,
        password_rounds: int = 12,
    ) -> None:
        self._logger = logger
        self._user_saver = user_saver
        self._user_provider = user_provider
        self._app_provider = app_provider
        self._token_ttl = token_ttl
        self._password_rounds = password_rounds
        # Build the timing dummy now so the first unknown-email login is not slower.
        dummy_hash(password_rounds)

    def _op_logger(self, op: str) -> logging.LoggerAdapter:
        return logging.LoggerAdapter(self._logger, {"op": op})

    @contextmanager
    def _classified(self, op: str, log: logging.LoggerAdapter) -> Iterator[None]:
        """Let AuthErrors through; turn everything else into a domain error.

        Only the exception type name is logged for unexpected failures.
        Backend exception text can carry bound SQL parameters (password hashes).
        """
        try:
            yield
        except AuthError:
            raise
        except DeadlineExceededError as exc:
            log.warning("deadline exceeded")
            raise CancelledError(op, exc) from exc
        except Exception as exc:
            log.error("unexpected failure: %s", type(exc).__name__)
            raise InternalError(op, exc) from exc

    # ------------------------------------------------------------------
    # Login
    # ------------------------------------------------------------------

    def login(self, email: str, password: str, app_id: int, deadline: Deadline | None = None) -> str:
        """Check credentials and return a token signed with the app's secret.

        An unknown email and a wrong password both raise InvalidCredentialsError,
        and both cost one bcrypt comparison, so callers cannot tell them apart.
        """
        op = "auth.Login"
        log = self._op_logger(op)
        deadline = deadline or Deadline.never()
        log.info("logging in user email=%s app_id=%s", email, app_id)

        with self._classified(op, log):
            deadline.check(op)
            try:
                user = self._user_provider.user(email)
            except UserNotFoundError as exc:
                # Equalize timing -- do NOT return before running bcrypt.
                burn_dummy_check(password, self._password_rounds)
                log.warning("user not found")
                raise InvalidCredentialsError(op, exc) from exc
            except StorageError as exc:
                log.error("failed to get user: %s", exc)
                raise InternalError(op, exc) from exc

            deadline.check(op)
            if not verify_password(password, user.pass_hash):
                log.warning("invalid credentials")
                raise InvalidCredentialsError(op)

            deadline.check(op)
            try:
                app = self._app_provider.app(app_id)
            except AppNotFoundError as exc:
                log.warning("app not found")
                raise InvalidAppIdError(op, exc) from exc
            except StorageError as exc:
                log.error("failed to get app: %s", exc)
                raise InternalError(op, exc) from exc

            deadline.check(op)
            try:
                token = new_token(user, app, self._token_ttl)
            except JWTError as exc:
                log.error("failed to generate token: %s", type(exc).__name__)
                raise InternalError(op, exc) from exc

            # No token leaves a call whose caller has already given up.
            deadline.check(op)

        log.info("user is logged in uid=%d", user.id)
        return token

    # ------------------------------------------------------------------
    # Register
    # ------------------------------------------------------------------

    def register_new_user(self, email: str, password: str, deadline: Deadline | None = None) -> int:
        """Hash the password, persist the user and return the new id.

        The deadline reaches the store, which rolls the insert back if it
        expires before commit.
        """
        op = "auth.RegisterNewUser"
        log = self._op_logger(op)
        deadline = deadline or Deadline.never()
        log.info("registering new user email=%s", email)

        with self._classified(op, log):
            deadline.check(op)
            try:
                pass_hash = hash_password(password, self._password_rounds)
            except (ValueError, TypeError) as exc:
                log.error("failed to generate password hash: %s", type(exc).__name__)
                raise InternalError(op, exc) from exc

            deadline.check(op)
            try:
                uid = self._user_saver.save_user(email, pass_hash, deadline)
            except UserExistsError as exc:
                log.warning("user exists")
                raise UserAlreadyExistsError(op, exc) from exc
            except StorageError as exc:
                log.error("failed to save user: %s", exc)
                raise InternalError(op, exc) from exc

        log.info("user is registered uid=%d", uid)
        return uid

    # ------------------------------------------------------------------
    # IsAdmin
    # ------------------------------------------------------------------

    def is_admin(self, user_id: int, deadline: Deadline | None = None) -> bool:
        """Return the admin flag for user_id.

        An unknown id raises InvalidCredentialsError rather than a not-found
        error; existing clients depend on that status.
        """
        op = "auth.IsAdmin"
        log = self._op_logger(op)
        deadline = deadline or Deadline.never()
        log.info("checking if user is admin uid=%s", user_id)

        with self._classified(op, log):
            deadline.check(op)
            try:
                is_admin = self._user_provider.is_admin(user_id)
            except UserNotFoundError as exc:
                log.warning("user not found")
                raise InvalidCredentialsError(op, exc) from exc
            except StorageError as exc:
                log.error("failed to get user: %s", exc)
                raise InternalError(op, exc) from exc
            deadline.check(op)

        return is_admin
