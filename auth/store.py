"""
auth/store.py -- SQLAlchemy Core persistence layer for users and apps.

Pattern: Repository + Data Mapper.
Storage is the repository; _row_to_user / _row_to_app are the mappers.
AuthService never touches SQL directly -- it depends on the UserSaver,
UserProvider and AppProvider protocols below, and Storage happens to
implement all three.

Error translation:
  IntegrityError on INSERT INTO users -> UserExistsError. The UNIQUE index on
  users.email is the only thing that enforces email uniqueness, so two
  concurrent registrations of the same email end with exactly one row: the
  loser's INSERT fails inside the database, not in a racy read-then-write.
  No row                              -> UserNotFoundError / AppNotFoundError.
  Id outside the 64-bit range (OverflowError at bind) -> the same NotFound
       errors; no row can carry such an id.
  Any other SQLAlchemyError           -> StorageError.
  Backend exception types never leave this module.

Security:
  All queries use bound parameters. No f-strings in SQL.

Layer rule: no imports from api/. Import from core/ is allowed -- core/ is the
kernel and has no reverse dependencies.
"""

from __future__ import annotations

from pathlib import Path
from typing import Protocol

from sqlalchemy import (
    Boolean,
    Column,
    Integer,
    LargeBinary,
    MetaData,
    String,
    Table,
    Text,
    create_engine,
    event,
    false,
    select,
    text,
)
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from auth.errors import AppNotFoundError, StorageError, UserExistsError, UserNotFoundError
from auth.models import App, User
from core.deadline import Deadline, DeadlineExceededError

# ---------------------------------------------------------------------------
# Capability interfaces
# ---------------------------------------------------------------------------


class UserSaver(Protocol):
    def save_user(self, email: str, pass_hash: bytes, deadline: Deadline | None = None) -> int: ...


class UserProvider(Protocol):
    def user(self, email: str) -> User: ...

    def is_admin(self, uid: int) -> bool: ...


class AppProvider(Protocol):
    def app(self, app_id: int) -> App: ...


# ---------------------------------------------------------------------------
# Schema
# ---------------------------------------------------------------------------

_metadata = MetaData()

_users = Table(
    "users",
    _metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("email", String(320), nullable=False, unique=True),
    Column("pass_hash", LargeBinary, nullable=False),  # raw bcrypt output
    Column("is_admin", Boolean, nullable=False, server_default=false()),
)

_apps = Table(
    "apps",
    _metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("name", String(255), nullable=False, unique=True),
    Column("secret", Text, nullable=False),
)


# ---------------------------------------------------------------------------
# SQLite connection setup
# ---------------------------------------------------------------------------


def _set_wal_mode(dbapi_conn, connection_record) -> None:
    """Enable WAL journal mode for concurrent read safety.

    WAL (Write-Ahead Logging) allows readers to proceed without blocking
    during writes. Set per-connection because SQLite PRAGMAs are not
    inherited by new connections from the pool.
    """
    dbapi_conn.execute("PRAGMA journal_mode=WAL")


def _ensure_sqlite_dir(db_url: str) -> None:
    """Create the parent directory of a file-backed SQLite database.

    SQLite creates the file on first connect but not missing directories.
    In-memory and URI-style (file:...) databases are left alone.
    """
    database = make_url(db_url).database
    if not database or database == ":memory:" or database.startswith("file:"):
        return
    Path(database).parent.mkdir(parents=True, exist_ok=True)


# ---------------------------------------------------------------------------
# Repository
# ---------------------------------------------------------------------------


class Storage:
    """Repository for User and App entities.

    Usage:
        storage = Storage("sqlite:///storage/sso.db")
        uid = storage.save_user("a@example.com", hash_password("secret", 12))
        user = storage.user("a@example.com")
        storage.close()
    """

    # Seconds a SQLite writer waits on a locked database before failing.
    # Concurrent registrations serialize on this instead of erroring out.
    _SQLITE_BUSY_TIMEOUT = 15

    def __init__(self, db_url: str) -> None:
        connect_args: dict = {}
        is_sqlite = db_url.startswith("sqlite")
        if is_sqlite:
            connect_args["check_same_thread"] = False
            connect_args["timeout"] = self._SQLITE_BUSY_TIMEOUT
            _ensure_sqlite_dir(db_url)
        try:
            self.engine: Engine = create_engine(db_url, connect_args=connect_args)
            if is_sqlite:
                event.listen(self.engine, "connect", _set_wal_mode)
            _metadata.create_all(self.engine)
        except SQLAlchemyError as exc:
            raise StorageError("storage.sql.new", "failed to open db") from exc

    # ------------------------------------------------------------------
    # Users
    # ------------------------------------------------------------------

    def save_user(self, email: str, pass_hash: bytes, deadline: Deadline | None = None) -> int:
        """Insert a new user and return its assigned ID.

        Raises UserExistsError if the email is already registered.

        If a deadline is given it is checked after the INSERT and before the
        COMMIT. An expired deadline rolls the row back and raises
        DeadlineExceededError, so a cancelled registration leaves nothing behind.
        """
        op = "storage.sql.save_user"
        try:
            with self.engine.connect() as conn:
                result = conn.execute(_users.insert().values(email=email, pass_hash=pass_hash))
                if deadline is not None and deadline.expired():
                    conn.rollback()
                    raise DeadlineExceededError(op)
                conn.commit()
                return result.inserted_primary_key[0]
        except IntegrityError as exc:
            raise UserExistsError(op) from exc
        except SQLAlchemyError as exc:
            raise StorageError(op) from exc

    def user(self, email: str) -> User:
        """Look up a user by exact email (case-sensitive). Raises UserNotFoundError."""
        op = "storage.sql.user"
        try:
            with self.engine.connect() as conn:
                row = conn.execute(_users.select().where(_users.c.email == email)).fetchone()
        except SQLAlchemyError as exc:
            raise StorageError(op) from exc
        if row is None:
            raise UserNotFoundError(op)
        return _row_to_user(row)

    def is_admin(self, uid: int) -> bool:
        """Return the admin flag for a user id. Raises UserNotFoundError."""
        op = "storage.sql.is_admin"
        try:
            with self.engine.connect() as conn:
                row = conn.execute(select(_users.c.is_admin).where(_users.c.id == uid)).fetchone()
        except OverflowError as exc:
            raise UserNotFoundError(op) from exc
        except SQLAlchemyError as exc:
            raise StorageError(op) from exc
        if row is None:
            raise UserNotFoundError(op)
        return bool(row.is_admin)

    def set_admin(self, uid: int, is_admin: bool = True) -> None:
        """Grant or revoke the admin flag. Operator tooling only (main.py set-admin).

        Raises UserNotFoundError if no user has that id.
        """
        op = "storage.sql.set_admin"
        try:
            with self.engine.connect() as conn:
                result = conn.execute(_users.update().where(_users.c.id == uid).values(is_admin=is_admin))
                conn.commit()
        except OverflowError as exc:
            raise UserNotFoundError(op) from exc
        except SQLAlchemyError as exc:
            raise StorageError(op) from exc
        if result.rowcount == 0:
            raise UserNotFoundError(op)

    # ------------------------------------------------------------------
    # Apps
    # ------------------------------------------------------------------

    def app(self, app_id: int) -> App:
        """Look up an app by id. Raises AppNotFoundError."""
        op = "storage.sql.app"
        try:
            with self.engine.connect() as conn:
                row = conn.execute(_apps.select().where(_apps.c.id == app_id)).fetchone()
        except OverflowError as exc:
            raise AppNotFoundError(op) from exc
        except SQLAlchemyError as exc:
            raise StorageError(op) from exc
        if row is None:
            raise AppNotFoundError(op)
        return _row_to_app(row)

    def save_app(self, name: str, secret: str, app_id: int | None = None) -> int:
        """Provision a tenant app and return its id. Operator tooling only (main.py add-app).

        app_id pins the id when the tenant already has one it was told about;
        otherwise the database assigns it.
        """
        op = "storage.sql.save_app"
        values: dict = {"name": name, "secret": secret}
        if app_id is not None:
            values["id"] = app_id
        try:
            with self.engine.connect() as conn:
                result = conn.execute(_apps.insert().values(**values))
                conn.commit()
                return result.inserted_primary_key[0]
        except IntegrityError as exc:
            raise StorageError(op, "app already exists") from exc
        except OverflowError as exc:
            raise StorageError(op, "app id out of range") from exc
        except SQLAlchemyError as exc:
            raise StorageError(op) from exc

    def ping(self) -> bool:
        """Return True if the database answers a trivial query. Used by the health check."""
        try:
            with self.engine.connect() as conn:
                conn.execute(text("SELECT 1"))
        except SQLAlchemyError:
            return False
        return True

    def close(self) -> None:
        self.engine.dispose()


# ---------------------------------------------------------------------------
# Row mappers (Data Mapper pattern)
# ---------------------------------------------------------------------------


def _row_to_user(row) -> User:
    return User(
        id=row.id,
        email=row.email,
        pass_hash=bytes(row.pass_hash),
        is_admin=bool(row.is_admin),
    )


def _row_to_app(row) -> App:
    return App(id=row.id, name=row.name, secret=row.secret)
