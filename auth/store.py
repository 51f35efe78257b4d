"""
auth/store.py -- SQLAlchemy Core persistence layer for user accounts.

Pattern: Repository + Data Mapper (same as catalog/store.py).
UserStore is the repository; _row_to_user is the mapper. Route and service
code never touches SQL directly.

The users table carries both the credential (password hash) and the session
record (nullable token). The session columns are read and written by
auth.sessions.SessionDirectory through the same engine; this module owns the
schema and everything else about a user row.

Security:
  All queries use bound parameters. No f-strings in SQL.
  Listing filters accept only the whitelisted keys in USER_FILTERS.

Errors:
  Store methods raise StorageFailure for any SQLAlchemy error so the API
  layer can answer 500 without knowing about the database driver.

Layer rule: no imports from api/ or catalog/.
"""

from __future__ import annotations

import logging
import uuid
from datetime import datetime, timezone

from sqlalchemy import Column, MetaData, SmallInteger, String, Table, Text, create_engine, event, select
from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from auth.errors import StorageFailure
from auth.models import Role, User

logger = logging.getLogger("library.auth")

# Query parameters accepted by GET /users. "role" is an exact match, the
# others are substring matches.
USER_FILTERS: frozenset[str] = frozenset({"name", "mail", "role"})

# ---------------------------------------------------------------------------
# Schema
# ---------------------------------------------------------------------------

metadata = MetaData()

users = Table(
    "users",
    metadata,
    Column("id", String(36), primary_key=True),  # uuid4 string
    Column("name", String(255), nullable=False, unique=True),
    Column("mail", String(255), nullable=False, unique=True),
    Column("password", Text, nullable=False),  # bcrypt digest
    Column("role", SmallInteger, nullable=False, server_default="0"),  # 0=USER 1=MODERATOR 2=ADMIN
    Column("created_at", String(32), nullable=False),
    Column("token", Text),  # live session token; NULL = logged out
)


# ---------------------------------------------------------------------------
# Engine helpers
# ---------------------------------------------------------------------------


def _set_wal_mode(dbapi_conn, connection_record) -> None:
    """Enable WAL journal mode for concurrent read safety.

    Set per-connection because SQLite PRAGMAs are not inherited by new
    connections from the pool.
    """
    dbapi_conn.execute("PRAGMA journal_mode=WAL")


def make_engine(db_url: str) -> Engine:
    """Create an engine with the SQLite tweaks every store in this service needs."""
    connect_args: dict = {}
    if db_url.startswith("sqlite"):
        connect_args["check_same_thread"] = False
    engine = create_engine(db_url, connect_args=connect_args)
    if db_url.startswith("sqlite"):
        event.listen(engine, "connect", _set_wal_mode)
    return engine


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


# ---------------------------------------------------------------------------
# Repository
# ---------------------------------------------------------------------------


class UserStore:
    """Repository for User entities.

    Usage:
        store = UserStore("sqlite:///library.db")
        user_id = store.create_user(User(name="alice", mail="a@x.com", role=Role.USER,
                                         hashed_password=hash_password("pw123")))
        user = store.get_by_name("alice")
        store.close()
    """

    def __init__(self, db_url: str) -> None:
        self.engine: Engine = make_engine(db_url)
        metadata.create_all(self.engine)

    # ------------------------------------------------------------------
    # Credential queries (registration / login)
    # ------------------------------------------------------------------

    def exists_with_name_or_mail(self, name: str, mail: str) -> bool:
        """Return True if any user already has this name or this mail."""
        try:
            with self.engine.connect() as conn:
                row = conn.execute(
                    select(users.c.id).where((users.c.name == name) | (users.c.mail == mail)).limit(1)
                ).fetchone()
        except SQLAlchemyError as exc:
            logger.error("UserStore.exists_with_name_or_mail failed: %s", exc)
            raise StorageFailure() from exc
        return row is not None

    def create_user(self, user: User) -> str:
        """Insert a new user and return its generated id.

        The caller is responsible for hashing the password first. Raises
        sqlalchemy.exc.IntegrityError if the name or mail is already taken,
        so a concurrent registration that slipped past
        exists_with_name_or_mail() can still be answered with 400.
        """
        user_id = str(uuid.uuid4())
        try:
            with self.engine.connect() as conn:
                conn.execute(
                    users.insert().values(
                        id=user_id,
                        name=user.name,
                        mail=user.mail,
                        password=user.hashed_password,
                        role=int(user.role),
                        created_at=_now_iso(),
                    )
                )
                conn.commit()
        except IntegrityError:
            raise
        except SQLAlchemyError as exc:
            logger.error("UserStore.create_user failed: %s", exc)
            raise StorageFailure() from exc
        logger.info("Created user %s (role=%s)", user_id, Role(user.role).name)
        return user_id

    def get_by_name(self, name: str) -> User | None:
        """Look up a user by exact name (case-sensitive). Returns None if not found."""
        return self._fetch_one(users.c.name == name)

    def get_by_id(self, user_id: str) -> User | None:
        """Look up a user by primary key. Returns None if not found."""
        return self._fetch_one(users.c.id == user_id)

    # ------------------------------------------------------------------
    # Administration
    # ------------------------------------------------------------------

    def list_users(self, filters: dict[str, str] | None = None) -> list[User]:
        """Return users ordered by name, optionally filtered.

        Filter keys must come from USER_FILTERS; unknown keys raise ValueError
        rather than being silently ignored.
        """
        filters = filters or {}
        unknown = set(filters) - USER_FILTERS
        if unknown:
            raise ValueError(f"Unknown user filters: {sorted(unknown)!r}")

        query = select(users).order_by(users.c.name)
        for key, value in filters.items():
            if key == "role":
                query = query.where(users.c.role == int(value))
            else:
                query = query.where(users.c[key].contains(value, autoescape=True))
        try:
            with self.engine.connect() as conn:
                rows = conn.execute(query).fetchall()
        except SQLAlchemyError as exc:
            logger.error("UserStore.list_users failed: %s", exc)
            raise StorageFailure() from exc
        return [_row_to_user(r) for r in rows]

    def update_user(self, user_id: str, name: str, mail: str, role: Role) -> User | None:
        """Overwrite name, mail and role. Returns the updated user, or None if not found.

        The password and session token are untouched. Raises IntegrityError
        when the new name or mail collides with another account.
        """
        try:
            with self.engine.connect() as conn:
                result = conn.execute(
                    users.update().where(users.c.id == user_id).values(name=name, mail=mail, role=int(role))
                )
                conn.commit()
        except IntegrityError:
            raise
        except SQLAlchemyError as exc:
            logger.error("UserStore.update_user failed: %s", exc)
            raise StorageFailure() from exc
        if result.rowcount == 0:
            return None
        return self.get_by_id(user_id)

    def delete_user(self, user_id: str) -> bool:
        """Permanently delete a user. Returns True if deleted, False if not found."""
        try:
            with self.engine.connect() as conn:
                result = conn.execute(users.delete().where(users.c.id == user_id))
                conn.commit()
        except SQLAlchemyError as exc:
            logger.error("UserStore.delete_user failed: %s", exc)
            raise StorageFailure() from exc
        return result.rowcount > 0

    def ping(self) -> bool:
        """Return True if the database answers a trivial query. Used by /health."""
        try:
            with self.engine.connect() as conn:
                conn.execute(select(1))
        except SQLAlchemyError:
            logger.exception("Database health check failed")
            return False
        return True

    def close(self) -> None:
        self.engine.dispose()

    def _fetch_one(self, condition) -> User | None:
        try:
            with self.engine.connect() as conn:
                row = conn.execute(select(users).where(condition)).fetchone()
        except SQLAlchemyError as exc:
            logger.error("UserStore lookup failed: %s", exc)
            raise StorageFailure() from exc
        return _row_to_user(row) if row is not None else None


# ---------------------------------------------------------------------------
# Row mapper (Data Mapper pattern)
# ---------------------------------------------------------------------------


def _row_to_user(row) -> User:
    return User(
        id=row.id,
        name=row.name,
        mail=row.mail,
        role=Role(row.role),
        hashed_password=row.password,
        created_at=row.created_at,
        token=row.token,
    )
