"""
auth/store.py -- SQLAlchemy Core persistence layer for accounts.

Pattern: Repository + Data Mapper. AccountStore is the repository; _row_to_account
is the mapper. The orchestrator never touches SQL directly, and talks to the
store only through create / read_by_email / read_by_id / update / delete.

Security:
  All queries use bound parameters. No f-strings in SQL.

  Email uniqueness is enforced by a UNIQUE constraint, so two concurrent
  sign-ups with the same email cannot both commit. The loser gets
  AccountAlreadyExistsError.

Deletion is soft: delete() stamps deleted_at and every read filters those rows
out. A soft-deleted row still owns its email under the UNIQUE constraint.

Timeouts: the driver is given the configured timeout (SQLite busy timeout,
PostgreSQL connect timeout) so a stalled database cannot hang a request
forever. Driver failures surface as StoreError.

Layer rule: no imports from api/ or core/.
"""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager
from datetime import datetime, timezone

from sqlalchemy import Column, Integer, MetaData, String, Table, Text, create_engine, event
from sqlalchemy.engine import Connection, Engine
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from auth.errors import AccountAlreadyExistsError, AccountNotFoundError, StoreError
from auth.models import Account, Role

# ---------------------------------------------------------------------------
# Schema
# ---------------------------------------------------------------------------

_metadata = MetaData()

_accounts = Table(
    "accounts",
    _metadata,
    Column("id", String(36), primary_key=True),
    Column("email", String(255), nullable=False, unique=True),
    Column("password_hash", Text, nullable=False),
    Column("salt", String(64), nullable=False),
    Column("role", String(30), nullable=False, server_default=Role.CLIENT.value),
    Column("name", String(255), nullable=False, server_default=""),
    Column("surname", String(255), nullable=False, server_default=""),
    Column("phone", String(50), nullable=False, server_default=""),
    Column("security_question", Text, nullable=False, server_default=""),
    Column("security_answer", Text, nullable=False, server_default=""),
    Column("points", Integer, nullable=False, server_default="0"),
    Column("created_at", String(32), nullable=False),
    Column("deleted_at", String(32)),
)


def _set_wal_mode(dbapi_conn, connection_record) -> None:
    """Enable WAL journal mode so readers do not block on writers.

    Set per-connection because SQLite PRAGMAs are not inherited by new
    connections from the pool.
    """
    dbapi_conn.execute("PRAGMA journal_mode=WAL")


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def _connect_args(db_url: str, timeout: float) -> dict:
    if db_url.startswith("sqlite"):
        return {"check_same_thread": False, "timeout": timeout}
    if db_url.startswith("postgres"):
        return {"connect_timeout": max(1, int(timeout))}
    return {}


# ---------------------------------------------------------------------------
# Repository
# ---------------------------------------------------------------------------


class AccountStore:
    """Repository for Account records.

    Usage:
        store = AccountStore("sqlite:///:memory:")
        store.create(account)
        account = store.read_by_email("reader@example.com")
        store.close()
    """

    def __init__(self, db_url: str, timeout: float = 5.0) -> None:
        self.engine: Engine = create_engine(db_url, connect_args=_connect_args(db_url, timeout))
        # In-memory databases do not support WAL.
        if db_url.startswith("sqlite") and "memory" not in db_url:
            event.listen(self.engine, "connect", _set_wal_mode)
        _metadata.create_all(self.engine)

    @contextmanager
    def _transaction(self) -> Iterator[Connection]:
        """Yield a connection inside one transaction; map driver errors to StoreError.

        IntegrityError is re-raised untouched so create() can turn it into a
        conflict.
        """
        try:
            with self.engine.begin() as conn:
                yield conn
        except IntegrityError:
            raise
        except SQLAlchemyError as exc:
            raise StoreError() from exc

    def create(self, account: Account) -> None:
        """Insert a new account. Raises AccountAlreadyExistsError on duplicate email."""
        try:
            with self._transaction() as conn:
                conn.execute(
                    _accounts.insert().values(
                        id=account.id,
                        email=account.email,
                        password_hash=account.password_hash,
                        salt=account.salt,
                        role=Role(account.role).value,
                        name=account.name,
                        surname=account.surname,
                        phone=account.phone,
                        security_question=account.security_question,
                        security_answer=account.security_answer,
                        points=account.points,
                        created_at=account.created_at or _now_iso(),
                    )
                )
        except IntegrityError as exc:
            raise AccountAlreadyExistsError() from exc

    def read_by_email(self, email: str) -> Account:
        """Exact (case-sensitive) email lookup among live accounts."""
        with self._transaction() as conn:
            row = conn.execute(
                _accounts.select().where((_accounts.c.email == email) & _accounts.c.deleted_at.is_(None))
            ).fetchone()
        if row is None:
            raise AccountNotFoundError()
        return _row_to_account(row)

    def read_by_id(self, account_id: str) -> Account:
        with self._transaction() as conn:
            row = conn.execute(
                _accounts.select().where((_accounts.c.id == account_id) & _accounts.c.deleted_at.is_(None))
            ).fetchone()
        if row is None:
            raise AccountNotFoundError()
        return _row_to_account(row)

    def update(self, account: Account) -> Account:
        """Overwrite the mutable columns of a live account and return the stored result.

        id and created_at are never written. Raises AccountNotFoundError if no
        live row has this id, AccountAlreadyExistsError if the new email is taken.
        """
        try:
            with self._transaction() as conn:
                result = conn.execute(
                    _accounts.update()
                    .where((_accounts.c.id == account.id) & _accounts.c.deleted_at.is_(None))
                    .values(
                        email=account.email,
                        password_hash=account.password_hash,
                        salt=account.salt,
                        role=Role(account.role).value,
                        name=account.name,
                        surname=account.surname,
                        phone=account.phone,
                        security_question=account.security_question,
                        security_answer=account.security_answer,
                        points=account.points,
                    )
                )
                if result.rowcount == 0:
                    raise AccountNotFoundError()
                row = conn.execute(_accounts.select().where(_accounts.c.id == account.id)).fetchone()
        except IntegrityError as exc:
            raise AccountAlreadyExistsError() from exc
        return _row_to_account(row)

    def delete(self, account_id: str) -> None:
        """Soft-delete a live account. Raises AccountNotFoundError if there is none."""
        with self._transaction() as conn:
            result = conn.execute(
                _accounts.update()
                .where((_accounts.c.id == account_id) & _accounts.c.deleted_at.is_(None))
                .values(deleted_at=_now_iso())
            )
        if result.rowcount == 0:
            raise AccountNotFoundError()

    def ping(self) -> bool:
        """Return True if a trivial query succeeds. Used by the health endpoint."""
        try:
            with self._transaction() as conn:
                conn.execute(_accounts.select().limit(1))
        except StoreError:
            return False
        return True

    def close(self) -> None:
        self.engine.dispose()


# ---------------------------------------------------------------------------
# Row mapper (Data Mapper pattern)
# ---------------------------------------------------------------------------


def _row_to_account(row) -> Account:
    return Account(
        id=row.id,
        email=row.email,
        password_hash=row.password_hash,
        salt=row.salt,
        role=Role(row.role),
        name=row.name,
        surname=row.surname,
        phone=row.phone,
        security_question=row.security_question,
        security_answer=row.security_answer,
        points=row.points,
        created_at=row.created_at,
        deleted_at=row.deleted_at,
    )
