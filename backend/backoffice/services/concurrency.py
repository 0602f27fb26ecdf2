# Overview: Unit-of-work helpers for order mutations; row locking and commit/rollback handling.

from __future__ import annotations

from sqlalchemy import text
from sqlalchemy.exc import DBAPIError, IntegrityError, OperationalError
from sqlalchemy.orm.exc import StaleDataError

from ..errors import TransactionFailure
from ..extensions import db

# Postgres: deadlock_detected, serialization_failure, lock_not_available
RETRYABLE_SQLSTATES = frozenset({"40P01", "40001", "55P03"})
# MySQL: lock wait timeout, deadlock
RETRYABLE_MYSQL_CODES = frozenset({1205, 1213})
RETRYABLE_MESSAGES = (
    "database is locked",
    "database table is locked",
    "database is busy",
    "deadlock",
    "lock wait timeout",
    "lock timeout",
    "could not obtain lock",
    "could not serialize",
)


def lock_for_update(query):
    """
    Apply row-level locking for read-validate-write sequences.

    NOTE: SQLite ignores SELECT ... FOR UPDATE; begin_write() takes the
    database write lock up front there instead.
    """
    return query.with_for_update()


def is_retryable_error(exc: Exception) -> bool:
    """True for lock, deadlock, timeout and optimistic-version conflicts."""
    if isinstance(exc, StaleDataError):
        return True
    if not isinstance(exc, OperationalError):
        return False

    orig = exc.orig
    sqlstate = getattr(orig, "pgcode", None) or getattr(orig, "sqlstate", None)
    if sqlstate in RETRYABLE_SQLSTATES:
        return True
    args = getattr(orig, "args", ())
    if args and args[0] in RETRYABLE_MYSQL_CODES:
        return True

    message = str(orig).lower()
    return any(marker in message for marker in RETRYABLE_MESSAGES)


def _sqlite_in_transaction() -> bool:
    driver_connection = db.session.connection().connection.driver_connection
    return bool(getattr(driver_connection, "in_transaction", False))


def reject_pending_writes() -> None:
    """
    Refuse to start a unit of work on a session with flushed, uncommitted writes.

    SQLite cannot open BEGIN IMMEDIATE inside a transaction that already
    wrote, and retrying would never help, so this fails fast instead.
    """
    if db.engine.dialect.name == "sqlite" and _sqlite_in_transaction():
        raise TransactionFailure(
            "Session already holds uncommitted writes; commit or roll back before this operation",
            retryable=False,
            details={"reason": "transaction already open"},
        )


def begin_write() -> None:
    """
    Open the write transaction before the first read.

    On SQLite, BEGIN IMMEDIATE serializes concurrent writers so a stock
    check and its decrement cannot interleave with another order.
    """
    if db.engine.dialect.name == "sqlite":
        db.session.execute(text("BEGIN IMMEDIATE"))


def run_atomic(func):
    """
    Run func() as one unit of work: commit on success, roll back on any failure.

    Business errors propagate unchanged. Storage failures surface as
    TransactionFailure; lock/deadlock/timeout and optimistic version
    conflicts are retryable, everything else (constraints, missing tables,
    misuse of the session) is not. No retry is attempted here.

    A session the caller left with uncommitted writes is rejected before
    anything runs, and those writes are left untouched.
    """
    reject_pending_writes()
    try:
        begin_write()
        result = func()
        db.session.commit()
        return result
    except (OperationalError, StaleDataError) as exc:
        db.session.rollback()
        retryable = is_retryable_error(exc)
        raise TransactionFailure(
            "Transaction could not be completed, please retry" if retryable
            else "Transaction rejected by the database",
            retryable=retryable,
            details={"reason": exc.__class__.__name__, "message": str(getattr(exc, "orig", exc))},
        ) from exc
    except IntegrityError as exc:
        db.session.rollback()
        raise TransactionFailure(
            "Transaction rejected by a data constraint",
            retryable=False,
            details={"reason": str(exc.orig)},
        ) from exc
    except DBAPIError as exc:
        db.session.rollback()
        raise TransactionFailure(
            "Transaction rejected by the database",
            retryable=False,
            details={"reason": exc.__class__.__name__},
        ) from exc
    except Exception:
        db.session.rollback()
        raise
