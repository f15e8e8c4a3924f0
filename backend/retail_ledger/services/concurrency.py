# Overview: Transaction boundary for ledger writes; serializes writers and translates storage failures.

from __future__ import annotations

from flask import current_app
from sqlalchemy import text
from sqlalchemy.exc import DBAPIError, IntegrityError, OperationalError, ProgrammingError
from sqlalchemy.orm.exc import StaleDataError

from ..errors import ConcurrencyConflict, LedgerError, PersistenceError
from ..extensions import db
"""
Unit-of-work rules (authoritative)

- Every mutating service operation builds its writes inside one closure and
  commits exactly once through run_in_transaction().
- Any exception rolls the whole unit back. No partial checkout, refund or
  shift close is ever committed.
- The core NEVER retries a financial write. Racing writes surface as
  ConcurrencyConflict; the caller decides whether to try again.
- Storage/schema failures surface as PersistenceError with the driver
  message kept verbatim.
"""

_CONFLICT_MARKERS = (
    "database is locked",
    "database table is locked",
    "deadlock",
    "could not obtain lock",
    "could not serialize",
    "lock wait timeout",
    "lock timeout",
)


def lock_for_update(query):
    """
    Apply row-level locking for critical operations.

    NOTE: SQLite ignores SELECT ... FOR UPDATE; begin_unit_of_work() takes
    the database write lock up front instead.
    """
    return query.with_for_update()


def begin_unit_of_work() -> None:
    """Start the write transaction. On SQLite this is BEGIN IMMEDIATE."""
    if db.engine.dialect.name != "sqlite":
        return
    if not current_app.config.get("SQLITE_IMMEDIATE_TRANSACTIONS", True):
        return
    raw = db.session.connection().connection.dbapi_connection
    if getattr(raw, "in_transaction", False):
        return
    db.session.execute(text("BEGIN IMMEDIATE"))


def translate_db_error(exc: Exception) -> LedgerError:
    """Map a SQLAlchemy failure onto the ledger error taxonomy."""
    if isinstance(exc, StaleDataError):
        return ConcurrencyConflict(
            "record was modified by a concurrent request",
            details={"reason": str(exc)},
        )
    if isinstance(exc, IntegrityError):
        return ConcurrencyConflict(
            "write conflicted with a concurrent request",
            details={"reason": str(exc.orig)},
        )
    message = str(getattr(exc, "orig", None) or exc)
    if isinstance(exc, OperationalError) and any(m in message.lower() for m in _CONFLICT_MARKERS):
        return ConcurrencyConflict(
            "storage lock could not be acquired",
            details={"reason": message},
        )
    return PersistenceError(message)


def run_in_transaction(func):
    """
    Execute func() as one unit of work and commit it.

    Rolls back on any failure. LedgerErrors propagate unchanged;
    SQLAlchemy errors are translated with translate_db_error().
    """
    try:
        begin_unit_of_work()
        result = func()
        db.session.commit()
        return result
    except LedgerError:
        db.session.rollback()
        raise
    except (StaleDataError, IntegrityError, OperationalError, ProgrammingError, DBAPIError) as exc:
        db.session.rollback()
        raise translate_db_error(exc) from exc
    except Exception:
        db.session.rollback()
        raise
