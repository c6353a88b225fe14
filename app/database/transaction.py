import logging
import time
from contextlib import contextmanager

from sqlalchemy import text
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import Session

from app.core.errors import InventoryError, TransactionTimeoutError
from app.database.engine import SQLITE_BUSY_TIMEOUT_SECONDS

logger = logging.getLogger(__name__)

_SQLITE_PROGRESS_STEPS = 1000

# lock_not_available, query_canceled
_POSTGRES_LOCK_TIMEOUT_CODES = frozenset({"55P03", "57014"})
_SQLITE_LOCK_MESSAGES = ("database is locked", "database table is locked", "database is busy")


class TransactionBudget:
    def __init__(self, timeout_seconds: float):
        self.timeout_seconds = timeout_seconds
        self.deadline = time.monotonic() + timeout_seconds

    @property
    def expired(self) -> bool:
        return time.monotonic() > self.deadline

    def check(self) -> None:
        if self.expired:
            raise TransactionTimeoutError(
                "Tempo limite da transação excedido ({:.0f}s).".format(self.timeout_seconds)
            )


def _apply_postgres_budget(db: Session, max_wait_ms: int, timeout_ms: int) -> None:
    # SET LOCAL does not accept bind parameters; both values are integers.
    db.execute(text(f"SET LOCAL lock_timeout = {max_wait_ms}"))
    db.execute(text(f"SET LOCAL statement_timeout = {timeout_ms}"))


def _apply_sqlite_budget(db: Session, budget: TransactionBudget, max_wait_ms: int):
    raw = db.connection().connection.dbapi_connection
    raw.execute(f"PRAGMA busy_timeout = {max_wait_ms}")
    raw.set_progress_handler(lambda: 1 if budget.expired else 0, _SQLITE_PROGRESS_STEPS)

    def restore():
        raw.set_progress_handler(None, 0)
        raw.execute(f"PRAGMA busy_timeout = {SQLITE_BUSY_TIMEOUT_SECONDS * 1000}")

    return restore


def is_lock_timeout(exc: OperationalError) -> bool:
    """True when the statement gave up waiting for a lock held by another transaction."""
    orig = exc.orig
    code = getattr(orig, "pgcode", None) or getattr(orig, "sqlstate", None)
    if code in _POSTGRES_LOCK_TIMEOUT_CODES:
        return True
    message = str(orig).lower()
    return any(fragment in message for fragment in _SQLITE_LOCK_MESSAGES)


@contextmanager
def transaction_budget(db: Session, *, max_wait_seconds: float, timeout_seconds: float):
    """Run the block as one transaction bounded by a lock-wait and an execution budget.

    Commits when the block exits cleanly and rolls back on any exception. A
    statement aborted because the execution budget ran out surfaces as
    TransactionTimeoutError.
    """
    budget = TransactionBudget(timeout_seconds)
    max_wait_ms = int(max_wait_seconds * 1000)
    timeout_ms = int(timeout_seconds * 1000)
    dialect = db.get_bind().dialect.name

    restore = None
    try:
        if dialect == "postgresql":
            _apply_postgres_budget(db, max_wait_ms, timeout_ms)
        elif dialect == "sqlite":
            restore = _apply_sqlite_budget(db, budget, max_wait_ms)
        try:
            yield budget
            budget.check()
        finally:
            if restore is not None:
                restore()
        db.commit()
    except TransactionTimeoutError:
        db.rollback()
        logger.error("Transaction exceeded its %.0fs budget; rolled back.", timeout_seconds)
        raise
    except InventoryError:
        db.rollback()
        raise
    except OperationalError as exc:
        db.rollback()
        if budget.expired:
            logger.error("Transaction interrupted after %.0fs; rolled back.", timeout_seconds)
            raise TransactionTimeoutError(
                "Tempo limite da transação excedido ({:.0f}s).".format(timeout_seconds)
            ) from exc
        if is_lock_timeout(exc):
            logger.error("Transaction waited over %.1fs for a lock; rolled back.", max_wait_seconds)
            raise TransactionTimeoutError(
                "Tempo limite de espera por bloqueio excedido ({:g}s).".format(max_wait_seconds)
            ) from exc
        logger.exception("Transaction failed; rolled back.")
        raise
    except Exception:
        db.rollback()
        logger.exception("Transaction failed; rolled back.")
        raise


__all__ = ["TransactionBudget", "is_lock_timeout", "transaction_budget"]
