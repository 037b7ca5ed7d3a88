# Overview: Transaction boundaries and conflict handling shared by every ledger operation.

from __future__ import annotations

import logging
import time

from sqlalchemy.exc import IntegrityError, OperationalError, SQLAlchemyError
from sqlalchemy.orm.exc import StaleDataError

from ..extensions import db
from ..validation import LedgerError, ConsistencyError, ConcurrencyConflict


logger = logging.getLogger(__name__)


def lock_for_update(query):
    """
    Apply row-level locking for critical operations.

    NOTE: SQLite ignores SELECT ... FOR UPDATE, but other DBs will honor it.
    The version_id column still catches concurrent writers on SQLite.
    """
    return query.with_for_update()


def run_atomic(func):
    """
    Run one ledger operation as a single all-or-nothing DB transaction.

    func stages its changes on db.session (flushes are fine) and must not
    commit. On success the session is committed once; on any failure it is
    rolled back and the failure is re-raised as a typed LedgerError:

    - LedgerError raised by func: re-raised unchanged
    - StaleDataError / OperationalError: ConcurrencyConflict
    - IntegrityError and other SQLAlchemyError: ConsistencyError
    """
    try:
        result = func()
        db.session.commit()
        return result
    except LedgerError:
        db.session.rollback()
        raise
    except (StaleDataError, OperationalError) as exc:
        db.session.rollback()
        logger.warning("Ledger operation hit a concurrent writer: %s", exc)
        raise ConcurrencyConflict(
            "Concurrent update detected; retry the operation",
            details={"cause": type(exc).__name__},
        ) from exc
    except IntegrityError as exc:
        db.session.rollback()
        raise ConsistencyError(
            "Store rejected the operation; nothing was committed",
            details={"cause": str(exc.orig) if exc.orig is not None else str(exc)},
        ) from exc
    except SQLAlchemyError as exc:
        db.session.rollback()
        raise ConsistencyError(
            "Store transaction aborted; nothing was committed",
            details={"cause": type(exc).__name__},
        ) from exc
    except Exception:
        db.session.rollback()
        raise


def retry_on_conflict(func, *, attempts: int = 3, backoff_base: float = 0.1):
    """
    Re-run a whole operation when it loses an optimistic-locking race.

    Meant for callers (API/CLI), not for use inside services: every attempt
    re-reads live state, so a retried operation never applies stale deltas.
    """
    attempts = max(1, attempts)
    for attempt in range(attempts):
        try:
            return func()
        except ConcurrencyConflict:
            if attempt >= attempts - 1:
                raise
            time.sleep(backoff_base * (2 ** attempt))
