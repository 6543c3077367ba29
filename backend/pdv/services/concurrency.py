# Overview: Row locking and retry helpers around database transactions.

from __future__ import annotations

import time

from flask import current_app
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm.exc import StaleDataError

from ..extensions import db

# Transient failures worth replaying: lock timeouts, deadlocks, dropped
# connections, optimistic-lock conflicts.
TRANSIENT_ERRORS = (OperationalError, StaleDataError)


def lock_for_update(query):
    """
    Apply row-level locking for critical operations.

    NOTE: SQLite ignores SELECT ... FOR UPDATE, but other DBs will honor it.
    """
    return query.with_for_update()


def run_with_retry(func, *, attempts: int = 3, backoff_base: float = 0.1):
    """
    Execute a unit of work, rolling back and retrying on transient failures.

    `func` must rebuild whatever it adds to the session, since a rollback
    discards pending objects. The last transient error is re-raised.
    """
    for attempt in range(attempts):
        try:
            return func()
        except TRANSIENT_ERRORS as exc:
            db.session.rollback()
            if attempt >= attempts - 1:
                raise
            delay = backoff_base * (2 ** attempt)
            current_app.logger.warning(
                "Transient database error (attempt %d/%d), retrying in %.2fs: %s",
                attempt + 1, attempts, delay, exc,
            )
            time.sleep(delay)
