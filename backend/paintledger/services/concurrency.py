# Overview: Row locking and retry helpers shared by the SQL record store.

from __future__ import annotations

import logging
import time

from sqlalchemy.exc import OperationalError
from sqlalchemy.orm.exc import StaleDataError

from ..extensions import db

logger = logging.getLogger(__name__)

RETRYABLE_ERRORS = (OperationalError, StaleDataError)


def lock_for_update(query):
    """
    Lock the selected rows until the current transaction ends.

    SqlStore.patch uses it so concurrent edits of one sale are applied one at
    a time. SqlStore.save_balance uses it so the upsert of a customer's
    balance row never races a second recomputation. SQLite has no
    SELECT ... FOR UPDATE; there the sale and balance version counters
    catch the conflict instead.
    """
    return query.with_for_update()


def run_with_retry(func, *, attempts: int = 3, backoff_base: float = 0.1):
    """
    Run an outermost unit of work, retrying it from the start on lock
    timeouts or deadlocks (OperationalError) and on version conflicts on
    sales and balances (StaleDataError). The session is rolled back before
    each retry; the last failure is re-raised.
    """
    for attempt in range(1, attempts + 1):
        try:
            return func()
        except RETRYABLE_ERRORS as exc:
            db.session.rollback()
            if attempt == attempts:
                raise
            delay = backoff_base * (2 ** (attempt - 1))
            logger.warning(
                "Unit of work hit %s; retry %d of %d in %.2fs",
                type(exc).__name__, attempt, attempts - 1, delay,
            )
            time.sleep(delay)
