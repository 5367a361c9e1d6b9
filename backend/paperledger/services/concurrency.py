# Overview: Service-layer helpers for concurrency; retry of optimistic-locking conflicts.

from __future__ import annotations

import logging
import time

from sqlalchemy.exc import IntegrityError, OperationalError
from sqlalchemy.orm.exc import StaleDataError


logger = logging.getLogger(__name__)

# Conflicts that mean "someone else wrote first": re-read and try again.
RETRYABLE_ERRORS = (OperationalError, StaleDataError, IntegrityError)


def run_with_retry(func, *, attempts: int = 3, backoff_base: float = 0.1):
    """
    Execute a ledger operation with retry on concurrency-related failures.

    Retries on OperationalError (locked database), StaleDataError
    (optimistic version conflict) and IntegrityError (two writers creating
    the same collection row). The storage layer has already rolled back
    by the time the error reaches here, so func() starts from a fresh read.
    """
    last_exc = None
    for attempt in range(attempts):
        try:
            return func()
        except RETRYABLE_ERRORS as exc:
            last_exc = exc
            if attempt >= attempts - 1:
                raise
            logger.warning(
                "Ledger write conflict (%s), retrying attempt %d/%d",
                type(exc).__name__, attempt + 2, attempts,
            )
            time.sleep(backoff_base * (2 ** attempt))
    if last_exc:
        raise last_exc
