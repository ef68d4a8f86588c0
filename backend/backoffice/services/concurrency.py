# Overview: Atomic unit of work and row locking for ledger writes.

from __future__ import annotations

import time
from typing import Callable, TypeVar

from flask import current_app
from sqlalchemy.exc import OperationalError, SQLAlchemyError
from sqlalchemy.orm.exc import StaleDataError

from ..errors import LedgerError, UnexpectedError
from ..extensions import db


T = TypeVar("T")


def lock_for_update(query):
    """
    Apply row-level locking for critical operations.

    NOTE: SQLite ignores SELECT ... FOR UPDATE, but other DBs will honor it.
    """
    return query.with_for_update()


def run_atomic(
    func: Callable[[], T],
    *,
    attempts: int | None = None,
    backoff_base: float | None = None,
) -> T:
    """
    Run `func` as one database transaction and commit it.

    Any exception rolls the session back before it propagates, so a failed
    operation never leaves partial rows behind. Lock conflicts
    (OperationalError, StaleDataError) are retried with exponential backoff;
    when retries run out, or storage fails some other way, the caller gets an
    UnexpectedError and the cause goes to the log.
    """
    if attempts is None:
        attempts = current_app.config.get("ATOMIC_RETRY_ATTEMPTS", 3)
    if backoff_base is None:
        backoff_base = current_app.config.get("ATOMIC_RETRY_BACKOFF", 0.1)

    for attempt in range(attempts):
        try:
            result = func()
            db.session.commit()
            return result
        except (OperationalError, StaleDataError) as exc:
            db.session.rollback()
            if attempt >= attempts - 1:
                current_app.logger.exception("Atomic operation failed after %d attempts", attempts)
                raise UnexpectedError("Internal server error") from exc
            current_app.logger.warning("Retrying atomic operation after lock conflict: %s", exc)
            time.sleep(backoff_base * (2 ** attempt))
        except LedgerError:
            db.session.rollback()
            raise
        except SQLAlchemyError as exc:
            db.session.rollback()
            current_app.logger.exception("Atomic operation failed")
            raise UnexpectedError("Internal server error") from exc
        except Exception:
            db.session.rollback()
            raise
    raise UnexpectedError("Internal server error")
