# Overview: Service-layer persistence boundary; one atomic unit of work with bounded retry.

from __future__ import annotations

import time

from flask import current_app
from sqlalchemy import text
from sqlalchemy.exc import OperationalError, SQLAlchemyError
from sqlalchemy.orm.exc import StaleDataError

from ..errors import ConflictRetryExhausted, PosError, StorageFailure
from ..extensions import db


_CONTENTION_MARKERS = (
    "database is locked",
    "deadlock",
    "lock wait timeout",
    "could not serialize",
    "could not obtain lock",
)


def lock_for_update(query):
    """
    Apply row-level locking for critical operations.

    Rows already in the session are refreshed from the locked read.

    NOTE: SQLite ignores SELECT ... FOR UPDATE; writers there are serialized
    by BEGIN IMMEDIATE in run_atomic instead.
    """
    return query.with_for_update().populate_existing()


def _is_contention(exc: Exception) -> bool:
    if isinstance(exc, StaleDataError):
        return True
    message = str(getattr(exc, "orig", exc)).lower()
    return any(marker in message for marker in _CONTENTION_MARKERS)


def _begin_write() -> None:
    if db.engine.dialect.name == "sqlite":
        db.session.execute(text("BEGIN IMMEDIATE"))


def run_atomic(func, *, attempts: int | None = None, backoff_base: float | None = None):
    """
    Execute func as one atomic unit of work and commit its writes.

    - Domain errors (PosError) roll back everything and propagate unchanged.
    - Lock contention and optimistic version conflicts (StaleDataError) roll
      back and retry with exponential backoff; once attempts are exhausted
      ConflictRetryExhausted is raised.
    - Any other SQLAlchemy failure, including a failed commit, rolls back and
      is surfaced as StorageFailure.

    func must not commit; it only stages writes on db.session.
    """
    if attempts is None:
        attempts = current_app.config.get("POS_RETRY_ATTEMPTS", 3)
    if backoff_base is None:
        backoff_base = current_app.config.get("POS_RETRY_BACKOFF", 0.1)
    attempts = max(1, attempts)

    last_exc = None
    for attempt in range(attempts):
        try:
            _begin_write()
            result = func()
            db.session.commit()
            return result
        except PosError:
            db.session.rollback()
            raise
        except (OperationalError, StaleDataError) as exc:
            db.session.rollback()
            if not _is_contention(exc):
                current_app.logger.exception("Atomic unit of work failed")
                raise StorageFailure(
                    "Storage failure; no changes were persisted",
                    details={"cause": exc.__class__.__name__},
                ) from exc
            last_exc = exc
            current_app.logger.warning(
                "Write conflict on attempt %s/%s: %s", attempt + 1, attempts, exc.__class__.__name__
            )
            if attempt < attempts - 1:
                time.sleep(backoff_base * (2 ** attempt))
        except SQLAlchemyError as exc:
            db.session.rollback()
            current_app.logger.exception("Atomic unit of work failed")
            raise StorageFailure(
                "Storage failure; no changes were persisted",
                details={"cause": exc.__class__.__name__},
            ) from exc
        except Exception:
            db.session.rollback()
            raise

    raise ConflictRetryExhausted(
        "Concurrent update conflict; retry attempts exhausted",
        details={"attempts": attempts},
    ) from last_exc
