"""Borrowing ledger: the two inventory transitions over books and borrowings.

Every call is one unit of work on the given session. The target row is
locked (``SELECT ... FOR UPDATE``) and the write that depends on the check is
a guarded ``UPDATE``, so the check and the act cannot be split by a
concurrent transition on the same book or borrowing. Any failure rolls the
whole transition back before returning.

Results are returned, not raised: callers get a ``LedgerResult`` that is
either a success payload or one ``LedgerError`` kind.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Callable, Optional

from bookledger.core.config import settings
from bookledger.crud.inventory import (
    close_borrowing,
    decrement_available,
    increment_available,
    insert_borrowing,
    lock_book,
    lock_borrowing,
    set_lock_timeout,
)
from bookledger.services.catalog_cache import invalidate_book_list
from bookledger.services.fines import calendar_day, compute_fine
from opentelemetry import trace
from sqlalchemy import exc as sa_exc
from sqlalchemy.orm import Session

logger = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class LedgerError(str, Enum):
    not_found = "not_found"
    no_copies_available = "no_copies_available"
    already_returned = "already_returned"
    conflict = "conflict"
    store_unavailable = "store_unavailable"


RETRYABLE_ERRORS = frozenset({LedgerError.conflict})


class InventoryInconsistencyError(RuntimeError):
    """A return found no lent-out copy to put back on the shelf."""


@dataclass(frozen=True)
class LedgerResult:
    error: Optional[LedgerError] = None
    message: Optional[str] = None

    borrowing_id: Optional[str] = None
    book_id: Optional[str] = None
    user_id: Optional[str] = None
    due_date: Optional[date] = None
    returned_date: Optional[datetime] = None
    fine_amount: Optional[Decimal] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @property
    def retryable(self) -> bool:
        return self.error in RETRYABLE_ERRORS

    @classmethod
    def failure(cls, error: LedgerError, message: str) -> "LedgerResult":
        return cls(error=error, message=message)


class _Abort(Exception):
    def __init__(self, error: LedgerError, message: str) -> None:
        super().__init__(message)
        self.error = error
        self.message = message


# SQLSTATEs: serialization_failure, deadlock_detected, lock_not_available
_RETRYABLE_SQLSTATES = {"40001", "40P01", "55P03"}
_RETRYABLE_MESSAGES = ("database is locked", "deadlock", "lock wait timeout")


def classify_db_error(error: Exception) -> Optional[LedgerError]:
    """Map a SQLAlchemy failure onto the ledger taxonomy.

    Returns None for errors that are not an expected store condition
    (integrity violations, programming errors); those propagate.
    """
    if isinstance(error, sa_exc.DBAPIError):
        orig = error.orig
        sqlstate = getattr(orig, "sqlstate", None) or getattr(orig, "pgcode", None)
        if sqlstate in _RETRYABLE_SQLSTATES:
            return LedgerError.conflict

        text = str(orig).lower()
        if any(m in text for m in _RETRYABLE_MESSAGES):
            return LedgerError.conflict

        if error.connection_invalidated or isinstance(
            error, (sa_exc.OperationalError, sa_exc.InterfaceError)
        ):
            return LedgerError.store_unavailable
        return None

    if isinstance(error, (sa_exc.DisconnectionError, sa_exc.TimeoutError)):
        return LedgerError.store_unavailable
    return None


def _rollback(db: Session) -> None:
    try:
        db.rollback()
    except sa_exc.SQLAlchemyError as exc:
        # The connection is gone; the server discards the open transaction.
        logger.warning("ledger rollback failed: %s", exc)


def _run_transition(
    db: Session,
    name: str,
    attributes: dict[str, str],
    body: Callable[[], LedgerResult],
) -> LedgerResult:
    with tracer.start_as_current_span(f"ledger.{name}", attributes=attributes) as span:
        try:
            set_lock_timeout(db, timeout_ms=settings.ledger_lock_timeout_ms)
            result = body()
            db.commit()
        except _Abort as abort:
            _rollback(db)
            span.set_attribute("ledger.error", abort.error.value)
            logger.info("%s rejected: %s %s", name, abort.error.value, attributes)
            return LedgerResult.failure(abort.error, abort.message)
        except sa_exc.SQLAlchemyError as exc:
            _rollback(db)
            kind = classify_db_error(exc)
            if kind is None:
                raise
            span.set_attribute("ledger.error", kind.value)
            logger.warning("%s aborted (%s) %s: %s", name, kind.value, attributes, exc)
            if kind is LedgerError.conflict:
                message = "Concurrent update in progress, retry the request"
            else:
                message = "Data store unavailable"
            return LedgerResult.failure(kind, message)
        except Exception:
            _rollback(db)
            raise

    invalidate_book_list()
    return result


def borrow_book(
    db: Session,
    *,
    user_id: str,
    book_id: str,
    due_date: date,
    now: Optional[datetime] = None,
) -> LedgerResult:
    """Lend one copy of ``book_id`` to ``user_id``.

    Fails with ``not_found`` for an unknown book and ``no_copies_available``
    when every copy is out. On success exactly one open borrowing is created
    and the book's available count drops by one, in the same commit.
    """

    def _borrow() -> LedgerResult:
        book = lock_book(db, book_id=book_id)
        if book is None:
            raise _Abort(LedgerError.not_found, "Book not found")
        if book.available_copies <= 0:
            raise _Abort(LedgerError.no_copies_available, "No copies available")

        # Guards stores where FOR UPDATE is a no-op.
        if not decrement_available(db, book_id=book_id):
            raise _Abort(LedgerError.no_copies_available, "No copies available")

        borrowing = insert_borrowing(
            db,
            user_id=user_id,
            book_id=book_id,
            borrowed_at=now or utcnow(),
            due_date=due_date,
        )
        return LedgerResult(
            borrowing_id=borrowing.id,
            book_id=book_id,
            user_id=user_id,
            due_date=due_date,
        )

    return _run_transition(
        db, "borrow", {"book_id": str(book_id), "user_id": str(user_id)}, _borrow
    )


def return_book(
    db: Session,
    *,
    borrowing_id: str,
    now: Optional[datetime] = None,
) -> LedgerResult:
    """Close an open borrowing and put its copy back.

    Fails with ``not_found`` for an unknown borrowing and
    ``already_returned`` when it was closed before; the copy is only
    restored by the call that closes it.
    """

    def _return() -> LedgerResult:
        borrowing = lock_borrowing(db, borrowing_id=borrowing_id)
        if borrowing is None:
            raise _Abort(LedgerError.not_found, "Borrowing not found")
        if not borrowing.is_open:
            raise _Abort(LedgerError.already_returned, "Book already returned")

        returned_at = now or utcnow()
        returned_on = calendar_day(returned_at, settings.library_timezone)
        fine = compute_fine(borrowing.due_date, returned_on, settings.fine_per_day)

        if not close_borrowing(
            db, borrowing_id=borrowing_id, returned_at=returned_at, fine_amount=fine
        ):
            raise _Abort(LedgerError.already_returned, "Book already returned")

        if not increment_available(db, book_id=borrowing.book_id):
            logger.error(
                "book %s has every copy on the shelf while borrowing %s is open",
                borrowing.book_id,
                borrowing_id,
            )
            raise InventoryInconsistencyError(
                f"book {borrowing.book_id} has no lent-out copy to return"
            )

        return LedgerResult(
            borrowing_id=borrowing_id,
            book_id=borrowing.book_id,
            user_id=borrowing.user_id,
            due_date=borrowing.due_date,
            returned_date=returned_at,
            fine_amount=fine,
        )

    return _run_transition(db, "return", {"borrowing_id": str(borrowing_id)}, _return)
