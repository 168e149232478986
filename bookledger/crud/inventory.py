from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from typing import Optional, cast

from bookledger.models.book import Book
from bookledger.models.borrowing import Borrowing
from sqlalchemy import select, text, update
from sqlalchemy.engine import CursorResult
from sqlalchemy.orm import Session


def set_lock_timeout(db: Session, *, timeout_ms: int) -> None:
    """Bound how long this transaction waits on row locks.

    Only PostgreSQL has a per-transaction setting; SQLite waits on the
    connection's busy timeout instead.
    """
    if db.get_bind().dialect.name != "postgresql":
        return
    db.execute(text(f"SET LOCAL lock_timeout = {int(timeout_ms)}"))


def lock_book(db: Session, *, book_id: str) -> Optional[Book]:
    return (
        db.execute(
            select(Book)
            .where(Book.id == book_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        .scalars()
        .first()
    )


def lock_borrowing(db: Session, *, borrowing_id: str) -> Optional[Borrowing]:
    return (
        db.execute(
            select(Borrowing)
            .where(Borrowing.id == borrowing_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        .scalars()
        .first()
    )


def decrement_available(db: Session, *, book_id: str) -> bool:
    """Take one copy if any remain. Returns False when none were left."""
    result = cast(
        CursorResult,
        db.execute(
            update(Book)
            .where(Book.id == book_id, Book.available_copies > 0)
            .values(available_copies=Book.available_copies - 1)
            .execution_options(synchronize_session=False)
        ),
    )
    return result.rowcount == 1


def increment_available(db: Session, *, book_id: str) -> bool:
    result = cast(
        CursorResult,
        db.execute(
            update(Book)
            .where(Book.id == book_id, Book.available_copies < Book.total_copies)
            .values(available_copies=Book.available_copies + 1)
            .execution_options(synchronize_session=False)
        ),
    )
    return result.rowcount == 1


def close_borrowing(
    db: Session,
    *,
    borrowing_id: str,
    returned_at: datetime,
    fine_amount: Decimal | None,
) -> bool:
    """Mark an open borrowing returned. Returns False if it was already closed."""
    result = cast(
        CursorResult,
        db.execute(
            update(Borrowing)
            .where(Borrowing.id == borrowing_id, Borrowing.returned_date.is_(None))
            .values(returned_date=returned_at, fine_amount=fine_amount)
            .execution_options(synchronize_session=False)
        ),
    )
    return result.rowcount == 1


def insert_borrowing(
    db: Session,
    *,
    user_id: str,
    book_id: str,
    borrowed_at: datetime,
    due_date: date,
) -> Borrowing:
    borrowing = Borrowing(
        user_id=user_id,
        book_id=book_id,
        borrowed_date=borrowed_at,
        due_date=due_date,
    )
    db.add(borrowing)
    db.flush()
    return borrowing
