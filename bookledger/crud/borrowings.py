from __future__ import annotations

from typing import Optional

from bookledger.models.borrowing import Borrowing
from sqlalchemy import select
from sqlalchemy.orm import Session


def get_borrowing(db: Session, *, borrowing_id: str) -> Optional[Borrowing]:
    return db.get(Borrowing, borrowing_id)


def list_borrowings_for_user(
    db: Session, *, user_id: str, open_only: bool = False
) -> list[Borrowing]:
    stmt = select(Borrowing).where(Borrowing.user_id == user_id)
    if open_only:
        stmt = stmt.where(Borrowing.is_open)
    # Open borrowings first, then most recent.
    stmt = stmt.order_by(Borrowing.is_open.desc(), Borrowing.borrowed_date.desc())
    return list(db.execute(stmt).scalars().all())
