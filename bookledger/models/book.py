from __future__ import annotations

from datetime import datetime, timezone
from uuid import uuid4

from bookledger.models.base import Base
from sqlalchemy import CheckConstraint, DateTime, Integer, String
from sqlalchemy.orm import Mapped, mapped_column, relationship


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Book(Base):
    __tablename__ = "books"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid4()))
    title: Mapped[str] = mapped_column(String(500), nullable=False)
    author: Mapped[str | None] = mapped_column(String(300), nullable=True)

    total_copies: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    # Only the ledger writes this column.
    available_copies: Mapped[int] = mapped_column(Integer, nullable=False, default=1)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, nullable=False
    )

    borrowings = relationship("Borrowing", back_populates="book")

    __table_args__ = (
        CheckConstraint("available_copies >= 0", name="ck_books_available_nonnegative"),
        CheckConstraint(
            "available_copies <= total_copies", name="ck_books_available_le_total"
        ),
    )
