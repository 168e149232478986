from __future__ import annotations

from datetime import date, datetime, timezone
from decimal import Decimal
from uuid import uuid4

from bookledger.models.base import Base
from sqlalchemy import Date, DateTime, ForeignKey, Numeric, String
from sqlalchemy.ext.hybrid import hybrid_property
from sqlalchemy.orm import Mapped, mapped_column, relationship


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Borrowing(Base):
    __tablename__ = "borrowings"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid4()))

    user_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("users.id"), nullable=False, index=True
    )
    book_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("books.id"), nullable=False, index=True
    )

    borrowed_date: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, nullable=False
    )
    due_date: Mapped[date] = mapped_column(Date, nullable=False, index=True)

    # NULL while the borrowing is open; set once on return.
    returned_date: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True, index=True
    )
    fine_amount: Mapped[Decimal | None] = mapped_column(Numeric(10, 2), nullable=True)

    user = relationship("User", back_populates="borrowings")
    book = relationship("Book", back_populates="borrowings")

    @hybrid_property
    def is_open(self) -> bool:
        return self.returned_date is None

    @is_open.expression
    def is_open(cls):
        return cls.returned_date.is_(None)
