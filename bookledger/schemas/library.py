from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field, field_validator


class BookIn(BaseModel):
    title: str = Field(min_length=1, max_length=500)
    author: str | None = Field(default=None, max_length=300)
    total_copies: int = Field(ge=0, le=100_000)

    @field_validator("title")
    @classmethod
    def title_not_blank(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Title is required")
        return v


class BookOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    title: str
    author: str | None
    total_copies: int
    available_copies: int


class BorrowIn(BaseModel):
    book_id: str = Field(min_length=1, max_length=36)
    due_date: date
    # A past date is accepted; the borrowing starts out overdue.
    # Admins may borrow on behalf of another user.
    user_id: str | None = Field(default=None, max_length=36)


class ReturnIn(BaseModel):
    borrowing_id: str = Field(min_length=1, max_length=36)


class BorrowOut(BaseModel):
    success: bool = True
    borrowing_id: str
    book_id: str
    user_id: str
    due_date: date


class ReturnOut(BaseModel):
    success: bool = True
    borrowing_id: str
    returned_date: datetime
    fine_amount: Decimal | None


class BorrowingOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    book_id: str
    user_id: str
    borrowed_date: datetime
    due_date: date
    returned_date: datetime | None
    fine_amount: Decimal | None
    is_open: bool
