from __future__ import annotations

from typing import Optional

from bookledger.models.book import Book
from sqlalchemy import select
from sqlalchemy.orm import Session


def create_book(
    db: Session, *, title: str, author: Optional[str], total_copies: int
) -> Book:
    # A new title starts with every copy on the shelf.
    book = Book(
        title=title,
        author=author,
        total_copies=total_copies,
        available_copies=total_copies,
    )
    db.add(book)
    db.commit()
    db.refresh(book)
    return book


def get_book(db: Session, *, book_id: str) -> Optional[Book]:
    return db.get(Book, book_id)


def list_books(db: Session) -> list[Book]:
    return list(
        db.execute(select(Book).order_by(Book.title.asc(), Book.id.asc())).scalars().all()
    )
