from __future__ import annotations

from bookledger.api.deps import get_current_user, require_roles
from bookledger.api.rate_limit import rate_limiter
from bookledger.crud.books import create_book, get_book, list_books
from bookledger.crud.borrowings import get_borrowing, list_borrowings_for_user
from bookledger.db.session import get_db
from bookledger.models.user import User
from bookledger.schemas.library import (
    BookIn,
    BookOut,
    BorrowIn,
    BorrowingOut,
    BorrowOut,
    ReturnIn,
    ReturnOut,
)
from bookledger.services.catalog_cache import get_book_list_cached, invalidate_book_list
from bookledger.services.ledger import LedgerError, LedgerResult, borrow_book, return_book
from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

router = APIRouter(prefix="/v1/library", tags=["library"])

LEDGER_ERROR_STATUS = {
    LedgerError.not_found: 404,
    LedgerError.no_copies_available: 409,
    LedgerError.already_returned: 409,
    LedgerError.conflict: 503,
    LedgerError.store_unavailable: 503,
}

ledger_rate_limit = rate_limiter("ledger")


def ledger_http_error(result: LedgerResult) -> HTTPException:
    if result.error is None:
        raise ValueError("ledger_http_error needs a failed result")
    return HTTPException(
        status_code=LEDGER_ERROR_STATUS[result.error],
        detail={
            "code": result.error.value,
            "message": result.message,
            "retryable": result.retryable,
        },
        headers={"Retry-After": "1"} if result.retryable else None,
    )


@router.get("/books", response_model=list[BookOut])
def get_books(
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    def _load() -> list[dict]:
        return [BookOut.model_validate(b).model_dump(mode="json") for b in list_books(db)]

    return get_book_list_cached(_load)


@router.get("/books/{book_id}", response_model=BookOut)
def get_book_detail(
    book_id: str,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    book = get_book(db, book_id=book_id)
    if book is None:
        raise HTTPException(status_code=404, detail="Book not found")
    return book


@router.post("/books", response_model=BookOut, status_code=201)
def add_book(
    payload: BookIn,
    db: Session = Depends(get_db),
    user: User = Depends(require_roles("admin")),
):
    book = create_book(
        db, title=payload.title, author=payload.author, total_copies=payload.total_copies
    )
    invalidate_book_list()
    return book


@router.post("/borrow", response_model=BorrowOut, dependencies=[Depends(ledger_rate_limit)])
def borrow(
    payload: BorrowIn,
    db: Session = Depends(get_db),
    user: User = Depends(require_roles("admin", "user")),
):
    borrower_id = user.id
    if payload.user_id and payload.user_id != user.id:
        if user.role != "admin":
            raise HTTPException(status_code=403, detail="Forbidden: insufficient role")
        target = db.get(User, payload.user_id)
        if target is None or not target.is_active:
            raise HTTPException(status_code=404, detail="User not found")
        borrower_id = target.id

    result = borrow_book(
        db, user_id=borrower_id, book_id=payload.book_id, due_date=payload.due_date
    )
    if not result.ok:
        raise ledger_http_error(result)

    return BorrowOut(
        borrowing_id=result.borrowing_id,
        book_id=result.book_id,
        user_id=result.user_id,
        due_date=result.due_date,
    )


@router.post("/return", response_model=ReturnOut, dependencies=[Depends(ledger_rate_limit)])
def return_(
    payload: ReturnIn,
    db: Session = Depends(get_db),
    user: User = Depends(require_roles("admin", "user")),
):
    if user.role != "admin":
        # Owner never changes, so this check can sit outside the transition.
        existing = get_borrowing(db, borrowing_id=payload.borrowing_id)
        if existing is not None and existing.user_id != user.id:
            raise ledger_http_error(
                LedgerResult.failure(LedgerError.not_found, "Borrowing not found")
            )

    result = return_book(db, borrowing_id=payload.borrowing_id)
    if not result.ok:
        raise ledger_http_error(result)

    return ReturnOut(
        borrowing_id=result.borrowing_id,
        returned_date=result.returned_date,
        fine_amount=result.fine_amount,
    )


@router.get("/borrowings", response_model=list[BorrowingOut])
def my_borrowings(
    open_only: bool = Query(False),
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    return list_borrowings_for_user(db, user_id=user.id, open_only=open_only)
