"""Races between transitions on the same rows, each thread with its own session."""

from __future__ import annotations

import random
import threading
from collections import Counter
from datetime import date

from bookledger.models import Book, Borrowing
from bookledger.services.ledger import LedgerError, borrow_book, return_book
from sqlalchemy import func, select

DUE = date(2030, 1, 1)


def _run_threads(count: int, target) -> list:
    barrier = threading.Barrier(count)
    results: list = [None] * count
    errors: list[BaseException] = []

    def _worker(i: int) -> None:
        try:
            barrier.wait()
            results[i] = target(i)
        except BaseException as exc:  # surfaced below
            errors.append(exc)

    threads = [threading.Thread(target=_worker, args=(i,)) for i in range(count)]
    for t in threads:
        t.start()
    for t in threads:
        t.join(timeout=60)

    assert not errors, errors
    return results


def _open_count(db, book_id: str) -> int:
    return int(
        db.execute(
            select(func.count())
            .select_from(Borrowing)
            .where(Borrowing.book_id == book_id, Borrowing.returned_date.is_(None))
        ).scalar_one()
    )


def test_concurrent_borrows_never_exceed_available_copies(
    session_factory, make_user, make_book
):
    copies, attempts = 3, 10
    book_id = make_book(copies=copies).id
    user_ids = [make_user().id for _ in range(attempts)]

    def _borrow(i: int):
        with session_factory() as db:
            return borrow_book(db, user_id=user_ids[i], book_id=book_id, due_date=DUE)

    results = _run_threads(attempts, _borrow)

    outcomes = Counter(r.error for r in results)
    assert outcomes[None] == copies
    assert outcomes[LedgerError.no_copies_available] == attempts - copies

    with session_factory() as db:
        book = db.get(Book, book_id)
        assert book.available_copies == 0
        assert _open_count(db, book_id) == copies


def test_concurrent_returns_restore_one_copy(session_factory, make_user, make_book):
    book_id = make_book(copies=1).id
    user_id = make_user().id
    with session_factory() as db:
        borrowing_id = borrow_book(
            db, user_id=user_id, book_id=book_id, due_date=DUE
        ).borrowing_id

    def _return(i: int):
        with session_factory() as db:
            return return_book(db, borrowing_id=borrowing_id)

    results = _run_threads(8, _return)

    outcomes = Counter(r.error for r in results)
    assert outcomes[None] == 1
    assert outcomes[LedgerError.already_returned] == 7

    with session_factory() as db:
        assert db.get(Book, book_id).available_copies == 1


def test_different_books_do_not_block_each_other(session_factory, make_user, make_book):
    book_ids = [make_book(copies=1, title=f"T{i}").id for i in range(4)]
    user_id = make_user().id

    def _borrow(i: int):
        with session_factory() as db:
            return borrow_book(db, user_id=user_id, book_id=book_ids[i], due_date=DUE)

    results = _run_threads(len(book_ids), _borrow)
    assert all(r.ok for r in results)


def test_interleaved_borrow_and_return_conserve_inventory(
    session_factory, make_user, make_book
):
    book_ids = [make_book(copies=2, title=f"B{i}").id for i in range(3)]
    user_ids = [make_user().id for _ in range(8)]

    def _churn(i: int):
        rng = random.Random(i)
        seen = []
        for _ in range(5):
            book_id = rng.choice(book_ids)
            with session_factory() as db:
                res = borrow_book(db, user_id=user_ids[i], book_id=book_id, due_date=DUE)
            seen.append(res.error)
            if res.ok:
                with session_factory() as db:
                    seen.append(return_book(db, borrowing_id=res.borrowing_id).error)
        return seen

    results = _run_threads(len(user_ids), _churn)

    errors = {e for seen in results for e in seen}
    assert errors <= {None, LedgerError.no_copies_available}

    with session_factory() as db:
        for book_id in book_ids:
            book = db.get(Book, book_id)
            assert book.available_copies == book.total_copies - _open_count(db, book_id)
            assert book.available_copies == 2
