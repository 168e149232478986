from bookledger.models.base import Base
from bookledger.models.book import Book
from bookledger.models.borrowing import Borrowing
from bookledger.models.task import Task
from bookledger.models.user import User


__all__ = [
    "Base",
    "User",
    "Book",
    "Borrowing",
    "Task",
]
