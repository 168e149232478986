from __future__ import annotations

from typing import Optional

from bookledger.core.security import hash_password
from bookledger.models.user import User
from sqlalchemy import select
from sqlalchemy.orm import Session


def get_user_by_email(db: Session, email: str) -> Optional[User]:
    return db.execute(select(User).where(User.email == email)).scalar_one_or_none()


def create_user(
    db: Session,
    *,
    email: str,
    password: str,
    name: Optional[str] = None,
    role: str = "user",
) -> User:
    u = User(email=email, name=name, role=role, password_hash=hash_password(password))
    db.add(u)
    db.commit()
    db.refresh(u)
    return u
