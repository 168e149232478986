from __future__ import annotations

from bookledger.api.deps import get_current_user
from bookledger.core.config import settings
from bookledger.core.security import (
    REFRESH_TOKEN,
    create_access_token,
    create_refresh_token,
    decode_token,
    verify_password,
)
from bookledger.crud.users import create_user, get_user_by_email
from bookledger.db.session import get_db
from bookledger.models.user import User
from bookledger.schemas.auth import LoginIn, RefreshIn, RegisterIn, TokenOut, UserOut
from fastapi import APIRouter, Depends, HTTPException, Response
from jose import JWTError  # type: ignore[import-untyped]
from sqlalchemy.orm import Session

router = APIRouter(prefix="/v1/auth", tags=["auth"])


def _set_auth_cookie(response: Response, *, token: str) -> None:
    response.set_cookie(
        key=settings.auth_cookie_name,
        value=token,
        httponly=True,
        secure=settings.auth_cookie_secure,
        samesite=settings.auth_cookie_samesite,
        max_age=settings.auth_access_token_ttl_minutes * 60,
        path="/",
    )


@router.post("/register", response_model=UserOut)
def register(payload: RegisterIn, db: Session = Depends(get_db)):
    if get_user_by_email(db, payload.email) is not None:
        raise HTTPException(status_code=400, detail="User already exists")

    return create_user(db, email=payload.email, password=payload.password, name=payload.name)


@router.post("/login", response_model=TokenOut)
def login(payload: LoginIn, response: Response, db: Session = Depends(get_db)):
    u = get_user_by_email(db, payload.email)
    if u is None or not u.is_active:
        raise HTTPException(status_code=401, detail="Invalid credentials")

    if not verify_password(payload.password, u.password_hash):
        raise HTTPException(status_code=401, detail="Invalid credentials")

    access = create_access_token(subject=u.id, role=u.role)
    _set_auth_cookie(response, token=access)
    return TokenOut(
        access_token=access,
        refresh_token=create_refresh_token(subject=u.id, role=u.role),
    )


@router.post("/refresh", response_model=TokenOut)
def refresh(payload: RefreshIn, response: Response, db: Session = Depends(get_db)):
    try:
        claims = decode_token(payload.refresh_token)
    except JWTError:
        raise HTTPException(status_code=401, detail="Invalid refresh token")

    user_id = claims.get("sub")
    if not user_id or claims.get("type") != REFRESH_TOKEN:
        raise HTTPException(status_code=401, detail="Invalid refresh token")

    # Re-read the role so demotions take effect on the next refresh.
    u = db.get(User, user_id)
    if u is None or not u.is_active:
        raise HTTPException(status_code=401, detail="Invalid refresh token")

    access = create_access_token(subject=u.id, role=u.role)
    _set_auth_cookie(response, token=access)
    return TokenOut(access_token=access)


@router.get("/me", response_model=UserOut)
def me(user: User = Depends(get_current_user)):
    return user


@router.post("/logout")
def logout(response: Response):
    response.delete_cookie(settings.auth_cookie_name, path="/")
    return {"ok": True}
