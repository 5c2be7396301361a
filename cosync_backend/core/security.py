# Session tokens (JWT) and the current-user dependencies.
from datetime import datetime, timedelta, timezone
from typing import Optional
from fastapi import Depends, Request, Response
from jose import jwt, JWTError
from sqlalchemy.orm import Session
from core.config import (
    APP_ID, JWT_SECRET, JWT_ALGORITHM, SESSION_COOKIE_NAME, SESSION_TTL_DAYS, IS_PRODUCTION,
)
from core.database import get_db
from core.exceptions import AuthenticationError
from models.user import User
from repositories.user_repository import UserRepository

SESSION_TTL = timedelta(days=SESSION_TTL_DAYS)


def create_session_token(open_id: str, name: str, expires_delta: Optional[timedelta] = None,
                         now: Optional[datetime] = None) -> str:
    """Signed token carrying the user's open_id. Nothing is stored server side."""
    now = now or datetime.now(timezone.utc)
    claims = {
        "openId": open_id,
        "appId": APP_ID,
        "name": name or "",
        "iat": now,
        "exp": now + (expires_delta or SESSION_TTL),
    }
    return jwt.encode(claims, JWT_SECRET, algorithm=JWT_ALGORITHM)


def decode_session_token(token: str) -> Optional[dict]:
    try:
        payload = jwt.decode(token, JWT_SECRET, algorithms=[JWT_ALGORITHM])
    except JWTError:
        return None
    if not payload.get("openId") or payload.get("appId") != APP_ID:
        return None
    return payload


def session_cookie_options() -> dict:
    return {
        "httponly": True,
        "secure": IS_PRODUCTION,
        "samesite": "none" if IS_PRODUCTION else "lax",
        "path": "/",
    }


def set_session_cookie(response: Response, token: str, max_age: int = None) -> None:
    response.set_cookie(
        key=SESSION_COOKIE_NAME,
        value=token,
        max_age=max_age or int(SESSION_TTL.total_seconds()),
        **session_cookie_options(),
    )


def clear_session_cookie(response: Response) -> None:
    response.delete_cookie(key=SESSION_COOKIE_NAME, **session_cookie_options())


def _extract_token(request: Request) -> Optional[str]:
    token = request.cookies.get(SESSION_COOKIE_NAME)
    if token:
        return token
    authorization = request.headers.get("Authorization", "")
    if authorization.lower().startswith("bearer "):
        return authorization[7:].strip() or None
    return None


def get_optional_user(request: Request, db: Session = Depends(get_db)) -> Optional[User]:
    token = _extract_token(request)
    if not token:
        return None
    payload = decode_session_token(token)
    if not payload:
        return None
    return UserRepository.get_by_open_id(db, payload["openId"])


def get_current_user(user: Optional[User] = Depends(get_optional_user)) -> User:
    if user is None:
        raise AuthenticationError()
    return user
