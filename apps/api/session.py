# apps/api/session.py
# Sessions are written by the auth service as sess:{sid} -> {"user_id": ...}.
# The feed only reads them, keeps them alive, and resolves the user.
import json
import logging
from typing import Optional
from uuid import UUID

from fastapi import Depends, HTTPException, Request, Response
from sqlalchemy.orm import Session

from cache import get_redis
from config import settings
from db import get_db
from models import User

SESSION_PREFIX = "sess:"

log = logging.getLogger("session")


def session_user_id(sid: str) -> Optional[UUID]:
    """User id stored under sid, refreshing the rolling TTL. None if absent or unreadable."""
    r = get_redis()
    key = f"{SESSION_PREFIX}{sid}"
    raw = r.get(key)
    if not raw:
        return None
    r.expire(key, settings.session_ttl_seconds)
    try:
        payload = json.loads(raw)
        return UUID(str(payload["user_id"]))
    except (ValueError, TypeError, KeyError):
        log.warning("session_unreadable sid_prefix=%s", sid[:6])
        r.delete(key)
        return None


def _refresh_cookie(response: Response, sid: str) -> None:
    response.set_cookie(
        key=settings.session_cookie_name,
        value=sid,
        max_age=settings.session_ttl_seconds,
        path="/",
        samesite="lax",
        httponly=True,
        secure=(settings.env.lower() == "production"),
    )


def get_current_user(
    request: Request,
    response: Response,
    db: Session = Depends(get_db),
) -> User:
    sid = request.cookies.get(settings.session_cookie_name)
    if not sid:
        raise HTTPException(status_code=401, detail="Not authenticated")
    user_id = session_user_id(sid)
    if user_id is None:
        raise HTTPException(status_code=401, detail="Session expired")
    user = db.get(User, user_id)
    if user is None:
        raise HTTPException(status_code=401, detail="User not found")
    _refresh_cookie(response, sid)
    return user
