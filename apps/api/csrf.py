# apps/api/csrf.py
"""
Double-submit CSRF protection for the feed's write routes.

GET /csrf hands out a signed token both as a JS-readable cookie and in the
body. Writes (views, bookmarks, votes) must echo it in the x-csrf-token header.
"""
import secrets
from typing import Optional

from fastapi import APIRouter, HTTPException, Request, Response
from itsdangerous import BadSignature, SignatureExpired, URLSafeTimedSerializer

from config import settings

COOKIE_NAME = "csrf"
HEADER_NAME = "x-csrf-token"
TOKEN_TTL_SECONDS = 24 * 60 * 60

router = APIRouter(tags=["csrf"])


def _signer() -> URLSafeTimedSerializer:
    return URLSafeTimedSerializer(settings.session_secret, salt="feed-csrf")


def issue_token(response: Response) -> str:
    token = _signer().dumps(secrets.token_urlsafe(32))
    response.set_cookie(
        key=COOKIE_NAME,
        value=token,
        max_age=TOKEN_TTL_SECONDS,
        path="/",
        samesite="lax",
        httponly=False,
        secure=(settings.env.lower() == "production"),
    )
    return token


def token_problem(cookie: Optional[str], header: Optional[str]) -> Optional[str]:
    """Reason the cookie/header pair fails the check, or None if it passes."""
    if not cookie or not header:
        return "CSRF token missing"
    if not secrets.compare_digest(cookie, header):
        return "CSRF token mismatch"
    try:
        _signer().loads(header, max_age=TOKEN_TTL_SECONDS)
    except SignatureExpired:
        return "CSRF token expired"
    except BadSignature:
        return "Invalid CSRF token"
    return None


def require_csrf(request: Request) -> None:
    problem = token_problem(request.cookies.get(COOKIE_NAME), request.headers.get(HEADER_NAME))
    if problem:
        raise HTTPException(status_code=403, detail=problem)


@router.get("/csrf")
def get_csrf(response: Response):
    return {"csrf": issue_token(response), "header": HEADER_NAME}
