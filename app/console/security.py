import secrets
from urllib.parse import urlsplit

from flask import Request, session


def ensure_csrf_token() -> str:
    """Ensure a CSRF token exists in the session and return it."""
    token = session.get("csrf_token")
    if not token:
        token = secrets.token_urlsafe(32)
        session["csrf_token"] = token
    return token


def validate_csrf(req: Request) -> bool:
    """Validate the CSRF token sent as a form field or X-CSRF-Token header."""
    token = req.headers.get("X-CSRF-Token") or req.form.get("csrf_token")
    expected = session.get("csrf_token")
    return bool(token and expected and secrets.compare_digest(token, expected))


def safe_next(nxt: str | None) -> str | None:
    """Only allow local paths for post-login redirects."""
    nxt = (nxt or "").strip()
    if nxt.startswith("/") and not nxt.startswith("//"):
        return nxt
    return None


def resume_path(req: Request) -> str | None:
    """Where to send the operator after re-login: the page itself for GETs, else the local referrer."""
    if req.method == "GET":
        return req.full_path.rstrip("?")
    ref = urlsplit(req.referrer or "")
    if not ref.path or (ref.netloc and ref.netloc != req.host):
        return None
    return safe_next(ref.path + (f"?{ref.query}" if ref.query else ""))
