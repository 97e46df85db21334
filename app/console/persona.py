from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from functools import wraps
from typing import Any

from flask import abort, current_app, g, redirect, render_template, request, url_for

from app.console.rbac import user_has_permission

PERSONAS = ("franchisor", "master_franchise", "franchise")
DEFAULT_PERSONA = "franchise"
PERSONA_LABELS = {
    "franchisor": "Franchisor",
    "master_franchise": "Master Franchise",
    "franchise": "Franchise",
}
PERSONA_STALE_SECONDS = 30
CONSOLE_VIEW_PERMISSION = "console.view"


@dataclass(frozen=True)
class PersonaPermissions:
    global_role: str | None = None
    is_franchisor: bool = False
    is_franchise_owner: bool = False
    is_master_franchise: bool = False
    has_franchise: bool = False
    franchise_id: str | None = None
    franchise_role: str | None = None
    view_reports: bool = False
    create_campaigns: bool = False
    manage_users: bool = False
    manage_finances: bool = False


@dataclass(frozen=True)
class Persona:
    persona: str = DEFAULT_PERSONA
    permissions: PersonaPermissions | None = None

    @property
    def label(self) -> str:
        return PERSONA_LABELS.get(self.persona, self.persona)

    @property
    def is_franchisor(self) -> bool:
        return self.persona == "franchisor"

    @property
    def is_master_franchise(self) -> bool:
        return self.persona == "master_franchise"

    @property
    def is_franchise(self) -> bool:
        return self.persona == "franchise"

    @property
    def can_configure_platform(self) -> bool:
        return self.is_franchisor

    @property
    def franchise_id(self) -> str | None:
        return self.permissions.franchise_id if self.permissions else None

    def can(self, flag: str) -> bool:
        if self.is_franchisor:
            return True
        if not self.permissions:
            return False
        return bool(getattr(self.permissions, flag, False))


def parse_persona(data: Any) -> Persona:
    """Build a Persona from the /api/user/persona payload; unknown or missing → franchise."""
    if not isinstance(data, dict):
        return Persona()
    persona = data.get("persona")
    if persona not in PERSONAS:
        persona = DEFAULT_PERSONA
    raw = data.get("permissions")
    if not isinstance(raw, dict):
        return Persona(persona=persona)
    flags = raw.get("permissions") if isinstance(raw.get("permissions"), dict) else {}
    perms = PersonaPermissions(
        global_role=raw.get("globalRole"),
        is_franchisor=bool(raw.get("isFranchisor")),
        is_franchise_owner=bool(raw.get("isFranchiseOwner")),
        is_master_franchise=bool(raw.get("isMasterFranchise")),
        has_franchise=bool(raw.get("hasFranchise")),
        franchise_id=raw.get("franchiseId"),
        franchise_role=raw.get("franchiseRole"),
        view_reports=bool(flags.get("view_reports")),
        create_campaigns=bool(flags.get("create_campaigns")),
        manage_users=bool(flags.get("manage_users")),
        manage_finances=bool(flags.get("manage_finances")),
    )
    return Persona(persona=persona, permissions=perms)


def current_persona() -> Persona:
    """Persona of the logged-in operator, fetched once per request (cached 30s across requests)."""
    cached = getattr(g, "persona", None)
    if cached is not None:
        return cached
    from app.console.queries import query

    persona = parse_persona(query("/api/user/persona", stale_seconds=PERSONA_STALE_SECONDS))
    g.persona = persona
    return persona


def _login_redirect():
    nxt = request.full_path or request.path
    if nxt.endswith("?"):
        nxt = nxt[:-1]
    return redirect(url_for("auth.login_get", next=nxt))


def require_persona(*allowed: str) -> Callable[[Callable[..., Any]], Callable[..., Any]]:
    """
    Gate a view on the platform persona. Unauthenticated → login redirect; an operator
    without `console.view` → 403; wrong persona → access-denied view (403). A failed persona query propagates as ApiError.
    """

    def decorator(fn: Callable[..., Any]) -> Callable[..., Any]:
        @wraps(fn)
        def wrapped(*args: Any, **kwargs: Any):
            user = getattr(g, "current_user", None)
            if not user or not user.is_active:
                return _login_redirect()
            if not user_has_permission(user, CONSOLE_VIEW_PERMISSION):
                g.missing_permission = CONSOLE_VIEW_PERMISSION
                abort(403)
            persona = current_persona()
            if allowed and persona.persona not in allowed:
                current_app.logger.warning(
                    "Access denied: persona=%s allowed=%s path=%s request_id=%s",
                    persona.persona, ",".join(allowed), request.path, getattr(g, "request_id", None),
                )
                return render_template("errors/access_denied.html", persona=persona, allowed=allowed), 403
            return fn(*args, **kwargs)

        return wrapped

    return decorator
