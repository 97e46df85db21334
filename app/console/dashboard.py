from datetime import date, datetime, time, timedelta

from flask import Blueprint, flash, g, render_template, request

from app.console.db import db_session
from app.console.models import AuditEvent
from app.console.persona import current_persona, require_persona
from app.console.queries import query
from app.console.rbac import require_permission, user_permission_keys

bp = Blueprint("dashboard", __name__)

NETWORK_STATS_REFRESH_SECONDS = 60


def _parse_date(s: str) -> date | None:
    s = (s or "").strip()
    if not s:
        return None
    try:
        return date.fromisoformat(s)
    except ValueError:
        return None


@bp.get("/")
@require_persona()
def index():
    persona = current_persona()
    network_stats = None
    refresh = None
    if persona.is_franchisor:
        network_stats = query("/api/franchisor/network-stats", stale_seconds=NETWORK_STATS_REFRESH_SECONDS)
        refresh = NETWORK_STATS_REFRESH_SECONDS
    return render_template(
        "dashboard/index.html",
        persona=persona,
        network_stats=network_stats or {},
        refresh_seconds=refresh,
    )


@bp.get("/me")
@require_persona()
def me():
    user = g.current_user
    role_keys = sorted({r.key for r in (user.roles or [])})
    return render_template(
        "dashboard/me.html",
        user=user,
        role_keys=role_keys,
        perm_keys=user_permission_keys(user),
        persona=current_persona(),
    )


@bp.get("/audit")
@require_permission("audit.view")
def audit_list():
    """
    Console audit trail (last 200 events) with simple filters:
    - action (contains)
    - actor_email (contains)
    - date range (YYYY-MM-DD, inclusive)
    """
    s = db_session()
    action = (request.args.get("action") or "").strip()
    actor_email = (request.args.get("actor_email") or "").strip()
    date_from = _parse_date(request.args.get("date_from") or "")
    date_to = _parse_date(request.args.get("date_to") or "")

    if (request.args.get("date_from") or "").strip() and not date_from:
        flash("date_from must be YYYY-MM-DD", "danger")
    if (request.args.get("date_to") or "").strip() and not date_to:
        flash("date_to must be YYYY-MM-DD", "danger")

    q = s.query(AuditEvent)
    if action:
        q = q.filter(AuditEvent.action.like(f"%{action}%"))
    if actor_email:
        q = q.filter(AuditEvent.actor_user_email.like(f"%{actor_email.lower()}%"))
    if date_from:
        q = q.filter(AuditEvent.created_at >= datetime.combine(date_from, time.min))
    if date_to:
        q = q.filter(AuditEvent.created_at < datetime.combine(date_to + timedelta(days=1), time.min))

    events = q.order_by(AuditEvent.created_at.desc(), AuditEvent.id.desc()).limit(200).all()
    return render_template(
        "dashboard/audit.html",
        events=events,
        action=action,
        actor_email=actor_email,
        date_from=(request.args.get("date_from") or "").strip(),
        date_to=(request.args.get("date_to") or "").strip(),
    )
