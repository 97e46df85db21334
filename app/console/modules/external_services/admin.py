from __future__ import annotations

from flask import Blueprint, abort, redirect, render_template, request, url_for

from app.console.modules.external_services.service import (
    CRITICALITY_LABELS,
    find_service,
    group_by_category,
    service_counts,
    toggle_reason,
)
from app.console.persona import require_persona
from app.console.queries import mutate, query
from app.console.utils import form_bool, rows

bp = Blueprint("external_services", __name__)

SERVICES_KEY = ("/api/franchisor/external-services",)
AUDIT_LOG_KEY = ("/api/franchisor/external-services/audit-log",)


def _services() -> list[dict]:
    return rows(query(*SERVICES_KEY), "services")


@bp.get("/external-services")
@require_persona("franchisor")
def services_list():
    services = _services()
    show_audit = request.args.get("audit") == "1"
    audit_logs = rows(query(*AUDIT_LOG_KEY), "logs") if show_audit else []
    return render_template(
        "franchisor/external_services.html",
        grouped=group_by_category(services),
        counts=service_counts(services),
        criticality_labels=CRITICALITY_LABELS,
        show_audit=show_audit,
        audit_logs=audit_logs,
    )


@bp.get("/external-services/<service_key>/disable")
@require_persona("franchisor")
def service_disable_confirm(service_key: str):
    """Disabling always goes through a confirmation step that collects a reason."""
    svc = find_service(_services(), service_key)
    if not svc:
        abort(404)
    return render_template("franchisor/external_service_disable.html", service=svc)


@bp.post("/external-services/<service_key>")
@require_persona("franchisor")
def service_toggle(service_key: str):
    enabled = form_bool(request.form, "enabled")
    if not enabled and not form_bool(request.form, "confirmed"):
        return redirect(url_for("external_services.service_disable_confirm", service_key=service_key))
    reason = toggle_reason(enabled, request.form.get("reason"))
    mutate(
        "PUT",
        f"/api/franchisor/external-services/{service_key}",
        {"enabled": enabled, "reason": reason},
        invalidate_keys=[SERVICES_KEY, AUDIT_LOG_KEY],
        success="External service status has been changed successfully.",
        error="Failed to update service status.",
        action="external_service.enable" if enabled else "external_service.disable",
        entity_type="ExternalService",
        entity_id=service_key,
        reason=reason,
    )
    return redirect(url_for("external_services.services_list"))
