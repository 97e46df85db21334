from __future__ import annotations

from flask import Blueprint, flash, redirect, render_template, request, url_for

from app.console.modules.franchisor_settings.service import (
    SECTIONS,
    TAX_ID_TYPES,
    save_method,
    settings_payload,
    validate_settings_payload,
)
from app.console.persona import require_persona
from app.console.queries import mutate, query

bp = Blueprint("franchisor_settings", __name__)

SETTINGS_KEY = ("/api/franchisor/settings",)


@bp.get("/settings")
@require_persona("franchisor")
def settings_get():
    settings = query(*SETTINGS_KEY) or {}
    return render_template(
        "franchisor/settings.html",
        settings=settings,
        sections=SECTIONS,
        tax_id_types=TAX_ID_TYPES,
    )


@bp.post("/settings")
@require_persona("franchisor")
def settings_post():
    current = query(*SETTINGS_KEY)
    payload = settings_payload(request.form)
    errors = validate_settings_payload(payload)
    if errors:
        for e in errors:
            flash(e, "danger")
        return render_template(
            "franchisor/settings.html",
            settings={**(current or {}), **payload},
            sections=SECTIONS,
            tax_id_types=TAX_ID_TYPES,
        ), 400

    mutate(
        save_method(current),
        "/api/franchisor/settings",
        payload,
        invalidate_keys=[SETTINGS_KEY],
        success="Franchisor settings saved.",
        error="Could not save settings.",
        prefer_server_message=False,
        action="franchisor_settings.save",
        entity_type="FranchisorSettings",
        entity_id=str((current or {}).get("id") or ""),
    )
    return redirect(url_for("franchisor_settings.settings_get"))
