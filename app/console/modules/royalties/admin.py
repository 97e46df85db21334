from __future__ import annotations

from flask import Blueprint, flash, redirect, render_template, request, url_for

from app.console.modules.royalties.service import (
    ACTIONABLE_STATUSES,
    PAYMENT_METHODS,
    ROYALTY_STATUSES,
    calculated_message,
    current_period,
    filter_royalties,
    royalty_summary,
    status_update_payload,
)
from app.console.persona import require_persona
from app.console.queries import mutate, query
from app.console.utils import clean, rows

bp = Blueprint("royalties", __name__)

ADMIN_ROYALTIES_KEY = ("/api/admin/royalties",)
FRANCHISE_ROYALTIES_KEY = ("/api/franchise/royalties",)
FINANCIAL_ROYALTIES_KEY = ("/api/franchise-royalties",)


@bp.get("/")
@require_persona("franchisor")
def royalties_list():
    data = query(*ADMIN_ROYALTIES_KEY)
    royalties = rows(data, "royalties")
    status = (request.args.get("status") or "all").strip()
    return render_template(
        "royalties/admin.html",
        royalties=filter_royalties(royalties, status),
        summary=royalty_summary(data, royalties),
        statuses=ROYALTY_STATUSES,
        status_filter=status,
        actionable=ACTIONABLE_STATUSES,
        payment_methods=PAYMENT_METHODS,
        period=current_period(),
    )


@bp.post("/calculate")
@require_persona("franchisor")
def royalties_calculate():
    result = mutate(
        "POST",
        "/api/admin/royalties/calculate-all",
        current_period(),
        invalidate_keys=[ADMIN_ROYALTIES_KEY, FINANCIAL_ROYALTIES_KEY],
        action="royalty.calculate_all",
        entity_type="Royalty",
    )
    if result.ok:
        flash(calculated_message(result.data), "success")
    return redirect(url_for("royalties.royalties_list"))


@bp.post("/<royalty_id>/status")
@require_persona("franchisor")
def royalty_status(royalty_id: str):
    status = clean(request.form.get("status"))
    payload, errors = status_update_payload(
        status, clean(request.form.get("payment_method")), clean(request.form.get("payment_reference")),
    )
    if errors:
        for e in errors:
            flash(e, "danger")
        return redirect(url_for("royalties.royalties_list"))
    mutate(
        "PATCH",
        f"/api/admin/royalties/{royalty_id}/status",
        payload,
        invalidate_keys=[ADMIN_ROYALTIES_KEY, FINANCIAL_ROYALTIES_KEY],
        success="Royalty status updated.",
        action=f"royalty.{status}",
        entity_type="Royalty",
        entity_id=royalty_id,
    )
    return redirect(url_for("royalties.royalties_list"))


@bp.get("/mine")
@require_persona("franchise", "master_franchise")
def franchise_royalties():
    data = query(*FRANCHISE_ROYALTIES_KEY)
    royalties = rows(data, "royalties")
    return render_template(
        "royalties/franchise.html",
        royalties=royalties,
        summary=royalty_summary(data, royalties),
    )
