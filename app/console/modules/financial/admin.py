from __future__ import annotations

from flask import Blueprint, Response, abort, flash, redirect, render_template, request, url_for

from app.console.modules.financial.service import (
    FEE_STATUSES,
    INVOICE_STATUSES,
    MANUAL_PAYMENT_METHOD,
    PAYMENT_METHODS,
    REPORTS,
    ROYALTY_ROW_STATUSES,
    TABS,
    financial_overview,
    manual_payment_reference,
    report_columns,
    status_payload,
    uninvoiced_royalties,
)
from app.console.persona import require_persona
from app.console.queries import api_client, mutate, query
from app.console.utils import clean, rows

bp = Blueprint("financial", __name__)

ONBOARDING_KEY = ("/api/franchise-onboarding/pending",)
FEES_KEY = ("/api/franchise-fees",)
INVOICES_KEY = ("/api/franchise-invoices",)
ROYALTIES_KEY = ("/api/franchise-royalties",)
ADMIN_ROYALTIES_KEY = ("/api/admin/royalties",)
FRANCHISES_KEY = ("/api/franchises",)


def _tab_redirect(tab: str):
    return redirect(url_for("financial.financial_home", tab=tab))


@bp.get("/")
@require_persona("franchisor")
def financial_home():
    tab = request.args.get("tab") or "overview"
    if tab not in TABS:
        abort(404)
    ctx: dict = {"tab": tab, "tabs": TABS, "reports": REPORTS, "payment_methods": PAYMENT_METHODS}
    if tab == "overview":
        fees = rows(query(*FEES_KEY), "fees")
        invoices = rows(query(*INVOICES_KEY), "invoices")
        royalties = rows(query(*ROYALTIES_KEY), "royalties")
        ctx["overview"] = financial_overview(fees, invoices, royalties)
    elif tab == "onboarding":
        ctx["pending"] = rows(query(*ONBOARDING_KEY), "franchises", "pending")
    elif tab == "fees":
        ctx["fees"] = rows(query(*FEES_KEY), "fees")
        ctx["statuses"] = FEE_STATUSES
    elif tab == "invoices":
        ctx["invoices"] = rows(query(*INVOICES_KEY), "invoices")
        ctx["franchises"] = rows(query(*FRANCHISES_KEY), "franchises")
        ctx["statuses"] = INVOICE_STATUSES
    elif tab == "royalties":
        ctx["royalties"] = rows(query(*ROYALTIES_KEY), "royalties")
    return render_template("financial/index.html", **ctx)


# ---------- Onboarding ----------
@bp.post("/onboarding/<franchise_id>/approve")
@require_persona("franchisor")
def onboarding_approve(franchise_id: str):
    mutate(
        "POST",
        f"/api/franchise-onboarding/{franchise_id}/approve",
        invalidate_keys=[ONBOARDING_KEY, FRANCHISES_KEY],
        success="Franchise approved.",
        action="onboarding.approve",
        entity_type="Franchise",
        entity_id=franchise_id,
    )
    return _tab_redirect("onboarding")


@bp.post("/onboarding/<franchise_id>/reject")
@require_persona("franchisor")
def onboarding_reject(franchise_id: str):
    reason = clean(request.form.get("reason"))
    if not reason:
        flash("A reason is required to reject an application.", "danger")
        return _tab_redirect("onboarding")
    mutate(
        "POST",
        f"/api/franchise-onboarding/{franchise_id}/reject",
        {"reason": reason},
        invalidate_keys=[ONBOARDING_KEY, FRANCHISES_KEY],
        success="Franchise rejected.",
        action="onboarding.reject",
        entity_type="Franchise",
        entity_id=franchise_id,
        reason=reason,
    )
    return _tab_redirect("onboarding")


@bp.post("/onboarding/<franchise_id>/confirm-payment")
@require_persona("franchisor")
def onboarding_confirm_payment(franchise_id: str):
    method = clean(request.form.get("payment_method"))
    if method not in PAYMENT_METHODS:
        flash("Select a payment method.", "danger")
        return _tab_redirect("onboarding")
    mutate(
        "POST",
        f"/api/franchise-onboarding/{franchise_id}/confirm-payment",
        {"payment_method": method, "payment_reference": manual_payment_reference()},
        invalidate_keys=[ONBOARDING_KEY],
        success="Payment confirmed.",
        action="onboarding.confirm_payment",
        entity_type="Franchise",
        entity_id=franchise_id,
    )
    return _tab_redirect("onboarding")


# ---------- Fees / invoices ----------
def _update_status(kind: str, item_id: str, allowed: tuple[str, ...], keys: list[tuple]):
    payload, errors = status_payload(
        clean(request.form.get("status")),
        allowed,
        clean(request.form.get("payment_method")),
        clean(request.form.get("payment_reference")),
    )
    if errors:
        for e in errors:
            flash(e, "danger")
        return False
    return mutate(
        "PATCH",
        f"/api/franchise-{kind}/{item_id}/status",
        payload,
        invalidate_keys=keys,
        success="Status updated.",
        action=f"{kind.rstrip('s')}.status",
        entity_type=kind.rstrip("s").capitalize(),
        entity_id=item_id,
    ).ok


@bp.post("/fees/<fee_id>/status")
@require_persona("franchisor")
def fee_status(fee_id: str):
    _update_status("fees", fee_id, FEE_STATUSES, [FEES_KEY])
    return _tab_redirect("fees")


@bp.post("/invoices/<invoice_id>/status")
@require_persona("franchisor")
def invoice_status(invoice_id: str):
    _update_status("invoices", invoice_id, INVOICE_STATUSES, [INVOICES_KEY, ROYALTIES_KEY])
    return _tab_redirect("invoices")


@bp.post("/invoices/generate")
@require_persona("franchisor")
def invoice_generate():
    tab = request.form.get("tab") if request.form.get("tab") in TABS else "invoices"
    franchise_id = clean(request.form.get("franchise_id"))
    if not franchise_id:
        flash("Select a franchise.", "danger")
        return _tab_redirect(tab)
    royalty_ids = request.form.getlist("royalty_ids") or uninvoiced_royalties(
        rows(query(*ROYALTIES_KEY), "royalties"), franchise_id
    )
    if not royalty_ids:
        flash("No pending royalties to invoice for this franchise.", "warning")
        return _tab_redirect(tab)
    mutate(
        "POST",
        "/api/franchise-invoices/generate",
        {"franchise_id": franchise_id, "royalty_ids": royalty_ids},
        invalidate_keys=[INVOICES_KEY, ROYALTIES_KEY],
        success="Invoice generated.",
        action="invoice.generate",
        entity_type="Invoice",
        entity_id=franchise_id,
    )
    return _tab_redirect(tab)


@bp.post("/royalties/<royalty_id>/status")
@require_persona("franchisor")
def royalty_row_status(royalty_id: str):
    status = clean(request.form.get("status"))
    if status not in ROYALTY_ROW_STATUSES:
        flash(f"Invalid status. Must be one of: {', '.join(ROYALTY_ROW_STATUSES)}", "danger")
        return _tab_redirect("royalties")
    payload = {"status": status}
    if status == "paid":
        payload["payment_method"] = MANUAL_PAYMENT_METHOD
    mutate(
        "PATCH",
        f"/api/admin/royalties/{royalty_id}/status",
        payload,
        invalidate_keys=[ROYALTIES_KEY, ADMIN_ROYALTIES_KEY],
        success="Status updated.",
        action="royalty.status",
        entity_type="Royalty",
        entity_id=royalty_id,
    )
    return _tab_redirect("royalties")


# ---------- Reports ----------
@bp.get("/reports/<report>")
@require_persona("franchisor")
def report_view(report: str):
    if report not in REPORTS:
        abort(404)
    data = query("/api/franchise-reports", report)
    report_rows = rows(data, "rows", "data", "report")
    return render_template(
        "financial/report.html",
        report=report,
        title=REPORTS[report],
        rows=report_rows,
        columns=report_columns(report_rows),
        summary=data.get("summary") if isinstance(data, dict) else None,
    )


@bp.get("/reports/<report>/csv")
@require_persona("franchisor")
def report_csv(report: str):
    if report not in REPORTS:
        abort(404)
    body, content_type = api_client().get_raw(f"/api/franchise-reports/{report}", params={"format": "csv"})
    return Response(
        body,
        mimetype=(content_type or "text/csv").split(";")[0],
        headers={"Content-Disposition": f'attachment; filename="{report}.csv"'},
    )
