from __future__ import annotations

from flask import Blueprint, flash, redirect, render_template, request, session, url_for

from app.console.modules.leads.service import (
    DOCUMENT_TYPES,
    LEAD_STATUSES,
    applicant_payload,
    filter_leads,
    lead_stats,
    reject_reason,
    validate_applicant,
)
from app.console.persona import require_persona
from app.console.queries import mutate, query
from app.console.utils import clean, rows

bp = Blueprint("leads", __name__)

PLANS_KEY = ("/api/franchise-plans",)
LEADS_KEY = ("/api/franchise-leads",)
CONTRACT_KEY = ("/api/contract-templates/active",)

_SESSION_LEAD = "onboarding_lead_id"
_SESSION_PLAN = "onboarding_plan_id"


def _find_plan(plans: list[dict], plan_id: str | None) -> dict | None:
    if not plan_id:
        return None
    for p in plans:
        if str(p.get("id")) == plan_id or p.get("code") == plan_id:
            return p
    return None


# ---------- Public onboarding ----------
@bp.get("/onboarding")
def onboarding():
    plans = rows(query(*PLANS_KEY), "plans")
    plan_id = clean(request.args.get("plan")) or session.get(_SESSION_PLAN)
    plan = _find_plan(plans, plan_id)
    if plan:
        session[_SESSION_PLAN] = str(plan.get("id"))
    lead_id = session.get(_SESSION_LEAD)
    step = request.args.get("step") or ("contract" if lead_id else ("applicant" if plan else "plan"))
    contract = query(*CONTRACT_KEY) if step == "contract" else None
    return render_template(
        "leads/onboarding.html",
        step=step,
        plans=plans,
        plan=plan,
        lead_id=lead_id,
        contract=contract,
        document_types=DOCUMENT_TYPES,
        form_data={},
    )


@bp.post("/onboarding/applicant")
def onboarding_applicant():
    plan_id = clean(request.form.get("plan_id")) or session.get(_SESSION_PLAN)
    payload = applicant_payload(request.form, plan_id)
    errors = validate_applicant(payload)
    if errors:
        for e in errors:
            flash(e, "danger")
        plans = rows(query(*PLANS_KEY), "plans")
        return render_template(
            "leads/onboarding.html",
            step="applicant",
            plans=plans,
            plan=_find_plan(plans, plan_id),
            lead_id=None,
            contract=None,
            document_types=DOCUMENT_TYPES,
            form_data=payload,
        ), 400

    result = mutate(
        "POST",
        "/api/franchise-leads",
        payload,
        invalidate_keys=[LEADS_KEY],
        success="Details saved. Review and accept the contract to continue.",
        error="Could not submit your application.",
        action="lead.create",
        entity_type="FranchiseLead",
        entity_id=payload.get("email"),
    )
    if not result.ok:
        return redirect(url_for("leads.onboarding", step="applicant"))
    lead_id = result.data.get("id") if isinstance(result.data, dict) else None
    if lead_id:
        session[_SESSION_LEAD] = str(lead_id)
    return redirect(url_for("leads.onboarding", step="contract"))


@bp.post("/onboarding/contract")
def onboarding_accept_contract():
    lead_id = session.get(_SESSION_LEAD)
    if not lead_id:
        flash("Your application was not found. Please start again.", "warning")
        return redirect(url_for("leads.onboarding"))
    if request.form.get("accepted") not in ("1", "on", "true"):
        flash("You must accept the contract to continue.", "danger")
        return redirect(url_for("leads.onboarding", step="contract"))
    contract = query(*CONTRACT_KEY) or {}
    result = mutate(
        "POST",
        f"/api/franchise-leads/{lead_id}/accept-contract",
        {"contract_version": contract.get("version")},
        success="Contract accepted. Your application is under review.",
        error="Could not record contract acceptance.",
        action="lead.accept_contract",
        entity_type="FranchiseLead",
        entity_id=lead_id,
    )
    if not result.ok:
        return redirect(url_for("leads.onboarding", step="contract"))
    session.pop(_SESSION_LEAD, None)
    session.pop(_SESSION_PLAN, None)
    return redirect(url_for("leads.onboarding", step="done"))


# ---------- Lead management ----------
@bp.get("/leads")
@require_persona("franchisor")
def leads_list():
    leads = rows(query(*LEADS_KEY), "leads")
    status = (request.args.get("status") or "all").strip()
    search = (request.args.get("q") or "").strip()
    return render_template(
        "leads/list.html",
        leads=filter_leads(leads, status=status, search=search),
        stats=lead_stats(leads),
        statuses=LEAD_STATUSES,
        status_filter=status,
        search=search,
    )


@bp.post("/leads/<lead_id>/approve")
@require_persona("franchisor")
def lead_approve(lead_id: str):
    mutate(
        "POST",
        "/api/franchise-leads/approve",
        {"leadId": lead_id},
        invalidate_keys=[LEADS_KEY],
        success="Lead approved. Franchise created.",
        action="lead.approve",
        entity_type="FranchiseLead",
        entity_id=lead_id,
    )
    return redirect(url_for("leads.leads_list"))


@bp.post("/leads/<lead_id>/reject")
@require_persona("franchisor")
def lead_reject(lead_id: str):
    reason = reject_reason(request.form)
    if not reason:
        flash("A reason is required to reject a lead.", "danger")
        return redirect(url_for("leads.leads_list"))
    mutate(
        "POST",
        "/api/franchise-leads/reject",
        {"leadId": lead_id, "reason": reason},
        invalidate_keys=[LEADS_KEY],
        success="Lead rejected.",
        action="lead.reject",
        entity_type="FranchiseLead",
        entity_id=lead_id,
        reason=reason,
    )
    return redirect(url_for("leads.leads_list"))
