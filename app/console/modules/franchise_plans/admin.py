from __future__ import annotations

from flask import Blueprint, flash, redirect, render_template, request, url_for

from app.console.modules.franchise_plans.service import (
    PLAN_TYPES,
    SECTIONS,
    fields_by_section,
    plan_payload,
    validate_plan_payload,
    version_form_data,
    version_payload,
)
from app.console.persona import require_persona
from app.console.queries import mutate, query, query_or_404
from app.console.utils import rows

bp = Blueprint("franchise_plans", __name__)

PLANS_KEY = ("/api/franchise-plans",)


@bp.get("/")
@require_persona("franchisor")
def plans_list():
    plans = rows(query(*PLANS_KEY), "plans")
    return render_template("plans/list.html", plans=plans, plan_types=PLAN_TYPES)


@bp.post("/new")
@require_persona("franchisor")
def plans_new_post():
    payload = plan_payload(request.form)
    errors = validate_plan_payload(payload)
    if errors:
        for e in errors:
            flash(e, "danger")
        return redirect(url_for("franchise_plans.plans_list"))
    result = mutate(
        "POST",
        "/api/franchise-plans",
        payload,
        invalidate_keys=[PLANS_KEY],
        success="Plan created.",
        error="Could not create plan.",
        action="franchise_plan.create",
        entity_type="FranchisePlan",
        entity_id=payload["code"],
    )
    if result.ok and isinstance(result.data, dict) and result.data.get("id"):
        return redirect(url_for("franchise_plans.plan_detail", plan_id=result.data["id"]))
    return redirect(url_for("franchise_plans.plans_list"))


@bp.get("/<plan_id>")
@require_persona("franchisor")
def plan_detail(plan_id: str):
    details = query_or_404("/api/franchise-plans", plan_id)
    version = details.get("version")
    return render_template(
        "plans/detail.html",
        plan=details.get("plan") or {},
        plan_id=plan_id,
        version=version,
        versions=details.get("versions") or [],
        sections=SECTIONS,
        fields=fields_by_section(),
        form_data=version_form_data(version),
        editing=request.args.get("edit") == "1",
    )


@bp.post("/<plan_id>/versions")
@require_persona("franchisor")
def version_create(plan_id: str):
    payload, errors = version_payload(request.form)
    if errors:
        for e in errors:
            flash(e, "danger")
        details = query("/api/franchise-plans", plan_id) or {}
        return render_template(
            "plans/detail.html",
            plan=details.get("plan") or {},
            plan_id=plan_id,
            version=details.get("version"),
            versions=details.get("versions") or [],
            sections=SECTIONS,
            fields=fields_by_section(),
            form_data=payload,
            editing=True,
        ), 400
    mutate(
        "POST",
        f"/api/franchise-plans/{plan_id}/versions",
        payload,
        invalidate_keys=[PLANS_KEY],
        success="Version created.",
        error="Could not create version.",
        prefer_server_message=False,
        action="franchise_plan.version_create",
        entity_type="FranchisePlan",
        entity_id=plan_id,
    )
    return redirect(url_for("franchise_plans.plan_detail", plan_id=plan_id))


@bp.post("/<plan_id>/versions/<version_id>/activate")
@require_persona("franchisor")
def version_activate(plan_id: str, version_id: str):
    mutate(
        "POST",
        f"/api/franchise-plans/{plan_id}/versions/{version_id}/activate",
        invalidate_keys=[PLANS_KEY],
        success="Version activated.",
        error="Could not activate version.",
        prefer_server_message=False,
        action="franchise_plan.version_activate",
        entity_type="FranchisePlanVersion",
        entity_id=version_id,
    )
    return redirect(url_for("franchise_plans.plan_detail", plan_id=plan_id))


@bp.post("/<plan_id>/versions/<version_id>/duplicate")
@require_persona("franchisor")
def version_duplicate(plan_id: str, version_id: str):
    mutate(
        "POST",
        f"/api/franchise-plans/{plan_id}/versions/{version_id}/duplicate",
        invalidate_keys=[PLANS_KEY],
        success="Version duplicated.",
        error="Could not duplicate version.",
        prefer_server_message=False,
        action="franchise_plan.version_duplicate",
        entity_type="FranchisePlanVersion",
        entity_id=version_id,
    )
    return redirect(url_for("franchise_plans.plan_detail", plan_id=plan_id))
