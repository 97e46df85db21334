from __future__ import annotations

from flask import Blueprint, flash, redirect, render_template, request, url_for

from app.console.modules.franchises.service import (
    EXCHANGES,
    FRANCHISE_STATUSES,
    FRANCHISE_USER_ROLES,
    exchange_account_payload,
    filter_franchises,
    franchise_create_payload,
    franchise_edit_payload,
    franchise_stats,
    user_display_name,
    validate_exchange_account_payload,
    validate_franchise_payload,
    validate_user_invite,
)
from app.console.persona import require_persona
from app.console.queries import mutate, query, query_or_404
from app.console.utils import clean, rows

bp = Blueprint("franchises", __name__)

FRANCHISES_KEY = ("/api/franchises",)
PLANS_KEY = ("/api/franchise-plans",)


def _exchange_accounts_key(franchise_id: str) -> tuple:
    return ("/api/franchises", franchise_id, "exchange-accounts")


# ---------- List ----------
@bp.get("/")
@require_persona("franchisor")
def franchises_list():
    franchises = rows(query(*FRANCHISES_KEY), "franchises")
    plans = rows(query(*PLANS_KEY), "plans")
    status_filter = (request.args.get("status") or "all").strip()
    search = (request.args.get("q") or "").strip()
    return render_template(
        "franchises/list.html",
        franchises=filter_franchises(franchises, status=status_filter, search=search),
        stats=franchise_stats(franchises),
        plans=plans,
        statuses=FRANCHISE_STATUSES,
        status_filter=status_filter,
        search=search,
    )


# ---------- New ----------
@bp.post("/new")
@require_persona("franchisor")
def franchises_new_post():
    payload = franchise_create_payload(request.form)
    errors = validate_franchise_payload(payload)
    if errors:
        for e in errors:
            flash(e, "danger")
        return redirect(url_for("franchises.franchises_list"))

    result = mutate(
        "POST",
        "/api/franchises",
        payload,
        invalidate_keys=[FRANCHISES_KEY],
        success="Franchise created.",
        error="Could not create franchise.",
        action="franchise.create",
        entity_type="Franchise",
    )
    if result.ok and isinstance(result.data, dict) and result.data.get("id"):
        return redirect(url_for("franchises.franchise_detail", franchise_id=result.data["id"]))
    return redirect(url_for("franchises.franchises_list"))


# ---------- Suspend / Reactivate ----------
@bp.post("/<franchise_id>/suspend")
@require_persona("franchisor")
def franchise_suspend(franchise_id: str):
    reason = clean(request.form.get("reason"))
    if not reason:
        flash("Reason is required to suspend a franchise.", "danger")
        return redirect(request.referrer or url_for("franchises.franchises_list"))
    mutate(
        "POST",
        f"/api/franchises/{franchise_id}/suspend",
        {"reason": reason},
        invalidate_keys=[FRANCHISES_KEY],
        success="Franchise suspended.",
        error="Could not suspend franchise.",
        action="franchise.suspend",
        entity_type="Franchise",
        entity_id=franchise_id,
        reason=reason,
    )
    return redirect(request.referrer or url_for("franchises.franchises_list"))


@bp.post("/<franchise_id>/reactivate")
@require_persona("franchisor")
def franchise_reactivate(franchise_id: str):
    mutate(
        "POST",
        f"/api/franchises/{franchise_id}/reactivate",
        invalidate_keys=[FRANCHISES_KEY],
        success="Franchise reactivated.",
        error="Could not reactivate franchise.",
        action="franchise.reactivate",
        entity_type="Franchise",
        entity_id=franchise_id,
    )
    return redirect(request.referrer or url_for("franchises.franchises_list"))


# ---------- Detail ----------
@bp.get("/<franchise_id>")
@require_persona("franchisor")
def franchise_detail(franchise_id: str):
    franchise = query_or_404("/api/franchises", franchise_id)
    accounts = rows(query(*_exchange_accounts_key(franchise_id)), "accounts", "exchangeAccounts")
    plans = rows(query(*PLANS_KEY), "plans")
    users = [dict(u, display_name=user_display_name(u)) for u in (franchise.get("users") or []) if isinstance(u, dict)]
    return render_template(
        "franchises/detail.html",
        franchise=franchise,
        franchise_id=franchise_id,
        plan=franchise.get("plan") or {},
        owner=franchise.get("owner"),
        users=users,
        accounts=accounts,
        plans=plans,
        exchanges=EXCHANGES,
        user_roles=FRANCHISE_USER_ROLES,
    )


# ---------- Edit ----------
@bp.post("/<franchise_id>/edit")
@require_persona("franchisor")
def franchise_edit_post(franchise_id: str):
    payload = franchise_edit_payload(request.form)
    if not payload:
        flash("Nothing to update.", "warning")
        return redirect(url_for("franchises.franchise_detail", franchise_id=franchise_id))
    mutate(
        "PATCH",
        f"/api/franchises/{franchise_id}",
        payload,
        invalidate_keys=[FRANCHISES_KEY],
        success="Franchise updated.",
        error="Could not update franchise.",
        action="franchise.edit",
        entity_type="Franchise",
        entity_id=franchise_id,
    )
    return redirect(url_for("franchises.franchise_detail", franchise_id=franchise_id))


# ---------- Exchange accounts ----------
@bp.post("/<franchise_id>/exchange-accounts")
@require_persona("franchisor")
def exchange_account_add(franchise_id: str):
    payload = exchange_account_payload(request.form)
    errors = validate_exchange_account_payload(payload)
    if errors:
        for e in errors:
            flash(e, "danger")
        return redirect(url_for("franchises.franchise_detail", franchise_id=franchise_id))
    mutate(
        "POST",
        f"/api/franchises/{franchise_id}/exchange-accounts",
        payload,
        invalidate_keys=[_exchange_accounts_key(franchise_id)],
        success="Exchange account added successfully.",
        action="exchange_account.add",
        entity_type="ExchangeAccount",
        entity_id=f"{franchise_id}:{payload['exchange']}",
    )
    return redirect(url_for("franchises.franchise_detail", franchise_id=franchise_id))


@bp.post("/<franchise_id>/exchange-accounts/<exchange>/verify")
@require_persona("franchisor")
def exchange_account_verify(franchise_id: str, exchange: str):
    result = mutate(
        "POST",
        f"/api/franchises/{franchise_id}/exchange-accounts/{exchange}/verify",
        invalidate_keys=[_exchange_accounts_key(franchise_id)],
        action="exchange_account.verify",
        entity_type="ExchangeAccount",
        entity_id=f"{franchise_id}:{exchange}",
    )
    if result.ok:
        data = result.data if isinstance(result.data, dict) else {}
        if data.get("success", True):
            flash("Exchange credentials verified.", "success")
        else:
            flash(f"Verification Failed: {data.get('message') or 'credentials rejected by exchange'}", "danger")
    return redirect(url_for("franchises.franchise_detail", franchise_id=franchise_id))


@bp.post("/<franchise_id>/exchange-accounts/<exchange>/delete")
@require_persona("franchisor")
def exchange_account_remove(franchise_id: str, exchange: str):
    mutate(
        "DELETE",
        f"/api/franchises/{franchise_id}/exchange-accounts/{exchange}",
        invalidate_keys=[_exchange_accounts_key(franchise_id)],
        success="Exchange account removed.",
        action="exchange_account.remove",
        entity_type="ExchangeAccount",
        entity_id=f"{franchise_id}:{exchange}",
    )
    return redirect(url_for("franchises.franchise_detail", franchise_id=franchise_id))


# ---------- Franchise users ----------
@bp.post("/<franchise_id>/users")
@require_persona("franchisor")
def franchise_user_invite(franchise_id: str):
    email = (clean(request.form.get("email")) or "").lower()
    role = clean(request.form.get("role"))
    errors = validate_user_invite(email, role)
    if errors:
        for e in errors:
            flash(e, "danger")
        return redirect(url_for("franchises.franchise_detail", franchise_id=franchise_id))
    mutate(
        "POST",
        f"/api/franchises/{franchise_id}/users",
        {"email": email, "role": role},
        invalidate_keys=[FRANCHISES_KEY],
        success=f"Invitation sent to {email}.",
        error="Could not invite user.",
        action="franchise_user.invite",
        entity_type="FranchiseUser",
        entity_id=f"{franchise_id}:{email}",
    )
    return redirect(url_for("franchises.franchise_detail", franchise_id=franchise_id))


@bp.post("/<franchise_id>/users/<user_id>/role")
@require_persona("franchisor")
def franchise_user_role(franchise_id: str, user_id: str):
    role = clean(request.form.get("role"))
    if role not in FRANCHISE_USER_ROLES:
        flash(f"Invalid role. Must be one of: {', '.join(FRANCHISE_USER_ROLES)}", "danger")
        return redirect(url_for("franchises.franchise_detail", franchise_id=franchise_id))
    mutate(
        "PATCH",
        f"/api/franchises/{franchise_id}/users/{user_id}",
        {"role": role},
        invalidate_keys=[FRANCHISES_KEY],
        success="User role updated.",
        error="Could not update user role.",
        action="franchise_user.role",
        entity_type="FranchiseUser",
        entity_id=f"{franchise_id}:{user_id}",
    )
    return redirect(url_for("franchises.franchise_detail", franchise_id=franchise_id))


@bp.post("/<franchise_id>/users/<user_id>/delete")
@require_persona("franchisor")
def franchise_user_remove(franchise_id: str, user_id: str):
    mutate(
        "DELETE",
        f"/api/franchises/{franchise_id}/users/{user_id}",
        invalidate_keys=[FRANCHISES_KEY],
        success="User removed from franchise.",
        error="Could not remove user.",
        action="franchise_user.remove",
        entity_type="FranchiseUser",
        entity_id=f"{franchise_id}:{user_id}",
    )
    return redirect(url_for("franchises.franchise_detail", franchise_id=franchise_id))
