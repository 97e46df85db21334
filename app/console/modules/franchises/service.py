from __future__ import annotations

from werkzeug.datastructures import MultiDict

from app.console.utils import clean, form_bool, form_payload

FRANCHISE_STATUSES = ("active", "suspended", "terminated")
FRANCHISE_USER_ROLES = ("master", "operator", "analyst", "finance")
EXCHANGES = ("kraken", "binance", "coinbase", "okx", "bybit")

FRANCHISE_FIELDS = (
    "name",
    "cnpj",
    "plan_id",
    "owner_email",
    "address",
    "city",
    "state",
    "country",
    "contract_start",
    "contract_end",
)
EDIT_FIELDS = ("name", "cnpj", "address", "city", "state", "country", "plan_id")


def franchise_stats(franchises: list[dict]) -> dict[str, int]:
    return {
        "total": len(franchises),
        "active": sum(1 for f in franchises if f.get("status") == "active"),
        "suspended": sum(1 for f in franchises if f.get("status") == "suspended"),
        "under_audit": sum(1 for f in franchises if f.get("under_audit")),
        "terminated": sum(1 for f in franchises if f.get("status") == "terminated"),
    }


def filter_franchises(franchises: list[dict], *, status: str = "", search: str = "") -> list[dict]:
    status = (status or "").strip()
    needle = (search or "").strip().lower()
    out = []
    for f in franchises:
        if status and status != "all":
            if status == "under_audit":
                if not f.get("under_audit"):
                    continue
            elif f.get("status") != status:
                continue
        if needle:
            haystack = " ".join(str(f.get(k) or "") for k in ("name", "cnpj", "code", "tax_id")).lower()
            if needle not in haystack:
                continue
        out.append(f)
    return out


def franchise_create_payload(form: MultiDict) -> dict:
    payload = form_payload(form, FRANCHISE_FIELDS)
    if payload.get("owner_email"):
        payload["owner_email"] = payload["owner_email"].lower()
    return {k: v for k, v in payload.items() if v is not None}


def validate_franchise_payload(payload: dict) -> list[str]:
    errors = []
    if not payload.get("name"):
        errors.append("Name is required.")
    if not payload.get("plan_id"):
        errors.append("Plan is required.")
    start, end = payload.get("contract_start"), payload.get("contract_end")
    if start and end and end < start:
        errors.append("Contract end must be on or after contract start.")
    return errors


def franchise_edit_payload(form: MultiDict) -> dict:
    """PATCH body: only fields the operator filled in."""
    return {k: v for k, v in form_payload(form, EDIT_FIELDS).items() if v is not None}


def exchange_account_payload(form: MultiDict) -> dict:
    return {
        "exchange": (clean(form.get("exchange")) or "kraken").lower(),
        "exchangeLabel": clean(form.get("exchangeLabel")) or "",
        "apiKey": clean(form.get("apiKey")) or "",
        "apiSecret": clean(form.get("apiSecret")) or "",
        "canTrade": form_bool(form, "canTrade"),
    }


def validate_exchange_account_payload(payload: dict) -> list[str]:
    errors = []
    if payload.get("exchange") not in EXCHANGES:
        errors.append(f"Invalid exchange. Must be one of: {', '.join(EXCHANGES)}")
    if not payload.get("apiKey"):
        errors.append("API key is required.")
    if not payload.get("apiSecret"):
        errors.append("API secret is required.")
    return errors


def validate_user_invite(email: str | None, role: str | None) -> list[str]:
    errors = []
    if not email or "@" not in email:
        errors.append("A valid email is required.")
    if role not in FRANCHISE_USER_ROLES:
        errors.append(f"Invalid role. Must be one of: {', '.join(FRANCHISE_USER_ROLES)}")
    return errors


def user_display_name(u: dict) -> str:
    first = (u.get("user_first_name") or "").strip()
    last = (u.get("user_last_name") or "").strip()
    full = f"{first} {last}".strip()
    return full or u.get("user_email") or u.get("user_id") or "—"
