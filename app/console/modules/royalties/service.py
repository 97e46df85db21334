from __future__ import annotations

from datetime import date

from app.console.formatting import to_decimal

ROYALTY_STATUSES = ("pending", "invoiced", "paid", "disputed")
ACTIONABLE_STATUSES = ("pending", "invoiced")
PAYMENT_METHODS = ("pix", "boleto", "wire", "credit_card", "crypto")


def current_period(today: date | None = None) -> dict[str, int]:
    today = today or date.today()
    return {"year": today.year, "month": today.month}


def filter_royalties(royalties: list[dict], status: str = "all") -> list[dict]:
    if not status or status == "all":
        return list(royalties)
    return [r for r in royalties if r.get("status") == status]


def royalty_summary(data: dict | None, royalties: list[dict]) -> dict:
    """
    Totals from the server summary when present (admin endpoint nests it under
    "summary", the franchisee endpoint puts it at the top level), else summed locally.
    """
    data = data if isinstance(data, dict) else {}
    server = data.get("summary") if isinstance(data.get("summary"), dict) else data
    out = {}
    for status, key in (("paid", "totalPaid"), ("pending", "totalPending"), ("disputed", "totalDisputed")):
        value = to_decimal(server.get(key))
        if value is None:
            value = sum((to_decimal(r.get("royalty_amount")) or 0) for r in royalties if r.get("status") == status)
        out[status] = value
    out["last_payment"] = data.get("lastPayment")
    return out


def status_update_payload(status: str | None, payment_method: str | None, payment_reference: str | None) -> tuple[dict, list[str]]:
    errors = []
    if status not in ("paid", "disputed", "invoiced"):
        errors.append("Invalid royalty status.")
    payload: dict = {"status": status}
    if status == "paid":
        if not payment_method:
            errors.append("Payment method is required to mark a royalty as paid.")
        payload["payment_method"] = payment_method
        payload["payment_reference"] = payment_reference
    return payload, errors


def calculated_message(result) -> str:
    calculated = result.get("calculated") if isinstance(result, dict) else None
    return f"{len(calculated or [])} royalties calculated"
