from __future__ import annotations

import time

from app.console.formatting import to_decimal

TABS = ("overview", "onboarding", "fees", "invoices", "royalties", "reports")
REPORTS = {
    "revenue-by-franchise": "Revenue by franchise",
    "revenue-by-plan": "Revenue by plan",
    "revenue-by-period": "Revenue by period",
    "royalties-by-campaign": "Royalties by campaign",
    "delinquency": "Delinquency",
}
FEE_STATUSES = ("pending", "paid", "overdue", "cancelled")
INVOICE_STATUSES = ("pending", "paid", "overdue", "cancelled")
PAYMENT_METHODS = ("pix", "boleto", "wire", "credit_card", "crypto")
ROYALTY_ROW_STATUSES = ("paid", "disputed")
MANUAL_PAYMENT_METHOD = "manual"


def manual_payment_reference(now_ms: int | None = None) -> str:
    if now_ms is None:
        now_ms = int(time.time() * 1000)
    return f"MANUAL-{now_ms}"


def _amount(row: dict, *keys: str):
    for k in keys:
        v = to_decimal(row.get(k))
        if v is not None:
            return v
    return 0


def financial_overview(fees: list[dict], invoices: list[dict], royalties: list[dict]) -> dict:
    fee_revenue = sum(_amount(f, "amount", "fee_amount") for f in fees if f.get("status") == "paid")
    royalty_revenue = sum(_amount(r, "royalty_amount") for r in royalties if r.get("status") == "paid")
    pending = sum(_amount(r, "royalty_amount") for r in royalties if r.get("status") in ("pending", "invoiced"))
    pending += sum(_amount(f, "amount", "fee_amount") for f in fees if f.get("status") in ("pending", "overdue"))
    delinquent = {
        str(f.get("franchise_id")) for f in fees if f.get("status") == "overdue" and f.get("franchise_id")
    } | {
        str(i.get("franchise_id")) for i in invoices if i.get("status") == "overdue" and i.get("franchise_id")
    }
    return {
        "total_revenue": fee_revenue + royalty_revenue,
        "fee_revenue": fee_revenue,
        "royalty_revenue": royalty_revenue,
        "pending_payments": pending,
        "delinquent_franchises": len(delinquent),
    }


def uninvoiced_royalties(royalties: list[dict], franchise_id: str) -> list[str]:
    return [
        str(r["id"])
        for r in royalties
        if r.get("id") is not None and str(r.get("franchise_id")) == franchise_id and r.get("status") == "pending"
    ]


def report_columns(report_rows: list[dict]) -> list[str]:
    cols: list[str] = []
    for r in report_rows:
        for k in r:
            if k not in cols:
                cols.append(k)
    return cols


def status_payload(status: str | None, allowed: tuple[str, ...], payment_method: str | None,
                   payment_reference: str | None) -> tuple[dict, list[str]]:
    errors = []
    if status not in allowed:
        errors.append(f"Invalid status. Must be one of: {', '.join(allowed)}")
    if status == "paid" and not payment_method:
        errors.append("Payment method is required when marking as paid.")
    payload = {"status": status, "payment_method": payment_method, "payment_reference": payment_reference}
    return payload, errors
