from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from typing import Any

from flask import Flask

STATUS_BADGES = {
    "active": "success",
    "approved": "success",
    "paid": "success",
    "running": "success",
    "enabled": "success",
    "pending": "warning",
    "invoiced": "info",
    "paused": "warning",
    "under_audit": "warning",
    "draft": "secondary",
    "suspended": "danger",
    "terminated": "dark",
    "rejected": "danger",
    "disputed": "danger",
    "overdue": "danger",
    "stopped": "secondary",
    "cancelled": "secondary",
    "archived": "secondary",
}


def to_decimal(value: Any) -> Decimal | None:
    """Platform amounts arrive as numbers or numeric strings."""
    if value is None or value == "":
        return None
    try:
        return Decimal(str(value))
    except (InvalidOperation, ValueError):
        return None


def parse_timestamp(value: Any) -> datetime | date | None:
    if value is None or value == "":
        return None
    if isinstance(value, (datetime, date)):
        return value
    raw = str(value).strip()
    try:
        return datetime.fromisoformat(raw.replace("Z", "+00:00"))
    except ValueError:
        pass
    try:
        return date.fromisoformat(raw[:10])
    except ValueError:
        return None


def dateformat(value: Any, format: str = "%Y-%m-%d") -> str:
    parsed = parse_timestamp(value)
    if parsed is None:
        return "—" if value in (None, "") else str(value)
    return parsed.strftime(format)


def money(value: Any, currency: str = "USD") -> str:
    d = to_decimal(value)
    if d is None:
        return "—"
    symbol = {"USD": "$", "BRL": "R$", "EUR": "€"}.get(currency, "")
    sign = "-" if d < 0 else ""
    return f"{sign}{symbol}{abs(d):,.2f}"


def pct(value: Any, digits: int = 2, ratio: bool = False) -> str:
    """Format a percentage; `ratio=True` means the value is a fraction (0.1 → 10%)."""
    d = to_decimal(value)
    if d is None:
        return "—"
    if ratio:
        d = d * 100
    return f"{d:.{digits}f}%"


def number(value: Any, digits: int = 0) -> str:
    d = to_decimal(value)
    if d is None:
        return "—"
    return f"{d:,.{digits}f}"


def status_badge(status: Any) -> str:
    return STATUS_BADGES.get(str(status or "").lower(), "secondary")


def register_filters(app: Flask) -> None:
    app.add_template_filter(dateformat, "dateformat")
    app.add_template_filter(money, "money")
    app.add_template_filter(pct, "pct")
    app.add_template_filter(number, "number")
    app.add_template_filter(status_badge, "status_badge")
