from __future__ import annotations

from collections import OrderedDict

CATEGORY_ORDER = ("data", "ai", "payment", "trading", "social")
CRITICALITY_LABELS = {
    "critical": "Critical",
    "important": "Important",
    "optional": "Optional",
}

ENABLE_REASON = "Enabled by franchisor"
DEFAULT_DISABLE_REASON = "No reason provided"


def group_by_category(services: list[dict]) -> "OrderedDict[str, list[dict]]":
    """Known categories first in a fixed order, then any others alphabetically."""
    grouped: dict[str, list[dict]] = {}
    for svc in services:
        grouped.setdefault(svc.get("category") or "other", []).append(svc)
    ordered: OrderedDict[str, list[dict]] = OrderedDict()
    for cat in CATEGORY_ORDER:
        if cat in grouped:
            ordered[cat] = grouped.pop(cat)
    for cat in sorted(grouped):
        ordered[cat] = grouped[cat]
    return ordered


def service_counts(services: list[dict]) -> dict[str, int]:
    enabled = sum(1 for s in services if s.get("is_enabled"))
    return {
        "enabled": enabled,
        "disabled": len(services) - enabled,
        "critical_disabled": sum(
            1 for s in services if not s.get("is_enabled") and s.get("criticality") == "critical"
        ),
    }


def toggle_reason(enabled: bool, reason: str | None) -> str:
    if enabled:
        return ENABLE_REASON
    return (reason or "").strip() or DEFAULT_DISABLE_REASON


def find_service(services: list[dict], service_key: str) -> dict | None:
    for svc in services:
        if svc.get("service_key") == service_key:
            return svc
    return None
