from __future__ import annotations

from decimal import Decimal

from werkzeug.datastructures import MultiDict

from app.console.utils import parse_number

DEFAULT_FILTERS = {
    "min_volume_24h_usd": Decimal("5000000"),
    "max_spread_mid_pct": Decimal("0.10"),
    "min_depth_top10_usd": Decimal("100000"),
    "min_atr_daily_pct": Decimal("0.01"),
}
FILTER_LABELS = {
    "min_volume_24h_usd": "Min 24h volume (USD)",
    "max_spread_mid_pct": "Max spread (mid %)",
    "min_depth_top10_usd": "Min top-10 depth (USD)",
    "min_atr_daily_pct": "Min daily ATR (%)",
}


def parse_filters(form: MultiDict) -> tuple[dict[str, Decimal], list[str]]:
    """Blank inputs fall back to the defaults; all filters must be non-negative."""
    errors: list[str] = []
    out: dict[str, Decimal] = {}
    for key, default in DEFAULT_FILTERS.items():
        v = parse_number(form.get(key), label=FILTER_LABELS[key], errors=errors, minimum=Decimal("0"))
        out[key] = v if v is not None else default
    return out, errors


def filters_server_format(filters: dict[str, Decimal]) -> dict[str, str]:
    return {k: _plain(v) for k, v in filters.items()}


def _plain(d: Decimal) -> str:
    s = format(d, "f")
    if "." in s:
        s = s.rstrip("0").rstrip(".")
    return s or "0"


def success_message(result: dict) -> str:
    return f"Selected {result.get('selected_count', 0)} assets in {result.get('cluster_count', 0)} clusters"


def group_by_cluster(assets: list[dict], clusters: list[dict] | None = None) -> list[dict]:
    """
    Group ranked assets by cluster number (unclustered last). Each group carries the
    run's average metrics for that cluster when the run result supplied them.
    """
    averages = {}
    for c in clusters or []:
        if isinstance(c, dict) and c.get("cluster_number") is not None:
            averages[c["cluster_number"]] = c.get("avg_metrics") or {}

    groups: dict = {}
    for a in assets:
        groups.setdefault(a.get("cluster_number"), []).append(a)

    out = []
    for number in sorted(groups, key=lambda n: (n is None, n if n is not None else 0)):
        members = sorted(groups[number], key=lambda a: a.get("rank") if a.get("rank") is not None else 1 << 30)
        out.append({
            "cluster_number": number,
            "assets": members,
            "avg_metrics": averages.get(number),
        })
    return out


def cluster_count(assets: list[dict]) -> int:
    return len({a.get("cluster_number") for a in assets if a.get("cluster_number") is not None})
