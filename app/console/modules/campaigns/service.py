from __future__ import annotations

from app.console.formatting import to_decimal

LIST_REFRESH_SECONDS = 10
DETAIL_REFRESH_SECONDS = 5

ACTIONS = ("pause", "resume", "stop", "rebalance", "liquidate-positions")
ACTION_LABELS = {
    "pause": "Campaign paused.",
    "resume": "Campaign resumed.",
    "stop": "Campaign stopped.",
    "rebalance": "Rebalance requested.",
    "liquidate-positions": "Liquidation of open positions requested.",
}
ACTION_BODIES = {
    "pause": {"reason": "Manual pause"},
    "stop": {"reason": "Manual stop"},
}
_LIQUIDATABLE = ("running", "active", "paused")
_DELETABLE = ("paused", "stopped", "completed")


def open_positions(positions: list[dict]) -> list[dict]:
    return [p for p in positions if (p.get("status") or "open") == "open"]


def available_actions(status: str | None, open_position_count: int = 0) -> tuple[str, ...]:
    """Actions the campaign's current status allows, in display order."""
    out = []
    if status == "active":
        out.append("pause")
    if status == "paused":
        out.append("resume")
    if status in ("active", "paused"):
        out.append("stop")
    if status == "active":
        out.append("rebalance")
    if open_position_count > 0 and status in _LIQUIDATABLE:
        out.append("liquidate-positions")
    return tuple(out)


def can_delete(status: str | None) -> bool:
    return status in _DELETABLE


def group_campaigns(campaigns: list[dict]) -> dict[str, list[dict]]:
    return {
        "active": [c for c in campaigns if c.get("status") == "active"],
        "paused": [c for c in campaigns if c.get("status") == "paused"],
        "history": [c for c in campaigns if c.get("status") in ("stopped", "completed")],
    }


def campaign_pnl(campaign: dict) -> dict:
    initial = to_decimal(campaign.get("initial_capital")) or 0
    equity = to_decimal(campaign.get("current_equity"))
    if equity is None:
        equity = initial
    pnl = equity - initial
    pct = (pnl / initial * 100) if initial else 0
    return {"pnl": pnl, "pnl_pct": pct}


def positions_summary(positions: list[dict]) -> dict:
    total = sum((to_decimal(p.get("unrealized_pnl")) or 0) for p in positions)
    return {"count": len(positions), "unrealized_pnl": total}
