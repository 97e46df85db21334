from __future__ import annotations

from flask import Blueprint, abort, flash, redirect, render_template, request, url_for

from app.console.modules.campaigns.service import (
    ACTION_BODIES,
    ACTION_LABELS,
    ACTIONS,
    DETAIL_REFRESH_SECONDS,
    LIST_REFRESH_SECONDS,
    available_actions,
    can_delete,
    campaign_pnl,
    group_campaigns,
    open_positions,
    positions_summary,
)
from app.console.persona import require_persona
from app.console.queries import mutate, query, query_or_404
from app.console.utils import rows

bp = Blueprint("campaigns", __name__)

CAMPAIGNS_KEY = ("/api/campaigns",)


@bp.get("/")
@require_persona()
def campaigns_list():
    campaigns = rows(query(*CAMPAIGNS_KEY, stale_seconds=LIST_REFRESH_SECONDS), "campaigns")
    portfolios = rows(query("/api/portfolios"), "portfolios")
    portfolio_names = {str(p.get("id")): p.get("name") for p in portfolios}
    decorated = [
        dict(c, **campaign_pnl(c), portfolio_name=portfolio_names.get(str(c.get("portfolio_id"))),
             actions=available_actions(c.get("status")), deletable=can_delete(c.get("status")))
        for c in campaigns
    ]
    return render_template(
        "campaigns/list.html",
        groups=group_campaigns(decorated),
        refresh_seconds=LIST_REFRESH_SECONDS,
    )


@bp.get("/<campaign_id>")
@require_persona()
def campaign_detail(campaign_id: str):
    campaign = query_or_404("/api/campaigns", campaign_id, stale_seconds=DETAIL_REFRESH_SECONDS)
    metrics = query("/api/campaigns", campaign_id, "metrics", stale_seconds=DETAIL_REFRESH_SECONDS) or {}
    positions = rows(
        query("/api/campaigns", campaign_id, "positions", stale_seconds=DETAIL_REFRESH_SECONDS),
        "positions",
    )
    universe = rows(query("/api/campaigns", campaign_id, "universe"), "universe", "assets")
    universe.sort(key=lambda a: (a.get("last_rank") is None, a.get("last_rank") or 0))
    open_pos = open_positions(positions)
    return render_template(
        "campaigns/detail.html",
        campaign=campaign,
        campaign_id=campaign_id,
        metrics=metrics,
        pnl=campaign_pnl(campaign),
        positions=open_pos,
        positions_summary=positions_summary(open_pos),
        universe=universe,
        actions=available_actions(campaign.get("status"), len(open_pos)),
        deletable=can_delete(campaign.get("status")),
        refresh_seconds=DETAIL_REFRESH_SECONDS,
    )


def _current_campaign(campaign_id: str) -> dict:
    # Status gates actions, so read it fresh rather than from the 5s cache.
    return query_or_404("/api/campaigns", campaign_id, stale_seconds=0)


def _back(campaign_id: str):
    return redirect(request.referrer or url_for("campaigns.campaign_detail", campaign_id=campaign_id))


@bp.post("/<campaign_id>/<action>")
@require_persona()
def campaign_action(campaign_id: str, action: str):
    if action not in ACTIONS:
        abort(404)
    campaign = _current_campaign(campaign_id)
    status = campaign.get("status")
    open_count = 0
    if action == "liquidate-positions":
        positions = rows(query("/api/campaigns", campaign_id, "positions", stale_seconds=0), "positions")
        open_count = len(open_positions(positions))
    if action not in available_actions(status, open_count):
        flash(f"Cannot {action.replace('-', ' ')} a campaign that is {status or 'unknown'}.", "danger")
        return _back(campaign_id)
    mutate(
        "POST",
        f"/api/campaigns/{campaign_id}/{action}",
        ACTION_BODIES.get(action),
        invalidate_keys=[CAMPAIGNS_KEY],
        success=ACTION_LABELS[action],
        error=f"Could not {action.replace('-', ' ')} campaign.",
        action=f"campaign.{action}",
        entity_type="Campaign",
        entity_id=campaign_id,
    )
    return _back(campaign_id)


@bp.post("/<campaign_id>/delete")
@require_persona()
def campaign_delete(campaign_id: str):
    status = _current_campaign(campaign_id).get("status")
    if not can_delete(status):
        flash(f"Cannot delete a campaign that is {status or 'unknown'}.", "danger")
        return _back(campaign_id)
    result = mutate(
        "DELETE",
        f"/api/campaigns/{campaign_id}",
        invalidate_keys=[CAMPAIGNS_KEY],
        success="Campaign deleted.",
        error="Could not delete campaign.",
        action="campaign.delete",
        entity_type="Campaign",
        entity_id=campaign_id,
    )
    if result.ok:
        return redirect(url_for("campaigns.campaigns_list"))
    return redirect(url_for("campaigns.campaign_detail", campaign_id=campaign_id))
