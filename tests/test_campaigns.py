from decimal import Decimal

from app.console.modules.campaigns.service import (
    available_actions,
    campaign_pnl,
    can_delete,
    group_campaigns,
    open_positions,
    positions_summary,
)

from conftest import audit_actions, login, post

CAMPAIGN = {
    "id": "c1",
    "name": "BTC Momentum",
    "status": "active",
    "initial_capital": "10000",
    "current_equity": "11250.50",
    "max_drawdown_percentage": "15",
    "portfolio_id": "p1",
}


def test_available_actions_by_status():
    assert available_actions("active") == ("pause", "stop", "rebalance")
    assert available_actions("paused", 2) == ("resume", "stop", "liquidate-positions")
    assert available_actions("running", 1) == ("liquidate-positions",)
    assert available_actions("stopped", 3) == ()
    assert available_actions("active", 0) == ("pause", "stop", "rebalance")
    assert can_delete("paused") and can_delete("stopped") and can_delete("completed")
    assert not can_delete("active")


def test_pnl_and_grouping():
    pnl = campaign_pnl(CAMPAIGN)
    assert str(pnl["pnl"]) == "1250.50"
    assert pnl["pnl_pct"] == Decimal("12.505")
    assert campaign_pnl({"initial_capital": None})["pnl_pct"] == 0

    groups = group_campaigns([CAMPAIGN, dict(CAMPAIGN, id="c2", status="completed"), dict(CAMPAIGN, id="c3", status="draft")])
    assert [c["id"] for c in groups["active"]] == ["c1"]
    assert [c["id"] for c in groups["history"]] == ["c2"]
    assert groups["paused"] == []


def test_open_positions_summary():
    positions = [
        {"symbol": "BTC", "status": "open", "unrealized_pnl": "10.5"},
        {"symbol": "ETH", "status": "closed", "unrealized_pnl": "99"},
        {"symbol": "SOL", "unrealized_pnl": "-2.5"},
    ]
    opened = open_positions(positions)
    assert [p["symbol"] for p in opened] == ["BTC", "SOL"]
    summary = positions_summary(opened)
    assert summary["count"] == 2
    assert str(summary["unrealized_pnl"]) == "8.0"


def _routes(platform):
    platform.on("GET", "/api/campaigns", [CAMPAIGN])
    platform.on("GET", "/api/portfolios", [{"id": "p1", "name": "Main"}])
    platform.on("GET", "/api/campaigns/c1", CAMPAIGN)
    platform.on("GET", "/api/campaigns/c1/metrics", {"totalPnL": "1250.50", "currentDrawdown": "2.5"})
    platform.on("GET", "/api/campaigns/c1/positions", [{"symbol": "BTC/USD", "status": "open", "unrealized_pnl": "12"}])
    platform.on("GET", "/api/campaigns/c1/universe", [{"symbol": "ETH/USD", "last_rank": 2}, {"symbol": "BTC/USD", "last_rank": 1}])


def test_list_is_live_refreshing(client, platform):
    _routes(platform)
    platform.on("GET", "/api/user/persona", {"persona": "franchise"})
    login(client)
    r = client.get("/campaigns/")
    assert r.status_code == 200
    assert b"BTC Momentum" in r.data
    assert b'content="10"' in r.data


def test_detail_shows_actions_and_positions(client, platform):
    _routes(platform)
    login(client)
    r = client.get("/campaigns/c1")
    assert r.status_code == 200
    assert b'content="5"' in r.data
    assert b"/campaigns/c1/pause" in r.data
    assert b"/campaigns/c1/liquidate-positions" in r.data
    assert b"/campaigns/c1/resume" not in r.data
    assert r.data.rindex(b"BTC/USD</td>") < r.data.index(b"ETH/USD")


def test_missing_campaign_is_404(client, platform):
    platform.on("GET", "/api/campaigns/c404", None, status=204)
    login(client)
    assert client.get("/campaigns/c404").status_code == 404


def test_pause_sends_reason_and_invalidates(client, app, platform):
    _routes(platform)
    platform.on("POST", "/api/campaigns/c1/pause", {"ok": True})
    login(client)
    client.get("/campaigns/c1")
    r = post(client, "/campaigns/c1/pause", follow_redirects=True)
    assert b"Campaign paused." in r.data
    assert platform.calls_to("POST", "/api/campaigns/c1/pause")[0]["json"] == {"reason": "Manual pause"}
    assert len(platform.calls_to("GET", "/api/campaigns/c1")) == 3
    assert "campaign.pause" in audit_actions(app)


def test_unknown_action_is_404(client, platform):
    login(client)
    assert post(client, "/campaigns/c1/explode").status_code == 404


def test_delete_redirects_to_list(client, platform):
    _routes(platform)
    platform.on("GET", "/api/campaigns/c1", dict(CAMPAIGN, status="paused"))
    platform.on("DELETE", "/api/campaigns/c1", None, status=204)
    login(client)
    r = post(client, "/campaigns/c1/delete")
    assert r.status_code == 302
    assert r.headers["Location"].endswith("/campaigns/")


def test_actions_rejected_for_stopped_campaign(client, app, platform):
    _routes(platform)
    platform.on("GET", "/api/campaigns/c1", dict(CAMPAIGN, status="stopped"))
    platform.on("POST", "/api/campaigns/c1/pause", {"ok": True})
    platform.on("POST", "/api/campaigns/c1/rebalance", {"ok": True})
    login(client)

    r = post(client, "/campaigns/c1/pause", follow_redirects=True)
    assert b"Cannot pause a campaign that is stopped." in r.data
    r = post(client, "/campaigns/c1/rebalance", follow_redirects=True)
    assert b"Cannot rebalance a campaign that is stopped." in r.data
    assert not platform.calls_to("POST", "/api/campaigns/c1/pause")
    assert not platform.calls_to("POST", "/api/campaigns/c1/rebalance")
    assert "campaign.pause" not in audit_actions(app)


def test_rebalance_only_for_active_and_delete_for_paused(client, platform):
    _routes(platform)
    platform.on("GET", "/api/campaigns/c1", dict(CAMPAIGN, status="paused"))
    platform.on("DELETE", "/api/campaigns/c1", None, status=204)
    login(client)

    r = client.get("/campaigns/c1")
    assert b"/campaigns/c1/rebalance" not in r.data
    assert b"/campaigns/c1/delete" in r.data
    r = post(client, "/campaigns/c1/rebalance", follow_redirects=True)
    assert b"Cannot rebalance a campaign that is paused." in r.data

    r = post(client, "/campaigns/c1/delete")
    assert r.headers["Location"].endswith("/campaigns/")
    assert platform.calls_to("DELETE", "/api/campaigns/c1")


def test_delete_rejected_for_active_campaign(client, platform):
    _routes(platform)
    login(client)
    r = post(client, "/campaigns/c1/delete", follow_redirects=True)
    assert b"Cannot delete a campaign that is active." in r.data
    assert not platform.calls_to("DELETE", "/api/campaigns/c1")


def test_platform_404_renders_not_found(client, platform):
    platform.on("GET", "/api/campaigns/c404", {"message": "Campaign not found"}, status=404)
    login(client)
    assert client.get("/campaigns/c404").status_code == 404
