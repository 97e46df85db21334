from werkzeug.datastructures import MultiDict

from app.console.modules.franchises.service import (
    exchange_account_payload,
    filter_franchises,
    franchise_create_payload,
    franchise_stats,
    user_display_name,
    validate_exchange_account_payload,
    validate_franchise_payload,
)

from conftest import audit_actions, login, post

FRANCHISES = [
    {"id": "f1", "name": "Alpha Trading", "cnpj": "11.222.333/0001-44", "status": "active", "under_audit": False},
    {"id": "f2", "name": "Beta Capital", "code": "BETA-01", "status": "suspended", "under_audit": True},
    {"id": "f3", "name": "Gamma", "status": "terminated"},
]


def _routes(platform):
    platform.on("GET", "/api/franchises", FRANCHISES)
    platform.on("GET", "/api/franchise-plans", [{"id": "p1", "name": "Starter", "code": "STARTER"}])


def test_stats_count_each_status():
    assert franchise_stats(FRANCHISES) == {
        "total": 3, "active": 1, "suspended": 1, "under_audit": 1, "terminated": 1,
    }


def test_filter_by_status_and_search():
    assert [f["id"] for f in filter_franchises(FRANCHISES, status="suspended")] == ["f2"]
    assert [f["id"] for f in filter_franchises(FRANCHISES, status="under_audit")] == ["f2"]
    assert [f["id"] for f in filter_franchises(FRANCHISES, search="beta-01")] == ["f2"]
    assert [f["id"] for f in filter_franchises(FRANCHISES, search="0001")] == ["f1"]
    assert len(filter_franchises(FRANCHISES, status="all")) == 3


def test_create_payload_validation():
    payload = franchise_create_payload(MultiDict({"name": " Delta ", "owner_email": "Owner@X.COM"}))
    assert payload == {"name": "Delta", "owner_email": "owner@x.com"}
    assert validate_franchise_payload(payload) == ["Plan is required."]

    bad_dates = {"name": "D", "plan_id": "p1", "contract_start": "2026-05-01", "contract_end": "2026-04-01"}
    assert validate_franchise_payload(bad_dates) == ["Contract end must be on or after contract start."]


def test_exchange_account_payload():
    payload = exchange_account_payload(MultiDict({"exchange": "Binance", "apiKey": "k", "canTrade": "on"}))
    assert payload == {"exchange": "binance", "exchangeLabel": "", "apiKey": "k", "apiSecret": "", "canTrade": True}
    assert validate_exchange_account_payload(payload) == ["API secret is required."]
    assert "Invalid exchange" in validate_exchange_account_payload(dict(payload, exchange="ftx", apiSecret="s"))[0]


def test_user_display_name_fallbacks():
    assert user_display_name({"user_first_name": "Ana", "user_last_name": "Lima"}) == "Ana Lima"
    assert user_display_name({"user_email": "a@b.c"}) == "a@b.c"
    assert user_display_name({"user_id": "u1"}) == "u1"


def test_list_renders_filtered(client, platform):
    _routes(platform)
    login(client)
    r = client.get("/franchises/?status=active")
    assert r.status_code == 200
    assert b"Alpha Trading" in r.data
    assert b"Beta Capital" not in r.data


def test_suspend_requires_reason(client, platform):
    _routes(platform)
    login(client)
    r = post(client, "/franchises/f1/suspend", {"reason": "  "}, follow_redirects=True)
    assert b"Reason is required to suspend a franchise." in r.data
    assert not platform.calls_to("POST", "/api/franchises/f1/suspend")


def test_suspend_invalidates_list(client, app, platform):
    app.config["DEFAULT_STALE_SECONDS"] = None
    _routes(platform)
    platform.on("POST", "/api/franchises/f1/suspend", {"ok": True})
    login(client)
    client.get("/franchises/")
    client.get("/franchises/")
    assert len(platform.calls_to("GET", "/api/franchises")) == 1

    r = post(client, "/franchises/f1/suspend", {"reason": "Compliance review"}, follow_redirects=True)
    assert r.status_code == 200
    assert b"Franchise suspended." in r.data
    assert platform.calls_to("POST", "/api/franchises/f1/suspend")[0]["json"] == {"reason": "Compliance review"}
    assert len(platform.calls_to("GET", "/api/franchises")) == 2
    assert "franchise.suspend" in audit_actions(app)


def test_create_redirects_to_detail(client, platform):
    _routes(platform)
    platform.on("POST", "/api/franchises", {"id": "f9"})
    login(client)
    r = post(client, "/franchises/new", {"name": "Delta", "plan_id": "p1"})
    assert r.status_code == 302
    assert r.headers["Location"].endswith("/franchises/f9")
    assert platform.calls_to("POST", "/api/franchises")[0]["json"] == {"name": "Delta", "plan_id": "p1"}


def test_detail_and_exchange_account_flow(client, platform):
    _routes(platform)
    platform.on(
        "GET", "/api/franchises/f1",
        {"id": "f1", "name": "Alpha Trading", "status": "active",
         "users": [{"user_id": "u1", "user_first_name": "Ana", "role": "master"}]},
    )
    platform.on("GET", "/api/franchises/f1/exchange-accounts", [])
    platform.on("POST", "/api/franchises/f1/exchange-accounts", {"id": "ea1"})
    platform.on("POST", "/api/franchises/f1/exchange-accounts/kraken/verify", {"success": False, "message": "bad key"})
    login(client)

    r = client.get("/franchises/f1")
    assert r.status_code == 200
    assert b"Ana" in r.data

    r = post(client, "/franchises/f1/exchange-accounts",
             {"exchange": "kraken", "apiKey": "k", "apiSecret": "s"}, follow_redirects=True)
    assert b"Exchange account added successfully." in r.data
    assert len(platform.calls_to("GET", "/api/franchises/f1/exchange-accounts")) == 2

    r = post(client, "/franchises/f1/exchange-accounts/kraken/verify", follow_redirects=True)
    assert b"Verification Failed: bad key" in r.data


def test_invite_validates_role(client, platform):
    _routes(platform)
    login(client)
    r = post(client, "/franchises/f1/users", {"email": "x@y.z", "role": "owner"})
    assert r.status_code == 302
    assert not platform.calls_to("POST", "/api/franchises/f1/users")
