from decimal import Decimal

from app.console.modules.financial.service import (
    INVOICE_STATUSES,
    financial_overview,
    manual_payment_reference,
    report_columns,
    status_payload,
    uninvoiced_royalties,
)

from conftest import audit_actions, login, post

FEES = [
    {"id": "fee1", "franchise_id": "f1", "amount": "1500.00", "status": "paid"},
    {"id": "fee2", "franchise_id": "f2", "amount": "1500.00", "status": "overdue"},
]
INVOICES = [{"id": "i1", "franchise_id": "f3", "total_amount": "300", "status": "overdue"}]
ROYALTIES = [
    {"id": "r1", "franchise_id": "f1", "royalty_amount": "200", "status": "paid"},
    {"id": "r2", "franchise_id": "f1", "royalty_amount": "50", "status": "pending"},
    {"id": "r3", "franchise_id": "f2", "royalty_amount": "70", "status": "pending"},
    {"id": "r4", "franchise_id": "f1", "royalty_amount": "30", "status": "invoiced"},
]


def test_overview_totals():
    o = financial_overview(FEES, INVOICES, ROYALTIES)
    assert o["fee_revenue"] == Decimal("1500.00")
    assert o["royalty_revenue"] == Decimal("200")
    assert o["total_revenue"] == Decimal("1700.00")
    assert o["pending_payments"] == Decimal("1650.00")
    assert o["delinquent_franchises"] == 2


def test_manual_payment_reference():
    assert manual_payment_reference(1760000000123) == "MANUAL-1760000000123"
    assert manual_payment_reference().startswith("MANUAL-")


def test_uninvoiced_royalties_for_franchise():
    assert uninvoiced_royalties(ROYALTIES, "f1") == ["r2"]
    assert uninvoiced_royalties(ROYALTIES, "f9") == []


def test_status_payload_and_columns():
    _payload, errors = status_payload("paid", INVOICE_STATUSES, None, None)
    assert errors == ["Payment method is required when marking as paid."]
    _payload, errors = status_payload("lost", INVOICE_STATUSES, None, None)
    assert errors[0].startswith("Invalid status.")
    assert report_columns([{"a": 1, "b": 2}, {"b": 3, "c": 4}]) == ["a", "b", "c"]


def test_tabs_render(client, platform):
    platform.on("GET", "/api/franchise-fees", FEES)
    platform.on("GET", "/api/franchise-invoices", INVOICES)
    platform.on("GET", "/api/franchise-royalties", ROYALTIES)
    platform.on("GET", "/api/franchises", [{"id": "f1", "name": "Alpha"}])
    platform.on("GET", "/api/franchise-onboarding/pending", [{"id": "f5", "name": "Newco", "franchise_fee": "2000"}])
    login(client)

    r = client.get("/financial/")
    assert r.status_code == 200
    assert b"$1,700.00" in r.data
    for tab in ("onboarding", "fees", "invoices", "royalties", "reports"):
        assert client.get(f"/financial/?tab={tab}").status_code == 200
    assert client.get("/financial/?tab=nope").status_code == 404


def test_onboarding_decisions(client, app, platform):
    platform.on("GET", "/api/franchise-onboarding/pending", [])
    platform.on("POST", "/api/franchise-onboarding/f5/confirm-payment", {"ok": True})
    platform.on("POST", "/api/franchise-onboarding/f5/reject", {"ok": True})
    login(client)

    r = post(client, "/financial/onboarding/f5/reject", {"reason": ""}, follow_redirects=True)
    assert b"A reason is required to reject an application." in r.data
    assert not platform.calls_to("POST", "/api/franchise-onboarding/f5/reject")

    post(client, "/financial/onboarding/f5/confirm-payment", {"payment_method": "pix"})
    body = platform.calls_to("POST", "/api/franchise-onboarding/f5/confirm-payment")[0]["json"]
    assert body["payment_method"] == "pix"
    assert body["payment_reference"].startswith("MANUAL-")
    assert "onboarding.confirm_payment" in audit_actions(app)


def test_invoice_generate_uses_pending_royalties(client, platform):
    platform.on("GET", "/api/franchise-royalties", ROYALTIES)
    platform.on("GET", "/api/franchise-invoices", [])
    platform.on("GET", "/api/franchises", [])
    platform.on("POST", "/api/franchise-invoices/generate", {"id": "i2"})
    login(client)

    r = post(client, "/financial/invoices/generate", {"franchise_id": "f9"}, follow_redirects=True)
    assert b"No pending royalties to invoice for this franchise." in r.data

    post(client, "/financial/invoices/generate", {"franchise_id": "f1"})
    assert platform.calls_to("POST", "/api/franchise-invoices/generate")[0]["json"] == {
        "franchise_id": "f1", "royalty_ids": ["r2"],
    }


def test_invoice_status_patch(client, platform):
    platform.on("PATCH", "/api/franchise-invoices/i1/status", {"ok": True})
    login(client)
    r = post(client, "/financial/invoices/i1/status", {"status": "paid", "payment_method": "wire"})
    assert r.status_code == 302
    body = platform.calls_to("PATCH", "/api/franchise-invoices/i1/status")[0]["json"]
    assert body == {"status": "paid", "payment_method": "wire", "payment_reference": None}


def test_report_view_and_csv(client, platform):
    platform.on("GET", "/api/franchise-reports/delinquency",
                {"rows": [{"franchise_name": "Beta", "days_overdue": 12}], "summary": {"total_overdue": "1500"}})
    login(client)

    r = client.get("/financial/reports/delinquency")
    assert r.status_code == 200
    assert b"Days overdue" in r.data
    assert b"Beta" in r.data

    from conftest import FakeResponse

    platform.routes[("GET", "/api/franchise-reports/delinquency")] = FakeResponse(
        200, raw=b"franchise_name,days_overdue\nBeta,12\n", content_type="text/csv; charset=utf-8"
    )
    r = client.get("/financial/reports/delinquency/csv")
    assert r.status_code == 200
    assert r.mimetype == "text/csv"
    assert 'filename="delinquency.csv"' in r.headers["Content-Disposition"]
    assert r.data.startswith(b"franchise_name,days_overdue")
    assert platform.calls[-1]["params"] == {"format": "csv"}

    assert client.get("/financial/reports/unknown").status_code == 404


def test_royalties_tab_marks_paid_and_disputed(client, app, platform):
    platform.on("GET", "/api/franchise-royalties", ROYALTIES)
    platform.on("PATCH", "/api/admin/royalties/r2/status", {"ok": True})
    login(client)

    r = client.get("/financial/?tab=royalties")
    assert b"/financial/royalties/r2/status" in r.data
    assert b"/financial/royalties/r1/status" not in r.data

    r = post(client, "/financial/royalties/r2/status", {"status": "paid"}, follow_redirects=True)
    assert b"Status updated." in r.data
    post(client, "/financial/royalties/r2/status", {"status": "disputed"})
    bodies = [c["json"] for c in platform.calls_to("PATCH", "/api/admin/royalties/r2/status")]
    assert bodies == [{"status": "paid", "payment_method": "manual"}, {"status": "disputed"}]
    assert len(platform.calls_to("GET", "/api/franchise-royalties")) == 2
    assert audit_actions(app).count("royalty.status") == 2


def test_royalties_tab_rejects_unknown_status(client, platform):
    login(client)
    r = post(client, "/financial/royalties/r2/status", {"status": "invoiced"})
    assert r.status_code == 302
    assert not platform.calls_to("PATCH", "/api/admin/royalties/r2/status")


def test_royalties_tab_invoice_returns_to_tab(client, platform):
    platform.on("POST", "/api/franchise-invoices/generate", {"id": "i3"})
    login(client)
    r = post(client, "/financial/invoices/generate",
             {"franchise_id": "f1", "royalty_ids": "r2", "tab": "royalties"})
    assert r.headers["Location"].endswith("tab=royalties")
    assert platform.calls_to("POST", "/api/franchise-invoices/generate")[0]["json"] == {
        "franchise_id": "f1", "royalty_ids": ["r2"],
    }
