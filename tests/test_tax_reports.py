import io
from datetime import date
from decimal import Decimal

from openpyxl import load_workbook

from app.console.modules.tax_reports.service import (
    EXPORT_HEADERS,
    export_filename,
    export_rows,
    selected_portfolio,
    selected_year,
    to_csv_bytes,
    to_xlsx_bytes,
    year_options,
)

from conftest import audit_actions, login

PORTFOLIOS = [{"id": "p1", "name": "Main"}, {"id": "p2", "name": "Hedge"}]
COSTS = [
    {
        "portfolio_id": "p1",
        "created_at": "2026-03-05T14:22:00Z",
        "symbol": "BTC/USD",
        "trade_id": "t-1",
        "gross_pnl_usd": "120.456",
        "total_fees_usd": "1.2",
        "total_slippage_usd": "0.3",
        "total_cost_usd": "1.5",
        "net_pnl_usd": "118.956",
        "tax_owed_usd": "17.84",
        "net_after_tax_usd": "101.116",
    }
]


def test_year_options_and_selection():
    today = date(2026, 6, 1)
    assert year_options(today) == [2026, 2025, 2024, 2023, 2022]
    assert selected_year("2024", today) == 2024
    assert selected_year("1999", today) == 2026
    assert selected_year("abc", today) == 2026


def test_selected_portfolio_defaults_to_first():
    assert selected_portfolio(PORTFOLIOS, None) == "p1"
    assert selected_portfolio(PORTFOLIOS, "p2") == "p2"
    assert selected_portfolio(PORTFOLIOS, "p9") == "p1"
    assert selected_portfolio([], None) is None


def test_export_rows_and_csv():
    rows = export_rows(COSTS, PORTFOLIOS)
    assert rows[0][:4] == ["2026-03-05", "Main", "BTC/USD", "t-1"]
    assert rows[0][4] == Decimal("120.46")
    csv_text = to_csv_bytes(rows).decode("utf-8").splitlines()
    assert csv_text[0] == ",".join(EXPORT_HEADERS)
    assert csv_text[1] == "2026-03-05,Main,BTC/USD,t-1,120.46,1.20,0.30,1.50,118.96,17.84,101.12"
    assert export_filename(2026, "p1", "csv") == "tax-report-2026-p1.csv"


def test_xlsx_export_has_numeric_cells():
    data = to_xlsx_bytes(export_rows(COSTS, PORTFOLIOS), title="Tax 2026")
    ws = load_workbook(io.BytesIO(data)).active
    assert ws.title == "Tax 2026"
    assert [c.value for c in ws[1]] == EXPORT_HEADERS
    assert ws.cell(row=2, column=5).value == 120.46
    assert ws.cell(row=2, column=5).number_format == "#,##0.00"


def _routes(platform, costs=COSTS):
    platform.on("GET", "/api/user/persona", {"persona": "franchise"})
    platform.on("GET", "/api/portfolios", PORTFOLIOS)
    platform.on("GET", "/api/tax-summary/p1", {"tradesCount": 1, "totalTaxOwed": "17.84", "regime": "BR"})
    platform.on("GET", "/api/trade-costs/p1", costs)


def test_tax_page_renders_summary(client, platform):
    _routes(platform)
    login(client)
    r = client.get("/tax/")
    assert r.status_code == 200
    assert b"$17.84" in r.data
    summary_call = platform.calls_to("GET", "/api/tax-summary/p1")[0]
    assert summary_call["params"]["year"] == date.today().year


def test_csv_export_downloads_and_audits(client, app, platform):
    _routes(platform)
    login(client)
    year = date.today().year
    r = client.get(f"/tax/export.csv?portfolio=p1&year={year}")
    assert r.status_code == 200
    assert r.mimetype == "text/csv"
    assert f"tax-report-{year}-p1.csv" in r.headers["Content-Disposition"]
    assert b"BTC/USD" in r.data
    assert "tax_report.export" in audit_actions(app)


def test_xlsx_export(client, platform):
    _routes(platform)
    login(client)
    r = client.get("/tax/export.xlsx")
    assert r.status_code == 200
    assert r.mimetype.endswith("spreadsheetml.sheet")
    assert r.data[:2] == b"PK"


def test_export_without_costs_flashes(client, platform):
    _routes(platform, costs=[])
    login(client)
    r = client.get("/tax/export.csv", follow_redirects=True)
    assert r.status_code == 200
    assert b"No trade costs to export" in r.data
