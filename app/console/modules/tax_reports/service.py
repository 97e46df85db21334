from __future__ import annotations

import csv
import io
from datetime import date
from decimal import Decimal

from app.console.formatting import parse_timestamp, to_decimal

EXPORT_HEADERS = [
    "Date",
    "Portfolio",
    "Symbol",
    "Trade ID",
    "Gross PnL (USD)",
    "Total Fees (USD)",
    "Total Slippage (USD)",
    "Total Cost (USD)",
    "Net PnL (USD)",
    "Tax Owed (USD)",
    "Net After Tax (USD)",
]
_AMOUNT_FIELDS = (
    "gross_pnl_usd",
    "total_fees_usd",
    "total_slippage_usd",
    "total_cost_usd",
    "net_pnl_usd",
    "tax_owed_usd",
    "net_after_tax_usd",
)
YEARS_BACK = 4


def year_options(today: date | None = None) -> list[int]:
    y = (today or date.today()).year
    return [y - i for i in range(YEARS_BACK + 1)]


def selected_year(raw: str | None, today: date | None = None) -> int:
    options = year_options(today)
    try:
        y = int(raw) if raw else options[0]
    except ValueError:
        return options[0]
    return y if y in options else options[0]


def selected_portfolio(portfolios: list[dict], raw: str | None) -> str | None:
    """Requested portfolio when it exists, else the first one."""
    ids = [str(p.get("id")) for p in portfolios if p.get("id") is not None]
    if raw and raw in ids:
        return raw
    return ids[0] if ids else None


def _two_places(value) -> Decimal:
    return (to_decimal(value) or Decimal("0")).quantize(Decimal("0.01"))


def _export_date(value) -> str:
    parsed = parse_timestamp(value)
    return parsed.strftime("%Y-%m-%d") if parsed else ""


def export_rows(trade_costs: list[dict], portfolios: list[dict]) -> list[list]:
    names = {str(p.get("id")): p.get("name") for p in portfolios}
    out = []
    for cost in trade_costs:
        pid = str(cost.get("portfolio_id") or "")
        out.append(
            [
                _export_date(cost.get("created_at")),
                names.get(pid) or pid,
                cost.get("symbol") or "",
                cost.get("trade_id") or "",
                *[_two_places(cost.get(f)) for f in _AMOUNT_FIELDS],
            ]
        )
    return out


def export_filename(year: int, portfolio_id: str, ext: str = "csv") -> str:
    return f"tax-report-{year}-{portfolio_id}.{ext}"


def to_csv_bytes(rows: list[list]) -> bytes:
    out = io.StringIO()
    w = csv.writer(out)
    w.writerow(EXPORT_HEADERS)
    for r in rows:
        w.writerow([f"{v:.2f}" if isinstance(v, Decimal) else v for v in r])
    return out.getvalue().encode("utf-8")


def to_xlsx_bytes(rows: list[list], *, title: str = "Tax report") -> bytes:
    from openpyxl import Workbook

    wb = Workbook()
    ws = wb.active
    ws.title = title[:31]
    ws.append(EXPORT_HEADERS)
    for r in rows:
        ws.append([float(v) if isinstance(v, Decimal) else v for v in r])
    for row in ws.iter_rows(min_row=2, min_col=5, max_col=len(EXPORT_HEADERS)):
        for cell in row:
            cell.number_format = "#,##0.00"
    out = io.BytesIO()
    wb.save(out)
    return out.getvalue()
