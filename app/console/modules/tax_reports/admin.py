from __future__ import annotations

import io

from flask import Blueprint, flash, g, redirect, render_template, request, send_file, url_for

from app.console.audit import record_event
from app.console.db import db_session
from app.console.modules.tax_reports.service import (
    export_filename,
    export_rows,
    selected_portfolio,
    selected_year,
    to_csv_bytes,
    to_xlsx_bytes,
    year_options,
)
from app.console.persona import require_persona
from app.console.queries import query
from app.console.utils import rows

bp = Blueprint("tax_reports", __name__)

XLSX_MIMETYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"


def _selection():
    portfolios = rows(query("/api/portfolios"), "portfolios")
    portfolio_id = selected_portfolio(portfolios, request.args.get("portfolio"))
    year = selected_year(request.args.get("year"))
    return portfolios, portfolio_id, year


@bp.get("/")
@require_persona()
def tax_home():
    portfolios, portfolio_id, year = _selection()
    summary = None
    trade_costs: list[dict] = []
    if portfolio_id:
        summary = query("/api/tax-summary", portfolio_id, params={"year": year})
        trade_costs = rows(query("/api/trade-costs", portfolio_id), "costs", "tradeCosts")
    return render_template(
        "tax/index.html",
        portfolios=portfolios,
        portfolio_id=portfolio_id,
        year=year,
        years=year_options(),
        summary=summary or {},
        trade_costs=trade_costs,
    )


@bp.get("/export.<fmt>")
@require_persona()
def tax_export(fmt: str):
    if fmt not in ("csv", "xlsx"):
        return redirect(url_for("tax_reports.tax_home"))
    portfolios, portfolio_id, year = _selection()
    trade_costs = rows(query("/api/trade-costs", portfolio_id), "costs", "tradeCosts") if portfolio_id else []
    if not trade_costs:
        flash("No trade costs to export", "danger")
        return redirect(url_for("tax_reports.tax_home", portfolio=portfolio_id, year=year))

    export = export_rows(trade_costs, portfolios)
    s = db_session()
    record_event(
        s,
        actor=g.current_user,
        action="tax_report.export",
        entity_type="Portfolio",
        entity_id=portfolio_id,
        metadata={"year": year, "format": fmt, "row_count": len(export)},
    )
    s.commit()

    if fmt == "xlsx":
        data, mimetype = to_xlsx_bytes(export, title=f"Tax {year}"), XLSX_MIMETYPE
    else:
        data, mimetype = to_csv_bytes(export), "text/csv"
    return send_file(
        io.BytesIO(data),
        mimetype=mimetype,
        as_attachment=True,
        download_name=export_filename(year, portfolio_id, fmt),
        max_age=0,
    )
