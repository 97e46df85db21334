from __future__ import annotations

from flask import Blueprint, flash, redirect, render_template, request, session, url_for

from app.console.modules.asset_selection.service import (
    DEFAULT_FILTERS,
    FILTER_LABELS,
    cluster_count,
    filters_server_format,
    group_by_cluster,
    parse_filters,
    success_message,
)
from app.console.persona import require_persona
from app.console.queries import mutate, query
from app.console.utils import rows

bp = Blueprint("asset_selection", __name__)

SELECTED_KEY = ("/api/asset-selection/selected",)
RUN_ID_SESSION_KEY = "asset_selection_run_id"


def _render(filters, result=None, status=200):
    assets = rows(query(*SELECTED_KEY), "assets")
    return render_template(
        "assets/selection.html",
        filters=filters,
        filter_labels=FILTER_LABELS,
        last_run_id=session.get(RUN_ID_SESSION_KEY),
        assets=assets,
        clusters=group_by_cluster(assets, (result or {}).get("clusters")),
        cluster_count=cluster_count(assets),
        result=result,
    ), status


@bp.get("/")
@require_persona("franchisor")
def selection_page():
    return _render(dict(DEFAULT_FILTERS))


@bp.post("/run")
@require_persona("franchisor")
def selection_run():
    filters, errors = parse_filters(request.form)
    if errors:
        for e in errors:
            flash(e, "danger")
        return _render(filters, status=400)

    saved = mutate(
        "POST",
        "/api/asset-selection/filters",
        filters_server_format(filters),
        error="Could not save selection filters.",
        action="asset_selection.filters",
        entity_type="AssetSelectionFilters",
    )
    if not saved.ok:
        return redirect(url_for("asset_selection.selection_page"))

    ran = mutate(
        "POST",
        "/api/asset-selection/run",
        {},
        invalidate_keys=[SELECTED_KEY],
        error="Asset selection failed.",
        action="asset_selection.run",
        entity_type="AssetSelectionRun",
    )
    if not ran.ok:
        return redirect(url_for("asset_selection.selection_page"))

    result = ran.data if isinstance(ran.data, dict) else {}
    if result.get("run_id"):
        session[RUN_ID_SESSION_KEY] = result["run_id"]
    flash(success_message(result), "success")
    return _render(filters, result=result)
