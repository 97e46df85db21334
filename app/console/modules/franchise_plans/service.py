"""
Plan version wizard fields.

Each field is (name, kind, section, extra) where kind is one of "money", "pct", "int",
"bool", "choice", "multi". Decimal fields are sent as fixed two-place strings and
integers as JSON numbers.
"""

from __future__ import annotations

from decimal import Decimal

from werkzeug.datastructures import MultiDict

from app.console.utils import clean, form_bool, parse_number

PLAN_TYPES = ("starter", "pro", "enterprise", "custom")

SECTIONS = (
    ("franchise_fee", "Franchise Fee"),
    ("campaign_limits", "Campaign Limits"),
    ("capital_exposure", "Capital & Exposure"),
    ("risk_profiles", "Risk Profiles"),
    ("ai_opportunity", "AI & Opportunities"),
    ("triggers", "Triggers & Automation"),
    ("royalties", "Royalties"),
    ("governance", "Governance"),
)

PAYMENT_METHODS = ("pix", "boleto", "credit_card", "wire")
ADJUSTMENT_INDEXES = ("ipca", "igpm", "none")
RISK_PROFILES = ("conservative", "moderate", "aggressive", "super_aggressive", "full_custom")
AI_ACCESS_LEVELS = ("none", "basic", "full")
ROYALTY_MODELS = ("fixed", "dynamic_risk", "performance")
ROYALTY_PERIODS = ("monthly", "quarterly", "per_campaign")
AUDIT_LEVELS = ("standard", "reinforced", "strict")

VERSION_FIELDS: tuple[tuple[str, str, str, dict], ...] = (
    ("franchise_fee", "money", "franchise_fee", {"label": "Fee value"}),
    ("fee_periodicity_months", "int", "franchise_fee", {"label": "Periodicity (months)", "min": 1, "max": 12}),
    ("first_due_date_offset_days", "int", "franchise_fee", {"label": "Days until first payment", "min": 0}),
    ("allowed_payment_methods", "multi", "franchise_fee", {"label": "Payment methods", "choices": PAYMENT_METHODS}),
    ("auto_adjustment", "bool", "franchise_fee", {"label": "Automatic adjustment"}),
    ("adjustment_index", "choice", "franchise_fee", {"label": "Adjustment index", "choices": ADJUSTMENT_INDEXES}),
    ("late_payment_penalty_pct", "pct", "franchise_fee", {"label": "Late payment penalty (%)"}),
    ("late_payment_interest_pct", "pct", "franchise_fee", {"label": "Monthly interest (%)"}),
    ("payment_tolerance_days", "int", "franchise_fee", {"label": "Tolerance days", "min": 0}),
    ("max_simultaneous_campaigns", "int", "campaign_limits", {"label": "Max simultaneous campaigns", "min": 0}),
    ("max_standard_campaigns", "int", "campaign_limits", {"label": "Max standard campaigns", "min": 0}),
    ("max_opportunity_campaigns", "int", "campaign_limits", {"label": "Max opportunity campaigns", "min": 0}),
    ("campaign_cooldown_hours", "int", "campaign_limits", {"label": "Cooldown between campaigns (hours)", "min": 0}),
    ("max_total_capital", "money", "capital_exposure", {"label": "Max total capital"}),
    ("max_capital_per_campaign_pct", "pct", "capital_exposure", {"label": "Max capital per campaign (%)"}),
    ("max_capital_per_co_pct", "pct", "capital_exposure", {"label": "Max capital per opportunity campaign (%)"}),
    ("max_exposure_per_asset_pct", "pct", "capital_exposure", {"label": "Max exposure per asset (%)"}),
    ("max_exposure_per_cluster_pct", "pct", "capital_exposure", {"label": "Max exposure per cluster (%)"}),
    ("allowed_risk_profiles", "multi", "risk_profiles", {"label": "Allowed risk profiles", "choices": RISK_PROFILES}),
    ("max_risk_per_trade_pct", "pct", "risk_profiles", {"label": "Max risk per trade (%)"}),
    ("max_drawdown_per_campaign_pct", "pct", "risk_profiles", {"label": "Max drawdown per campaign (%)"}),
    ("allow_risk_customization", "bool", "risk_profiles", {"label": "Allow risk customization"}),
    ("ai_access_level", "choice", "ai_opportunity", {"label": "AI access level", "choices": AI_ACCESS_LEVELS}),
    ("max_cos_per_period", "int", "ai_opportunity", {"label": "Max opportunity campaigns per period", "min": 0}),
    ("co_period_days", "int", "ai_opportunity", {"label": "Period (days)", "min": 1}),
    ("min_opportunity_score", "int", "ai_opportunity", {"label": "Min opportunity score", "min": 0, "max": 100}),
    ("allow_blueprint_adjustment", "bool", "ai_opportunity", {"label": "Allow blueprint adjustment"}),
    ("risk_triggers_enabled", "bool", "triggers", {"label": "Risk triggers"}),
    ("performance_triggers_enabled", "bool", "triggers", {"label": "Performance triggers"}),
    ("benchmark_triggers_enabled", "bool", "triggers", {"label": "Benchmark triggers"}),
    ("auto_rebalance_enabled", "bool", "triggers", {"label": "Auto rebalance"}),
    ("min_audit_frequency_hours", "int", "triggers", {"label": "Min audit frequency (hours)", "min": 1}),
    ("royalty_model", "choice", "royalties", {"label": "Royalty model", "choices": ROYALTY_MODELS}),
    ("royalty_min_pct", "pct", "royalties", {"label": "Royalty min (%)"}),
    ("royalty_max_pct", "pct", "royalties", {"label": "Royalty max (%)"}),
    ("royalty_applies_to_cos", "bool", "royalties", {"label": "Royalty applies to opportunity campaigns"}),
    ("royalty_calculation_period", "choice", "royalties", {"label": "Calculation period", "choices": ROYALTY_PERIODS}),
    ("audit_level", "choice", "governance", {"label": "Audit level", "choices": AUDIT_LEVELS}),
    ("allow_auto_downgrade", "bool", "governance", {"label": "Allow automatic downgrade"}),
    ("suspension_policy_days", "int", "governance", {"label": "Suspension policy (days)", "min": 0}),
    ("antifraud_tolerance", "int", "governance", {"label": "Anti-fraud tolerance", "min": 0}),
)

VERSION_DEFAULTS: dict = {
    "franchise_fee": "1500.00",
    "fee_periodicity_months": 1,
    "first_due_date_offset_days": 30,
    "allowed_payment_methods": ["pix", "boleto"],
    "auto_adjustment": True,
    "adjustment_index": "ipca",
    "late_payment_penalty_pct": "2.00",
    "late_payment_interest_pct": "1.00",
    "payment_tolerance_days": 3,
    "max_simultaneous_campaigns": 1,
    "max_standard_campaigns": 5,
    "max_opportunity_campaigns": 0,
    "campaign_cooldown_hours": 24,
    "max_total_capital": "50000.00",
    "max_capital_per_campaign_pct": "50.00",
    "max_capital_per_co_pct": "25.00",
    "max_exposure_per_asset_pct": "20.00",
    "max_exposure_per_cluster_pct": "40.00",
    "allowed_risk_profiles": ["conservative"],
    "max_risk_per_trade_pct": "2.00",
    "max_drawdown_per_campaign_pct": "10.00",
    "allow_risk_customization": False,
    "ai_access_level": "none",
    "max_cos_per_period": 0,
    "co_period_days": 30,
    "min_opportunity_score": 75,
    "allow_blueprint_adjustment": False,
    "risk_triggers_enabled": True,
    "performance_triggers_enabled": True,
    "benchmark_triggers_enabled": False,
    "auto_rebalance_enabled": False,
    "min_audit_frequency_hours": 8,
    "royalty_model": "fixed",
    "royalty_min_pct": "10.00",
    "royalty_max_pct": "30.00",
    "royalty_applies_to_cos": True,
    "royalty_calculation_period": "monthly",
    "audit_level": "standard",
    "allow_auto_downgrade": False,
    "suspension_policy_days": 30,
    "antifraud_tolerance": 3,
}

# Server-managed columns that never go back in a version body.
_VERSION_META = ("id", "plan_id", "version", "version_status", "created_at", "activated_at", "archived_at", "created_by")


def plan_payload(form: MultiDict) -> dict:
    payload = {
        "name": clean(form.get("name")),
        "code": clean(form.get("code")),
        "plan_type": clean(form.get("plan_type")) or "custom",
        "description": clean(form.get("description")),
    }
    if payload["code"]:
        payload["code"] = payload["code"].upper()
    return {k: v for k, v in payload.items() if v is not None}


def validate_plan_payload(payload: dict) -> list[str]:
    errors = []
    if not payload.get("name"):
        errors.append("Plan name is required.")
    if not payload.get("code"):
        errors.append("Plan code is required.")
    if payload.get("plan_type") not in PLAN_TYPES:
        errors.append(f"Invalid plan type. Must be one of: {', '.join(PLAN_TYPES)}")
    return errors


def version_form_data(version: dict | None) -> dict:
    """Initial wizard values: the current version minus server columns, else defaults."""
    if not version:
        return dict(VERSION_DEFAULTS)
    data = {k: v for k, v in version.items() if k not in _VERSION_META}
    for k, v in VERSION_DEFAULTS.items():
        data.setdefault(k, v)
    return data


def _two_places(d: Decimal) -> str:
    return str(d.quantize(Decimal("0.01")))


def version_payload(form: MultiDict) -> tuple[dict, list[str]]:
    """Parse and range-check the wizard form. Returns (payload, errors)."""
    errors: list[str] = []
    payload: dict = {}
    for name, kind, _section, extra in VERSION_FIELDS:
        label = extra["label"]
        if kind == "bool":
            payload[name] = form_bool(form, name)
        elif kind == "multi":
            picked = [v for v in form.getlist(name) if v in extra["choices"]]
            payload[name] = picked
        elif kind == "choice":
            v = clean(form.get(name)) or VERSION_DEFAULTS[name]
            if v not in extra["choices"]:
                errors.append(f"{label}: invalid value.")
            payload[name] = v
        elif kind == "int":
            n = parse_number(
                form.get(name), label=label, errors=errors, integer=True,
                minimum=Decimal(extra["min"]) if "min" in extra else None,
                maximum=Decimal(extra["max"]) if "max" in extra else None,
            )
            payload[name] = n if n is not None else VERSION_DEFAULTS[name]
        else:
            bounds = {"minimum": Decimal("0")}
            if kind == "pct":
                bounds["maximum"] = Decimal("100")
            d = parse_number(form.get(name), label=label, errors=errors, **bounds)
            payload[name] = _two_places(d) if d is not None else VERSION_DEFAULTS[name]

    if not payload["allowed_risk_profiles"]:
        errors.append("Select at least one risk profile.")
    if Decimal(payload["royalty_min_pct"]) > Decimal(payload["royalty_max_pct"]):
        errors.append("Royalty min must not exceed royalty max.")
    return payload, errors


def fields_by_section() -> dict[str, list[tuple[str, str, dict]]]:
    out: dict[str, list[tuple[str, str, dict]]] = {key: [] for key, _ in SECTIONS}
    for name, kind, section, extra in VERSION_FIELDS:
        out[section].append((name, kind, extra))
    return out
