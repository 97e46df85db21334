from __future__ import annotations

from decimal import Decimal, InvalidOperation
from typing import Any

from werkzeug.datastructures import MultiDict


def clean(value: Any) -> str | None:
    """Strip a form value; empty strings become None."""
    if value is None:
        return None
    s = str(value).strip()
    return s or None


def form_payload(form: MultiDict, fields: tuple[str, ...] | list[str]) -> dict[str, str | None]:
    return {f: clean(form.get(f)) for f in fields}


def form_bool(form: MultiDict, name: str) -> bool:
    return (form.get(name) or "").strip().lower() in ("1", "true", "on", "yes")


def parse_number(raw: Any, *, label: str, errors: list[str], minimum: Decimal | None = None,
                 maximum: Decimal | None = None, integer: bool = False) -> Decimal | int | None:
    """Parse an optional numeric form value, appending a message to `errors` when invalid."""
    s = clean(raw)
    if s is None:
        return None
    try:
        d = Decimal(s.replace(",", ""))
    except InvalidOperation:
        errors.append(f"{label} must be a number.")
        return None
    if integer and d != d.to_integral_value():
        errors.append(f"{label} must be a whole number.")
        return None
    if minimum is not None and d < minimum:
        errors.append(f"{label} must be at least {minimum}.")
        return None
    if maximum is not None and d > maximum:
        errors.append(f"{label} must be at most {maximum}.")
        return None
    return int(d) if integer else d


def rows(data: Any, *keys: str) -> list[dict]:
    """
    Pull a list of rows out of a platform payload that is either a bare list or an
    envelope such as {"services": [...]}.
    """
    if isinstance(data, list):
        return [r for r in data if isinstance(r, dict)]
    if isinstance(data, dict):
        for k in keys:
            v = data.get(k)
            if isinstance(v, list):
                return [r for r in v if isinstance(r, dict)]
    return []
