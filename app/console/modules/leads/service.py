from __future__ import annotations

import re

from werkzeug.datastructures import MultiDict

from app.console.utils import clean, form_payload

LEAD_STATUSES = ("pending", "approved", "rejected")
DOCUMENT_TYPES = ("cpf", "cnpj")

APPLICANT_FIELDS = (
    "name",
    "trade_name",
    "document_type",
    "document_number",
    "secondary_document",
    "birth_date",
    "email",
    "phone",
    "whatsapp",
    "address_street",
    "address_number",
    "address_complement",
    "address_neighborhood",
    "address_zip",
    "address_city",
    "address_country",
)

# (field, minimum length, message)
_MIN_LENGTHS = (
    ("name", 3, "Full name is required."),
    ("trade_name", 1, "Trade name is required."),
    ("document_number", 11, "Invalid document number."),
    ("phone", 10, "Invalid phone number."),
    ("address_street", 3, "Street address is required."),
    ("address_number", 1, "Address number is required."),
    ("address_neighborhood", 2, "Neighborhood is required."),
    ("address_zip", 8, "Invalid postal code."),
    ("address_city", 2, "City is required."),
)

_EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")

ONBOARDING_STEPS = ("plan", "applicant", "contract", "done")


def applicant_payload(form: MultiDict, plan_id: str | None) -> dict:
    payload = form_payload(form, APPLICANT_FIELDS)
    payload["document_type"] = payload.get("document_type") or "cpf"
    payload["address_country"] = payload.get("address_country") or "BRA"
    if payload.get("email"):
        payload["email"] = payload["email"].lower()
    payload = {k: v for k, v in payload.items() if v is not None}
    payload["plan_id"] = plan_id
    return payload


def validate_applicant(payload: dict) -> list[str]:
    errors = []
    if not payload.get("plan_id"):
        errors.append("Select a plan first.")
    for field, min_len, message in _MIN_LENGTHS:
        if len(payload.get(field) or "") < min_len:
            errors.append(message)
    if payload.get("document_type") not in DOCUMENT_TYPES:
        errors.append("Document type must be CPF or CNPJ.")
    if not _EMAIL_RE.match(payload.get("email") or ""):
        errors.append("Invalid email.")
    return errors


def lead_stats(leads: list[dict]) -> dict[str, int]:
    out = {"total": len(leads)}
    for s in LEAD_STATUSES:
        out[s] = sum(1 for lead in leads if lead.get("status") == s)
    return out


def filter_leads(leads: list[dict], *, status: str = "all", search: str = "") -> list[dict]:
    needle = (search or "").strip().lower()
    out = []
    for lead in leads:
        if status and status != "all" and lead.get("status") != status:
            continue
        if needle:
            haystack = " ".join(
                str(lead.get(k) or "") for k in ("name", "franchise_code", "email")
            ).lower()
            if needle not in haystack:
                continue
        out.append(lead)
    return out


def reject_reason(form: MultiDict) -> str | None:
    return clean(form.get("reason"))
