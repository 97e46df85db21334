from __future__ import annotations

import re

from werkzeug.datastructures import MultiDict

from app.console.utils import clean, form_bool

REQUIRED_FIELDS = ("legal_name", "trade_name", "tax_id", "tax_id_type", "address_country")

TEXT_FIELDS = (
    "legal_name",
    "trade_name",
    "tax_id",
    "tax_id_type",
    "state_registration",
    "municipal_registration",
    "address_street",
    "address_number",
    "address_complement",
    "address_neighborhood",
    "address_city",
    "address_state",
    "address_zip",
    "address_country",
    "bank_name",
    "bank_code",
    "bank_agency",
    "bank_account",
    "bank_account_type",
    "bank_pix_key",
    "bank_swift",
    "bank_iban",
    "tax_regime",
    "invoice_series",
    "contact_email",
    "contact_phone",
    "contact_whatsapp",
    "support_email",
    "commercial_email",
    "website",
    "social_linkedin",
    "social_instagram",
    "social_twitter",
    "logo_url",
    "primary_color",
    "secondary_color",
)

EMAIL_FIELDS = ("contact_email", "support_email", "commercial_email")
COLOR_FIELDS = ("primary_color", "secondary_color")
TAX_ID_TYPES = ("cnpj", "cpf", "ein", "vat", "other")

_EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
_COLOR_RE = re.compile(r"^#[0-9a-fA-F]{6}$")

SECTIONS = (
    ("Company", ("legal_name", "trade_name", "tax_id", "tax_id_type", "state_registration", "municipal_registration")),
    ("Address", ("address_street", "address_number", "address_complement", "address_neighborhood",
                 "address_city", "address_state", "address_zip", "address_country")),
    ("Banking", ("bank_name", "bank_code", "bank_agency", "bank_account", "bank_account_type",
                 "bank_pix_key", "bank_swift", "bank_iban")),
    ("Tax & invoicing", ("tax_regime", "invoice_series")),
    ("Contact", ("contact_email", "contact_phone", "contact_whatsapp", "support_email", "commercial_email")),
    ("Web & social", ("website", "social_linkedin", "social_instagram", "social_twitter")),
    ("Branding", ("logo_url", "primary_color", "secondary_color")),
)


def settings_payload(form: MultiDict) -> dict:
    """Form → platform payload. Optional fields are sent as empty strings, like the platform stores them."""
    payload: dict[str, object] = {f: clean(form.get(f)) or "" for f in TEXT_FIELDS}
    payload["tax_id_type"] = (payload["tax_id_type"] or "cnpj").lower()
    payload["address_country"] = (payload["address_country"] or "BR").upper()
    payload["nfse_enabled"] = form_bool(form, "nfse_enabled")
    return payload


def validate_settings_payload(payload: dict) -> list[str]:
    errors = []
    for f in REQUIRED_FIELDS:
        if not payload.get(f):
            errors.append(f"{f.replace('_', ' ').capitalize()} is required.")
    if payload.get("tax_id_type") and payload["tax_id_type"] not in TAX_ID_TYPES:
        errors.append(f"Invalid tax id type. Must be one of: {', '.join(TAX_ID_TYPES)}")
    for f in EMAIL_FIELDS:
        v = payload.get(f)
        if v and not _EMAIL_RE.match(str(v)):
            errors.append(f"{f.replace('_', ' ').capitalize()} is not a valid email.")
    for f in COLOR_FIELDS:
        v = payload.get(f)
        if v and not _COLOR_RE.match(str(v)):
            errors.append(f"{f.replace('_', ' ').capitalize()} must be a hex color like #1A2B3C.")
    return errors


def save_method(current: dict | None) -> str:
    """Existing settings (with an id) are replaced with PUT; first save creates with POST."""
    return "PUT" if isinstance(current, dict) and current.get("id") else "POST"
