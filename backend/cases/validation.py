"""
cases.validation — Field rules for case drafts and workflow inputs.

Every function collects *all* failing fields instead of stopping at the
first one, returning ``{field: [messages]}``.  The serializers reuse the
same rules so the HTTP layer and the engine never disagree.
"""

from __future__ import annotations

from typing import Any

from django.core.exceptions import ValidationError
from django.core.validators import validate_email

from .models import CaseCategory, CasePriority

Errors = dict[str, list[str]]

# field -> (min length, max length)
CASE_FIELD_LENGTHS: dict[str, tuple[int, int]] = {
    "issue_description": (50, 2000),
    "opposite_party_name": (2, 100),
    "opposite_party_phone": (10, 20),
    "opposite_party_address": (10, 200),
    "court_case_number": (5, 50),
    "court_name": (5, 100),
    "fir_number": (5, 50),
    "police_station_name": (5, 100),
}

RESPONSE_LENGTH = (10, 1000)
REASON_LENGTH = (10, 500)
STATEMENT_LENGTH = (10, 5000)

_PHONE_CHARS = set("0123456789+-() ")


def _add(errors: Errors, field: str, message: str) -> None:
    errors.setdefault(field, []).append(message)


def _check_length(errors: Errors, field: str, value: str, bounds: tuple[int, int]) -> None:
    low, high = bounds
    if not low <= len(value) <= high:
        _add(errors, field, f"Must be between {low} and {high} characters.")


def _text(data: dict[str, Any], field: str) -> str:
    value = data.get(field)
    if value is None:
        return ""
    return str(value).strip()


def _flag(data: dict[str, Any], field: str) -> bool:
    value = data.get(field, False)
    if isinstance(value, str):
        return value.strip().lower() in {"1", "true", "yes", "on"}
    return bool(value)


def validate_case_draft(data: dict[str, Any]) -> tuple[dict[str, Any], Errors]:
    """
    Validate a case creation payload.

    Returns ``(cleaned, errors)``.  ``cleaned`` only holds model fields and
    is meaningful only when ``errors`` is empty.
    """
    errors: Errors = {}
    cleaned: dict[str, Any] = {}

    category = _text(data, "category").upper()
    if not category:
        _add(errors, "category", "This field is required.")
    elif category not in CaseCategory.values:
        _add(errors, "category", f"Must be one of: {', '.join(CaseCategory.values)}.")
    cleaned["category"] = category

    priority = _text(data, "priority").upper() or CasePriority.MEDIUM
    if priority not in CasePriority.values:
        _add(errors, "priority", f"Must be one of: {', '.join(CasePriority.values)}.")
    cleaned["priority"] = priority

    for field in ("issue_description", "opposite_party_name"):
        value = _text(data, field)
        if not value:
            _add(errors, field, "This field is required.")
        else:
            _check_length(errors, field, value, CASE_FIELD_LENGTHS[field])
        cleaned[field] = value

    for field in ("opposite_party_phone", "opposite_party_address"):
        value = _text(data, field)
        if value:
            _check_length(errors, field, value, CASE_FIELD_LENGTHS[field])
        cleaned[field] = value

    phone = cleaned["opposite_party_phone"]
    if phone and not set(phone) <= _PHONE_CHARS:
        _add(errors, "opposite_party_phone", "Enter a valid phone number.")

    email = _text(data, "opposite_party_email").lower()
    if email:
        try:
            validate_email(email)
        except ValidationError:
            _add(errors, "opposite_party_email", "Enter a valid email address.")
    cleaned["opposite_party_email"] = email

    # Companion fields are required exactly when their flag is set.
    for flag, companions in (
        ("is_in_court", ("court_case_number", "court_name")),
        ("is_in_police_station", ("fir_number", "police_station_name")),
    ):
        enabled = _flag(data, flag)
        cleaned[flag] = enabled
        for field in companions:
            value = _text(data, field)
            if enabled:
                if not value:
                    _add(errors, field, f"Required when {flag} is true.")
                else:
                    _check_length(errors, field, value, CASE_FIELD_LENGTHS[field])
                cleaned[field] = value
            else:
                cleaned[field] = ""

    return cleaned, errors


def validate_optional_text(field: str, value: str | None, bounds: tuple[int, int]) -> tuple[str, Errors]:
    """Validate a free-text field that may be omitted."""
    errors: Errors = {}
    text = (value or "").strip()
    if text:
        _check_length(errors, field, text, bounds)
    return text, errors


def validate_witness_emails(identities: Any) -> tuple[list[str], Errors]:
    """
    Normalise a witness nomination payload into lower-cased e-mails.

    Accepts a list of e-mail strings or of ``{"email": ...}`` dicts.
    Repeating an address inside one request is a validation error.
    """
    errors: Errors = {}
    if not isinstance(identities, (list, tuple)) or not identities:
        _add(errors, "witness_emails", "At least one witness email is required.")
        return [], errors

    emails: list[str] = []
    for index, item in enumerate(identities):
        raw = item.get("email") if isinstance(item, dict) else item
        email = str(raw or "").strip().lower()
        try:
            validate_email(email)
        except ValidationError:
            _add(errors, "witness_emails", f"Entry {index}: enter a valid email address.")
            continue
        if email in emails:
            _add(errors, "witness_emails", f"Entry {index}: {email} is listed more than once.")
            continue
        emails.append(email)
    return emails, errors
