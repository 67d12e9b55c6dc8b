"""
Scopematter
Blueprint registry and shared request helpers.
"""

from email_validator import EmailNotValidError, validate_email
from flask import current_app, send_file

from scopematter.utils.errors import E, api_error


def get_cache():
    """The app-scoped CacheService built in create_app."""
    return current_app.extensions["cache"]


def check_text(data: dict, field: str, errors: dict, *, max_len: int,
               required: bool = False, min_len: int = 1) -> None:
    """Record a field error when *field* is present but not a string of
    min_len..max_len characters, or absent while required."""
    if field not in data or data[field] is None:
        if required:
            errors[field] = f"{field} is required"
        return
    value = data[field]
    if not isinstance(value, str):
        errors[field] = f"{field} must be a string"
    elif len(value.strip()) < min_len:
        errors[field] = f"{field} is required"
    elif len(value) > max_len:
        errors[field] = f"Must be ≤ {max_len} characters"


def check_choice(data: dict, field: str, errors: dict, choices, *, required: bool = False) -> None:
    if field not in data or data[field] is None:
        if required:
            errors[field] = f"{field} is required"
        return
    if data[field] not in choices:
        errors[field] = f"Must be one of: {', '.join(sorted(choices))}"


def check_bool(data: dict, field: str, errors: dict) -> None:
    if field in data and data[field] is not None and not isinstance(data[field], bool):
        errors[field] = f"{field} must be a boolean"


def check_email(data: dict, field: str, errors: dict) -> None:
    value = data.get(field)
    if value in (None, ""):
        return
    if not isinstance(value, str):
        errors[field] = "Invalid email address"
        return
    try:
        validate_email(value, check_deliverability=False)
    except EmailNotValidError:
        errors[field] = "Invalid email address"


def validation_failed(errors: dict):
    return api_error(E.VALIDATION_INVALID, "Invalid input", details=errors)


XLSX_MIMETYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"


def send_xlsx(buf, filename: str):
    return send_file(buf, download_name=filename, mimetype=XLSX_MIMETYPE, as_attachment=True)
