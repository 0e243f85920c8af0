import re
from typing import Optional

from nefes_backend.core.errors import InvalidPhoneError, InvalidStatusError, MissingFieldError
from nefes_backend.models.quote import QuoteDraft, QuoteStatus, QuoteSubmission

# Turkish mobile: 05 followed by nine digits
PHONE_PATTERN = re.compile(r"05[0-9]{9}")
WHITESPACE = re.compile(r"\s+")

REQUIRED_FIELDS = {
    "name": "name",
    "phone": "phone",
    "service": "service",
    "origin": "from",
    "destination": "to",
}


def _clean(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    value = value.strip()
    return value or None


def normalize_phone(raw: str) -> str:
    """Strip all whitespace and check the result against the mobile number format."""
    phone = WHITESPACE.sub("", raw)
    if not PHONE_PATTERN.fullmatch(phone):
        raise InvalidPhoneError()
    return phone


def validate_submission(payload: QuoteSubmission) -> QuoteDraft:
    """
    Turn a raw form submission into a normalized draft.

    Raises MissingFieldError when any of name, phone, service, from or to is
    absent or blank, and InvalidPhoneError when the phone does not match.
    """
    values = {field: _clean(getattr(payload, field)) for field in REQUIRED_FIELDS}
    missing = [wire for field, wire in REQUIRED_FIELDS.items() if values[field] is None]
    if missing:
        raise MissingFieldError(missing)

    return QuoteDraft(
        name=values["name"],
        phone=normalize_phone(values["phone"]),
        email=_clean(payload.email),
        service=values["service"],
        origin=values["origin"],
        destination=values["destination"],
        message=_clean(payload.message),
    )


def parse_status(value: Optional[str]) -> QuoteStatus:
    # Any status may follow any other; only membership is checked.
    try:
        return QuoteStatus(value)
    except ValueError:
        raise InvalidStatusError()
