import re

from marshmallow import ValidationError

ISBN_PATTERN = re.compile(r"^(?:\d{9}[\dX]|\d{13})$")


def normalize_isbn(raw: str) -> str:
    if raw is None:
        raise ValidationError("ISBN is required.")
    # Drop separators, keep digits and the ISBN-10 'X' check character
    return "".join(ch for ch in str(raw).strip().upper() if ch.isdigit() or ch == "X")


def validate_and_normalize_isbn(raw: str) -> str:
    digits = normalize_isbn(raw)
    if not ISBN_PATTERN.match(digits):
        raise ValidationError("ISBN must be 10 or 13 characters (ISBN-10 or ISBN-13).")
    return digits


def parse_bool(value: str | None) -> bool | None:
    """Query-string boolean: 'true'/'1' -> True, anything else given -> False."""
    if value is None:
        return None
    return value.strip().lower() in ("1", "true", "yes")
