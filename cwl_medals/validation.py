from __future__ import annotations

import re
from datetime import UTC, datetime


class InvalidValueError(ValueError):
    """Base exception for validation failures."""


class InvalidMonthKeyError(InvalidValueError):
    """Raised when a month key is not in YYYY-MM form."""


_TAG_PATTERN = re.compile(r"#[A-Z0-9]+$")
_WHITESPACE = re.compile(r"\s+")
MONTH_KEY_PATTERN = re.compile(r"^\d{4}-\d{2}$")
_COMPACT_TIMESTAMP = re.compile(r"^(\d{4})(\d{2})(\d{2})T")


def normalize_tag(tag: str) -> str:
    tag = _WHITESPACE.sub("", tag).upper()
    if not tag:
        raise InvalidValueError("Tag cannot be empty")
    if not tag.startswith("#"):
        tag = "#" + tag
    if not _TAG_PATTERN.match(tag):
        raise InvalidValueError(f"Invalid tag: {tag}")
    return tag


def tags_match(left: str | None, right: str | None) -> bool:
    if not left or not right:
        return False
    return left.strip().upper() == right.strip().upper()


def validate_month_key(raw: str) -> str:
    value = raw.strip()
    if not MONTH_KEY_PATTERN.match(value):
        raise InvalidMonthKeyError(
            "Invalid month format. Please use YYYY-MM format (e.g., 2025-12)."
        )
    month = int(value[5:])
    if month < 1 or month > 12:
        raise InvalidMonthKeyError(f"Month {month} is outside the range 01-12")
    return value


def month_key_from_timestamp(raw: str | None) -> str | None:
    """Return ``YYYY-MM`` for an API timestamp such as ``20251203T081925.000Z``."""
    if not raw:
        return None
    match = _COMPACT_TIMESTAMP.match(raw)
    if match:
        return f"{match.group(1)}-{match.group(2)}"
    try:
        parsed = datetime.fromisoformat(raw.replace("Z", "+00:00"))
    except ValueError:
        return None
    return month_key_for(parsed)


def month_key_for(moment: datetime) -> str:
    return f"{moment.year:04d}-{moment.month:02d}"


def current_month_key(today: datetime | None = None) -> str:
    return month_key_for(today or datetime.now(UTC))


def format_month_label(month_key: str) -> str:
    """Render ``2025-12`` as ``December 2025``."""
    parsed = datetime.strptime(month_key, "%Y-%m")
    return parsed.strftime("%B %Y")


__all__ = [
    "InvalidValueError",
    "InvalidMonthKeyError",
    "MONTH_KEY_PATTERN",
    "normalize_tag",
    "tags_match",
    "validate_month_key",
    "month_key_from_timestamp",
    "month_key_for",
    "current_month_key",
    "format_month_label",
]
