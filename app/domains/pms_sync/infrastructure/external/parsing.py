"""Helpers shared by the PMS payload mappers.

PMS payloads are loosely typed: ids arrive as ints or strings, dates in
several formats and optional objects may be missing entirely. These helpers
never raise on bad input; unusable values become None.
"""

from datetime import UTC, date, datetime
from typing import Any

_DATETIME_FORMATS = (
    "%Y-%m-%d %H:%M:%S",
    "%Y-%m-%d %H:%M",
    "%Y-%m-%d",
)


def parse_datetime(value: Any) -> datetime | None:
    """Parse a PMS timestamp into an aware datetime (naive values are UTC)."""
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, date):
        parsed = datetime(value.year, value.month, value.day)
    else:
        text = str(value).strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        try:
            parsed = datetime.fromisoformat(text)
        except ValueError:
            parsed = None
            for fmt in _DATETIME_FORMATS:
                try:
                    parsed = datetime.strptime(text, fmt)
                    break
                except ValueError:
                    continue
            if parsed is None:
                return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=UTC)
    return parsed


def parse_date(value: Any) -> date | None:
    """Parse a calendar date (date of birth)."""
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    try:
        return date.fromisoformat(str(value).strip()[:10])
    except ValueError:
        return None


def as_id(value: Any) -> str | None:
    """Normalize an id to a non-empty string."""
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def as_int(value: Any) -> int | None:
    if value is None or value == "":
        return None
    try:
        return int(float(value))
    except (TypeError, ValueError):
        return None


def last_path_segment(url: Any) -> str | None:
    """Id at the end of a resource link such as ``.../patients/123``."""
    if not url:
        return None
    return as_id(str(url).rstrip("/").split("/")[-1])


def link_id(resource: Any) -> str | None:
    """Id from a ``{"links": {"self": url}}`` reference object."""
    if not isinstance(resource, dict):
        return None
    links = resource.get("links") or {}
    return last_path_segment(links.get("self"))


def clean(value: Any) -> str | None:
    """Strip a text field, mapping blanks to None."""
    if value is None:
        return None
    text = str(value).strip()
    return text or None
