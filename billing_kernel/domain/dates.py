"""
Flexible date parsing for upstream user records.

Upstream record systems do not agree on a date format: the lifecycle
store emits ISO 8601, spreadsheets emit US-style month/day/year.  This
module tries each supported format in a fixed order.

Order:
    1. ISO 8601 date (``2025-03-16``) or datetime (``2025-03-16T09:30:00Z``)
    2. ``MM/DD/YYYY`` (``03/16/2025``)
    3. ``M/D/YYYY`` (``3/16/2025``)

``parse_flexible_date`` treats an unparseable value as absent (None);
``parse_date_strict`` raises AmbiguousDateError instead.
"""

from __future__ import annotations

from datetime import date, datetime

from billing_kernel.exceptions import AmbiguousDateError
from billing_kernel.logging_config import get_logger

logger = get_logger("domain.dates")

# %m and %d accept unpadded values, so this also covers M/D/YYYY.
_US_FORMATS: tuple[str, ...] = ("%m/%d/%Y",)
_FORMAT_LABELS: tuple[str, ...] = ("MM/DD/YYYY", "M/D/YYYY")


def _parse_iso(text: str) -> date | None:
    try:
        return date.fromisoformat(text)
    except ValueError:
        pass
    try:
        return datetime.fromisoformat(text).date()
    except ValueError:
        return None


def _parse_us(text: str) -> date | None:
    for fmt in _US_FORMATS:
        try:
            return datetime.strptime(text, fmt).date()
        except ValueError:
            continue
    return None


def parse_date_strict(value: str | date) -> date:
    """
    Parse ``value`` with the supported formats.

    ``date`` and ``datetime`` instances pass through (datetimes are
    truncated to their calendar date).

    Raises:
        AmbiguousDateError: if ``value`` is empty or matches no format.
    """
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if not isinstance(value, str) or not value.strip():
        raise AmbiguousDateError(value, _FORMAT_LABELS)

    text = value.strip()
    parsed = _parse_iso(text)
    if parsed is None:
        parsed = _parse_us(text)
    if parsed is None:
        raise AmbiguousDateError(value, _FORMAT_LABELS)
    return parsed


def parse_flexible_date(value: str | date | None) -> date | None:
    """Parse ``value`` or return None when it is missing or unparseable."""
    if value is None:
        return None
    if isinstance(value, str) and not value.strip():
        return None
    try:
        return parse_date_strict(value)
    except AmbiguousDateError as exc:
        logger.debug("date_unparseable", extra={
            "raw_value": str(exc.value),
        })
        return None
