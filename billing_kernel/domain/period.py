"""
BillingPeriod -- the calendar month a reconciliation bills for.

Responsibility:
    Parse and represent a ``YYYY-MM`` billing period token and answer the
    date-window questions proration needs: first day, last day, number of
    days, and whether a given date falls inside the month.

Architecture position:
    Kernel > Domain -- pure value object, zero I/O.

Invariants enforced:
    - A BillingPeriod always describes a real calendar month (1 <= month <= 12).
    - ``start <= end`` and ``(end - start).days + 1 == days_in_month``.

Failure modes:
    - MalformedPeriodError from ``parse`` / construction for anything that
      is not a valid month.  This is the only fatal input error of the
      reconciliation engine: every charge depends on the period window.
"""

from __future__ import annotations

import calendar
import re
from dataclasses import dataclass
from datetime import date

from billing_kernel.exceptions import MalformedPeriodError

_TOKEN_PATTERN = re.compile(r"^(\d{4})-(\d{2})$")


@dataclass(frozen=True, slots=True)
class BillingPeriod:
    """
    One calendar month of billing.

    Contract:
        Constructed from a year and month, or parsed from a ``YYYY-MM``
        token.  Immutable and hashable.

    Non-goals:
        - Does NOT model fiscal calendars or partial months.
    """

    year: int
    month: int

    def __post_init__(self) -> None:
        if not (1 <= self.month <= 12):
            raise MalformedPeriodError(
                f"{self.year:04d}-{self.month:02d}", "month must be 01-12"
            )
        if not (1 <= self.year <= 9999):
            raise MalformedPeriodError(
                f"{self.year}-{self.month:02d}", "year out of range"
            )

    @classmethod
    def parse(cls, token: str) -> BillingPeriod:
        """
        Parse a ``YYYY-MM`` token.

        Leading and trailing whitespace is ignored.

        Raises:
            MalformedPeriodError: if ``token`` is not a string of the form
                ``YYYY-MM`` naming a real month.
        """
        if not isinstance(token, str):
            raise MalformedPeriodError(token, "expected a YYYY-MM string")
        match = _TOKEN_PATTERN.match(token.strip())
        if match is None:
            raise MalformedPeriodError(token)
        return cls(int(match.group(1)), int(match.group(2)))

    @classmethod
    def coerce(cls, value: BillingPeriod | str) -> BillingPeriod:
        """Return ``value`` unchanged if already a period, else parse it."""
        if isinstance(value, BillingPeriod):
            return value
        return cls.parse(value)

    @property
    def token(self) -> str:
        return f"{self.year:04d}-{self.month:02d}"

    @property
    def start(self) -> date:
        """First day of the month."""
        return date(self.year, self.month, 1)

    @property
    def end(self) -> date:
        """Last day of the month."""
        return date(self.year, self.month, self.days_in_month)

    @property
    def days_in_month(self) -> int:
        return calendar.monthrange(self.year, self.month)[1]

    def contains(self, day: date | None) -> bool:
        """True if ``day`` falls within this month. None is never contained."""
        if day is None:
            return False
        return day.year == self.year and day.month == self.month

    def __str__(self) -> str:
        return self.token
