"""
Pure domain layer.

Value objects and parsing helpers with NO dependencies on I/O, clocks,
or persistence.  Everything here is immutable and deterministic.
"""

from billing_kernel.domain.dates import parse_date_strict, parse_flexible_date
from billing_kernel.domain.identity import (
    normalize_identity,
    normalize_identity_set,
)
from billing_kernel.domain.period import BillingPeriod

__all__ = [
    "BillingPeriod",
    "normalize_identity",
    "normalize_identity_set",
    "parse_date_strict",
    "parse_flexible_date",
]
