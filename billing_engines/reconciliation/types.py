"""
Reconciliation domain types.

Pure frozen dataclasses and enums for user reconciliation.  Adapters
populate LifecycleUser / RosterUser; the engine consumes them as
immutable inputs and returns a fresh ReconciliationResult.

Architecture: billing_engines/reconciliation -- pure domain, zero I/O.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from enum import Enum
from types import MappingProxyType
from typing import Any

from billing_kernel.domain.period import BillingPeriod

ISSUE_MISSING_IN_ROSTER = "Missing in roster"
ISSUE_MISSING_IN_LIFECYCLE = "Missing in lifecycle"


# =============================================================================
# Enums
# =============================================================================


class BillingBucket(str, Enum):
    """Billing classification of a lifecycle user for one period."""

    NORMAL = "Normal"            # Billed the full period rate
    NEW = "New"                  # Activated in period, prorated
    DEACTIVATED = "Deactivated"  # Deactivated in period, prorated


class MismatchSeverity(str, Enum):
    """Severity of a cross-dataset mismatch."""

    BLOCKER = "Blocker"


class MismatchSource(str, Enum):
    """Which dataset is missing the user."""

    ROSTER = "roster"
    LIFECYCLE = "lifecycle"


# =============================================================================
# Input types (populated by adapters, consumed by engine)
# =============================================================================


@dataclass(frozen=True)
class LifecycleUser:
    """Source-of-record entry for a user's subscription start and end.

    Dates may arrive as raw strings in any supported format, as ``date``
    objects, or be missing entirely; the engine parses them.
    """

    identity: str
    activation_date: str | date | None = None
    deactivation_date: str | date | None = None
    active: bool = False
    display_name: str | None = None
    attributes: Mapping[str, Any] = field(
        default_factory=lambda: MappingProxyType({}), compare=False
    )


@dataclass(frozen=True)
class RosterUser:
    """Entry in the independent authorization roster.

    ``secondary_program_ids`` lists the extra (usage-only) programs the
    user is enrolled in; any entry makes the user a secondary-program user.
    """

    identity: str
    display_name: str | None = None
    secondary_program_ids: tuple[str, ...] = ()
    attributes: Mapping[str, Any] = field(
        default_factory=lambda: MappingProxyType({}), compare=False
    )

    @property
    def is_secondary_program(self) -> bool:
        return any(pid.strip() for pid in self.secondary_program_ids)


# =============================================================================
# Output types
# =============================================================================


@dataclass(frozen=True)
class BilledUser:
    """A lifecycle user assigned to a billing bucket with its charge.

    ``days_active`` is None for Normal users (billed the full period).
    """

    identity: str
    user: LifecycleUser
    bucket: BillingBucket
    charge: Decimal
    days_active: int | None = None
    is_secondary_program: bool = False


@dataclass(frozen=True)
class Mismatch:
    """A user recorded by one dataset but not the other."""

    identity: str
    issue: str
    severity: MismatchSeverity
    missing_from: MismatchSource
    record: LifecycleUser | RosterUser


@dataclass(frozen=True)
class ReconciliationSummary:
    """Per-bucket counts and the total charge."""

    total_active: int = 0
    total_new: int = 0
    total_deactivated: int = 0
    total_mismatches: int = 0
    total_test_users: int = 0
    total_secondary_program: int = 0
    total_dormant: int = 0
    total_charge: Decimal = Decimal("0")

    @property
    def total_billed(self) -> int:
        return self.total_active + self.total_new + self.total_deactivated

    @property
    def total_prorated(self) -> int:
        return self.total_new + self.total_deactivated


@dataclass(frozen=True)
class ReconciliationResult:
    """Complete result of reconciling one customer for one period.

    ``secondary_program`` repeats the billed users whose roster record is
    flagged as a secondary-program member.  ``dormant`` holds the
    lifecycle users that fell into no bucket; they carry no charge.
    """

    billing_period: BillingPeriod
    user_rate: Decimal
    normal: tuple[BilledUser, ...] = ()
    new: tuple[BilledUser, ...] = ()
    deactivated: tuple[BilledUser, ...] = ()
    test_users: tuple[LifecycleUser, ...] = ()
    mismatches: tuple[Mismatch, ...] = ()
    secondary_program: tuple[BilledUser, ...] = ()
    dormant: tuple[LifecycleUser, ...] = ()
    summary: ReconciliationSummary = field(default_factory=ReconciliationSummary)

    @property
    def billed_users(self) -> tuple[BilledUser, ...]:
        """All billed users in bucket order: normal, new, deactivated."""
        return self.normal + self.new + self.deactivated

    @property
    def prorated_amount(self) -> Decimal:
        """Sum of charges for New and Deactivated users."""
        return sum((u.charge for u in self.new + self.deactivated), Decimal("0"))

    @property
    def has_blockers(self) -> bool:
        return any(m.severity == MismatchSeverity.BLOCKER for m in self.mismatches)
