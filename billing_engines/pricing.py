"""
Contract Pricing Rules Engine.

Pure functions with deterministic behavior. No I/O.

Rewrites a reconciliation's charges according to a customer's contract
terms and adds usage (segment) fees:

- Complex agreements: per-user billing is replaced by a flat fee taken
  from the first pricing range containing the Normal-user count.  When
  no range matches, the charge stays at zero and a warning note is
  attached; the engine never guesses a tier price.
- Simple agreements (and any non-Complex type): per-user charges stand,
  unless a minimum monthly amount applies to small accounts.
- Segment usage is billed at the contract's unit price, or at
  DEFAULT_SEGMENT_PRICE when the contract does not name one.  Disabled
  segment billing replaces the usage with a single zero-count entry.

The input ReconciliationResult is never modified; a new result with the
rewritten charges is embedded in the returned PricedResult.

Usage:
    from billing_engines.pricing import (
        AgreementType,
        ContractConfig,
        PricingRange,
        SegmentUsage,
        apply_pricing_rules,
    )

    contract = ContractConfig(
        agreement_type=AgreementType.COMPLEX,
        pricing_ranges=(
            PricingRange(1, 50, Decimal("500")),
            PricingRange(51, 200, Decimal("1500")),
        ),
    )
    priced = apply_pricing_rules(contract, reconciliation, usage)
"""

from __future__ import annotations

import dataclasses
import time
from collections.abc import Iterable
from dataclasses import dataclass
from decimal import Decimal
from enum import Enum

from billing_kernel.logging_config import get_logger
from billing_engines.reconciliation.types import (
    BilledUser,
    ReconciliationResult,
)
from billing_engines.tracer import traced_engine

logger = get_logger("engines.pricing")


# ============================================================================
# Constants
# ============================================================================

DEFAULT_SEGMENT_PRICE = Decimal("0.05")
DISABLED_SEGMENT_NAME = "Segments (Disabled)"

_ZERO = Decimal("0")


class AgreementType(str, Enum):
    """Contract agreement types."""

    SIMPLE = "Simple"    # Per-user rate, optional minimum charge
    COMPLEX = "Complex"  # Flat fee by user-count range


class PricingNoteCode(str, Enum):
    """Machine-readable codes for pricing notes."""

    FIXED_TIER_APPLIED = "FIXED_TIER_APPLIED"
    NO_PRICING_TIER_MATCHED = "NO_PRICING_TIER_MATCHED"
    NO_PRICING_RANGES = "NO_PRICING_RANGES"
    MINIMUM_CHARGE_APPLIED = "MINIMUM_CHARGE_APPLIED"


class NoteSeverity(str, Enum):
    INFO = "info"
    WARNING = "warning"


# ============================================================================
# Value Objects
# ============================================================================


@dataclass(frozen=True)
class PricingRange:
    """
    One user-count bracket of a Complex agreement.

    Bounds are inclusive on both ends.
    """

    min_users: int
    max_users: int
    fixed_price: Decimal

    def __post_init__(self) -> None:
        if self.min_users < 0:
            raise ValueError("min_users must be non-negative")
        if self.max_users < self.min_users:
            raise ValueError("max_users must be >= min_users")
        if self.fixed_price < 0:
            raise ValueError("fixed_price must be non-negative")

    def contains(self, user_count: int) -> bool:
        return self.min_users <= user_count <= self.max_users

    def overlaps(self, other: PricingRange) -> bool:
        return self.min_users <= other.max_users and other.min_users <= self.max_users


@dataclass(frozen=True)
class ContractConfig:
    """
    Per-customer billing terms.

    Attributes:
        agreement_type: Simple (per-user) or Complex (range fee)
        user_rate: Full-period charge per user (Simple)
        min_users: Accounts at or below this Normal-user count get the minimum
        min_monthly_amount: Minimum monthly charge; 0 disables the floor
        pricing_ranges: Ordered user-count brackets (Complex)
        segment_enabled: False zeroes segment usage billing
        segment_price: Unit price per segment; None means the default
    """

    agreement_type: AgreementType = AgreementType.SIMPLE
    user_rate: Decimal = _ZERO
    min_users: int = 0
    min_monthly_amount: Decimal = _ZERO
    pricing_ranges: tuple[PricingRange, ...] = ()
    segment_enabled: bool = True
    segment_price: Decimal | None = None

    @property
    def is_complex(self) -> bool:
        return self.agreement_type == AgreementType.COMPLEX

    def effective_segment_price(
        self, default: Decimal = DEFAULT_SEGMENT_PRICE
    ) -> Decimal:
        return self.segment_price if self.segment_price is not None else default


@dataclass(frozen=True)
class SegmentUsage:
    """Billable usage units of one kind for the period."""

    name: str
    count: int


@dataclass(frozen=True)
class PricingNote:
    """Explanation attached to a priced result."""

    code: PricingNoteCode
    severity: NoteSeverity
    message: str


@dataclass(frozen=True)
class PricedResult:
    """
    Reconciliation with contract pricing applied.

    ``grand_total`` is always ``total_charge + segment_cost``.
    """

    reconciliation: ReconciliationResult
    segment_usage: tuple[SegmentUsage, ...]
    total_segments: int
    segment_price: Decimal
    segment_cost: Decimal
    grand_total: Decimal
    notes: tuple[PricingNote, ...] = ()
    pricing_applied: bool = False

    @property
    def total_charge(self) -> Decimal:
        return self.reconciliation.summary.total_charge

    @property
    def warnings(self) -> tuple[PricingNote, ...]:
        return tuple(n for n in self.notes if n.severity == NoteSeverity.WARNING)


# ============================================================================
# Core Pricing Functions
# ============================================================================


def gate_segment_usage(
    contract: ContractConfig,
    raw_segment_usage: Iterable[SegmentUsage],
) -> tuple[SegmentUsage, ...]:
    """Pass usage through, or replace it with a zero placeholder when disabled."""
    if not contract.segment_enabled:
        return (SegmentUsage(DISABLED_SEGMENT_NAME, 0),)
    return tuple(raw_segment_usage)


def find_pricing_range(
    ranges: Iterable[PricingRange],
    user_count: int,
) -> PricingRange | None:
    """First range in list order containing ``user_count``, or None."""
    for pricing_range in ranges:
        if pricing_range.contains(user_count):
            return pricing_range
    return None


def _zero_charges(users: tuple[BilledUser, ...]) -> tuple[BilledUser, ...]:
    return tuple(dataclasses.replace(u, charge=_ZERO) for u in users)


def _with_total(
    reconciliation: ReconciliationResult,
    total_charge: Decimal,
    zero_users: bool = False,
) -> ReconciliationResult:
    summary = dataclasses.replace(reconciliation.summary, total_charge=total_charge)
    if not zero_users:
        return dataclasses.replace(reconciliation, summary=summary)
    return dataclasses.replace(
        reconciliation,
        normal=_zero_charges(reconciliation.normal),
        new=_zero_charges(reconciliation.new),
        deactivated=_zero_charges(reconciliation.deactivated),
        secondary_program=_zero_charges(reconciliation.secondary_program),
        summary=summary,
    )


def _price_complex(
    contract: ContractConfig,
    reconciliation: ReconciliationResult,
    total_active: int,
) -> tuple[ReconciliationResult, PricingNote, bool]:
    if not contract.pricing_ranges:
        logger.warning("pricing_no_ranges_defined", extra={
            "total_active": total_active,
        })
        note = PricingNote(
            code=PricingNoteCode.NO_PRICING_RANGES,
            severity=NoteSeverity.WARNING,
            message="REASON: Agreement is Complex but no pricing ranges are defined.",
        )
        return _with_total(reconciliation, _ZERO, zero_users=True), note, False

    match = find_pricing_range(contract.pricing_ranges, total_active)
    if match is None:
        logger.warning("pricing_no_tier_matched", extra={
            "total_active": total_active,
            "range_count": len(contract.pricing_ranges),
        })
        note = PricingNote(
            code=PricingNoteCode.NO_PRICING_TIER_MATCHED,
            severity=NoteSeverity.WARNING,
            message=f"WARNING: No pricing range found for {total_active} users!",
        )
        return _with_total(reconciliation, _ZERO, zero_users=True), note, False

    note = PricingNote(
        code=PricingNoteCode.FIXED_TIER_APPLIED,
        severity=NoteSeverity.INFO,
        message=(
            f"Fixed Pricing Range Applied ({match.min_users}-{match.max_users} "
            f"users: ${match.fixed_price})"
        ),
    )
    return _with_total(reconciliation, match.fixed_price, zero_users=True), note, True


def _price_simple(
    contract: ContractConfig,
    reconciliation: ReconciliationResult,
    total_active: int,
) -> tuple[ReconciliationResult, PricingNote | None, bool]:
    minimum = contract.min_monthly_amount
    if minimum > 0 and total_active <= contract.min_users:
        logger.info("pricing_minimum_applied", extra={
            "total_active": total_active,
            "min_users": contract.min_users,
            "min_monthly_amount": str(minimum),
            "per_user_total": str(reconciliation.summary.total_charge),
        })
        note = PricingNote(
            code=PricingNoteCode.MINIMUM_CHARGE_APPLIED,
            severity=NoteSeverity.INFO,
            message=(
                f"Minimum Monthly Charge Applied ({minimum} for "
                f"<= {contract.min_users} users)"
            ),
        )
        return _with_total(reconciliation, minimum), note, True
    return reconciliation, None, False


@traced_engine("pricing", "1.0", fingerprint_fields=("contract",))
def apply_pricing_rules(
    contract: ContractConfig,
    reconciliation: ReconciliationResult,
    raw_segment_usage: Iterable[SegmentUsage] = (),
    default_segment_price: Decimal = DEFAULT_SEGMENT_PRICE,
) -> PricedResult:
    """
    Apply contract pricing to a reconciliation result.

    Pure function - no side effects, no I/O, deterministic output.

    Args:
        contract: Customer contract terms
        reconciliation: Output of the reconciliation engine (not modified)
        raw_segment_usage: Usage entries for the period
        default_segment_price: Unit price when the contract names none

    Returns:
        PricedResult with rewritten charges, segment cost and grand total
    """
    t0 = time.monotonic()
    total_active = reconciliation.summary.total_active

    logger.info("pricing_started", extra={
        "agreement_type": contract.agreement_type.value,
        "total_active": total_active,
        "per_user_total": str(reconciliation.summary.total_charge),
        "segment_enabled": contract.segment_enabled,
    })

    segment_usage = gate_segment_usage(contract, raw_segment_usage)

    if contract.is_complex:
        priced, note, pricing_applied = _price_complex(
            contract, reconciliation, total_active
        )
    else:
        priced, note, pricing_applied = _price_simple(
            contract, reconciliation, total_active
        )
    notes = (note,) if note is not None else ()

    total_segments = sum(s.count for s in segment_usage)
    segment_price = contract.effective_segment_price(default_segment_price)
    segment_cost = Decimal(total_segments) * segment_price
    grand_total = priced.summary.total_charge + segment_cost

    duration_ms = round((time.monotonic() - t0) * 1000, 2)
    logger.info("pricing_completed", extra={
        "agreement_type": contract.agreement_type.value,
        "total_charge": str(priced.summary.total_charge),
        "total_segments": total_segments,
        "segment_cost": str(segment_cost),
        "grand_total": str(grand_total),
        "pricing_applied": pricing_applied,
        "duration_ms": duration_ms,
    })

    return PricedResult(
        reconciliation=priced,
        segment_usage=segment_usage,
        total_segments=total_segments,
        segment_price=segment_price,
        segment_cost=segment_cost,
        grand_total=grand_total,
        notes=notes,
        pricing_applied=pricing_applied,
    )
