"""
Invoice line derivation from a priced result.

Pure functions. No I/O.

Produces the line items a caller hands to its invoicing provider: one
subscription line carrying the post-pricing total charge, then one line
per segment usage entry.  Zero-amount lines are dropped.  This is where
amounts are rounded to cents; the engines upstream keep full precision.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from enum import Enum

from billing_kernel.logging_config import get_logger
from billing_engines.pricing import PricedResult

logger = get_logger("engines.invoice_lines")

_TWO_PLACES = Decimal("0.01")


class InvoiceLineKind(str, Enum):
    """Source of an invoice line."""

    SUBSCRIPTION = "subscription"
    SEGMENT = "segment"


@dataclass(frozen=True)
class InvoiceLine:
    """One invoice line. ``amount`` is already rounded to cents."""

    kind: InvoiceLineKind
    description: str
    amount: Decimal
    quantity: int | None = None
    unit_price: Decimal | None = None


def quantize_cents(amount: Decimal) -> Decimal:
    """Round to cents, half up."""
    return amount.quantize(_TWO_PLACES, rounding=ROUND_HALF_UP)


def build_invoice_lines(priced: PricedResult) -> tuple[InvoiceLine, ...]:
    """Derive invoice lines from a priced result, dropping lines <= 0."""
    summary = priced.reconciliation.summary
    candidates = [
        InvoiceLine(
            kind=InvoiceLineKind.SUBSCRIPTION,
            description=(
                f"User Subscriptions - {summary.total_active} Normal, "
                f"{summary.total_new} New"
            ),
            amount=quantize_cents(summary.total_charge),
        )
    ]
    for usage in priced.segment_usage:
        candidates.append(InvoiceLine(
            kind=InvoiceLineKind.SEGMENT,
            description=f"{usage.name} - {usage.count} units",
            amount=quantize_cents(Decimal(usage.count) * priced.segment_price),
            quantity=usage.count,
            unit_price=priced.segment_price,
        ))

    lines = tuple(line for line in candidates if line.amount > 0)
    logger.debug("invoice_lines_built", extra={
        "candidate_count": len(candidates),
        "line_count": len(lines),
    })
    return lines


def invoice_total(lines: tuple[InvoiceLine, ...]) -> Decimal:
    return sum((line.amount for line in lines), Decimal("0"))
