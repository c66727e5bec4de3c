"""
Module: billing_engines
Responsibility:
    Package entrypoint that re-exports the public symbols of the pure
    calculation engines: reconciliation, contract pricing, invoice line
    derivation, and batch summaries.

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    May only import billing_kernel (and sibling engine modules).
    MUST NOT import billing_config.

Invariants enforced:
    - Purity: engines never read clocks, files, or the network.  The
      billing period is always an explicit parameter.
    - Decimal-only arithmetic for money; charges stay unrounded until
      invoice lines are built.
    - Immutability: every stage returns new frozen result objects.

Failure modes:
    - MalformedPeriodError when a billing period token is not a valid month.
    - ValueError from value-object construction on invalid contract terms.

Audit relevance:
    reconcile() and apply_pricing_rules() are traced via ``@traced_engine``,
    emitting BILLING_ENGINE_TRACE records with an input fingerprint and
    duration.

Usage:
    from billing_engines import reconcile, apply_pricing_rules
"""

from billing_kernel.logging_config import get_logger

logger = get_logger("engines")

from billing_engines.batch import (
    BatchRunStatus,
    BatchSummary,
    BatchSummaryItem,
    CustomerAccount,
    price_account,
    summarize_batch,
)
from billing_engines.invoice_lines import (
    InvoiceLine,
    InvoiceLineKind,
    build_invoice_lines,
    invoice_total,
    quantize_cents,
)
from billing_engines.pricing import (
    DEFAULT_SEGMENT_PRICE,
    AgreementType,
    ContractConfig,
    NoteSeverity,
    PricedResult,
    PricingNote,
    PricingNoteCode,
    PricingRange,
    SegmentUsage,
    apply_pricing_rules,
    find_pricing_range,
    gate_segment_usage,
)
from billing_engines.reconciliation import (
    BilledUser,
    BillingBucket,
    LifecycleUser,
    Mismatch,
    MismatchSeverity,
    MismatchSource,
    ReconciliationResult,
    ReconciliationSummary,
    RosterUser,
    reconcile,
)

__all__ = [
    # Reconciliation
    "BilledUser",
    "BillingBucket",
    "LifecycleUser",
    "Mismatch",
    "MismatchSeverity",
    "MismatchSource",
    "ReconciliationResult",
    "ReconciliationSummary",
    "RosterUser",
    "reconcile",
    # Pricing
    "DEFAULT_SEGMENT_PRICE",
    "AgreementType",
    "ContractConfig",
    "NoteSeverity",
    "PricedResult",
    "PricingNote",
    "PricingNoteCode",
    "PricingRange",
    "SegmentUsage",
    "apply_pricing_rules",
    "find_pricing_range",
    "gate_segment_usage",
    # Invoice lines
    "InvoiceLine",
    "InvoiceLineKind",
    "build_invoice_lines",
    "invoice_total",
    "quantize_cents",
    # Batch
    "BatchRunStatus",
    "BatchSummary",
    "BatchSummaryItem",
    "CustomerAccount",
    "price_account",
    "summarize_batch",
]
