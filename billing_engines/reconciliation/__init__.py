"""
Reconciliation - lifecycle vs. roster user reconciliation.

Pure domain types plus the reconcile() engine.
"""

from billing_kernel.logging_config import get_logger

logger = get_logger("engines.reconciliation")

from billing_engines.reconciliation.types import (
    ISSUE_MISSING_IN_LIFECYCLE,
    ISSUE_MISSING_IN_ROSTER,
    BilledUser,
    BillingBucket,
    LifecycleUser,
    Mismatch,
    MismatchSeverity,
    MismatchSource,
    ReconciliationResult,
    ReconciliationSummary,
    RosterUser,
)

from billing_engines.reconciliation.engine import (
    classify_user,
    index_by_identity,
    prorated_charge,
    reconcile,
)

__all__ = [
    # Domain types
    "BilledUser",
    "BillingBucket",
    "LifecycleUser",
    "Mismatch",
    "MismatchSeverity",
    "MismatchSource",
    "ReconciliationResult",
    "ReconciliationSummary",
    "RosterUser",
    "ISSUE_MISSING_IN_LIFECYCLE",
    "ISSUE_MISSING_IN_ROSTER",
    # Engine
    "classify_user",
    "index_by_identity",
    "prorated_charge",
    "reconcile",
]
