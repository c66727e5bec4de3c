"""
billing_engines.batch -- multi-customer billing summary for one period.

Runs reconciliation and pricing for every account of a batch and rolls
the results up into one summary.  The period is parsed once up front: a
malformed period aborts the whole batch, since no account could be
billed.  A failure inside one account is logged and recorded on that
account's item, and the remaining accounts still run.

Architecture: engines -- pure, zero I/O.  Callers fetch the account data
(lifecycle users, roster, usage, contract) before calling.

Invariants enforced:
    - ``grand_total`` is the sum of ``total`` over successful items.
    - Items are returned in input order, one per account.
"""

from __future__ import annotations

import time
from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from decimal import Decimal
from enum import Enum

from billing_kernel.domain.period import BillingPeriod
from billing_kernel.logging_config import LogContext, get_logger
from billing_engines.pricing import (
    ContractConfig,
    PricedResult,
    SegmentUsage,
    apply_pricing_rules,
)
from billing_engines.reconciliation import LifecycleUser, RosterUser, reconcile
from billing_engines.tracer import compute_input_fingerprint

logger = get_logger("engines.batch")


class BatchRunStatus(str, Enum):
    """Outcome of a batch run."""

    COMPLETED = "completed"  # Every account priced
    PARTIALLY_COMPLETED = "partially_completed"  # Some accounts failed
    FAILED = "failed"  # No account priced


@dataclass(frozen=True)
class CustomerAccount:
    """Everything needed to bill one customer for the batch period."""

    customer_id: str
    name: str
    contract: ContractConfig
    lifecycle_users: tuple[LifecycleUser, ...] = ()
    roster_users: tuple[RosterUser, ...] = ()
    segment_usage: tuple[SegmentUsage, ...] = ()
    test_identities: tuple[str, ...] = ()


@dataclass(frozen=True)
class BatchSummaryItem:
    """One customer's line in the batch summary.

    ``error`` is set, and all amounts are zero, when the account failed.
    """

    customer_id: str
    name: str
    total_users: int = 0
    prorated_users: int = 0
    segments: int = 0
    user_rate: Decimal = Decimal("0")
    prorated_amount: Decimal = Decimal("0")
    total: Decimal = Decimal("0")
    error: str | None = None
    priced: PricedResult | None = None

    @property
    def succeeded(self) -> bool:
        return self.error is None


@dataclass(frozen=True)
class BatchSummary:
    """Roll-up of a batch run."""

    billing_period: BillingPeriod
    items: tuple[BatchSummaryItem, ...]
    grand_total: Decimal
    status: BatchRunStatus
    run_id: str = ""

    @property
    def failed_items(self) -> tuple[BatchSummaryItem, ...]:
        return tuple(i for i in self.items if not i.succeeded)


def price_account(account: CustomerAccount, period: BillingPeriod) -> PricedResult:
    """Reconcile and price one account."""
    reconciliation = reconcile(
        account.lifecycle_users,
        account.roster_users,
        period,
        account.contract.user_rate,
        account.test_identities,
    )
    return apply_pricing_rules(account.contract, reconciliation, account.segment_usage)


def _summarize_account(account: CustomerAccount, period: BillingPeriod) -> BatchSummaryItem:
    priced = price_account(account, period)
    summary = priced.reconciliation.summary
    return BatchSummaryItem(
        customer_id=account.customer_id,
        name=account.name,
        total_users=summary.total_active,
        prorated_users=summary.total_prorated,
        segments=priced.total_segments,
        user_rate=account.contract.user_rate,
        prorated_amount=priced.reconciliation.prorated_amount,
        total=priced.grand_total,
        priced=priced,
    )


def default_run_id(period: BillingPeriod, customer_ids: Sequence[str]) -> str:
    """Deterministic run id: the period token plus a fingerprint of the accounts."""
    fingerprint = compute_input_fingerprint(
        ("billing_period", "customer_ids"),
        {"billing_period": period, "customer_ids": tuple(customer_ids)},
    )
    return f"{period.token}-{fingerprint}"


def _derive_status(items: Sequence[BatchSummaryItem]) -> BatchRunStatus:
    failures = sum(1 for i in items if not i.succeeded)
    if failures == 0:
        return BatchRunStatus.COMPLETED
    if failures == len(items):
        return BatchRunStatus.FAILED
    return BatchRunStatus.PARTIALLY_COMPLETED


def summarize_batch(
    accounts: Iterable[CustomerAccount],
    billing_period: BillingPeriod | str,
    run_id: str | None = None,
) -> BatchSummary:
    """
    Bill every account for ``billing_period`` and summarize.

    Every record logged during the run carries ``run_id``.  When the
    caller passes none, it is derived from the period and the account
    ids, so re-running the same batch yields the same id.

    Raises:
        MalformedPeriodError: If ``billing_period`` is not a valid month
    """
    t0 = time.monotonic()
    period = BillingPeriod.coerce(billing_period)
    accounts = tuple(accounts)
    if run_id is None:
        run_id = default_run_id(period, [a.customer_id for a in accounts])
    items: list[BatchSummaryItem] = []

    with LogContext.bind(run_id=run_id, billing_period=period.token):
        for account in accounts:
            with LogContext.bind(customer_id=account.customer_id):
                try:
                    item = _summarize_account(account, period)
                except Exception as exc:
                    logger.warning(
                        "batch_account_failed",
                        extra={"account_name": account.name},
                        exc_info=True,
                    )
                    item = BatchSummaryItem(
                        customer_id=account.customer_id,
                        name=f"{account.name} (Error)",
                        error=str(exc),
                    )
            items.append(item)

        grand_total = sum((i.total for i in items if i.succeeded), Decimal("0"))
        status = _derive_status(items) if items else BatchRunStatus.COMPLETED

        logger.info("batch_summary_completed", extra={
            "account_count": len(items),
            "failed_count": sum(1 for i in items if not i.succeeded),
            "grand_total": str(grand_total),
            "status": status.value,
            "duration_ms": round((time.monotonic() - t0) * 1000, 2),
        })

    return BatchSummary(
        billing_period=period,
        items=tuple(items),
        grand_total=grand_total,
        status=status,
        run_id=run_id,
    )
