"""
Reconciliation Engine -- classify and prorate subscription users.

Pure functions with deterministic behavior. No I/O.

Merges the lifecycle record (when each user's subscription started and
ended) with the authorization roster (who is allowed to use the product)
for one billing period.  Every lifecycle user lands in at most one billing
bucket; identities known to only one side are reported as Blocker
mismatches.

Bucket rules, evaluated in order for each non-test lifecycle user:

    Normal       active, not activated this period, roster counterpart exists
                 charge = user_rate
    New          activated this period (roster not required)
                 days = (period_end - activation) + 1
    Deactivated  deactivated this period (roster not required)
                 days = (deactivation - period_start) + 1
    (dormant)    none of the above: no bucket, no charge

Prorated charge = days / days_in_month * user_rate, unrounded.

Independently, an active user not activated this period with no roster
counterpart is reported as "Missing in roster".  Roster users with no
lifecycle record are reported as "Missing in lifecycle".  Test identities
are removed before any of this and never billed or flagged.

Usage:
    from billing_engines.reconciliation import reconcile

    result = reconcile(
        lifecycle_users=lifecycle,
        roster_users=roster,
        billing_period="2025-03",
        user_rate=Decimal("15"),
        test_identities=["qa@example.com"],
    )
"""

from __future__ import annotations

import time
from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal

from billing_kernel.domain.dates import parse_flexible_date
from billing_kernel.domain.identity import normalize_identity, normalize_identity_set
from billing_kernel.domain.period import BillingPeriod
from billing_kernel.logging_config import get_logger
from billing_engines.tracer import traced_engine

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

logger = get_logger("engines.reconciliation.engine")


def _to_decimal(value: Decimal | int | float | str) -> Decimal:
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def index_by_identity(users: Iterable[LifecycleUser | RosterUser]) -> dict:
    """Map normalized identity -> user.

    Users with an empty identity are skipped.  Later users replace earlier
    ones with the same key.
    """
    index: dict = {}
    for user in users:
        key = normalize_identity(user.identity)
        if key:
            index[key] = user
    return index


def prorated_charge(days_active: int, days_in_month: int, user_rate: Decimal) -> Decimal:
    """Charge for ``days_active`` days of a ``days_in_month`` period."""
    return Decimal(days_active) / Decimal(days_in_month) * user_rate


@dataclass
class _Accumulator:
    """Mutable working state for one reconcile call; frozen at the end."""

    normal: list[BilledUser] = field(default_factory=list)
    new: list[BilledUser] = field(default_factory=list)
    deactivated: list[BilledUser] = field(default_factory=list)
    test_users: list[LifecycleUser] = field(default_factory=list)
    mismatches: list[Mismatch] = field(default_factory=list)
    secondary_program: list[BilledUser] = field(default_factory=list)
    dormant: list[LifecycleUser] = field(default_factory=list)
    total_charge: Decimal = Decimal("0")

    def bill(self, billed: BilledUser) -> None:
        if billed.bucket == BillingBucket.NORMAL:
            self.normal.append(billed)
        elif billed.bucket == BillingBucket.NEW:
            self.new.append(billed)
        else:
            self.deactivated.append(billed)
        if billed.is_secondary_program:
            self.secondary_program.append(billed)
        self.total_charge += billed.charge


def _parse_user_date(user: LifecycleUser, field_name: str, raw) -> date | None:
    parsed = parse_flexible_date(raw)
    if parsed is None and raw is not None and str(raw).strip():
        logger.warning("reconciliation_date_unparseable", extra={
            "identity": user.identity,
            "field": field_name,
            "raw_value": str(raw),
        })
    return parsed


def classify_user(
    key: str,
    user: LifecycleUser,
    roster_user: RosterUser | None,
    period: BillingPeriod,
    user_rate: Decimal,
    activation: date | None,
    deactivation: date | None,
) -> BilledUser | None:
    """Assign one lifecycle user to a billing bucket.

    ``activation`` and ``deactivation`` are the already-parsed dates.
    Returns None when the user belongs to no bucket.
    """
    activated_in_month = period.contains(activation)
    deactivated_in_month = period.contains(deactivation)
    is_secondary = roster_user is not None and roster_user.is_secondary_program

    if user.active and not activated_in_month and roster_user is not None:
        return BilledUser(
            identity=key,
            user=user,
            bucket=BillingBucket.NORMAL,
            charge=user_rate,
            is_secondary_program=is_secondary,
        )

    if activated_in_month:
        days_active = (period.end - activation).days + 1
        return BilledUser(
            identity=key,
            user=user,
            bucket=BillingBucket.NEW,
            charge=prorated_charge(days_active, period.days_in_month, user_rate),
            days_active=days_active,
            is_secondary_program=is_secondary,
        )

    if deactivated_in_month:
        days_active = (deactivation - period.start).days + 1
        return BilledUser(
            identity=key,
            user=user,
            bucket=BillingBucket.DEACTIVATED,
            charge=prorated_charge(days_active, period.days_in_month, user_rate),
            days_active=days_active,
            is_secondary_program=is_secondary,
        )

    return None


def _is_missing_in_roster(
    user: LifecycleUser,
    roster_user: RosterUser | None,
    period: BillingPeriod,
    activation: date | None,
) -> bool:
    if not user.active or roster_user is not None:
        return False
    return not period.contains(activation)


@traced_engine(
    "reconciliation", "1.0",
    fingerprint_fields=("billing_period", "user_rate", "test_identities"),
)
def reconcile(
    lifecycle_users: Iterable[LifecycleUser],
    roster_users: Iterable[RosterUser],
    billing_period: BillingPeriod | str,
    user_rate: Decimal | int | str,
    test_identities: Iterable[str] = (),
) -> ReconciliationResult:
    """
    Reconcile lifecycle users against the roster for one billing period.

    Pure function - no side effects, no I/O, deterministic output.

    Args:
        lifecycle_users: Lifecycle records for one customer
        roster_users: Roster records for the same customer
        billing_period: ``YYYY-MM`` token or BillingPeriod
        user_rate: Full-period charge per user
        test_identities: Identities excluded from billing and mismatch checks

    Returns:
        A new ReconciliationResult

    Raises:
        MalformedPeriodError: If ``billing_period`` is not a valid month
    """
    t0 = time.monotonic()
    period = BillingPeriod.coerce(billing_period)
    rate = _to_decimal(user_rate)
    test_keys = normalize_identity_set(test_identities)

    roster_index: dict[str, RosterUser] = index_by_identity(roster_users)
    lifecycle_index: dict[str, LifecycleUser] = index_by_identity(lifecycle_users)

    logger.info("reconciliation_started", extra={
        "billing_period": period.token,
        "user_rate": str(rate),
        "lifecycle_count": len(lifecycle_index),
        "roster_count": len(roster_index),
        "test_identity_count": len(test_keys),
    })

    acc = _Accumulator()

    for key, user in lifecycle_index.items():
        if key in test_keys:
            acc.test_users.append(user)
            continue

        roster_user = roster_index.get(key)
        activation = _parse_user_date(user, "activation_date", user.activation_date)
        deactivation = _parse_user_date(
            user, "deactivation_date", user.deactivation_date
        )
        billed = classify_user(
            key, user, roster_user, period, rate, activation, deactivation
        )
        if billed is not None:
            acc.bill(billed)
        else:
            acc.dormant.append(user)
            logger.info("reconciliation_user_dormant", extra={
                "identity": key,
                "active": user.active,
            })

        if _is_missing_in_roster(user, roster_user, period, activation):
            acc.mismatches.append(Mismatch(
                identity=key,
                issue=ISSUE_MISSING_IN_ROSTER,
                severity=MismatchSeverity.BLOCKER,
                missing_from=MismatchSource.ROSTER,
                record=user,
            ))

    for key, roster_user in roster_index.items():
        if key in test_keys or key in lifecycle_index:
            continue
        acc.mismatches.append(Mismatch(
            identity=key,
            issue=ISSUE_MISSING_IN_LIFECYCLE,
            severity=MismatchSeverity.BLOCKER,
            missing_from=MismatchSource.LIFECYCLE,
            record=roster_user,
        ))

    summary = ReconciliationSummary(
        total_active=len(acc.normal),
        total_new=len(acc.new),
        total_deactivated=len(acc.deactivated),
        total_mismatches=len(acc.mismatches),
        total_test_users=len(acc.test_users),
        total_secondary_program=len(acc.secondary_program),
        total_dormant=len(acc.dormant),
        total_charge=acc.total_charge,
    )

    if summary.total_mismatches:
        logger.warning("reconciliation_mismatches_found", extra={
            "billing_period": period.token,
            "total_mismatches": summary.total_mismatches,
        })

    duration_ms = round((time.monotonic() - t0) * 1000, 2)
    logger.info("reconciliation_completed", extra={
        "billing_period": period.token,
        "total_active": summary.total_active,
        "total_new": summary.total_new,
        "total_deactivated": summary.total_deactivated,
        "total_test_users": summary.total_test_users,
        "total_dormant": summary.total_dormant,
        "total_charge": str(summary.total_charge),
        "duration_ms": duration_ms,
    })

    return ReconciliationResult(
        billing_period=period,
        user_rate=rate,
        normal=tuple(acc.normal),
        new=tuple(acc.new),
        deactivated=tuple(acc.deactivated),
        test_users=tuple(acc.test_users),
        mismatches=tuple(acc.mismatches),
        secondary_program=tuple(acc.secondary_program),
        dormant=tuple(acc.dormant),
        summary=summary,
    )
