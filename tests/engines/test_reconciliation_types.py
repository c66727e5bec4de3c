"""
Tests for reconciliation domain types.

Covers LifecycleUser, RosterUser, BilledUser, ReconciliationSummary,
ReconciliationResult, and enums.
"""

import dataclasses
from decimal import Decimal

import pytest

from billing_kernel.domain.period import BillingPeriod
from billing_engines.reconciliation.types import (
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


# =============================================================================
# Enums
# =============================================================================


class TestEnums:
    def test_bucket_values(self):
        assert BillingBucket.NORMAL.value == "Normal"
        assert BillingBucket.NEW.value == "New"
        assert BillingBucket.DEACTIVATED.value == "Deactivated"

    def test_blocker_is_only_severity(self):
        assert [s.value for s in MismatchSeverity] == ["Blocker"]


# =============================================================================
# Inputs
# =============================================================================


class TestLifecycleUser:
    def test_defaults(self):
        user = LifecycleUser(identity="a@b.com")
        assert user.activation_date is None
        assert user.deactivation_date is None
        assert user.active is False

    def test_frozen(self):
        user = LifecycleUser(identity="a@b.com")
        with pytest.raises(dataclasses.FrozenInstanceError):
            user.active = True  # type: ignore[misc]

    def test_attributes_not_compared(self):
        a = LifecycleUser(identity="a@b.com", attributes={"row": 1})
        b = LifecycleUser(identity="a@b.com", attributes={"row": 2})
        assert a == b

    @pytest.mark.parametrize("cls", [LifecycleUser, RosterUser])
    def test_attributes_default_built_per_instance(self, cls):
        # A shared unhashable default is rejected by dataclasses on 3.11
        attributes = next(f for f in dataclasses.fields(cls) if f.name == "attributes")
        assert attributes.default is dataclasses.MISSING
        assert attributes.default_factory is not dataclasses.MISSING

    def test_default_attributes_empty_and_read_only(self):
        user = LifecycleUser(identity="a@b.com")
        assert user.attributes == {}
        with pytest.raises(TypeError):
            user.attributes["row"] = 1  # type: ignore[index]


class TestRosterUser:
    def test_secondary_program_flag(self):
        assert RosterUser("a@b.com", secondary_program_ids=("77",)).is_secondary_program
        assert not RosterUser("a@b.com").is_secondary_program

    def test_blank_secondary_ids_ignored(self):
        assert not RosterUser("a@b.com", secondary_program_ids=(" ",)).is_secondary_program


# =============================================================================
# Outputs
# =============================================================================


def _billed(identity: str, bucket: BillingBucket, charge: str) -> BilledUser:
    return BilledUser(
        identity=identity,
        user=LifecycleUser(identity=identity, active=True),
        bucket=bucket,
        charge=Decimal(charge),
    )


class TestReconciliationSummary:
    def test_defaults_zero(self):
        summary = ReconciliationSummary()
        assert summary.total_charge == Decimal("0")
        assert summary.total_billed == 0

    def test_derived_counts(self):
        summary = ReconciliationSummary(total_active=5, total_new=2, total_deactivated=1)
        assert summary.total_billed == 8
        assert summary.total_prorated == 3


class TestReconciliationResult:
    def test_billed_users_in_bucket_order(self):
        result = ReconciliationResult(
            billing_period=BillingPeriod(2025, 3),
            user_rate=Decimal("15"),
            normal=(_billed("n@x.com", BillingBucket.NORMAL, "15"),),
            new=(_billed("w@x.com", BillingBucket.NEW, "7.5"),),
            deactivated=(_billed("d@x.com", BillingBucket.DEACTIVATED, "2.5"),),
        )
        assert [u.identity for u in result.billed_users] == [
            "n@x.com", "w@x.com", "d@x.com",
        ]
        assert result.prorated_amount == Decimal("10.0")

    def test_has_blockers(self):
        roster = RosterUser("x@y.com")
        result = ReconciliationResult(
            billing_period=BillingPeriod(2025, 3),
            user_rate=Decimal("15"),
            mismatches=(Mismatch(
                identity="x@y.com",
                issue="Missing in lifecycle",
                severity=MismatchSeverity.BLOCKER,
                missing_from=MismatchSource.LIFECYCLE,
                record=roster,
            ),),
        )
        assert result.has_blockers

    def test_empty_result_has_no_blockers(self):
        result = ReconciliationResult(
            billing_period=BillingPeriod(2025, 3), user_rate=Decimal("15"),
        )
        assert not result.has_blockers
        assert result.billed_users == ()
