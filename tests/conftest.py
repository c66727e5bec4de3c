"""
Pytest fixtures for the billing core test suite.

Provides:
- Structured logging setup and capture
- Builders for lifecycle users, roster users and contracts
- A standard billing period (March 2025, 31 days)

Everything under test is pure; no database or network is needed.
"""

import json
import logging
from decimal import Decimal
from io import StringIO

import pytest

from billing_kernel.domain.period import BillingPeriod
from billing_kernel.logging_config import (
    LogContext,
    StructuredFormatter,
    configure_logging,
    reset_logging,
)
from billing_engines.pricing import AgreementType, ContractConfig, PricingRange
from billing_engines.reconciliation.types import LifecycleUser, RosterUser


# =============================================================================
# Logging fixtures
# =============================================================================


@pytest.fixture(autouse=True, scope="session")
def _configure_test_logging():
    """Configure structured logging for the test suite."""
    reset_logging()
    configure_logging(level=logging.DEBUG)
    yield
    reset_logging()


@pytest.fixture(autouse=True)
def _clear_log_context():
    """Clear LogContext between tests to prevent cross-test contamination."""
    LogContext.clear()
    yield
    LogContext.clear()


@pytest.fixture
def captured_logs():
    """
    Capture billing_kernel logs as parsed JSON dicts.

    Usage::

        def test_something(captured_logs):
            reconcile(...)
            logs = captured_logs()
            assert any(r["message"] == "reconciliation_completed" for r in logs)
    """
    stream = StringIO()
    handler = logging.StreamHandler(stream)
    handler.setFormatter(StructuredFormatter())
    root = logging.getLogger("billing_kernel")
    previous_level = root.level
    root.setLevel(logging.DEBUG)
    root.addHandler(handler)

    def _get_records() -> list[dict]:
        lines = stream.getvalue().strip().split("\n")
        return [json.loads(line) for line in lines if line]

    yield _get_records

    root.removeHandler(handler)
    root.setLevel(previous_level)


# =============================================================================
# Domain builders
# =============================================================================


@pytest.fixture
def march_2025() -> BillingPeriod:
    """31-day billing period."""
    return BillingPeriod(2025, 3)


@pytest.fixture
def make_lifecycle_user():
    """Builder for LifecycleUser with sensible defaults (active, long-standing)."""

    def _make(
        identity: str,
        activation_date="2024-01-15",
        deactivation_date=None,
        active: bool = True,
        **kwargs,
    ) -> LifecycleUser:
        return LifecycleUser(
            identity=identity,
            activation_date=activation_date,
            deactivation_date=deactivation_date,
            active=active,
            **kwargs,
        )

    return _make


@pytest.fixture
def make_roster_user():
    """Builder for RosterUser."""

    def _make(identity: str, secondary_program_ids=(), **kwargs) -> RosterUser:
        return RosterUser(
            identity=identity,
            secondary_program_ids=tuple(secondary_program_ids),
            **kwargs,
        )

    return _make


@pytest.fixture
def complex_contract() -> ContractConfig:
    """Complex contract with two flat-fee brackets."""
    return ContractConfig(
        agreement_type=AgreementType.COMPLEX,
        pricing_ranges=(
            PricingRange(1, 50, Decimal("500")),
            PricingRange(51, 200, Decimal("1500")),
        ),
    )


@pytest.fixture
def simple_contract() -> ContractConfig:
    """Simple contract at $15/user with a $200 minimum for <= 10 users."""
    return ContractConfig(
        agreement_type=AgreementType.SIMPLE,
        user_rate=Decimal("15"),
        min_users=10,
        min_monthly_amount=Decimal("200"),
    )
