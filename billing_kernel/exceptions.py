"""
Typed Exception Hierarchy for the Billing Kernel.

===============================================================================
WHY TYPED EXCEPTIONS
===============================================================================

Callers of the billing core (batch runners, HTTP handlers, report jobs)
need to tell a fatal input error apart from a recoverable data problem
without parsing message strings:

    try:
        result = reconcile(lifecycle, roster, period_token, rate)
    except MalformedPeriodError as e:
        api_response(status=400, code=e.code, period=e.token)

Every exception carries a class-level ``code`` and its context as
attributes.

===============================================================================
EXCEPTION HIERARCHY
===============================================================================

    BillingKernelError (base)
    |
    +-- PeriodError
    |   +-- MalformedPeriodError
    |
    +-- DateError
    |   +-- AmbiguousDateError
    |
    +-- ConfigError
        +-- ContractConfigError

===============================================================================
ERROR CODES - QUICK REFERENCE
===============================================================================

Category  | Code                     | When Raised
----------|--------------------------|------------------------------------------
Period    | MALFORMED_PERIOD         | Billing period token is not a YYYY-MM month
----------|--------------------------|------------------------------------------
Date      | AMBIGUOUS_DATE           | Date string matches no supported format
          |                          | (strict parsing only; the engines treat
          |                          | such dates as absent)
----------|--------------------------|------------------------------------------
Config    | CONTRACT_CONFIG_INVALID  | Contract terms failed validation

Only MALFORMED_PERIOD aborts a reconciliation. Every other per-record
problem is absorbed by the engines so one bad user record never blocks
billing for a whole customer.
"""

from __future__ import annotations


class BillingKernelError(Exception):
    """
    Base exception for all billing kernel errors.

    All subclasses must have a `code` class attribute for
    machine-readable error identification.
    """

    code: str = "BILLING_KERNEL_ERROR"


# Period-related exceptions


class PeriodError(BillingKernelError):
    """Base exception for billing-period errors."""

    code: str = "PERIOD_ERROR"


class MalformedPeriodError(PeriodError):
    """Billing period token does not describe a valid calendar month."""

    code: str = "MALFORMED_PERIOD"

    def __init__(self, token: object, reason: str = "expected YYYY-MM"):
        self.token = token
        self.reason = reason
        super().__init__(f"Malformed billing period {token!r}: {reason}")


# Date-related exceptions


class DateError(BillingKernelError):
    """Base exception for date parsing errors."""

    code: str = "DATE_ERROR"


class AmbiguousDateError(DateError):
    """A date value matched none of the supported formats."""

    code: str = "AMBIGUOUS_DATE"

    def __init__(self, value: object, formats: tuple[str, ...] = ()):
        self.value = value
        self.formats = formats
        tried = ", ".join(formats) if formats else "none"
        super().__init__(f"Unparseable date {value!r} (tried: ISO 8601, {tried})")


# Configuration-related exceptions


class ConfigError(BillingKernelError):
    """Base exception for contract configuration errors."""

    code: str = "CONFIG_ERROR"


class ContractConfigError(ConfigError):
    """Contract terms for a customer are invalid."""

    code: str = "CONTRACT_CONFIG_INVALID"

    def __init__(self, customer_id: str | None, errors: list[str] | tuple[str, ...]):
        self.customer_id = customer_id
        self.errors = tuple(errors)
        who = customer_id if customer_id is not None else "<unknown>"
        super().__init__(
            f"Invalid contract configuration for {who}: " + "; ".join(self.errors)
        )
