"""
Contract Configuration Validator (``billing_config.validator``).

Responsibility
--------------
Checks contract terms when they are loaded, before any billing run
uses them.  The pricing engine takes the first matching range and never
checks for overlap itself; overlapping ranges are caught here.

Invariants enforced
-------------------
* Pricing ranges of one contract must not overlap.
* A Complex contract must define at least one pricing range.
* Rates, prices, minimums and user counts are non-negative.

Failure modes
-------------
* Errors (``ConfigValidationResult.errors``)  -> the contract MUST NOT be used.
* Warnings (``ConfigValidationResult.warnings``)  -> usable, but review.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from billing_engines.pricing import ContractConfig
from billing_config.schema import ContractBook


@dataclass
class ConfigValidationResult:
    """
    Result of contract validation.

    ``is_valid`` returns ``True`` only when ``errors`` is empty.
    """

    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    @property
    def is_valid(self) -> bool:
        return len(self.errors) == 0

    def add_error(self, msg: str) -> None:
        self.errors.append(msg)

    def add_warning(self, msg: str) -> None:
        self.warnings.append(msg)

    def merge(self, other: ConfigValidationResult, prefix: str = "") -> None:
        self.errors.extend(f"{prefix}{e}" for e in other.errors)
        self.warnings.extend(f"{prefix}{w}" for w in other.warnings)


def validate_contract_config(contract: ContractConfig) -> ConfigValidationResult:
    """Validate one contract's terms."""
    result = ConfigValidationResult()

    if contract.user_rate < 0:
        result.add_error("user_rate must be non-negative")
    if contract.min_users < 0:
        result.add_error("min_users must be non-negative")
    if contract.min_monthly_amount < 0:
        result.add_error("min_monthly_amount must be non-negative")
    if contract.segment_price is not None and contract.segment_price < 0:
        result.add_error("segment_price must be non-negative")

    ranges = contract.pricing_ranges
    for i, first in enumerate(ranges):
        for j in range(i + 1, len(ranges)):
            second = ranges[j]
            if first.overlaps(second):
                result.add_error(
                    f"pricing_ranges[{i}] ({first.min_users}-{first.max_users}) "
                    f"overlaps pricing_ranges[{j}] "
                    f"({second.min_users}-{second.max_users})"
                )

    if contract.is_complex and not ranges:
        result.add_error("Complex agreement defines no pricing_ranges")
    if not contract.is_complex and ranges:
        result.add_warning("pricing_ranges are ignored for Simple agreements")
    if contract.is_complex and contract.min_monthly_amount > 0:
        result.add_warning("min_monthly_amount is ignored for Complex agreements")

    return result


def validate_contract_book(book: ContractBook) -> ConfigValidationResult:
    """Validate every contract in a book; messages are prefixed by customer."""
    result = ConfigValidationResult()
    if book.defaults.segment_price < 0:
        result.add_error("defaults: segment_price must be non-negative")
    for customer_id, contract in sorted(book.contracts.items()):
        result.merge(validate_contract_config(contract), prefix=f"{customer_id}: ")
    return result
