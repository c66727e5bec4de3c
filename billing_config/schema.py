"""
Contract configuration schema.

The human-authored source artifact for customer billing terms.  YAML
files are parsed into these types by the loader, checked by the
validator, and handed to the pricing engine as ``ContractConfig``.

A contract book holds a ``defaults`` block plus one entry per customer:

    defaults:
      segment_price: "0.05"
      segment_enabled: true
    contracts:
      acme:
        agreement_type: Complex
        pricing_ranges:
          - {min: 1, max: 50, price: "500"}
          - {min: 51, max: 200, price: "1500"}
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from decimal import Decimal
from types import MappingProxyType

from billing_engines.pricing import DEFAULT_SEGMENT_PRICE, AgreementType, ContractConfig


@dataclass(frozen=True)
class ContractDefaults:
    """Terms applied to customers without stored contract values."""

    segment_price: Decimal = DEFAULT_SEGMENT_PRICE
    segment_enabled: bool = True
    min_users: int = 0
    min_monthly_amount: Decimal = Decimal("0")

    def as_contract(self) -> ContractConfig:
        """Contract for a customer with no stored terms at all."""
        return ContractConfig(
            agreement_type=AgreementType.SIMPLE,
            min_users=self.min_users,
            min_monthly_amount=self.min_monthly_amount,
            segment_enabled=self.segment_enabled,
            segment_price=self.segment_price,
        )


@dataclass(frozen=True)
class ContractBook:
    """All contract terms from one configuration file."""

    defaults: ContractDefaults = field(default_factory=ContractDefaults)
    contracts: Mapping[str, ContractConfig] = field(
        default_factory=lambda: MappingProxyType({})
    )
    checksum: str = ""

    def get(self, customer_id: str) -> ContractConfig:
        """Terms for ``customer_id``; the defaults when none are stored."""
        contract = self.contracts.get(str(customer_id))
        if contract is None:
            return self.defaults.as_contract()
        return contract

    def __contains__(self, customer_id: object) -> bool:
        return str(customer_id) in self.contracts

    def __len__(self) -> int:
        return len(self.contracts)
