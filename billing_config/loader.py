"""
Contract Configuration Loader (``billing_config.loader``).

Responsibility
--------------
Loads a contract book YAML file and parses it into typed
``billing_config.schema`` / ``billing_engines.pricing`` dataclasses.
Runtime callers should go through ``billing_config.get_contract_book()``,
which also validates the result.

Invariants enforced
-------------------
* Money values are parsed through ``str`` into ``Decimal``, never float.
* Every parsed object is a frozen dataclass.
* ``compute_checksum`` produces a deterministic SHA-256 hash of the raw
  document for change detection.

Failure modes
-------------
* Missing YAML file  -> ``FileNotFoundError`` propagates.
* Malformed YAML  -> ``yaml.YAMLError`` propagates.
* Bad field values  -> ``ContractConfigError`` naming the customer.
"""

from __future__ import annotations

import hashlib
import json
from decimal import Decimal, InvalidOperation
from pathlib import Path
from types import MappingProxyType
from typing import Any

import yaml

from billing_kernel.exceptions import ContractConfigError
from billing_engines.pricing import AgreementType, ContractConfig, PricingRange
from billing_config.schema import ContractBook, ContractDefaults


def load_yaml_file(path: Path) -> dict[str, Any]:
    """
    Load a single YAML file and return its contents as a dict.

    Raises:
        FileNotFoundError: if the file does not exist.
        yaml.YAMLError: if the file contains invalid YAML.
    """
    with open(path, encoding="utf-8") as f:
        return yaml.safe_load(f) or {}


def compute_checksum(data: dict[str, Any]) -> str:
    """Deterministic SHA-256 of a parsed YAML document."""
    canonical = json.dumps(data, sort_keys=True, default=str)
    return hashlib.sha256(canonical.encode("utf-8")).hexdigest()


def parse_decimal(value: Any, field_name: str) -> Decimal:
    """Parse a money or price value. Floats go through ``str`` first."""
    if isinstance(value, bool):
        raise ValueError(f"{field_name}: expected a number, got {value!r}")
    try:
        return Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        raise ValueError(f"{field_name}: expected a number, got {value!r}") from None


def parse_int(value: Any, field_name: str) -> int:
    if isinstance(value, bool):
        raise ValueError(f"{field_name}: expected an integer, got {value!r}")
    try:
        return int(value)
    except (TypeError, ValueError):
        raise ValueError(f"{field_name}: expected an integer, got {value!r}") from None


def parse_bool(value: Any, field_name: str) -> bool:
    if isinstance(value, bool):
        return value
    raise ValueError(f"{field_name}: expected true/false, got {value!r}")


def parse_agreement_type(value: Any) -> AgreementType:
    """Parse an agreement type name, case-insensitively."""
    text = str(value).strip().lower()
    for member in AgreementType:
        if member.value.lower() == text:
            return member
    raise ValueError(f"agreement_type: unknown value {value!r}")


def parse_pricing_range(data: dict[str, Any], index: int) -> PricingRange:
    """
    Parse one pricing range.

    Accepts ``min``/``max``/``price`` (or ``min_users``/``max_users``/
    ``fixed_price``).
    """
    prefix = f"pricing_ranges[{index}]"
    try:
        low = data["min_users"] if "min_users" in data else data["min"]
        high = data["max_users"] if "max_users" in data else data["max"]
        price = data["fixed_price"] if "fixed_price" in data else data["price"]
    except KeyError as exc:
        raise ValueError(f"{prefix}: missing key {exc.args[0]!r}") from None
    return PricingRange(
        min_users=parse_int(low, f"{prefix}.min"),
        max_users=parse_int(high, f"{prefix}.max"),
        fixed_price=parse_decimal(price, f"{prefix}.price"),
    )


def parse_defaults(data: dict[str, Any]) -> ContractDefaults:
    """Parse the ``defaults`` block. Missing keys keep built-in defaults."""
    base = ContractDefaults()
    return ContractDefaults(
        segment_price=(
            parse_decimal(data["segment_price"], "defaults.segment_price")
            if data.get("segment_price") is not None else base.segment_price
        ),
        segment_enabled=(
            parse_bool(data["segment_enabled"], "defaults.segment_enabled")
            if "segment_enabled" in data else base.segment_enabled
        ),
        min_users=(
            parse_int(data["min_users"], "defaults.min_users")
            if "min_users" in data else base.min_users
        ),
        min_monthly_amount=(
            parse_decimal(data["min_monthly_amount"], "defaults.min_monthly_amount")
            if "min_monthly_amount" in data else base.min_monthly_amount
        ),
    )


def parse_contract_config(
    data: dict[str, Any],
    defaults: ContractDefaults | None = None,
    customer_id: str | None = None,
) -> ContractConfig:
    """
    Parse one customer's contract terms.

    Keys absent from ``data`` fall back to ``defaults``.

    Raises:
        ContractConfigError: if any value is malformed.
    """
    defaults = defaults or ContractDefaults()
    try:
        ranges = tuple(
            parse_pricing_range(r, i)
            for i, r in enumerate(data.get("pricing_ranges") or ())
        )
        segment_price = data.get("segment_price")
        return ContractConfig(
            agreement_type=parse_agreement_type(
                data.get("agreement_type", AgreementType.SIMPLE.value)
            ),
            user_rate=parse_decimal(data.get("user_rate", 0), "user_rate"),
            min_users=parse_int(
                data.get("min_users", defaults.min_users), "min_users"
            ),
            min_monthly_amount=parse_decimal(
                data.get("min_monthly_amount", defaults.min_monthly_amount),
                "min_monthly_amount",
            ),
            pricing_ranges=ranges,
            segment_enabled=parse_bool(
                data.get("segment_enabled", defaults.segment_enabled),
                "segment_enabled",
            ),
            segment_price=(
                parse_decimal(segment_price, "segment_price")
                if segment_price is not None else defaults.segment_price
            ),
        )
    except (TypeError, ValueError) as exc:
        raise ContractConfigError(customer_id, [str(exc)]) from exc


def parse_contract_book(data: dict[str, Any]) -> ContractBook:
    """Parse a whole contract book document."""
    defaults = parse_defaults(data.get("defaults") or {})
    contracts: dict[str, ContractConfig] = {}
    for customer_id, terms in (data.get("contracts") or {}).items():
        key = str(customer_id)
        if not isinstance(terms, dict):
            raise ContractConfigError(key, [f"expected a mapping, got {terms!r}"])
        contracts[key] = parse_contract_config(terms, defaults, customer_id=key)
    return ContractBook(
        defaults=defaults,
        contracts=MappingProxyType(contracts),
        checksum=compute_checksum(data),
    )


def load_contract_book(path: Path) -> ContractBook:
    """Load and parse a contract book file (no validation)."""
    return parse_contract_book(load_yaml_file(path))
