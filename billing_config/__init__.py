"""
billing_config -- single public entrypoint for contract configuration.

Responsibility:
    Provides the runtime way to obtain customer contract terms through
    ``get_contract_book()``.  The returned ``ContractBook`` has passed
    validation; ``ContractBook.get(customer_id)`` yields the
    ``ContractConfig`` the pricing engine consumes.

Architecture position:
    Configuration -- sits above ``billing_kernel`` and ``billing_engines``.
    Engines MUST NEVER import from ``billing_config``.

Failure modes:
    - ``FileNotFoundError`` -- the contract book file does not exist.
    - ``yaml.YAMLError`` -- the file is not valid YAML.
    - ``ContractConfigError`` -- a value is malformed or validation failed
      (for example overlapping pricing ranges).

Audit relevance:
    Every successful ``get_contract_book()`` call emits a
    ``BILLING_CONFIG_TRACE`` log entry with the file path, checksum and
    contract count, tying each billing run to the exact terms it used.
"""

from __future__ import annotations

from pathlib import Path

from billing_kernel.exceptions import ContractConfigError
from billing_kernel.logging_config import get_logger
from billing_config.loader import load_contract_book, parse_contract_config
from billing_config.schema import ContractBook, ContractDefaults
from billing_config.validator import (
    ConfigValidationResult,
    validate_contract_book,
    validate_contract_config,
)

_logger = get_logger("config")

# Bundled contract book used when no path is given
_DEFAULT_CONTRACTS_FILE = Path(__file__).parent / "contracts.yaml"


def get_contract_book(path: Path | None = None) -> ContractBook:
    """Load, validate and return a contract book.

    Args:
        path: Contract book YAML file.  Defaults to the bundled
            ``billing_config/contracts.yaml``.

    Raises:
        FileNotFoundError: If the file does not exist.
        ContractConfigError: If parsing or validation fails.
    """
    source = Path(path) if path is not None else _DEFAULT_CONTRACTS_FILE
    book = load_contract_book(source)

    validation = validate_contract_book(book)
    for warning in validation.warnings:
        _logger.warning("contract_config_warning", extra={
            "path": str(source),
            "detail": warning,
        })
    if not validation.is_valid:
        raise ContractConfigError(None, validation.errors)

    _logger.info(
        "BILLING_CONFIG_TRACE",
        extra={
            "trace_type": "BILLING_CONFIG_TRACE",
            "path": str(source),
            "checksum": book.checksum,
            "contract_count": len(book),
        },
    )
    return book


__all__ = [
    "ConfigValidationResult",
    "ContractBook",
    "ContractDefaults",
    "get_contract_book",
    "parse_contract_config",
    "validate_contract_book",
    "validate_contract_config",
]
