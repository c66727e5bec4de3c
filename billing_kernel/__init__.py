"""
Billing Kernel - shared foundation for the subscription billing core.

Provides:
- Typed exceptions with machine-readable codes
- Structured JSON logging
- Pure domain values (billing period, flexible dates, identity keys)
"""

__version__ = "0.1.0"
