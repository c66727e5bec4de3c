"""Identity-key normalization shared by every cross-dataset lookup."""

from __future__ import annotations

from collections.abc import Iterable


def normalize_identity(raw: str | None) -> str:
    """Trim and lower-case an identity key. None becomes the empty string."""
    if raw is None:
        return ""
    return str(raw).strip().lower()


def normalize_identity_set(raw_keys: Iterable[str | None]) -> frozenset[str]:
    """Normalize a collection of identity keys, dropping empty ones.

    Raises:
        TypeError: if ``raw_keys`` is a single string, which would
            otherwise be read one character at a time.
    """
    if isinstance(raw_keys, str):
        raise TypeError(
            f"Expected a collection of identity keys, got the string {raw_keys!r}"
        )
    return frozenset(k for k in (normalize_identity(r) for r in raw_keys) if k)
