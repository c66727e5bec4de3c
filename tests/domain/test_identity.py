"""Tests for identity-key normalization."""

import pytest

from billing_kernel.domain.identity import (
    normalize_identity,
    normalize_identity_set,
)


def test_case_and_whitespace_insensitive():
    assert normalize_identity("A@B.com ") == normalize_identity("a@b.com")


def test_none_is_empty():
    assert normalize_identity(None) == ""


def test_identity_set_drops_empty():
    assert normalize_identity_set(["QA@x.com", " ", None, "qa@x.com"]) == frozenset(
        {"qa@x.com"}
    )


@pytest.mark.parametrize("raw", ["a", "qa@x.com", ""])
def test_identity_set_rejects_bare_string(raw):
    with pytest.raises(TypeError, match="collection of identity keys"):
        normalize_identity_set(raw)


def test_identity_set_accepts_any_iterable():
    assert normalize_identity_set(k for k in ("A", "b")) == frozenset({"a", "b"})
