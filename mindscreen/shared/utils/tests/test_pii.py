"""Tests for PII hashing utilities."""
import pytest

from mindscreen.shared.utils import pii
from mindscreen.shared.utils import configure_pii_salt, hash_pii, hash_text_for_audit

SALT = "test_salt_that_is_at_least_32_characters_long"


@pytest.fixture(autouse=True)
def reset_salt(monkeypatch):
    monkeypatch.setattr(pii, "_PII_SALT", None)


class TestHashPii:
    """Tests for identifier hashing."""

    def test_requires_configured_salt(self):
        with pytest.raises(RuntimeError):
            hash_pii("student_1")

    def test_short_salt_rejected(self):
        with pytest.raises(ValueError):
            configure_pii_salt("short")

    def test_stable_and_opaque(self):
        configure_pii_salt(SALT)
        digest = hash_pii("student_1")

        assert digest == hash_pii("student_1")
        assert digest != hash_pii("student_2")
        assert "student_1" not in digest
        assert len(digest) == 64

    def test_salt_changes_digest(self):
        configure_pii_salt(SALT)
        first = hash_pii("student_1")
        configure_pii_salt(SALT + "_rotated")
        assert hash_pii("student_1") != first


class TestHashTextForAudit:
    def test_fingerprint(self):
        assert hash_text_for_audit("hello") == hash_text_for_audit("hello")
        assert hash_text_for_audit("hello") != hash_text_for_audit("hello!")
