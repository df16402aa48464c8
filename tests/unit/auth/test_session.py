"""Tests for signed session tokens."""

import base64
import json
import logging
from datetime import timedelta

import pytest

from keygate.auth.session import SessionManager


def _flip(char: str) -> str:
    return "A" if char != "A" else "B"


class TestIssueAndVerify:
    """Tests for SessionManager.issue / verify."""

    @pytest.fixture
    def manager(self, clock) -> SessionManager:
        return SessionManager(secret="s3cret", clock=clock)

    def test_fresh_token_round_trips(self, manager, clock):
        """Test a fresh token verifies to the issued payload."""
        token = manager.issue("user-1")
        payload = manager.verify(token)

        assert payload is not None
        assert payload.principal_id == "user-1"
        assert payload.issued_at == int(clock().timestamp())
        assert payload.expires_at == payload.issued_at + 24 * 3600

    def test_wire_format(self, manager):
        """Test the token is base64url(json).base64url(hmac) with sub/iat/exp."""
        encoded, signature = manager.issue("user-1").split(".")
        padded = encoded + "=" * (-len(encoded) % 4)
        data = json.loads(base64.urlsafe_b64decode(padded))

        assert set(data) == {"sub", "iat", "exp"}
        assert "=" not in encoded and "=" not in signature
        assert len(signature) == 43

    def test_every_altered_signature_character_rejected(self, manager):
        """Test changing any single signature character invalidates the token."""
        token = manager.issue("user-1")
        encoded, signature = token.split(".")
        for i in range(len(signature)):
            tampered = signature[:i] + _flip(signature[i]) + signature[i + 1:]
            assert manager.verify(f"{encoded}.{tampered}") is None

    def test_altered_payload_rejected(self, manager):
        """Test swapping in another payload invalidates the signature."""
        token = manager.issue("user-1")
        other_payload = manager.issue("user-2").split(".")[0]
        signature = token.split(".")[1]
        assert manager.verify(f"{other_payload}.{signature}") is None

    def test_expired(self, manager, clock):
        """Test tokens are rejected once past expiry."""
        token = manager.issue("user-1")
        clock.advance(hours=24)
        assert manager.verify(token) is None

    def test_valid_just_before_expiry(self, manager, clock):
        token = manager.issue("user-1")
        clock.advance(hours=23, minutes=59)
        assert manager.verify(token) is not None

    def test_custom_ttl(self, clock):
        manager = SessionManager(secret="s3cret", ttl=timedelta(minutes=5), clock=clock)
        token = manager.issue("user-1")
        assert manager.max_age == 300
        clock.advance(minutes=6)
        assert manager.verify(token) is None

    def test_other_secret_rejected(self, manager, clock):
        other = SessionManager(secret="different", clock=clock)
        assert other.verify(manager.issue("user-1")) is None

    @pytest.mark.parametrize(
        "token",
        [None, "", "no-dot", "a.b.c", ".", "!!!.???", "é.é"],
    )
    def test_malformed(self, manager, token):
        """Test malformed tokens verify to None instead of raising."""
        assert manager.verify(token) is None

    def test_signed_non_object_payload_rejected(self, manager):
        """Test a correctly signed payload that is not a session object is rejected."""
        encoded = base64.urlsafe_b64encode(b"[1,2]").rstrip(b"=").decode()
        token = f"{encoded}.{manager._sign(encoded)}"
        assert manager.verify(token) is None


class TestSecretGeneration:
    """Tests for the generated fallback secret."""

    def test_generates_secret_with_warning(self, caplog):
        """Test a missing secret is generated and logged as a warning."""
        with caplog.at_level(logging.WARNING):
            manager = SessionManager(secret=None)
        assert "No session secret configured" in caplog.text
        assert manager.verify(manager.issue("user-1")) is not None

    def test_generated_secrets_differ(self):
        """Test tokens from one generated secret fail under another."""
        a = SessionManager(secret=None)
        b = SessionManager(secret=None)
        assert b.verify(a.issue("user-1")) is None
