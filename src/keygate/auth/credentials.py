"""Credential generation and hashing.

Key format: {prefix}{43_base64url_chars}
- prefix: "ozw_" (general) or "ozw_scoped_" (scoped)
- random part: 32 bytes from the OS CSPRNG, base64url without padding
- A secret is checked against the pattern for the type its prefix names,
  so "ozw_scoped_" plus 36 chars is never read as a general key

Keys are never stored in plain text. On creation:
1. Generate key: {prefix}{random}
2. Store sha256(key) as the lookup digest
3. Store the last 4 chars as a display hint
4. Return the key to the caller once
"""

from __future__ import annotations

import hashlib
import re
import secrets

from .models import CredentialType

# Number of random bytes behind each key (base64url -> 43 chars)
KEY_ENTROPY_BYTES = 32
KEY_RANDOM_LENGTH = 43

# Hint length shown in listings
HINT_LENGTH = 4

# Key format validation
_RANDOM_PART = r"[A-Za-z0-9_-]{43}"
CREDENTIAL_PATTERNS = {
    credential_type: re.compile(re.escape(credential_type.prefix) + _RANDOM_PART)
    for credential_type in CredentialType
}
CREDENTIAL_REGEX = re.compile(r"^(?:ozw_scoped_|ozw_(?!scoped_))[A-Za-z0-9_-]{43}$")


def generate_credential(credential_type: CredentialType) -> str:
    """Generate a new secret for a credential type.

    Args:
        credential_type: GENERAL or SCOPED

    Returns:
        Full secret: {prefix}{random_43_chars}

    Example:
        generate_credential(CredentialType.SCOPED) -> "ozw_scoped_Qm3v...x8Tw"
    """
    return credential_type.prefix + secrets.token_urlsafe(KEY_ENTROPY_BYTES)


def digest_credential(secret: str) -> str:
    """Hash a secret for storage and lookup.

    Unsalted SHA-256: the secret carries 256 bits of entropy, and the digest
    must be reproducible to serve as a lookup key.

    Args:
        secret: Plain text secret

    Returns:
        Hex-encoded SHA-256 digest
    """
    return hashlib.sha256(secret.encode("utf-8")).hexdigest()


def credential_hint(secret: str) -> str:
    """Last characters of a secret, for display only."""
    return secret[-HINT_LENGTH:]


def classify_credential(secret: str) -> CredentialType | None:
    """Classify a secret by its prefix.

    The scoped prefix is checked first because the general prefix is a
    prefix of it.

    Args:
        secret: Candidate secret

    Returns:
        CredentialType, or None if no recognised prefix
    """
    if secret.startswith(CredentialType.SCOPED.prefix):
        return CredentialType.SCOPED
    if secret.startswith(CredentialType.GENERAL.prefix):
        return CredentialType.GENERAL
    return None


def validate_credential_format(secret: str) -> bool:
    """Validate the full shape of a secret.

    Args:
        secret: Secret to validate

    Returns:
        True if it matches {prefix}{43 base64url chars} for the type
        its prefix names
    """
    credential_type = classify_credential(secret)
    if credential_type is None:
        return False
    return bool(CREDENTIAL_PATTERNS[credential_type].fullmatch(secret))


def mask_credential(secret: str) -> str:
    """Masked representation for logs: prefix plus hint."""
    credential_type = classify_credential(secret)
    if credential_type is None:
        return "invalid"
    return f"{credential_type.prefix}...{credential_hint(secret)}"
