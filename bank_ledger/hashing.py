"""
Credential Hashing

PIN verifiers are the hex SHA-256 digest of the PIN's UTF-8 bytes: stable
across restarts so stored verifiers stay checkable after reload. This is an
illustrative scheme, not hardened secret storage (no salt, no work factor).
"""

import hashlib
import hmac


def hash_pin(pin: str) -> str:
    """Derive the stored verifier for a PIN (64 lowercase hex characters)"""
    return hashlib.sha256(pin.encode("utf-8")).hexdigest()


def verify_pin(pin: str, verifier: str) -> bool:
    """Check a PIN against a stored verifier"""
    if not verifier:
        return False
    return hmac.compare_digest(hash_pin(pin), verifier)


def secrets_match(supplied: str, expected: str) -> bool:
    """Constant-time comparison of a shared secret. An empty expected secret never matches."""
    if not expected:
        return False
    return hmac.compare_digest(supplied.encode("utf-8"), expected.encode("utf-8"))
