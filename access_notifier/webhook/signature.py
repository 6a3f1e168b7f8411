"""HMAC-SHA256 verification of inbound webhook payloads."""

from __future__ import annotations

import hashlib
import hmac


def compute_signature(raw: bytes, key: str) -> str:
    """Return the lowercase hex HMAC-SHA256 of *raw* under *key*."""
    return hmac.new(key.encode("utf-8"), raw, hashlib.sha256).hexdigest()


def verify_signature(raw: bytes, signature: str | None, key: str | None) -> bool:
    """Check a webhook signature header against the exact request bytes.

    An empty or unset *key* disables verification and always returns True;
    deployments without a configured signing key accept every payload.

    *raw* must be the body as received on the wire. Hashing a re-serialised
    JSON document will not reproduce the provider's signature.
    """
    if not key:
        return True
    if not signature:
        return False

    expected = compute_signature(raw, key)
    try:
        provided = signature.encode("ascii")
    except UnicodeEncodeError:
        return False
    return hmac.compare_digest(expected.encode("ascii"), provided)
