"""HMAC signing and opaque identifier generation.

Every delivery body is signed with the subscription's shared secret so
subscribers can verify authenticity:

    X-Webhook-Signature: sha256=<hex HMAC-SHA256(secret, body)>

The signature is computed over the exact bytes sent as the request body.
"""

from __future__ import annotations

import hashlib
import hmac
import secrets

from pydantic import SecretStr

SIGNATURE_PREFIX = "sha256="


def _as_bytes(value: str | bytes) -> bytes:
    return value if isinstance(value, bytes) else value.encode("utf-8")


def _unwrap(secret: str | SecretStr) -> str:
    return secret.get_secret_value() if isinstance(secret, SecretStr) else secret


def compute_signature(body: str | bytes, secret: str | SecretStr) -> str:
    """Compute the HMAC-SHA256 signature header value for a body.

    Args:
        body: Serialized payload; strings are signed as their UTF-8 bytes.
        secret: Shared subscription secret.

    Returns:
        Signature in format "sha256=<hex_digest>".
    """
    digest = hmac.new(
        key=_as_bytes(_unwrap(secret)),
        msg=_as_bytes(body),
        digestmod=hashlib.sha256,
    ).hexdigest()
    return f"{SIGNATURE_PREFIX}{digest}"


def verify_signature(body: str | bytes, secret: str | SecretStr, signature: str) -> bool:
    """Verify a received signature header against the received body.

    Subscribers should call this before trusting a payload. The comparison
    is constant-time.

    Args:
        body: Raw request body exactly as received.
        secret: Shared subscription secret.
        signature: Value of the X-Webhook-Signature header.

    Returns:
        True if the signature matches, False otherwise.
    """
    expected = compute_signature(body, secret)
    return hmac.compare_digest(expected, signature)


def generate_secret() -> str:
    """Generate a webhook secret: 32 random bytes, hex encoded."""
    return secrets.token_hex(32)


def generate_delivery_id() -> str:
    """Generate an opaque delivery ID: "whd_" + 16 random bytes, hex encoded."""
    return f"whd_{secrets.token_hex(16)}"
