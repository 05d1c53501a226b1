"""Webhook signature verification: constant-time HMAC-SHA256 over the raw body.

Security contract:
- The signature is computed over the exact bytes received, never over a
  re-serialized payload (key order, whitespace and number formatting would
  desynchronize it)
- All comparisons use hmac.compare_digest() (constant-time)
- Nothing about the payload or the secret is logged
- Policy (first match wins):
    bypass flag set              -> accept
    secret unset                 -> accept
    signature present            -> verify, 401 on mismatch
    signature absent, production -> 401
    signature absent, development -> accept with a warning
"""

from __future__ import annotations

import hashlib
import hmac
import logging

from themehook.config import Settings
from themehook.errors import Unauthorized

logger = logging.getLogger(__name__)

SIGNATURE_HEADER = "x-webhook-signature"

_SIGNATURE_PREFIX = "sha256="


def compute_signature(body: bytes, secret: str) -> str:
    """Return the lowercase hex HMAC-SHA256 of ``body`` keyed by ``secret``."""
    return hmac.new(secret.encode("utf-8"), body, hashlib.sha256).hexdigest()


def verify_signature(body: bytes, signature: str | None, secret: str) -> bool:
    """Check a received signature against the raw body.

    Accepts a bare hex digest or one prefixed with ``sha256=``.

    Returns:
        True if the signature is valid. Never raises.
    """
    if not secret or not signature:
        return False

    received = signature.strip()
    if received.lower().startswith(_SIGNATURE_PREFIX):
        received = received[len(_SIGNATURE_PREFIX):]

    try:
        received_bytes = received.lower().encode("ascii")
    except UnicodeEncodeError:
        return False

    expected = compute_signature(body, secret).encode("ascii")
    return hmac.compare_digest(expected, received_bytes)


def authorize(body: bytes, signature: str | None, settings: Settings) -> None:
    """Apply the verification policy to one inbound webhook.

    Raises:
        Unauthorized: if the policy rejects the request.
    """
    if settings.skip_signature_verification:
        logger.warning("Signature verification bypassed by configuration")
        return

    if not settings.webhook_secret:
        return

    if signature:
        if not verify_signature(body, signature, settings.webhook_secret):
            logger.warning("UNAUTHORIZED_WEBHOOK reason=bad_signature")
            raise Unauthorized("Invalid webhook signature")
        return

    if settings.is_production:
        logger.warning("UNAUTHORIZED_WEBHOOK reason=missing_signature")
        raise Unauthorized("Missing webhook signature")

    logger.warning("Webhook accepted without signature (development mode)")
