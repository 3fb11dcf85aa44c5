"""Shared-secret validation for inbound webhook sources."""

from __future__ import annotations

import hashlib
import hmac
import logging
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from rebuild_relay.config import SourceAuthConfig

logger = logging.getLogger(__name__)


def validate_bearer_token(authorization: str, expected_token: str) -> bool:
    """Check ``Authorization: Bearer <token>`` header value.

    Uses constant-time comparison to prevent timing attacks.
    """
    prefix = "Bearer "
    if not expected_token or not authorization.startswith(prefix):
        logger.warning("Auth failed: missing or malformed bearer token")
        return False
    valid = hmac.compare_digest(authorization[len(prefix) :], expected_token)
    if not valid:
        logger.warning("Auth failed: invalid token")
    return valid


def validate_hmac_signature(
    body: bytes,
    signature_value: str,
    secret: str,
    *,
    sig_prefix: str = "sha256=",
) -> bool:
    """Validate a hex HMAC-SHA256 of *body* carried in a header value.

    *sig_prefix* (e.g. GitHub's ``sha256=``) is stripped before comparison.
    """
    if not signature_value or not secret:
        logger.warning("HMAC auth failed: missing signature or secret")
        return False
    sig = signature_value.removeprefix(sig_prefix) if sig_prefix else signature_value
    expected = hmac.new(secret.encode(), body, hashlib.sha256).hexdigest()
    valid = hmac.compare_digest(sig.strip().lower(), expected)
    if not valid:
        logger.warning("HMAC auth failed: signature mismatch")
    return valid


def validate_source_auth(
    auth: SourceAuthConfig,
    *,
    authorization: str,
    signature_header_value: str,
    body: bytes,
) -> bool:
    """Per-source authentication dispatcher.

    An empty secret rejects every request.
    """
    if not auth.secret:
        logger.warning("Auth failed: no secret configured for source")
        return False
    if auth.auth_mode == "hmac":
        return validate_hmac_signature(
            body,
            signature_header_value,
            auth.secret,
            sig_prefix=auth.hmac_sig_prefix,
        )
    return validate_bearer_token(authorization, auth.secret)
