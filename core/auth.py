"""Gateway identity verification for API requests."""

import base64
import hashlib
import hmac

from fastapi import Request

from core.config import settings
from core.errors import AuthenticationError


def _b64u_encode(data: bytes) -> str:
    """Base64-URL encode without padding."""
    return base64.urlsafe_b64encode(data).rstrip(b"=").decode()


def sign_user_id(user_id: int, secret: str | None = None) -> str:
    """
    Sign a user ID the way the auth gateway does.

    Args:
        user_id: Authenticated user ID
        secret: HMAC secret (defaults to settings.internal_auth_secret)

    Returns:
        Base64-URL encoded HMAC-SHA256 signature
    """
    key = (secret or settings.internal_auth_secret).encode()
    mac = hmac.new(key, str(user_id).encode(), hashlib.sha256).digest()
    return _b64u_encode(mac)


def verify_user_signature(user_id: int, signature: str) -> bool:
    """Check a gateway signature in constant time."""
    return hmac.compare_digest(sign_user_id(user_id), signature or "")


async def gateway_auth(request: Request) -> int:
    """
    Authenticate requests forwarded by the auth gateway.

    Expects headers:
    - X-User-Id: ID of the authenticated user
    - X-Auth-Signature: HMAC-SHA256 signature of the user ID

    Returns:
        Authenticated user ID

    Raises:
        AuthenticationError: If headers are missing or the signature is invalid
    """
    user_id_str = request.headers.get("X-User-Id")
    signature = request.headers.get("X-Auth-Signature")

    if not user_id_str or not signature:
        raise AuthenticationError("Not authorized to access this route")

    try:
        user_id = int(user_id_str)
    except ValueError:
        raise AuthenticationError("Invalid X-User-Id format") from None

    if not verify_user_signature(user_id, signature):
        raise AuthenticationError("Invalid token")

    return user_id
