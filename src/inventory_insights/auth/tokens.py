"""
Bearer token helpers.

The stored ``jwt_token`` value is either a raw access token or a provider
session JSON blob containing ``access_token``.
"""

import json
import time
from typing import Optional, Dict, Any

from jose import JWTError, jwt

from inventory_insights.utils.logger import get_logger

logger = get_logger(__name__)


def extract_bearer_token(stored: Optional[str]) -> Optional[str]:
    """
    Resolve the bearer token from a stored value.

    Args:
        stored: Raw token or session JSON blob

    Returns:
        Access token, or None when nothing usable is stored
    """
    if not stored:
        return None

    stored = stored.strip()
    if stored.startswith("{"):
        try:
            session = json.loads(stored)
        except ValueError:
            # Not JSON after all, use as-is
            return stored
        return session.get("access_token") or stored

    return stored


def get_token_claims(token: str) -> Optional[Dict[str, Any]]:
    """Read JWT claims without signature verification. None if not a JWT."""
    try:
        return jwt.get_unverified_claims(token)
    except JWTError:
        return None


def is_token_expired(token: str, now: Optional[float] = None, leeway: int = 0) -> bool:
    """
    Check the ``exp`` claim of a JWT.

    Tokens that are not JWTs, or carry no ``exp``, are treated as unexpired;
    the backend remains the authority.
    """
    claims = get_token_claims(token)
    if not claims or "exp" not in claims:
        return False

    now = time.time() if now is None else now
    try:
        return float(claims["exp"]) <= now + leeway
    except (TypeError, ValueError):
        logger.warning("Token carries a non-numeric exp claim")
        return True
