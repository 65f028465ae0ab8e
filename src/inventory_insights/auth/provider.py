"""
Identity provider adapter.

``IdentityProvider`` is the interface the auth and registration services
depend on; ``SupabaseIdentityProvider`` implements it over the Supabase
GoTrue and PostgREST HTTP APIs. Provider error payloads are classified into
``AuthErrorKind`` here so callers never inspect provider prose.
"""

from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional, Tuple
from urllib.parse import urljoin

import requests

from inventory_insights.core.models import Session
from inventory_insights.utils.config import SupabaseConfig
from inventory_insights.utils.exceptions import AuthErrorKind, ProviderError
from inventory_insights.utils.logger import get_logger, mask_token

logger = get_logger(__name__)


# GoTrue ``error_code`` values mapped to kinds
_ERROR_CODES = {
    "invalid_credentials": AuthErrorKind.INVALID_CREDENTIALS,
    "invalid_grant": AuthErrorKind.INVALID_CREDENTIALS,
    "email_not_confirmed": AuthErrorKind.EMAIL_NOT_CONFIRMED,
    "over_request_rate_limit": AuthErrorKind.RATE_LIMITED,
    "over_email_send_rate_limit": AuthErrorKind.RATE_LIMITED,
    "user_already_exists": AuthErrorKind.ALREADY_REGISTERED,
    "email_exists": AuthErrorKind.ALREADY_REGISTERED,
    "weak_password": AuthErrorKind.WEAK_PASSWORD,
    "email_address_invalid": AuthErrorKind.INVALID_EMAIL,
    "signup_disabled": AuthErrorKind.SIGNUP_DISABLED,
    "email_provider_disabled": AuthErrorKind.SIGNUP_DISABLED,
}

# Fallback for older GoTrue releases that only send a message; order matters
_MESSAGE_MARKERS = [
    ("invalid login credentials", AuthErrorKind.INVALID_CREDENTIALS),
    ("email not confirmed", AuthErrorKind.EMAIL_NOT_CONFIRMED),
    ("too many requests", AuthErrorKind.RATE_LIMITED),
    ("rate limit", AuthErrorKind.RATE_LIMITED),
    ("already registered", AuthErrorKind.ALREADY_REGISTERED),
    ("weak_password", AuthErrorKind.WEAK_PASSWORD),
    ("password should be", AuthErrorKind.PASSWORD_TOO_SHORT),
    ("invalid email", AuthErrorKind.INVALID_EMAIL),
    ("invalid_email", AuthErrorKind.INVALID_EMAIL),
    ("signup_disabled", AuthErrorKind.SIGNUP_DISABLED),
    ("signups not allowed", AuthErrorKind.SIGNUP_DISABLED),
    ("profile setup incomplete", AuthErrorKind.PROFILE_INCOMPLETE),
    ("subscription", AuthErrorKind.SUBSCRIPTION),
]


def classify_provider_error(status_code: Optional[int], payload: Any) -> Tuple[AuthErrorKind, str]:
    """
    Classify a provider error response.

    Args:
        status_code: HTTP status code
        payload: Decoded JSON body, or raw text

    Returns:
        Tuple of (kind, provider message)
    """
    if isinstance(payload, dict):
        message = (
            payload.get("msg")
            or payload.get("error_description")
            or payload.get("message")
            or payload.get("error")
            or ""
        )
        code = payload.get("error_code") or payload.get("error")
    else:
        message = str(payload or "")
        code = None

    if not message:
        message = f"Request failed with status {status_code}"

    if code in _ERROR_CODES:
        return _ERROR_CODES[code], message

    lowered = message.lower()
    for marker, kind in _MESSAGE_MARKERS:
        if marker in lowered:
            return kind, message

    if status_code == 429:
        return AuthErrorKind.RATE_LIMITED, message

    return AuthErrorKind.UNKNOWN, message


class IdentityProvider(ABC):
    """
    Hosted identity provider interface.

    Implementations keep the current session token internally after a
    successful sign-in, so RPC and table calls run as the signed-in user.
    """

    @abstractmethod
    def sign_in_with_password(self, email: str, password: str) -> Session:
        """
        Sign in with email and password.

        Raises:
            ProviderError: classified provider failure
        """
        pass

    @abstractmethod
    def sign_up(self, email: str, password: str,
                metadata: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        """
        Create an auth user.

        Returns:
            Provider user record (``id``, ``email``, confirmation timestamps)
        """
        pass

    @abstractmethod
    def sign_out(self, access_token: Optional[str] = None) -> None:
        """Revoke the given session, or the current one."""
        pass

    @abstractmethod
    def rpc(self, function: str, params: Optional[Dict[str, Any]] = None) -> List[Dict[str, Any]]:
        """Call a stored procedure scoped to the current session."""
        pass

    @abstractmethod
    def insert(self, table: str, row: Dict[str, Any]) -> Dict[str, Any]:
        """Insert one row and return it as stored."""
        pass


class SupabaseIdentityProvider(IdentityProvider):
    """Supabase implementation over GoTrue (``/auth/v1``) and PostgREST (``/rest/v1``)."""

    def __init__(self, config: SupabaseConfig, session: Optional[requests.Session] = None):
        """
        Initialize Supabase adapter.

        Args:
            config: Project URL, anon key and timeout
            session: Optional pre-built HTTP session
        """
        self.config = config
        self.base_url = config.url.rstrip("/") + "/"
        self.timeout = config.timeout
        self.access_token: Optional[str] = None

        self.http = session or requests.Session()
        self.http.headers.update({
            "apikey": config.anon_key,
            "Content-Type": "application/json",
            "User-Agent": "InventoryInsights/1.0",
        })

        logger.debug(f"Initialized Supabase adapter for {config.url}")

    def _auth_headers(self) -> Dict[str, str]:
        return {"Authorization": f"Bearer {self.access_token or self.config.anon_key}"}

    def _request(self, method: str, path: str, **kwargs) -> Any:
        """
        Make an HTTP request and decode the JSON body.

        Raises:
            ProviderError: on network failure or non-success status
        """
        url = urljoin(self.base_url, path)
        kwargs.setdefault("timeout", self.timeout)
        headers = self._auth_headers()
        headers.update(kwargs.pop("headers", {}))

        logger.debug(f"Making {method} request to {url}")

        try:
            response = self.http.request(method, url, headers=headers, **kwargs)
        except requests.exceptions.Timeout:
            raise ProviderError(f"Request timeout after {self.timeout}s", AuthErrorKind.NETWORK)
        except requests.exceptions.RequestException as e:
            raise ProviderError(f"Connection failed: {e}", AuthErrorKind.NETWORK)

        try:
            payload = response.json() if response.content else None
        except ValueError:
            payload = response.text

        if not response.ok:
            kind, message = classify_provider_error(response.status_code, payload)
            logger.warning(f"Provider call {path} failed ({response.status_code}, {kind.value}): {message}")
            raise ProviderError(
                message,
                kind,
                status_code=response.status_code,
                response_data=payload if isinstance(payload, dict) else None,
            )

        return payload

    def sign_in_with_password(self, email: str, password: str) -> Session:
        data = self._request(
            "POST", "auth/v1/token",
            params={"grant_type": "password"},
            json={"email": email, "password": password},
        )
        if not isinstance(data, dict) or not data.get("access_token") or not data.get("user"):
            raise ProviderError("Sign-in response did not include a session", AuthErrorKind.UNKNOWN)

        session = Session.from_provider(data)
        self.access_token = session.access_token
        logger.info(f"Signed in user {session.user_id} (token {mask_token(session.access_token)})")
        return session

    def sign_up(self, email: str, password: str,
                metadata: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        data = self._request(
            "POST", "auth/v1/signup",
            json={"email": email, "password": password, "data": metadata or {}},
        )
        if not isinstance(data, dict):
            raise ProviderError("Sign-up response was empty", AuthErrorKind.UNKNOWN)

        # Autoconfirm projects return a session with the user nested inside
        if data.get("access_token"):
            self.access_token = data["access_token"]
        user = data.get("user") or data
        if not user.get("id"):
            raise ProviderError("Sign-up response did not include a user", AuthErrorKind.UNKNOWN)

        logger.info(f"Created auth user {user['id']}")
        return user

    def sign_out(self, access_token: Optional[str] = None) -> None:
        token = access_token or self.access_token
        if not token:
            return
        try:
            self._request("POST", "auth/v1/logout", headers={"Authorization": f"Bearer {token}"})
        finally:
            self.access_token = None

    def rpc(self, function: str, params: Optional[Dict[str, Any]] = None) -> List[Dict[str, Any]]:
        data = self._request("POST", f"rest/v1/rpc/{function}", json=params or {})
        if data is None:
            return []
        if isinstance(data, dict):
            return [data]
        return list(data)

    def insert(self, table: str, row: Dict[str, Any]) -> Dict[str, Any]:
        data = self._request(
            "POST", f"rest/v1/{table}",
            json=row,
            headers={"Prefer": "return=representation"},
        )
        if isinstance(data, list):
            return data[0] if data else {}
        return data or {}
