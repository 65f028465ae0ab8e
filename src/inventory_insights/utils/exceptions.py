"""
Custom exceptions for the Inventory Insights client.

Defines application-specific exception classes for configuration problems,
local validation failures, identity provider errors, profile provisioning,
registration and backend API failures.
"""

import enum
from typing import Optional, Dict, Any, List


class AuthErrorKind(str, enum.Enum):
    """Closed set of error kinds the identity provider adapter maps errors into."""
    INVALID_CREDENTIALS = "invalid_credentials"
    EMAIL_NOT_CONFIRMED = "email_not_confirmed"
    RATE_LIMITED = "rate_limited"
    PROFILE_INCOMPLETE = "profile_incomplete"
    SUBSCRIPTION = "subscription"
    ACCOUNT_DEACTIVATED = "account_deactivated"
    ALREADY_REGISTERED = "already_registered"
    WEAK_PASSWORD = "weak_password"
    PASSWORD_TOO_SHORT = "password_too_short"
    INVALID_EMAIL = "invalid_email"
    SIGNUP_DISABLED = "signup_disabled"
    NETWORK = "network"
    UNKNOWN = "unknown"


class InventoryInsightsError(Exception):
    """Base exception for all Inventory Insights errors."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        """
        Initialize exception with message and optional details.

        Args:
            message: Error message
            details: Additional error details
        """
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        if self.details:
            return f"{self.message} | Details: {self.details}"
        return self.message


class ConfigurationError(InventoryInsightsError):
    """Raised when configuration is invalid or missing."""
    pass


class ValidationError(InventoryInsightsError):
    """Raised when local, pre-flight validation fails."""

    def __init__(self, message: str, field: Optional[str] = None,
                 value: Optional[Any] = None):
        """
        Initialize validation error.

        Args:
            message: User-facing error message
            field: Field name that failed validation
            value: Invalid value (never set for passwords)
        """
        details = {}
        if field:
            details["field"] = field
        if value is not None:
            details["value"] = str(value)

        super().__init__(message, details)
        self.field = field
        self.value = value

    def __str__(self) -> str:
        return self.message


class ProviderError(InventoryInsightsError):
    """Raised by the identity provider adapter, already classified."""

    def __init__(self, message: str, kind: AuthErrorKind = AuthErrorKind.UNKNOWN,
                 status_code: Optional[int] = None,
                 response_data: Optional[Dict[str, Any]] = None):
        details: Dict[str, Any] = {"kind": kind.value}
        if status_code:
            details["status_code"] = status_code
        if response_data:
            details["response_data"] = response_data

        super().__init__(message, details)
        self.kind = kind
        self.status_code = status_code
        self.response_data = response_data


class AuthenticationError(InventoryInsightsError):
    """Raised when a sign-in, sign-up or session check fails."""

    def __init__(self, user_message: str, kind: AuthErrorKind = AuthErrorKind.UNKNOWN,
                 provider_message: Optional[str] = None):
        """
        Initialize authentication error.

        Args:
            user_message: Message safe to show to the user
            kind: Classified error kind
            provider_message: Original provider message, if any
        """
        details: Dict[str, Any] = {"kind": kind.value}
        if provider_message:
            details["provider_message"] = provider_message

        super().__init__(user_message, details)
        self.user_message = user_message
        self.kind = kind
        self.provider_message = provider_message

    def __str__(self) -> str:
        return self.user_message


class ProfileSetupIncompleteError(AuthenticationError):
    """Raised when the profile row is still missing after the retry policy is exhausted."""

    MESSAGE = "Profile setup incomplete. Please try signing in again or contact support."

    def __init__(self, attempts: int = 0):
        super().__init__(self.MESSAGE, AuthErrorKind.PROFILE_INCOMPLETE)
        self.attempts = attempts
        self.details["attempts"] = attempts


class AccountDeactivatedError(AuthenticationError):
    """Raised when the loaded profile is inactive. The session is signed out."""

    MESSAGE = "Your account has been deactivated. Please contact support."

    def __init__(self, user_id: Optional[str] = None):
        super().__init__(self.MESSAGE, AuthErrorKind.ACCOUNT_DEACTIVATED)
        self.user_id = user_id


class RegistrationError(InventoryInsightsError):
    """
    Raised when a registration step fails.

    Registration steps are not transactional: ``completed_steps`` lists the
    steps that were already committed and are now orphaned.
    """

    def __init__(self, user_message: str, step: str,
                 completed_steps: Optional[List[str]] = None,
                 kind: AuthErrorKind = AuthErrorKind.UNKNOWN,
                 cause_message: Optional[str] = None):
        completed_steps = list(completed_steps or [])
        details: Dict[str, Any] = {
            "step": step,
            "completed_steps": completed_steps,
        }
        if cause_message:
            details["cause"] = cause_message

        super().__init__(user_message, details)
        self.user_message = user_message
        self.step = step
        self.completed_steps = completed_steps
        self.kind = kind
        self.cause_message = cause_message

    @property
    def has_orphans(self) -> bool:
        return bool(self.completed_steps)

    def __str__(self) -> str:
        return self.user_message


class APIError(InventoryInsightsError):
    """Raised when a backend API call fails."""

    def __init__(self, message: str, status_code: Optional[int] = None,
                 response_data: Optional[Any] = None,
                 endpoint: Optional[str] = None):
        """
        Initialize API error.

        Args:
            message: Error message
            status_code: HTTP status code
            response_data: API response data
            endpoint: API endpoint that failed
        """
        details: Dict[str, Any] = {}
        if status_code:
            details["status_code"] = status_code
        if response_data:
            details["response_data"] = response_data
        if endpoint:
            details["endpoint"] = endpoint

        super().__init__(message, details)
        self.status_code = status_code
        self.response_data = response_data
        self.endpoint = endpoint


class UnauthorizedError(APIError):
    """Raised when the backend rejects the bearer token."""
    pass


def handle_api_error(response, endpoint: Optional[str] = None) -> None:
    """
    Handle a failed HTTP response and raise the appropriate API error.

    Args:
        response: ``requests.Response`` object
        endpoint: API endpoint that was called

    Raises:
        UnauthorizedError: on 401
        APIError: on any other non-success status
    """
    status_code = getattr(response, 'status_code', None)

    try:
        response_data = response.json()
    except ValueError:
        response_data = getattr(response, 'text', None)

    if status_code == 401:
        raise UnauthorizedError(
            "Unauthorized - please log in again",
            status_code=status_code,
            endpoint=endpoint
        )
    if status_code is not None and status_code >= 500:
        raise APIError(
            f"Server error: {status_code}",
            status_code=status_code,
            response_data=response_data,
            endpoint=endpoint
        )
    raise APIError(
        f"API request failed: {status_code}",
        status_code=status_code,
        response_data=response_data,
        endpoint=endpoint
    )
