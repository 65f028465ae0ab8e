"""
Authentication sequencer.

Sign-in runs: provider sign-in -> profile fetch (polled while the
provisioning trigger catches up) -> active check -> user record -> session
persistence. Provider failures arrive already classified and are mapped to
user-facing messages here.
"""

import time
from typing import Callable, List, Dict, Any, Optional

from inventory_insights.auth.provider import IdentityProvider
from inventory_insights.auth.session_store import SessionStore
from inventory_insights.core.models import (
    LoginResult, Profile, Session, SignUpResult, UserRecord
)
from inventory_insights.core.validator import validate_sign_up
from inventory_insights.services.audit_shipper import AuditShipper
from inventory_insights.utils.exceptions import (
    AccountDeactivatedError, AuthenticationError, AuthErrorKind,
    ProfileSetupIncompleteError, ProviderError
)
from inventory_insights.utils.logger import get_logger
from inventory_insights.utils.retry import RetryConfig, poll_until

logger = get_logger(__name__)

PROFILE_RPC = "get_current_user_profile"

SIGN_IN_MESSAGES = {
    AuthErrorKind.INVALID_CREDENTIALS: "Invalid email or password.",
    AuthErrorKind.EMAIL_NOT_CONFIRMED: "Please check your email and confirm your account.",
    AuthErrorKind.RATE_LIMITED: "Too many attempts. Please wait before trying again.",
}

SIGN_UP_MESSAGES = {
    AuthErrorKind.ALREADY_REGISTERED: "This email is already registered. Please sign in instead.",
    AuthErrorKind.PASSWORD_TOO_SHORT: "Password must be at least 6 characters long.",
    AuthErrorKind.INVALID_EMAIL: "Please enter a valid email address.",
    AuthErrorKind.WEAK_PASSWORD: "Password is too weak. Please use a stronger password.",
}


def sign_in_message(kind: AuthErrorKind, provider_message: str) -> str:
    """User-facing message for a classified sign-in failure."""
    if kind in SIGN_IN_MESSAGES:
        return SIGN_IN_MESSAGES[kind]
    if kind in (AuthErrorKind.PROFILE_INCOMPLETE, AuthErrorKind.SUBSCRIPTION):
        return provider_message
    return f"Authentication error: {provider_message}"


def _has_tenant_profile(rows: List[Dict[str, Any]]) -> bool:
    return bool(rows) and bool(rows[0].get("tenant_id"))


class AuthService:
    """Sign-in, sign-up and sign-out against the identity provider."""

    def __init__(self, provider: IdentityProvider, store: SessionStore,
                 shipper: Optional[AuditShipper] = None,
                 retry_config: Optional[RetryConfig] = None,
                 sleep: Callable[[float], None] = time.sleep):
        """
        Args:
            provider: Identity provider adapter
            store: Session store the login is persisted to
            shipper: Audit shipper for login/logout events
            retry_config: Profile fetch policy; one retry after 2s if None
            sleep: Sleep function, injectable for tests
        """
        self.provider = provider
        self.store = store
        self.shipper = shipper
        self.retry_config = retry_config or RetryConfig(max_retries=1, base_delay=2.0)
        self.sleep = sleep

    def _fetch_profile_rows(self, attempt: int) -> List[Dict[str, Any]]:
        try:
            return self.provider.rpc(PROFILE_RPC)
        except ProviderError as e:
            logger.error(f"Profile RPC error on attempt {attempt}: {e.message}")
            if attempt > 1:
                # A failed retry means the profile is still not provisioned
                raise ProfileSetupIncompleteError(attempts=attempt) from e
            raise AuthenticationError(
                sign_in_message(e.kind, f"Profile loading failed: {e.message}"),
                e.kind,
                provider_message=e.message,
            )

    def load_profile(self) -> Profile:
        """
        Load the caller's profile, polling while it is not provisioned yet.

        Raises:
            AuthenticationError: when the first profile fetch fails
            ProfileSetupIncompleteError: when retries are exhausted or a
                retry fetch fails
        """
        attempts = 0

        def fetch() -> List[Dict[str, Any]]:
            nonlocal attempts
            attempts += 1
            return self._fetch_profile_rows(attempts)

        rows = poll_until(
            fetch,
            _has_tenant_profile,
            config=self.retry_config,
            sleep=self.sleep,
            description="Profile",
        )

        if not _has_tenant_profile(rows):
            logger.error("Profile still not found after retry")
            raise ProfileSetupIncompleteError(attempts=attempts)

        return Profile.from_row(rows[0])

    def sign_in(self, email: str, password: str,
                on_login: Optional[Callable[[UserRecord, str], None]] = None) -> LoginResult:
        """
        Authenticate and load the profile.

        Args:
            email: Email address, trimmed before use
            password: Password, used as given
            on_login: Called with (user, token) after the session is persisted

        Returns:
            LoginResult with the user record and whether persistence succeeded

        Raises:
            AuthenticationError: classified failure; nothing is persisted
        """
        email = email.strip()
        logger.info(f"Attempting authentication for {email}")

        try:
            session = self.provider.sign_in_with_password(email, password)
        except ProviderError as e:
            raise AuthenticationError(sign_in_message(e.kind, e.message), e.kind, provider_message=e.message)

        profile = self.load_profile()
        logger.debug(f"Profile loaded: id={profile.id} role={profile.role}")

        if not profile.is_active:
            logger.warning(f"Deactivated account attempted sign-in: {profile.id}")
            try:
                self.provider.sign_out()
            except ProviderError as e:
                logger.error(f"Sign-out after deactivation failed: {e.message}")
            raise AccountDeactivatedError(user_id=profile.id)

        user = UserRecord.from_profile(session.user_id, session.email or email, profile)
        persisted = self.store.save_login(session.access_token, user)

        if on_login is not None:
            on_login(user, session.access_token)

        if self.shipper is not None:
            self.shipper.log_auth_event("login", email=user.email, user_id=user.id)

        logger.info(f"Login completed for {user.email}")
        return LoginResult(user=user, session=session, persisted=persisted)

    def sign_up(self, email: str, password: str, name: str) -> SignUpResult:
        """
        Create an auth user from the login screen.

        The profile row is provisioned server-side and picked up at the next
        sign-in.
        """
        validate_sign_up(email, password, name)
        email = email.strip()
        name = name.strip()

        try:
            user = self.provider.sign_up(email, password, {"name": name, "full_name": name})
        except ProviderError as e:
            raise AuthenticationError(
                SIGN_UP_MESSAGES.get(e.kind, "Sign up failed. Please try again."),
                e.kind,
                provider_message=e.message,
            )

        confirmation_required = bool(user.get("confirmation_sent_at")) and not user.get("email_confirmed_at")
        logger.info(f"Account created for {email} (confirmation required: {confirmation_required})")
        return SignUpResult(user_id=str(user["id"]), email=email, confirmation_required=confirmation_required)

    def sign_out(self) -> bool:
        """Sign out at the provider and clear the stored session."""
        if self.shipper is not None:
            self.shipper.log_auth_event("logout")

        try:
            self.provider.sign_out(self.store.get_token())
        except ProviderError as e:
            logger.warning(f"Provider sign-out failed, clearing local session anyway: {e.message}")

        return self.store.clear()

    def current_user(self) -> Optional[UserRecord]:
        return self.store.get_user()

    def is_authenticated(self) -> bool:
        return self.store.is_authenticated()
