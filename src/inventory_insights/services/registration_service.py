"""
Registration sequencer.

Provisions a new tenant in four steps: auth user, tenant row, admin profile
row, default settings row. The steps are separate provider calls with no
transaction around them and no compensation: when a later step fails, the
rows committed by earlier steps stay behind. ``RegistrationError`` reports
which steps were committed so an operator can clean them up.
"""

import enum
import time
from datetime import datetime, timezone
from typing import List, Optional

from inventory_insights.auth.provider import IdentityProvider
from inventory_insights.core.models import RegistrationResult, Tenant
from inventory_insights.core.validator import RegistrationRequest, validate_registration
from inventory_insights.services.audit_shipper import AuditShipper
from inventory_insights.utils.exceptions import AuthErrorKind, ProviderError, RegistrationError
from inventory_insights.utils.logger import get_logger

logger = get_logger(__name__)

DEFAULT_LOCATION = "PRIMARY"

REGISTRATION_MESSAGES = {
    AuthErrorKind.ALREADY_REGISTERED: "An account with this email already exists. Please try logging in.",
    AuthErrorKind.WEAK_PASSWORD: "Password is too weak. Please choose a stronger password.",
    AuthErrorKind.INVALID_EMAIL: "Please enter a valid email address.",
    AuthErrorKind.SIGNUP_DISABLED: "New registrations are temporarily disabled. Please try again later.",
}
GENERIC_MESSAGE = "Registration failed. Please try again."


class RegistrationStep(str, enum.Enum):
    AUTH_USER = "auth_user"
    TENANT = "tenant"
    PROFILE = "profile"
    SETTINGS = "settings"


class RegistrationService:
    """Creates a fully provisioned tenant with an admin user."""

    def __init__(self, provider: IdentityProvider, shipper: Optional[AuditShipper] = None):
        self.provider = provider
        self.shipper = shipper

    def _audit(self, event: str, **data) -> None:
        if self.shipper is None:
            return
        self.shipper.log_auth_event(event, **data)

    def _fail(self, request: RegistrationRequest, step: RegistrationStep,
              completed: List[RegistrationStep], error: ProviderError,
              started_at: str) -> RegistrationError:
        completed_names = [s.value for s in completed]
        if completed:
            logger.warning(
                f"Registration for {request.email} failed at {step.value}; "
                f"orphaned steps left committed: {completed_names}"
            )
        else:
            logger.error(f"Registration for {request.email} failed at {step.value}: {error.message}")

        if step is RegistrationStep.AUTH_USER:
            self._audit(
                "registration_failed",
                email=request.email,
                reason="supabase_auth_error",
                error_message=error.message,
                registration_start=started_at,
            )
        else:
            self._audit(
                "registration_error",
                email=request.email,
                failed_step=step.value,
                completed_steps=completed_names,
                error_message=error.message,
                registration_start=started_at,
            )

        return RegistrationError(
            REGISTRATION_MESSAGES.get(error.kind, GENERIC_MESSAGE),
            step=step.value,
            completed_steps=completed_names,
            kind=error.kind,
            cause_message=error.message,
        )

    def register(self, request: RegistrationRequest) -> RegistrationResult:
        """
        Validate and run the registration steps in order.

        Raises:
            ValidationError: before any network call
            RegistrationError: when a provider step fails
        """
        validate_registration(request)

        started = time.monotonic()
        started_at = datetime.now(timezone.utc).isoformat()
        completed: List[RegistrationStep] = []
        step = RegistrationStep.AUTH_USER

        email = request.email.strip()
        name = request.name.strip()
        company_name = request.company_name.strip()

        logger.info(f"Registering {company_name} ({email}) on plan {request.plan}")

        try:
            user = self.provider.sign_up(email, request.password, {
                "name": name,
                "company_name": company_name,
                "plan": request.plan,
            })
            completed.append(step)

            step = RegistrationStep.TENANT
            tenant_row = self.provider.insert("tenants", {
                "company_name": company_name,
                "contact_email": email,
                "contact_name": name,
                "plan_name": request.plan,
                "subscription_status": "trial",
            })
            if not tenant_row.get("id"):
                raise ProviderError("Tenant insert returned no row")
            tenant = Tenant.from_row(tenant_row)
            completed.append(step)

            step = RegistrationStep.PROFILE
            self.provider.insert("tenant_users", {
                "id": user["id"],
                "tenant_id": tenant.id,
                "email": email,
                "name": name,
                "role": "admin",
                "is_active": True,
            })
            completed.append(step)

            step = RegistrationStep.SETTINGS
            self.provider.insert("tenant_settings", {
                "tenant_id": tenant.id,
                "enabled_locations": [DEFAULT_LOCATION],
                "default_location": DEFAULT_LOCATION,
            })
            completed.append(step)

        except ProviderError as e:
            raise self._fail(request, step, completed, e, started_at)

        duration_ms = int((time.monotonic() - started) * 1000)
        self._audit(
            "registration_successful",
            email=email,
            user_id=user["id"],
            tenant_id=tenant.id,
            company_name=company_name,
            plan=request.plan,
            registration_start=started_at,
            registration_duration_ms=duration_ms,
        )

        logger.info(f"Tenant registered: {tenant.company_name} ({tenant.id})")
        return RegistrationResult(user_id=str(user["id"]), tenant=tenant, plan=request.plan, duration_ms=duration_ms)
