"""
Pre-flight validation for registration and sign-up forms.

All checks are local and pure: a failure raises ValidationError with the
user-facing message and no network call is issued.
"""

import re
from dataclasses import dataclass

from inventory_insights.core.models import Plan
from inventory_insights.utils.exceptions import ValidationError


EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
MIN_PASSWORD_LENGTH = 6


@dataclass
class RegistrationRequest:
    """Registration form input."""

    company_name: str
    name: str
    email: str
    password: str
    confirm_password: str
    plan: str = Plan.STARTER.value

    def __repr__(self) -> str:
        return (
            f"RegistrationRequest(company_name={self.company_name!r}, "
            f"email={self.email!r}, plan={self.plan!r})"
        )


def is_valid_email(email: str) -> bool:
    return bool(EMAIL_PATTERN.match(email or ""))


def validate_registration(request: RegistrationRequest) -> None:
    """
    Validate a registration request. First failure wins.

    Raises:
        ValidationError: with the message shown to the user
    """
    if not request.company_name.strip():
        raise ValidationError("Company name is required", field="company_name")
    if not request.name.strip():
        raise ValidationError("Your name is required", field="name")
    if not request.email.strip():
        raise ValidationError("Email address is required", field="email")
    if not is_valid_email(request.email):
        raise ValidationError("Please enter a valid email address", field="email", value=request.email)

    if not request.password:
        raise ValidationError("Password is required", field="password")
    if len(request.password) < MIN_PASSWORD_LENGTH:
        raise ValidationError(
            f"Password must be at least {MIN_PASSWORD_LENGTH} characters", field="password"
        )
    if request.password != request.confirm_password:
        raise ValidationError("Passwords do not match", field="confirm_password")

    if request.plan not in {plan.value for plan in Plan}:
        raise ValidationError("Please select a valid plan", field="plan", value=request.plan)


def validate_sign_up(email: str, password: str, name: str) -> None:
    """Validate the short sign-up form on the login screen."""
    if not name.strip():
        raise ValidationError("Please enter your full name", field="name")
    if not email.strip():
        raise ValidationError("Email address is required", field="email")
    if not password:
        raise ValidationError("Password is required", field="password")
