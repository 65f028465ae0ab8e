"""
Unit tests for tenant registration
"""
import pytest

from inventory_insights.core.validator import RegistrationRequest
from inventory_insights.services.registration_service import RegistrationService, RegistrationStep
from inventory_insights.utils.exceptions import (
    AuthErrorKind, ProviderError, RegistrationError, ValidationError
)


TENANT_ROW = {
    "id": "tenant-456",
    "company_name": "Acme Storage",
    "contact_email": "ann@acme.io",
    "contact_name": "Ann Counter",
    "plan_name": "professional",
    "subscription_status": "trial",
}


def make_request(**overrides) -> RegistrationRequest:
    data = {
        "company_name": "Acme Storage",
        "name": "Ann Counter",
        "email": "ann@acme.io",
        "password": "secret1",
        "confirm_password": "secret1",
        "plan": "professional",
    }
    data.update(overrides)
    return RegistrationRequest(**data)


@pytest.fixture
def service(mock_provider, mock_shipper):
    return RegistrationService(mock_provider, shipper=mock_shipper)


class TestRegistrationValidation:
    """Test local validation before any provider call"""

    def test_short_password_makes_no_calls(self, service, mock_provider, mock_shipper):
        request = make_request(password="abc", confirm_password="abc")

        with pytest.raises(ValidationError) as exc_info:
            service.register(request)

        assert str(exc_info.value) == "Password must be at least 6 characters"
        assert mock_provider.method_calls == []
        assert mock_shipper.method_calls == []

    @pytest.mark.parametrize("overrides,message", [
        ({"company_name": " "}, "Company name is required"),
        ({"name": ""}, "Your name is required"),
        ({"email": ""}, "Email address is required"),
        ({"email": "ann@acme"}, "Please enter a valid email address"),
        ({"password": "", "confirm_password": ""}, "Password is required"),
        ({"confirm_password": "secret2"}, "Passwords do not match"),
        ({"plan": "enterprise"}, "Please select a valid plan"),
    ])
    def test_validation_messages(self, service, mock_provider, overrides, message):
        with pytest.raises(ValidationError) as exc_info:
            service.register(make_request(**overrides))

        assert str(exc_info.value) == message
        mock_provider.sign_up.assert_not_called()

    def test_request_repr_hides_password(self):
        assert "secret1" not in repr(make_request())


class TestRegistrationSteps:
    """Test the provisioning sequence"""

    def test_successful_registration(self, service, mock_provider, mock_shipper):
        mock_provider.sign_up.return_value = {"id": "user-123", "email": "ann@acme.io"}
        mock_provider.insert.side_effect = [TENANT_ROW, {"id": "user-123"}, {"tenant_id": "tenant-456"}]

        result = service.register(make_request(email=" ann@acme.io "))

        assert result.user_id == "user-123"
        assert result.tenant.id == "tenant-456"
        assert result.plan == "professional"

        mock_provider.sign_up.assert_called_once_with("ann@acme.io", "secret1", {
            "name": "Ann Counter",
            "company_name": "Acme Storage",
            "plan": "professional",
        })

        tables = [c[0][0] for c in mock_provider.insert.call_args_list]
        assert tables == ["tenants", "tenant_users", "tenant_settings"]

        profile = mock_provider.insert.call_args_list[1][0][1]
        assert profile["role"] == "admin"
        assert profile["tenant_id"] == "tenant-456"
        assert profile["is_active"] is True

        settings = mock_provider.insert.call_args_list[2][0][1]
        assert settings["enabled_locations"] == ["PRIMARY"]
        assert settings["default_location"] == "PRIMARY"

        event, = mock_shipper.log_auth_event.call_args[0]
        assert event == "registration_successful"
        assert mock_shipper.log_auth_event.call_args[1]["tenant_id"] == "tenant-456"

    def test_auth_user_failure_has_no_orphans(self, service, mock_provider, mock_shipper):
        mock_provider.sign_up.side_effect = ProviderError(
            "User already registered", AuthErrorKind.ALREADY_REGISTERED
        )

        with pytest.raises(RegistrationError) as exc_info:
            service.register(make_request())

        error = exc_info.value
        assert error.user_message == "An account with this email already exists. Please try logging in."
        assert error.step == RegistrationStep.AUTH_USER.value
        assert error.completed_steps == []
        assert error.has_orphans is False
        mock_provider.insert.assert_not_called()
        assert mock_shipper.log_auth_event.call_args[0][0] == "registration_failed"
        assert mock_shipper.log_auth_event.call_args[1]["reason"] == "supabase_auth_error"

    def test_profile_failure_reports_orphaned_steps(self, service, mock_provider, mock_shipper):
        mock_provider.sign_up.return_value = {"id": "user-123"}
        mock_provider.insert.side_effect = [TENANT_ROW, ProviderError("permission denied for table tenant_users")]

        with pytest.raises(RegistrationError) as exc_info:
            service.register(make_request())

        error = exc_info.value
        assert error.user_message == "Registration failed. Please try again."
        assert error.step == "profile"
        assert error.completed_steps == ["auth_user", "tenant"]
        assert error.has_orphans is True
        assert error.cause_message == "permission denied for table tenant_users"
        assert mock_provider.insert.call_count == 2
        assert mock_shipper.log_auth_event.call_args[0][0] == "registration_error"

    def test_settings_failure_is_not_swallowed(self, service, mock_provider):
        mock_provider.sign_up.return_value = {"id": "user-123"}
        mock_provider.insert.side_effect = [TENANT_ROW, {}, ProviderError("insert failed")]

        with pytest.raises(RegistrationError) as exc_info:
            service.register(make_request())

        assert exc_info.value.step == "settings"
        assert exc_info.value.completed_steps == ["auth_user", "tenant", "profile"]

    def test_tenant_insert_without_row_fails(self, service, mock_provider):
        mock_provider.sign_up.return_value = {"id": "user-123"}
        mock_provider.insert.return_value = {}

        with pytest.raises(RegistrationError) as exc_info:
            service.register(make_request())

        assert exc_info.value.step == "tenant"
        assert exc_info.value.completed_steps == ["auth_user"]

    def test_registration_without_shipper(self, mock_provider):
        mock_provider.sign_up.return_value = {"id": "user-123"}
        mock_provider.insert.side_effect = [TENANT_ROW, {}, {}]

        result = RegistrationService(mock_provider).register(make_request())

        assert result.tenant.company_name == "Acme Storage"
