"""
Unit tests for the Supabase identity provider adapter
"""
import json
import pytest
import requests
from unittest.mock import MagicMock

from inventory_insights.auth.provider import SupabaseIdentityProvider, classify_provider_error
from inventory_insights.utils.config import SupabaseConfig
from inventory_insights.utils.exceptions import AuthErrorKind, ProviderError


def make_response(status_code=200, payload=None):
    response = MagicMock()
    response.status_code = status_code
    response.ok = status_code < 400
    response.content = b"" if payload is None else json.dumps(payload).encode()
    response.json.return_value = payload
    return response


@pytest.fixture
def http():
    session = MagicMock()
    session.headers = {}
    return session


@pytest.fixture
def provider(http):
    config = SupabaseConfig(url="https://proj.supabase.co/", anon_key="anon-key", timeout=10)
    return SupabaseIdentityProvider(config, session=http)


@pytest.fixture
def token_payload():
    return {
        "access_token": "access-abc",
        "refresh_token": "refresh-xyz",
        "expires_at": 1792000000,
        "user": {"id": "user-123", "email": "ann@acme.io"},
    }


class TestClassifyProviderError:
    """Test classification of provider error payloads"""

    @pytest.mark.parametrize("payload,kind", [
        ({"error_code": "invalid_credentials", "msg": "Invalid login credentials"},
         AuthErrorKind.INVALID_CREDENTIALS),
        ({"error": "invalid_grant", "error_description": "Invalid login credentials"},
         AuthErrorKind.INVALID_CREDENTIALS),
        ({"error_code": "user_already_exists", "msg": "User already registered"},
         AuthErrorKind.ALREADY_REGISTERED),
        ({"msg": "Email not confirmed"}, AuthErrorKind.EMAIL_NOT_CONFIRMED),
        ({"msg": "Password should be at least 6 characters"}, AuthErrorKind.PASSWORD_TOO_SHORT),
        ({"msg": "Signups not allowed for this instance"}, AuthErrorKind.SIGNUP_DISABLED),
        ({"message": "Your subscription has expired"}, AuthErrorKind.SUBSCRIPTION),
        ("Invalid email format", AuthErrorKind.INVALID_EMAIL),
    ])
    def test_known_errors(self, payload, kind):
        result, _ = classify_provider_error(400, payload)
        assert result is kind

    def test_status_429_is_rate_limited(self):
        kind, message = classify_provider_error(429, {"msg": "Slow down"})

        assert kind is AuthErrorKind.RATE_LIMITED
        assert message == "Slow down"

    def test_empty_payload(self):
        kind, message = classify_provider_error(500, None)

        assert kind is AuthErrorKind.UNKNOWN
        assert message == "Request failed with status 500"


class TestSupabaseIdentityProvider:
    """Test HTTP calls made by the adapter"""

    def test_default_headers(self, provider, http):
        assert http.headers["apikey"] == "anon-key"
        assert provider.base_url == "https://proj.supabase.co/"

    def test_sign_in_with_password(self, provider, http, token_payload):
        http.request.return_value = make_response(200, token_payload)

        session = provider.sign_in_with_password("ann@acme.io", "secret1")

        assert session.user_id == "user-123"
        assert session.access_token == "access-abc"
        assert provider.access_token == "access-abc"

        args, kwargs = http.request.call_args
        assert args == ("POST", "https://proj.supabase.co/auth/v1/token")
        assert kwargs["params"] == {"grant_type": "password"}
        assert kwargs["json"] == {"email": "ann@acme.io", "password": "secret1"}
        assert kwargs["headers"]["Authorization"] == "Bearer anon-key"
        assert kwargs["timeout"] == 10

    def test_sign_in_failure_is_classified(self, provider, http):
        http.request.return_value = make_response(
            400, {"error_code": "invalid_credentials", "msg": "Invalid login credentials"}
        )

        with pytest.raises(ProviderError) as exc_info:
            provider.sign_in_with_password("ann@acme.io", "wrong-pass")

        assert exc_info.value.kind is AuthErrorKind.INVALID_CREDENTIALS
        assert exc_info.value.status_code == 400
        assert provider.access_token is None

    def test_sign_in_without_session(self, provider, http):
        http.request.return_value = make_response(200, {"user": {"id": "user-123"}})

        with pytest.raises(ProviderError):
            provider.sign_in_with_password("ann@acme.io", "secret1")

    def test_timeout_is_network_error(self, provider, http):
        http.request.side_effect = requests.exceptions.Timeout()

        with pytest.raises(ProviderError) as exc_info:
            provider.sign_in_with_password("ann@acme.io", "secret1")

        assert exc_info.value.kind is AuthErrorKind.NETWORK

    def test_connection_failure_is_network_error(self, provider, http):
        http.request.side_effect = requests.exceptions.ConnectionError("refused")

        with pytest.raises(ProviderError) as exc_info:
            provider.rpc("get_current_user_profile")

        assert exc_info.value.kind is AuthErrorKind.NETWORK

    def test_rpc_uses_session_token(self, provider, http, token_payload):
        http.request.side_effect = [
            make_response(200, token_payload),
            make_response(200, [{"id": "user-123", "tenant_id": "tenant-456"}]),
        ]
        provider.sign_in_with_password("ann@acme.io", "secret1")

        rows = provider.rpc("get_current_user_profile")

        assert rows == [{"id": "user-123", "tenant_id": "tenant-456"}]
        args, kwargs = http.request.call_args
        assert args[1] == "https://proj.supabase.co/rest/v1/rpc/get_current_user_profile"
        assert kwargs["headers"]["Authorization"] == "Bearer access-abc"

    @pytest.mark.parametrize("payload,expected", [
        (None, []),
        ([], []),
        ({"id": "user-123"}, [{"id": "user-123"}]),
    ])
    def test_rpc_result_shapes(self, provider, http, payload, expected):
        http.request.return_value = make_response(200, payload)

        assert provider.rpc("get_current_user_profile") == expected

    def test_sign_up_with_autoconfirm_session(self, provider, http, token_payload):
        http.request.return_value = make_response(200, token_payload)

        user = provider.sign_up("ann@acme.io", "secret1", {"name": "Ann"})

        assert user["id"] == "user-123"
        assert provider.access_token == "access-abc"
        assert http.request.call_args[1]["json"]["data"] == {"name": "Ann"}

    def test_sign_up_pending_confirmation(self, provider, http):
        http.request.return_value = make_response(200, {
            "id": "user-123",
            "email": "ann@acme.io",
            "confirmation_sent_at": "2026-10-17T10:00:00Z",
        })

        user = provider.sign_up("ann@acme.io", "secret1")

        assert user["confirmation_sent_at"]
        assert provider.access_token is None

    def test_insert_returns_stored_row(self, provider, http):
        http.request.return_value = make_response(201, [{"id": "tenant-456", "company_name": "Acme"}])

        row = provider.insert("tenants", {"company_name": "Acme"})

        assert row["id"] == "tenant-456"
        args, kwargs = http.request.call_args
        assert args[1] == "https://proj.supabase.co/rest/v1/tenants"
        assert kwargs["headers"]["Prefer"] == "return=representation"

    def test_sign_out_without_token_is_noop(self, provider, http):
        provider.sign_out()

        http.request.assert_not_called()

    def test_sign_out_with_stored_token(self, provider, http):
        provider.access_token = "current-token"
        http.request.return_value = make_response(204)

        provider.sign_out("stored-token")

        args, kwargs = http.request.call_args
        assert args[1] == "https://proj.supabase.co/auth/v1/logout"
        assert kwargs["headers"]["Authorization"] == "Bearer stored-token"
        assert provider.access_token is None
