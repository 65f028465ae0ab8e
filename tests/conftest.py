"""
Test configuration and fixtures for Inventory Insights
"""
import json
import os
import tempfile
import time

# Keep test log files out of the working tree
os.environ.setdefault("LOG_DIR", os.path.join(tempfile.gettempdir(), "inventory_insights_test_logs"))

import pytest
from unittest.mock import MagicMock
from jose import jwt

from inventory_insights.api.client import BackendAPIClient
from inventory_insights.auth.provider import IdentityProvider
from inventory_insights.auth.session_store import MemorySessionStore, TOKEN_KEY, USER_DATA_KEY
from inventory_insights.core.models import Session
from inventory_insights.services.audit_shipper import AuditShipper
from inventory_insights.utils.config import BackendAPIConfig


def make_token(exp_offset: int = 3600, **claims) -> str:
    """Build an HS256 JWT expiring ``exp_offset`` seconds from now."""
    payload = {"sub": "user-123", "exp": int(time.time()) + exp_offset}
    payload.update(claims)
    return jwt.encode(payload, "test-secret", algorithm="HS256")


# =============================================================================
# Users and sessions
# =============================================================================

@pytest.fixture
def access_token() -> str:
    return make_token()


@pytest.fixture
def test_user_data():
    """User record as persisted under user_data"""
    return {
        "id": "user-123",
        "email": "ann@acme.io",
        "name": "Ann Counter",
        "role": "admin",
        "tenantId": "tenant-456",
        "tenant_id": "tenant-456",
        "companyName": "Acme Storage",
        "plan": "starter",
        "subscriptionStatus": "trial",
    }


@pytest.fixture
def profile_row():
    """Row returned by get_current_user_profile"""
    return {
        "id": "user-123",
        "email": "ann@acme.io",
        "tenant_id": "tenant-456",
        "name": "Ann Counter",
        "role": "admin",
        "company_name": "Acme Storage",
        "plan_name": "starter",
        "subscription_status": "trial",
        "is_active": True,
    }


@pytest.fixture
def provider_session(access_token) -> Session:
    return Session(user_id="user-123", email="ann@acme.io", access_token=access_token)


@pytest.fixture
def empty_store() -> MemorySessionStore:
    return MemorySessionStore()


@pytest.fixture
def logged_in_store(access_token, test_user_data) -> MemorySessionStore:
    """Store holding a valid token and user record"""
    return MemorySessionStore({
        TOKEN_KEY: access_token,
        USER_DATA_KEY: json.dumps(test_user_data),
    })


# =============================================================================
# Collaborators
# =============================================================================

@pytest.fixture
def mock_provider():
    return MagicMock(spec=IdentityProvider)


@pytest.fixture
def mock_api():
    api = MagicMock(spec=BackendAPIClient)
    api.base_url = "https://backend.test/"
    return api


@pytest.fixture
def mock_shipper():
    return MagicMock(spec=AuditShipper)


@pytest.fixture
def shipper(mock_api, logged_in_store) -> AuditShipper:
    return AuditShipper(mock_api, logged_in_store)


@pytest.fixture
def backend_config() -> BackendAPIConfig:
    return BackendAPIConfig(base_url="https://backend.test", timeout=5)


@pytest.fixture
def token_factory():
    """Build JWTs with a chosen expiry offset"""
    return make_token
