"""
Unit tests for the backend audit API client
"""
import pytest
import requests
from unittest.mock import MagicMock

from inventory_insights.api.client import BackendAPIClient
from inventory_insights.utils.exceptions import APIError, UnauthorizedError


def make_response(status_code=200, payload=None, json_error=False):
    response = MagicMock()
    response.status_code = status_code
    response.ok = status_code < 400
    if json_error:
        response.json.side_effect = ValueError("No JSON")
    else:
        response.json.return_value = payload
    response.text = ""
    return response


@pytest.fixture
def http():
    session = MagicMock()
    session.headers = {}
    return session


@pytest.fixture
def client(backend_config, http):
    return BackendAPIClient(backend_config, session=http)


class TestBackendAPIClient:
    """Test audit API requests"""

    def test_log_audit_entry(self, client, http):
        http.request.return_value = make_response(201, {"id": "evt-1"})
        entry = {"sku": "WIDGET-1", "quantity": 3}

        assert client.log_audit_entry(entry, "token-abc") == {"id": "evt-1"}

        args, kwargs = http.request.call_args
        assert args == ("POST", "https://backend.test/api/audit/log")
        assert kwargs["json"] == entry
        assert kwargs["headers"] == {"Authorization": "Bearer token-abc"}
        assert kwargs["timeout"] == 5

    def test_get_audit_trail_params(self, client, http):
        http.request.return_value = make_response(200, [{"id": "1"}])

        rows = client.get_audit_trail("token-abc", location="PRIMARY", limit=100)

        assert rows == [{"id": "1"}]
        args, kwargs = http.request.call_args
        assert args == ("GET", "https://backend.test/api/audit/trail")
        assert kwargs["params"] == {"location": "PRIMARY", "limit": 100}

    def test_get_audit_trail_unwraps_data(self, client, http):
        http.request.return_value = make_response(200, {"data": [{"id": "1"}, {"id": "2"}]})

        assert len(client.get_audit_trail("token-abc")) == 2

    def test_get_audit_trail_bad_format(self, client, http):
        http.request.return_value = make_response(200, "nope")

        with pytest.raises(APIError):
            client.get_audit_trail("token-abc")

    def test_get_audit_trail_not_json(self, client, http):
        http.request.return_value = make_response(200, json_error=True)

        with pytest.raises(APIError):
            client.get_audit_trail("token-abc")

    def test_unauthorized(self, client, http):
        http.request.return_value = make_response(401, {"error": "jwt expired"})

        with pytest.raises(UnauthorizedError) as exc_info:
            client.get_audit_trail("token-abc")

        assert exc_info.value.message == "Unauthorized - please log in again"

    def test_server_error(self, client, http):
        http.request.return_value = make_response(503, {"error": "down"})

        with pytest.raises(APIError) as exc_info:
            client.log_audit_entry({}, "token-abc")

        assert exc_info.value.message == "Server error: 503"
        assert exc_info.value.status_code == 503

    def test_connection_failure(self, client, http):
        http.request.side_effect = requests.exceptions.ConnectionError("refused")

        with pytest.raises(APIError) as exc_info:
            client.log_audit_entry({}, "token-abc")

        assert exc_info.value.endpoint == "/api/audit/log"

    def test_get_audit_stats(self, client, http):
        http.request.return_value = make_response(200, {"total": 12})

        assert client.get_audit_stats("token-abc", location="PRIMARY") == {"total": 12}
        assert http.request.call_args[1]["params"] == {"location": "PRIMARY"}
