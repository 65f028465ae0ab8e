"""
Backend audit API client.

Provides bearer-authenticated access to the Inventory Insights backend:

- ``POST /api/audit/log``   append one audit event
- ``GET  /api/audit/trail`` recent audit rows, filtered server-side by
  sku, location and source, capped by ``limit``
- ``GET  /api/audit/stats`` per-location audit statistics

No request is retried here; callers decide how to treat failures.
"""

from typing import Dict, List, Any, Optional
from urllib.parse import urljoin

import requests

from inventory_insights.utils.config import BackendAPIConfig
from inventory_insights.utils.exceptions import APIError, handle_api_error
from inventory_insights.utils.logger import get_logger


logger = get_logger(__name__)


class BackendAPIClient:
    """Inventory Insights backend API client."""

    def __init__(self, config: BackendAPIConfig, session: Optional[requests.Session] = None):
        """
        Initialize backend API client.

        Args:
            config: Base URL and timeout
            session: Optional pre-built HTTP session
        """
        self.base_url = config.base_url.rstrip("/") + "/"
        self.timeout = config.timeout

        self.session = session or requests.Session()
        self.session.headers.update({
            "Content-Type": "application/json",
            "User-Agent": "InventoryInsights/1.0",
        })

        logger.debug(f"Initialized backend API client for {self.base_url}")

    def _make_request(self, method: str, path: str, token: str, **kwargs) -> requests.Response:
        """
        Make an authenticated HTTP request with error handling.

        Args:
            method: HTTP method
            path: Endpoint path relative to the base URL
            token: Bearer token
            **kwargs: Additional request parameters

        Returns:
            Response object

        Raises:
            APIError: If the request fails or returns a non-success status
        """
        url = urljoin(self.base_url, path.lstrip("/"))
        kwargs.setdefault("timeout", self.timeout)
        headers = {"Authorization": f"Bearer {token}"}

        logger.debug(f"Making {method} request to {url}")

        try:
            response = self.session.request(method, url, headers=headers, **kwargs)
        except requests.exceptions.Timeout:
            raise APIError(f"Request timeout after {self.timeout}s", endpoint=path)
        except requests.exceptions.ConnectionError:
            raise APIError(f"Connection failed to {url}", endpoint=path)
        except requests.exceptions.RequestException as e:
            raise APIError(f"Request failed: {e}", endpoint=path)

        if not response.ok:
            handle_api_error(response, path)

        return response

    def log_audit_entry(self, entry: Dict[str, Any], token: str) -> Any:
        """
        Append one audit event.

        Args:
            entry: Envelope ``{sku, quantity, location, source, user_type, user_name, metadata}``
            token: Bearer token

        Returns:
            Decoded response body, if any
        """
        response = self._make_request("POST", "/api/audit/log", token, json=entry)
        try:
            return response.json()
        except ValueError:
            return None

    def get_audit_trail(self, token: str, sku: Optional[str] = None,
                        location: Optional[str] = None,
                        source: Optional[str] = None,
                        limit: Optional[int] = None) -> List[Dict[str, Any]]:
        """
        Fetch recent audit rows.

        Returns:
            List of raw audit rows
        """
        params: Dict[str, Any] = {}
        if sku:
            params["sku"] = sku
        if location:
            params["location"] = location
        if source:
            params["source"] = source
        if limit:
            params["limit"] = limit

        response = self._make_request("GET", "/api/audit/trail", token, params=params)

        try:
            data = response.json()
        except ValueError:
            raise APIError("Invalid audit trail response: body is not JSON", endpoint="/api/audit/trail")

        # Some deployments wrap rows in {"data": [...]}
        if isinstance(data, dict):
            data = data.get("data") or data.get("items") or []
        if not isinstance(data, list):
            raise APIError(
                "Invalid audit trail response format",
                endpoint="/api/audit/trail",
                response_data=data,
            )

        logger.info(f"Retrieved {len(data)} audit rows")
        return data

    def get_audit_stats(self, token: str, location: Optional[str] = None) -> Dict[str, Any]:
        """Fetch audit statistics, optionally for one location."""
        params = {"location": location} if location else {}
        response = self._make_request("GET", "/api/audit/stats", token, params=params)
        try:
            return response.json()
        except ValueError:
            raise APIError("Invalid audit stats response: body is not JSON", endpoint="/api/audit/stats")
