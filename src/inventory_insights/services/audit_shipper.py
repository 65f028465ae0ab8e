"""
Audit event shipper.

Normalizes loosely-typed event descriptions into the backend envelope and
makes exactly one delivery attempt. Failures are logged and reported as
``False``; callers are expected to tolerate silent loss. There is no retry,
queue or offline buffer.

One shipper is constructed at application start and passed to the services
that emit events.
"""

from datetime import datetime, timezone
from typing import Dict, Any, Optional

from inventory_insights.api.client import BackendAPIClient
from inventory_insights.auth.session_store import SessionStore
from inventory_insights.core.models import EventKind
from inventory_insights.utils.exceptions import APIError
from inventory_insights.utils.logger import get_logger

logger = get_logger(__name__)


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def _to_int(value: Any, default: int) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        return default


class AuditShipper:
    """Ships audit events to ``POST /api/audit/log``."""

    def __init__(self, api: BackendAPIClient, store: SessionStore, enabled: bool = True):
        self.api = api
        self.store = store
        self._enabled = enabled

    @property
    def is_enabled(self) -> bool:
        return self._enabled

    def enable(self) -> None:
        self._enabled = True
        logger.info("Audit logging enabled")

    def disable(self) -> None:
        self._enabled = False
        logger.warning("Audit logging disabled")

    def current_user_info(self) -> Optional[Dict[str, Any]]:
        """
        Resolve identity from the session store.

        Returns:
            User info dict, or None unless both tenant id and token are present
        """
        token = self.store.get_token()
        user_data = self.store.get_user_data()
        tenant_id = user_data.get("tenant_id") or user_data.get("tenantId")

        if not tenant_id or not token:
            logger.warning("Missing tenant id or token, audit event not sent")
            return None

        return {
            "tenant_id": tenant_id,
            "user_id": user_data.get("id"),
            "user_name": user_data.get("name") or user_data.get("email") or "Unknown User",
            "user_type": user_data.get("role") or "user",
            "email": user_data.get("email"),
            "token": token,
        }

    def build_entry(self, data: Dict[str, Any], user_info: Dict[str, Any],
                    kind: EventKind) -> Dict[str, Any]:
        """Normalize an event description into the backend envelope."""
        metadata = dict(data.get("metadata") or {})
        metadata["type"] = EventKind(kind).value
        metadata.setdefault("timestamp", _now_iso())

        sku = data.get("sku")
        location = data.get("location")
        source = data.get("source")

        return {
            "sku": str(sku) if sku not in (None, "") else "UNKNOWN",
            "quantity": _to_int(data.get("quantity"), 1) or 1,
            "location": str(location) if location not in (None, "") else "SYSTEM",
            "source": str(source) if source not in (None, "") else "mobile_app",
            "user_type": data.get("user_type") or user_info["user_type"],
            "user_name": data.get("user_name") or user_info["user_name"],
            "metadata": metadata,
        }

    def log_entry(self, data: Dict[str, Any], kind: EventKind) -> bool:
        """
        Normalize and ship one event.

        Args:
            data: Loose event description
            kind: Event kind tag written to ``metadata["type"]``, overriding
                any ``type`` already present in ``data["metadata"]``

        Returns:
            True if the backend accepted the event (or shipping is disabled)
        """
        if not self._enabled:
            return True

        user_info = self.current_user_info()
        if not user_info:
            return False

        entry = self.build_entry(data, user_info, kind)

        try:
            self.api.log_audit_entry(entry, user_info["token"])
        except APIError as e:
            logger.error(f"Audit logging failed for {entry['sku']}: {e}")
            return False

        logger.debug(f"Audit logged: {entry['sku']}")
        return True

    def log_inventory_scan(self, sku: Any, quantity: Any, location: Any,
                           source: str = "mobile_count", **extra) -> bool:
        """Log an item count; the main use case."""
        return self.log_entry({
            "sku": str(sku),
            "quantity": quantity,
            "location": str(location),
            "source": str(source),
            "metadata": {"scan_timestamp": _now_iso(), **extra},
        }, EventKind.INVENTORY_SCAN)

    def log_auth_event(self, event: str, **extra) -> bool:
        """Log login, logout and registration events."""
        return self.log_entry({
            "sku": f"AUTH_{str(event).upper()}",
            "quantity": 1,
            "location": "SYSTEM",
            "source": "authentication",
            "metadata": {"event_type": event, "timestamp": _now_iso(), **extra},
        }, EventKind.AUTH_EVENT)

    def log_count_action(self, location: str, action: str, is_complete: bool = False, **extra) -> bool:
        """Log a count session start, reset or completion."""
        return self.log_entry({
            "sku": f"COUNT_{str(action).upper()}_{str(location).upper()}",
            "quantity": 100 if is_complete else 1,
            "location": str(location),
            "source": "count_management",
            "metadata": {
                "action": action,
                "completed": is_complete,
                "action_timestamp": _now_iso(),
                **extra,
            },
        }, EventKind.COUNT_ACTION)

    def log_configuration_change(self, config_type: str, old_value: Any, new_value: Any, **extra) -> bool:
        return self.log_entry({
            "sku": f"CONFIG_{str(config_type).upper()}",
            "quantity": 1,
            "location": "SYSTEM",
            "source": "configuration",
            "metadata": {
                "config_type": config_type,
                "old_value": old_value,
                "new_value": new_value,
                "change_timestamp": _now_iso(),
                **extra,
            },
        }, EventKind.CONFIGURATION_CHANGE)

    def test_logging(self) -> bool:
        """Send a test event end to end."""
        success = self.log_entry({
            "sku": "TEST_MOBILE_AUDIT",
            "quantity": 1,
            "location": "SYSTEM",
            "source": "mobile_test",
            "metadata": {"message": "Testing audit logging", "test_timestamp": _now_iso()},
        }, EventKind.TEST)
        logger.info(f"Audit test result: {'SUCCESS' if success else 'FAILED'}")
        return success

    def debug_info(self) -> Dict[str, Any]:
        info = self.current_user_info()
        if info:
            info = {key: value for key, value in info.items() if key != "token"}
        return {
            "api_base_url": self.api.base_url,
            "enabled": self._enabled,
            "user_info": info,
        }
