"""
Data models for the Inventory Insights client.

Defines the records exchanged with the identity provider and the backend
audit API, plus the display-side records used by the audit trail viewer.
"""

import math
import re
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import List, Optional, Dict, Any


class EventKind(Enum):
    """Kind tag attached to every audit event at write time."""
    INVENTORY_SCAN = "inventory_scan"
    AUTH_EVENT = "auth_event"
    COUNT_ACTION = "count_action"
    CONFIGURATION_CHANGE = "configuration_change"
    TEST = "test"

    @classmethod
    def from_value(cls, value: Any) -> Optional["EventKind"]:
        """Return the matching kind, or None for untagged or unknown rows."""
        for kind in cls:
            if kind.value == value:
                return kind
        return None


class Plan(Enum):
    """Subscription plans offered at registration."""
    STARTER = "starter"
    PROFESSIONAL = "professional"


_FRACTION = re.compile(r"(\d{2}:\d{2}:\d{2})\.(\d+)")


def _normalize_fraction(match) -> str:
    # Postgres trims trailing zeros; fromisoformat before 3.11 wants 3 or 6 digits
    return f"{match.group(1)}.{match.group(2)[:6].ljust(6, '0')}"


def parse_timestamp(value: Any) -> Optional[datetime]:
    """
    Parse an ISO-8601 timestamp into an aware datetime.

    Naive values are taken as UTC. A trailing ``Z`` is accepted, and
    fractional seconds of any length are padded or truncated to microseconds.
    Returns None when the value cannot be parsed.
    """
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, str) and value.strip():
        text = value.strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        text = _FRACTION.sub(_normalize_fraction, text, count=1)
        try:
            parsed = datetime.fromisoformat(text)
        except ValueError:
            return None
    else:
        return None

    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


@dataclass
class Session:
    """Authenticated provider session."""

    user_id: str
    email: str
    access_token: str
    refresh_token: Optional[str] = None
    expires_at: Optional[int] = None

    @classmethod
    def from_provider(cls, data: Dict[str, Any]) -> "Session":
        """Build from a GoTrue token response (``user`` nested inside)."""
        user = data.get("user") or {}
        return cls(
            user_id=str(user.get("id", "")),
            email=user.get("email", ""),
            access_token=data["access_token"],
            refresh_token=data.get("refresh_token"),
            expires_at=data.get("expires_at"),
        )


@dataclass
class Profile:
    """Application-level user record returned by ``get_current_user_profile``."""

    id: str
    email: str
    tenant_id: Optional[str]
    name: Optional[str] = None
    role: Optional[str] = None
    company_name: Optional[str] = None
    plan: Optional[str] = None
    subscription_status: Optional[str] = None
    is_active: bool = True

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> "Profile":
        return cls(
            id=str(row.get("id", "")),
            email=row.get("email", ""),
            tenant_id=row.get("tenant_id"),
            name=row.get("name"),
            role=row.get("role"),
            company_name=row.get("company_name"),
            plan=row.get("plan_name") or row.get("plan"),
            subscription_status=row.get("subscription_status"),
            # A missing flag is treated as active, matching the RPC default
            is_active=bool(row.get("is_active", True)),
        )


@dataclass
class Tenant:
    """Customer organization created at registration."""

    id: str
    company_name: str
    contact_email: str
    contact_name: str
    plan_name: str
    subscription_status: str = "trial"

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> "Tenant":
        return cls(
            id=str(row["id"]),
            company_name=row.get("company_name", ""),
            contact_email=row.get("contact_email", ""),
            contact_name=row.get("contact_name", ""),
            plan_name=row.get("plan_name", ""),
            subscription_status=row.get("subscription_status", "trial"),
        )


@dataclass
class UserRecord:
    """
    Client-facing user record persisted under ``user_data``.

    Built from the provider user and the loaded profile with defaults for
    absent fields.
    """

    id: str
    email: str
    name: str
    role: str
    tenant_id: str
    company_name: str = "Your Company"
    plan: str = "trial"
    subscription_status: str = "trial"

    @classmethod
    def from_profile(cls, user_id: str, email: str, profile: Profile) -> "UserRecord":
        return cls(
            id=user_id,
            email=email,
            name=profile.name or email.split("@")[0],
            role=profile.role or "user",
            tenant_id=profile.tenant_id,
            company_name=profile.company_name or "Your Company",
            plan=profile.plan or "trial",
            subscription_status=profile.subscription_status or "trial",
        )

    def to_dict(self) -> Dict[str, Any]:
        """Serialize with both ``tenantId`` and ``tenant_id`` keys."""
        return {
            "id": self.id,
            "email": self.email,
            "name": self.name,
            "role": self.role,
            "tenantId": self.tenant_id,
            "tenant_id": self.tenant_id,
            "companyName": self.company_name,
            "plan": self.plan,
            "subscriptionStatus": self.subscription_status,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "UserRecord":
        return cls(
            id=str(data.get("id", "")),
            email=data.get("email", ""),
            name=data.get("name") or data.get("email", ""),
            role=data.get("role") or "user",
            tenant_id=data.get("tenant_id") or data.get("tenantId"),
            company_name=data.get("companyName") or data.get("company_name") or "Your Company",
            plan=data.get("plan") or "trial",
            subscription_status=data.get("subscriptionStatus") or data.get("subscription_status") or "trial",
        )


@dataclass
class AuditEvent:
    """Audit row as returned by ``GET /api/audit/trail``."""

    id: str
    timestamp: Optional[str]
    sku: str
    quantity: int
    location: Optional[str]
    source: Optional[str]
    user_name: Optional[str] = None
    user_type: Optional[str] = None
    metadata: Dict[str, Any] = field(default_factory=dict)

    @property
    def kind(self) -> Optional[EventKind]:
        return EventKind.from_value(self.metadata.get("type"))

    @property
    def parsed_timestamp(self) -> Optional[datetime]:
        return parse_timestamp(self.timestamp)

    @classmethod
    def from_api(cls, row: Dict[str, Any]) -> "AuditEvent":
        """Build from an API row; rows without an id get a random one."""
        try:
            quantity = int(row.get("quantity") or 0)
        except (TypeError, ValueError):
            quantity = 0

        return cls(
            id=str(row.get("id") or uuid.uuid4().hex),
            timestamp=row.get("timestamp") or row.get("created_at"),
            sku=str(row.get("sku") or ""),
            quantity=quantity,
            location=row.get("location"),
            source=row.get("source"),
            user_name=row.get("user_name"),
            user_type=row.get("user_type"),
            metadata=row.get("metadata") or {},
        )


@dataclass
class TrailEntry:
    """Display record for one audit event."""

    id: str
    timestamp: Optional[str]
    action: str
    action_type: str
    icon: str
    sku: str
    details: str
    user: str
    location: Optional[str]
    quantity: int
    metadata: Dict[str, Any] = field(default_factory=dict)

    @property
    def parsed_timestamp(self) -> Optional[datetime]:
        return parse_timestamp(self.timestamp)


@dataclass(frozen=True)
class TrailFilter:
    """Transient filter state of the audit trail viewer."""

    action: str = ""
    sku: str = ""
    start_date: str = ""  # YYYY-MM-DD, inclusive
    end_date: str = ""  # YYYY-MM-DD, inclusive

    @property
    def is_empty(self) -> bool:
        return not (self.action or self.sku or self.start_date or self.end_date)


@dataclass
class TrailPage:
    """One page of the filtered audit trail."""

    items: List[TrailEntry]
    page: int
    page_size: int
    total_count: int

    @property
    def total_pages(self) -> int:
        return math.ceil(self.total_count / self.page_size)

    @property
    def is_empty(self) -> bool:
        return self.total_count == 0

    @property
    def has_next(self) -> bool:
        return self.page < self.total_pages

    @property
    def has_previous(self) -> bool:
        return self.page > 1


@dataclass
class LoginResult:
    """Outcome of a successful sign-in."""

    user: UserRecord
    session: Session
    persisted: bool


@dataclass
class SignUpResult:
    """Outcome of a bare sign-up from the login screen."""

    user_id: str
    email: str
    confirmation_required: bool


@dataclass
class RegistrationResult:
    """Outcome of a fully provisioned registration."""

    user_id: str
    tenant: Tenant
    plan: str
    duration_ms: int = 0
