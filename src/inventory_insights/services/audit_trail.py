"""
Audit trail viewer.

Fetches a bounded window of recent audit events for a location, turns each
into a display entry, and applies client-side filters and fixed-size
pagination. Calendar-day filters are evaluated in one named time zone.
"""

import math
from datetime import date, datetime, time as dt_time, timedelta, timezone
from typing import Dict, Iterable, List, Optional, Any
from zoneinfo import ZoneInfo

from inventory_insights.api.client import BackendAPIClient
from inventory_insights.auth.session_store import SessionStore
from inventory_insights.core.models import (
    AuditEvent, EventKind, TrailEntry, TrailFilter, TrailPage, parse_timestamp
)
from inventory_insights.utils.exceptions import APIError, AuthErrorKind, AuthenticationError
from inventory_insights.utils.logger import get_logger

logger = get_logger(__name__)

DEFAULT_TIMEZONE = "America/New_York"
DEFAULT_PAGE_SIZE = 20
DEFAULT_FETCH_LIMIT = 100

ITEM_COUNT = ("Item Count", "count", "📦")
LOGIN = ("Login", "auth", "🔐")
COUNT_RESET = ("Count Reset", "reset", "🔄")
COUNT_STARTED = ("Count Started", "start", "▶️")
SYSTEM_ACTION = ("System Action", "system", "⚙️")

ACTION_COLORS = {
    "count": "#86EFAC",
    "auth": "#60A5FA",
    "reset": "#FB923C",
    "start": "#A78BFA",
}
DEFAULT_ACTION_COLOR = "#9FA3AC"

_OLDEST = datetime.min.replace(tzinfo=timezone.utc)


def action_color(action_type: str) -> str:
    return ACTION_COLORS.get(action_type, DEFAULT_ACTION_COLOR)


def _category_from_source(event: AuditEvent):
    source = event.source or ""
    if "auth" in source:
        return LOGIN
    if "reset" in source:
        return COUNT_RESET
    if "start" in source:
        return COUNT_STARTED
    return SYSTEM_ACTION


def _category(event: AuditEvent):
    """
    Pick the display category.

    Tagged events use their kind. Untagged rows written by older clients
    fall back to sku/source inspection: a sku without ``_`` is an item
    count, otherwise the source decides.
    """
    kind = event.kind
    if kind is EventKind.INVENTORY_SCAN:
        return ITEM_COUNT
    if kind is EventKind.AUTH_EVENT:
        return LOGIN
    if kind is EventKind.COUNT_ACTION:
        action = str(event.metadata.get("action", "")).lower()
        if "reset" in action:
            return COUNT_RESET
        if "start" in action:
            return COUNT_STARTED
        return SYSTEM_ACTION
    if kind is not None:
        return SYSTEM_ACTION

    if event.sku and "_" not in event.sku:
        return ITEM_COUNT
    return _category_from_source(event)


def classify_event(event: AuditEvent) -> TrailEntry:
    """Turn one audit event into a display entry."""
    action, action_type, icon = _category(event)

    if action_type == "count":
        details = f"{event.sku}: Qty {event.quantity}"
    elif action_type == "auth":
        details = "User authentication"
    elif action_type == "reset":
        details = "Count data reset"
    elif action_type == "start":
        details = "Count session started"
    else:
        details = event.source or "Unknown action"

    show_sku = action_type == "count" and event.sku not in ("", "UNKNOWN")

    return TrailEntry(
        id=event.id,
        timestamp=event.timestamp,
        action=action,
        action_type=action_type,
        icon=icon,
        sku=event.sku if show_sku else "-",
        details=details,
        user=event.user_name or "System",
        location=event.location,
        quantity=event.quantity,
        metadata=event.metadata,
    )


def sort_entries(entries: Iterable[TrailEntry]) -> List[TrailEntry]:
    """
    Most recent first. Ties are ordered by id, descending; entries with an
    unparseable timestamp go last.
    """
    def sort_key(entry: TrailEntry):
        ts = entry.parsed_timestamp
        return (ts is not None, ts or _OLDEST, str(entry.id))

    return sorted(entries, key=sort_key, reverse=True)


def _parse_day(value: str) -> date:
    try:
        return date.fromisoformat(value.strip()[:10])
    except ValueError:
        raise ValueError(f"Invalid date filter: {value!r} (expected YYYY-MM-DD)")


def apply_filters(entries: Iterable[TrailEntry], trail_filter: TrailFilter,
                  tz_name: str = DEFAULT_TIMEZONE) -> List[TrailEntry]:
    """
    Apply the trail filters. Each active filter is independent and they
    compose with AND, so the order of application does not matter.

    - action / sku: case-insensitive substring
    - start_date / end_date: inclusive calendar days in ``tz_name``

    Raises:
        ValueError: if a date filter is not YYYY-MM-DD
    """
    result = list(entries)
    zone = ZoneInfo(tz_name)

    if trail_filter.action:
        needle = trail_filter.action.lower()
        result = [e for e in result if needle in e.action.lower()]

    if trail_filter.sku:
        needle = trail_filter.sku.lower()
        result = [e for e in result if needle in e.sku.lower()]

    if trail_filter.start_date:
        start = datetime.combine(_parse_day(trail_filter.start_date), dt_time.min, tzinfo=zone)
        result = [
            e for e in result
            if e.parsed_timestamp is not None and e.parsed_timestamp >= start
        ]

    if trail_filter.end_date:
        end = datetime.combine(_parse_day(trail_filter.end_date) + timedelta(days=1), dt_time.min, tzinfo=zone)
        result = [
            e for e in result
            if e.parsed_timestamp is not None and e.parsed_timestamp < end
        ]

    return result


def paginate(entries: List[TrailEntry], page: int, page_size: int = DEFAULT_PAGE_SIZE) -> TrailPage:
    """Slice one page; the page number is clamped to [1, total_pages]."""
    total_pages = math.ceil(len(entries) / page_size)
    page = max(1, min(page, max(total_pages, 1)))
    start = (page - 1) * page_size
    return TrailPage(
        items=entries[start:start + page_size],
        page=page,
        page_size=page_size,
        total_count=len(entries),
    )


def format_timestamp(timestamp: Optional[str], tz_name: str = DEFAULT_TIMEZONE,
                     now: Optional[datetime] = None) -> str:
    """Compact timestamp: time today, weekday this week, else month/day."""
    parsed = parse_timestamp(timestamp)
    if parsed is None:
        return "Invalid date"

    zone = ZoneInfo(tz_name)
    local = parsed.astimezone(zone)
    now = (now or datetime.now(timezone.utc)).astimezone(zone)

    if local.date() == now.date():
        return local.strftime("%H:%M")
    if local.isocalendar()[:2] == now.isocalendar()[:2]:
        return local.strftime("%a %H:%M")
    return local.strftime("%m/%d %H:%M")


class AuditTrailViewer:
    """
    Filterable, paginated view of recent audit events for one location.

    Holds the fetched entries and the transient filter/page state; nothing
    is persisted.
    """

    def __init__(self, api: BackendAPIClient, store: SessionStore,
                 tz_name: str = DEFAULT_TIMEZONE,
                 page_size: int = DEFAULT_PAGE_SIZE,
                 fetch_limit: int = DEFAULT_FETCH_LIMIT):
        self.api = api
        self.store = store
        self.tz_name = tz_name
        self.page_size = page_size
        self.fetch_limit = fetch_limit

        self.location: Optional[str] = None
        self.entries: List[TrailEntry] = []
        self.filter = TrailFilter()
        self.page = 1

    def _require_token(self) -> str:
        token = self.store.get_token()
        if not token or not self.store.is_authenticated():
            raise AuthenticationError("Not authenticated. Please log in again.", AuthErrorKind.UNKNOWN)
        return token

    def fetch(self, location: str) -> List[TrailEntry]:
        """
        Load the most recent events for ``location``, replacing any
        previously loaded entries.

        Raises:
            AuthenticationError: no usable stored token
            APIError: backend request failed
        """
        token = self._require_token()

        try:
            rows = self.api.get_audit_trail(token, location=location, limit=self.fetch_limit)
        except APIError as e:
            logger.error(f"Error fetching audit data for {location}: {e}")
            raise APIError(
                f"Failed to load audit data: {e.message}",
                status_code=e.status_code,
                endpoint=e.endpoint,
            )

        self.location = location
        self.entries = sort_entries(classify_event(AuditEvent.from_api(row)) for row in rows)
        self.page = 1

        logger.info(f"Loaded {len(self.entries)} audit entries for {location}")
        return self.entries

    def set_filter(self, trail_filter: TrailFilter) -> None:
        """Replace the filter state. Always resets to page 1."""
        self.filter = trail_filter
        self.page = 1

    def update_filter(self, **changes: Any) -> None:
        current = {
            "action": self.filter.action,
            "sku": self.filter.sku,
            "start_date": self.filter.start_date,
            "end_date": self.filter.end_date,
        }
        current.update(changes)
        self.set_filter(TrailFilter(**current))

    def clear_filters(self) -> None:
        self.set_filter(TrailFilter())

    def filtered(self) -> List[TrailEntry]:
        return apply_filters(self.entries, self.filter, self.tz_name)

    def current_page(self) -> TrailPage:
        result = paginate(self.filtered(), self.page, self.page_size)
        self.page = result.page
        return result

    def go_to_page(self, page: int) -> TrailPage:
        self.page = page
        return self.current_page()

    def next_page(self) -> TrailPage:
        return self.go_to_page(self.page + 1)

    def previous_page(self) -> TrailPage:
        return self.go_to_page(self.page - 1)

    def stats(self, location: Optional[str] = None) -> Dict[str, Any]:
        token = self._require_token()
        return self.api.get_audit_stats(token, location=location or self.location)
