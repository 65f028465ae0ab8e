"""
Builds the client services from configuration.

Called once at application start; the returned services share one session
store and one audit shipper.
"""

from dataclasses import dataclass

from inventory_insights.api.client import BackendAPIClient
from inventory_insights.auth.provider import SupabaseIdentityProvider
from inventory_insights.auth.session_store import FileSessionStore, SessionStore
from inventory_insights.services.audit_shipper import AuditShipper
from inventory_insights.services.audit_trail import AuditTrailViewer
from inventory_insights.services.auth_service import AuthService
from inventory_insights.services.registration_service import RegistrationService
from inventory_insights.utils.config import InventoryInsightsConfig
from inventory_insights.utils.logger import get_logger
from inventory_insights.utils.retry import RetryConfig

logger = get_logger(__name__)


@dataclass
class ClientServices:
    store: SessionStore
    api: BackendAPIClient
    shipper: AuditShipper
    auth: AuthService
    registration: RegistrationService
    trail: AuditTrailViewer


def create_services(config: InventoryInsightsConfig) -> ClientServices:
    """
    Wire the services together.

    Raises:
        ConfigurationError: if the identity provider settings are missing
    """
    app = config.app
    backend = config.backend

    store = FileSessionStore(app.session_file)
    api = BackendAPIClient(backend)
    shipper = AuditShipper(api, store, enabled=backend.audit_enabled)
    provider = SupabaseIdentityProvider(config.supabase)

    retry_config = RetryConfig(
        max_retries=app.profile_retry_count,
        base_delay=app.profile_retry_delay,
        max_delay=app.profile_retry_max_delay,
    )

    logger.debug(f"Services created (api={backend.base_url}, session_file={app.session_file})")

    return ClientServices(
        store=store,
        api=api,
        shipper=shipper,
        auth=AuthService(provider, store, shipper=shipper, retry_config=retry_config),
        registration=RegistrationService(provider, shipper=shipper),
        trail=AuditTrailViewer(
            api, store,
            tz_name=app.timezone,
            page_size=app.page_size,
            fetch_limit=backend.trail_limit,
        ),
    )
