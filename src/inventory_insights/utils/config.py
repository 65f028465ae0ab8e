"""
Configuration management for the Inventory Insights client.

Provides centralized configuration loading and validation using Pydantic
models. Settings come from environment variables and an optional ``.env``
file, and are exposed through grouped views for the identity provider, the
backend API and general application behaviour.
"""

import re
from datetime import datetime
from pathlib import Path
from typing import Optional, Dict, Any, Iterable
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from inventory_insights.utils.exceptions import ConfigurationError
from inventory_insights.utils.logger import get_logger


logger = get_logger(__name__)


DEFAULT_API_BASE_URL = "https://warehouse-inventory-manager-backend.onrender.com"
DEFAULT_SESSION_FILE = str(Path.home() / ".inventory_insights" / "session.json")

_API_SUFFIX = re.compile(r"/api.*$")


def resolve_api_base_url(candidates: Iterable[Optional[str]],
                         fallback: str = DEFAULT_API_BASE_URL) -> str:
    """
    Pick the first non-empty candidate URL.

    Any trailing ``/api...`` path is stripped so endpoint paths can be
    appended uniformly.

    Args:
        candidates: Candidate URLs in priority order
        fallback: URL used when no candidate is set

    Returns:
        Base URL without ``/api`` suffix or trailing slash
    """
    for url in candidates:
        if url and url.strip():
            return _API_SUFFIX.sub("", url.strip()).rstrip("/")
    return fallback


class SupabaseConfig(BaseModel):
    """Hosted identity provider configuration."""

    url: str = Field(..., description="Supabase project URL")
    anon_key: str = Field(..., description="Supabase anon (public) API key")
    timeout: int = Field(default=30, description="Request timeout in seconds")

    @field_validator('url')
    @classmethod
    def validate_url(cls, v):
        if not v or not v.strip():
            raise ValueError("Supabase URL is required")
        if not v.startswith(("http://", "https://")):
            raise ValueError("Supabase URL must start with http:// or https://")
        return v.strip().rstrip("/")

    @field_validator('anon_key')
    @classmethod
    def validate_anon_key(cls, v):
        if not v or not v.strip():
            raise ValueError("Supabase anon key is required")
        return v.strip()


class BackendAPIConfig(BaseModel):
    """Backend audit API configuration."""

    base_url: str = Field(default=DEFAULT_API_BASE_URL, description="Backend API base URL")
    timeout: int = Field(default=30, description="API request timeout in seconds")
    audit_enabled: bool = Field(default=True, description="Ship audit events")
    trail_limit: int = Field(default=100, description="Audit trail fetch cap")

    @field_validator('timeout', 'trail_limit')
    @classmethod
    def validate_positive(cls, v):
        if v <= 0:
            raise ValueError("Value must be positive")
        return v


class ApplicationConfig(BaseModel):
    """General application configuration."""

    log_level: str = Field(default="INFO", description="Logging level")
    log_dir: str = Field(default="./logs", description="Log files directory")
    debug_mode: bool = Field(default=False, description="Debug mode flag")
    timezone: str = Field(default="America/New_York", description="Audit trail display zone")
    session_file: str = Field(default=DEFAULT_SESSION_FILE, description="Session store path")
    page_size: int = Field(default=20, description="Audit trail page size")

    # Profile fetch retry after sign-in
    profile_retry_count: int = Field(default=1, description="Profile fetch retries")
    profile_retry_delay: float = Field(default=2.0, description="First retry delay in seconds")
    profile_retry_max_delay: float = Field(default=10.0, description="Retry delay cap in seconds")

    @field_validator('log_level')
    @classmethod
    def validate_log_level(cls, v):
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        if v.upper() not in valid_levels:
            raise ValueError(f"Log level must be one of: {valid_levels}")
        return v.upper()

    @field_validator('timezone')
    @classmethod
    def validate_timezone(cls, v):
        try:
            ZoneInfo(v)
        except (ZoneInfoNotFoundError, ValueError):
            raise ValueError(f"Unknown time zone: {v}")
        return v

    @field_validator('page_size')
    @classmethod
    def validate_page_size(cls, v):
        if v <= 0:
            raise ValueError("Page size must be positive")
        return v

    @field_validator('profile_retry_count')
    @classmethod
    def validate_retry_count(cls, v):
        if v < 0:
            raise ValueError("Retry count cannot be negative")
        return v


class InventoryInsightsConfig(BaseSettings):
    """Main application configuration combining all sub-configurations."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    supabase_url: Optional[str] = None
    supabase_anon_key: Optional[str] = None

    # Checked in this order, then DEFAULT_API_BASE_URL
    api_base_url: Optional[str] = None
    api_url: Optional[str] = None
    api_timeout: int = 30

    audit_enabled: bool = True
    audit_trail_limit: int = 100
    audit_page_size: int = 20

    session_file: str = DEFAULT_SESSION_FILE
    timezone: str = "America/New_York"

    profile_retry_count: int = 1
    profile_retry_delay: float = 2.0
    profile_retry_max_delay: float = 10.0

    log_level: str = "INFO"
    log_dir: str = "./logs"
    debug_mode: bool = False

    @property
    def supabase(self) -> SupabaseConfig:
        """Get identity provider configuration."""
        if not self.supabase_url or not self.supabase_anon_key:
            raise ConfigurationError(
                "SUPABASE_URL and SUPABASE_ANON_KEY must be set",
                {"has_url": bool(self.supabase_url), "has_anon_key": bool(self.supabase_anon_key)}
            )
        return SupabaseConfig(
            url=self.supabase_url,
            anon_key=self.supabase_anon_key,
            timeout=self.api_timeout
        )

    @property
    def backend(self) -> BackendAPIConfig:
        """Get backend API configuration."""
        return BackendAPIConfig(
            base_url=resolve_api_base_url([self.api_base_url, self.api_url]),
            timeout=self.api_timeout,
            audit_enabled=self.audit_enabled,
            trail_limit=self.audit_trail_limit
        )

    @property
    def app(self) -> ApplicationConfig:
        """Get application configuration."""
        return ApplicationConfig(
            log_level=self.log_level,
            log_dir=self.log_dir,
            debug_mode=self.debug_mode,
            timezone=self.timezone,
            session_file=self.session_file,
            page_size=self.audit_page_size,
            profile_retry_count=self.profile_retry_count,
            profile_retry_delay=self.profile_retry_delay,
            profile_retry_max_delay=self.profile_retry_max_delay
        )


# Global configuration instance
_config: Optional[InventoryInsightsConfig] = None


def get_config() -> InventoryInsightsConfig:
    """
    Get the global configuration instance.

    Returns:
        InventoryInsightsConfig: Validated configuration instance.

    Raises:
        ConfigurationError: If configuration validation fails.
    """
    global _config

    if _config is None:
        try:
            _config = InventoryInsightsConfig()
        except ValueError as e:
            raise ConfigurationError(f"Configuration validation failed: {e}")

    return _config


def reload_config() -> InventoryInsightsConfig:
    """Reload configuration from environment variables."""
    global _config
    _config = None
    return get_config()


def validate_configuration() -> Dict[str, Any]:
    """
    Validate current configuration and return status information.

    Returns:
        Dict containing validation results and a summary without secrets.
    """
    try:
        config = get_config()
        backend = config.backend
        app = config.app
        supabase = config.supabase

        return {
            "valid": True,
            "timestamp": datetime.now().isoformat(),
            "summary": {
                "supabase": {
                    "url": supabase.url,
                    "has_anon_key": bool(supabase.anon_key),
                },
                "backend": {
                    "base_url": backend.base_url,
                    "timeout": backend.timeout,
                    "audit_enabled": backend.audit_enabled,
                    "trail_limit": backend.trail_limit,
                },
                "application": {
                    "log_level": app.log_level,
                    "debug_mode": app.debug_mode,
                    "timezone": app.timezone,
                    "session_file": app.session_file,
                    "page_size": app.page_size,
                    "profile_retry_count": app.profile_retry_count,
                    "profile_retry_delay": app.profile_retry_delay,
                },
            },
        }

    except (ConfigurationError, ValueError) as e:
        logger.warning(f"Configuration validation failed: {e}")
        return {
            "valid": False,
            "error": str(e),
            "timestamp": datetime.now().isoformat()
        }
