"""Backend API access."""

from .client import BackendAPIClient

__all__ = ["BackendAPIClient"]
