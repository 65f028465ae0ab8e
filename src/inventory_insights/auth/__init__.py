"""
Authentication utilities for Inventory Insights.
"""

from .provider import IdentityProvider, SupabaseIdentityProvider, classify_provider_error
from .session_store import SessionStore, FileSessionStore, MemorySessionStore
from .tokens import extract_bearer_token, is_token_expired

__all__ = [
    "IdentityProvider",
    "SupabaseIdentityProvider",
    "classify_provider_error",
    "SessionStore",
    "FileSessionStore",
    "MemorySessionStore",
    "extract_bearer_token",
    "is_token_expired",
]
