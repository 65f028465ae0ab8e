"""
Client services: authentication, registration and audit.
"""

from .audit_shipper import AuditShipper
from .audit_trail import AuditTrailViewer
from .auth_service import AuthService
from .registration_service import RegistrationService, RegistrationStep
# factory is imported separately to avoid circular imports

__all__ = [
    "AuditShipper",
    "AuditTrailViewer",
    "AuthService",
    "RegistrationService",
    "RegistrationStep",
]
