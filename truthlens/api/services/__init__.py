"""Services layer - Business logic

Services are initialized with their dependencies and accessed through dependency injection.
"""

from .admin_recovery_service import (
    AdminRecoveryService,
    RecoveryError,
    RecoveryErrorKind,
    RecoveryResult,
    validate_recovery_token,
)
from .auth_service import AuthService
from .event_schedule_service import EventScheduleService, resolve_active_event

__all__ = [
    "AdminRecoveryService",
    "AuthService",
    "EventScheduleService",
    "RecoveryError",
    "RecoveryErrorKind",
    "RecoveryResult",
    "resolve_active_event",
    "validate_recovery_token",
]
