"""Shared data models for the TruthLens backend."""

from .event_config import EventConfig, GlobalEffects, SystemSettings
from .recovery_token import RecoveryToken, TokenStatus
from .user import ROLE_ADMIN, ROLE_USER, User

__all__ = [
    "EventConfig",
    "GlobalEffects",
    "ROLE_ADMIN",
    "ROLE_USER",
    "RecoveryToken",
    "SystemSettings",
    "TokenStatus",
    "User",
]
