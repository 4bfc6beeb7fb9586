"""Shared repository layer for the TruthLens backend."""

from .recovery_token import RecoveryTokenRepository
from .settings import SettingsRepository
from .user import UserRepository

__all__ = [
    "RecoveryTokenRepository",
    "SettingsRepository",
    "UserRepository",
]
