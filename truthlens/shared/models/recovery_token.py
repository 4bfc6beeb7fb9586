"""Data model for the admin_setup_tokens table."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import StrEnum


class TokenStatus(StrEnum):
    PENDING = "pending"
    USED = "used"
    EXPIRED = "expired"
    REVOKED = "revoked"

    @property
    def is_terminal(self) -> bool:
        return self is not TokenStatus.PENDING


@dataclass
class RecoveryToken:
    """Admin recovery token record."""

    id: str
    expires_at: datetime
    email: str | None = None
    secret: str | None = None  # base32 TOTP secret; None for legacy tokens
    status: TokenStatus = TokenStatus.PENDING
    created_at: datetime | None = None
    used_by: str | None = None
    used_at: datetime | None = None

    def __post_init__(self) -> None:
        self.status = TokenStatus(self.status)
