"""Data model for the users table."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

ROLE_USER = "user"
ROLE_ADMIN = "admin"


@dataclass
class User:
    """Application account with its role."""

    id: str
    email: str
    display_name: str | None = None
    role: str = ROLE_USER
    admin_token_used: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @property
    def is_admin(self) -> bool:
        return self.role == ROLE_ADMIN
