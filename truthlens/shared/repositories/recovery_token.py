"""Repository for the admin_setup_tokens table."""

from __future__ import annotations

import logging
from datetime import datetime

import asyncpg

from truthlens.shared.database import affected_rows
from truthlens.shared.models.recovery_token import RecoveryToken, TokenStatus

logger = logging.getLogger(__name__)

_COLUMNS = "id, email, secret, status, created_at, expires_at, used_by, used_at"


class RecoveryTokenRepository:
    """Pure SQL operations for admin recovery tokens.

    Status changes are conditional updates on ``status = 'pending'`` so a
    token can leave the pending state at most once, whatever the interleaving
    of concurrent requests.
    """

    def __init__(self, pool: asyncpg.Pool) -> None:
        self.pool = pool

    async def get(self, token_id: str) -> RecoveryToken | None:
        async with self.pool.acquire() as conn:
            row = await conn.fetchrow(
                f"SELECT {_COLUMNS} FROM admin_setup_tokens WHERE id = $1",
                token_id,
            )
            if not row:
                return None
            return RecoveryToken(**dict(row))

    async def list_all(self) -> list[RecoveryToken]:
        """Return every token, newest first."""
        async with self.pool.acquire() as conn:
            rows = await conn.fetch(
                f"SELECT {_COLUMNS} FROM admin_setup_tokens ORDER BY created_at DESC"
            )
            return [RecoveryToken(**dict(r)) for r in rows]

    async def create(
        self,
        token_id: str,
        email: str,
        secret: str | None,
        expires_at: datetime,
    ) -> RecoveryToken | None:
        """Insert a pending token. Returns None if the ID is already taken."""
        async with self.pool.acquire() as conn:
            row = await conn.fetchrow(
                f"""
                INSERT INTO admin_setup_tokens (id, email, secret, status, expires_at)
                VALUES ($1, $2, $3, 'pending', $4)
                ON CONFLICT (id) DO NOTHING
                RETURNING {_COLUMNS}
                """,
                token_id,
                email,
                secret,
                expires_at,
            )
            if not row:
                return None
            return RecoveryToken(**dict(row))

    async def transition_from_pending(self, token_id: str, new_status: TokenStatus) -> bool:
        """Move a pending token to *new_status*. Returns False if it was not pending."""
        async with self.pool.acquire() as conn:
            result = await conn.execute(
                "UPDATE admin_setup_tokens SET status = $2 WHERE id = $1 AND status = 'pending'",
                token_id,
                new_status.value,
            )
        return affected_rows(result) == 1

    async def mark_used(self, conn: asyncpg.Connection, token_id: str, used_by: str) -> bool:
        """Compare-and-swap ``pending -> used``; run inside the caller's transaction."""
        result = await conn.execute(
            """
            UPDATE admin_setup_tokens
            SET status = 'used', used_by = $2, used_at = NOW()
            WHERE id = $1 AND status = 'pending'
            """,
            token_id,
            used_by,
        )
        return affected_rows(result) == 1
