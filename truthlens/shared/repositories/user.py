"""Repository for the users table."""

from __future__ import annotations

import logging

import asyncpg

from truthlens.shared.cache import AsyncTTLCache, cached
from truthlens.shared.database import affected_rows
from truthlens.shared.models.user import ROLE_ADMIN, User

logger = logging.getLogger(__name__)

# Role checks run on every admin request; a grant invalidates the entry.
_user_cache = AsyncTTLCache(maxsize=256, ttl=60)

_COLUMNS = "id, email, display_name, role, admin_token_used, created_at, updated_at"


class UserRepository:
    """Pure SQL operations for users."""

    def __init__(self, pool: asyncpg.Pool) -> None:
        self.pool = pool

    @cached(cache=_user_cache, key_func=lambda self, user_id: f"user:{user_id}")
    async def get_user(self, user_id: str) -> User | None:
        async with self.pool.acquire() as conn:
            row = await conn.fetchrow(f"SELECT {_COLUMNS} FROM users WHERE id = $1", user_id)
            if not row:
                return None
            return User(**dict(row))

    async def grant_admin(self, conn: asyncpg.Connection, user_id: str, token_id: str) -> bool:
        """Promote a user to admin inside the caller's transaction.

        Returns False if no such user exists. The cached row is left alone; call
        invalidate() once the transaction has committed.
        """
        result = await conn.execute(
            """
            UPDATE users
            SET role = $2, admin_token_used = $3, updated_at = NOW()
            WHERE id = $1
            """,
            user_id,
            ROLE_ADMIN,
            token_id,
        )
        return affected_rows(result) == 1

    def invalidate(self, user_id: str) -> None:
        _user_cache.invalidate(f"user:{user_id}")
