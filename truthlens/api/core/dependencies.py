"""Dependency injection utilities for FastAPI"""

import logging
from datetime import timedelta

import asyncpg
from fastapi import Depends, Header, HTTPException

from truthlens.api.core.config import get_settings
from truthlens.api.core.database import get_database_manager
from truthlens.api.services import AdminRecoveryService, AuthService, EventScheduleService
from truthlens.shared.models.user import User
from truthlens.shared.repositories.user import UserRepository

logger = logging.getLogger(__name__)


# ============================================
# Service Dependencies
# ============================================


def get_auth_service() -> AuthService:
    """Get AuthService instance (dependency injection)"""
    settings = get_settings()
    return AuthService(secret_key=settings.jwt_secret_key, algorithm=settings.jwt_algorithm)


def get_optional_db_pool() -> asyncpg.Pool | None:
    """Return the pool, or None while the database is not connected"""
    try:
        db_manager = get_database_manager()
    except RuntimeError:
        return None
    return db_manager.pool if db_manager.is_connected else None


def get_db_pool(pool: asyncpg.Pool | None = Depends(get_optional_db_pool)) -> asyncpg.Pool:
    if pool is None:
        raise HTTPException(status_code=503, detail="Database not ready")
    return pool


def build_recovery_service(pool: asyncpg.Pool) -> AdminRecoveryService:
    settings = get_settings()
    return AdminRecoveryService(
        pool,
        issuer=settings.totp_issuer,
        token_ttl=timedelta(hours=settings.recovery_token_ttl_hours),
        valid_window=settings.totp_valid_window,
        allow_legacy=settings.allow_legacy_recovery_tokens,
    )


def get_recovery_service(pool: asyncpg.Pool = Depends(get_db_pool)) -> AdminRecoveryService:
    return build_recovery_service(pool)


def get_event_schedule_service(pool: asyncpg.Pool = Depends(get_db_pool)) -> EventScheduleService:
    return EventScheduleService(pool)


# ============================================
# Authentication Dependencies
# ============================================


def get_token_payload(authorization: str | None = Header(None)) -> dict:
    """Verify the bearer JWT and return its payload"""
    if not authorization:
        logger.warning("No auth token provided")
        raise HTTPException(status_code=401, detail="Not logged in")

    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        raise HTTPException(status_code=401, detail="Invalid authorization header")

    payload = get_auth_service().verify_token(token.strip())
    if not payload:
        raise HTTPException(status_code=401, detail="Invalid or expired token")

    return payload


async def get_current_user_id(payload: dict = Depends(get_token_payload)) -> str:
    return str(payload["sub"])


async def require_admin(
    user_id: str = Depends(get_current_user_id),
    pool: asyncpg.Pool = Depends(get_db_pool),
) -> User:
    """Require an authenticated user whose stored role is admin"""
    user = await UserRepository(pool).get_user(user_id)
    if user is None or not user.is_admin:
        logger.warning(f"Non-admin user {user_id} attempted an admin operation")
        raise HTTPException(status_code=403, detail="Admin access required")
    return user
