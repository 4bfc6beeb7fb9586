"""Admin recovery API routes"""

import logging
from datetime import datetime

import asyncpg
from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel

from truthlens.api.core.dependencies import (
    build_recovery_service,
    get_current_user_id,
    get_optional_db_pool,
    get_recovery_service,
    require_admin,
)
from truthlens.api.services import AdminRecoveryService
from truthlens.api.services.admin_recovery_service import config_error_result
from truthlens.shared.models.user import User

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/admin/recovery", tags=["admin-recovery"])


# ============================================
# Request / Response Models
# ============================================


class RecoveryRequest(BaseModel):
    token: str
    totp_code: str = ""
    user_email: str


class RecoveryResponse(BaseModel):
    success: bool
    message: str


class IssueTokenRequest(BaseModel):
    email: str


class IssuedTokenResponse(BaseModel):
    token: str
    secret: str
    otpauth_url: str
    expires_at: datetime


class MessageResponse(BaseModel):
    message: str


class RecoveryTokenResponse(BaseModel):
    id: str
    email: str | None = None
    status: str
    has_secret: bool
    created_at: datetime | None = None
    expires_at: datetime
    used_by: str | None = None
    used_at: datetime | None = None


# ============================================
# Redemption
# ============================================


@router.post("", response_model=RecoveryResponse)
async def recover_admin_account(
    body: RecoveryRequest,
    user_id: str = Depends(get_current_user_id),
    pool: asyncpg.Pool | None = Depends(get_optional_db_pool),
) -> RecoveryResponse:
    """Redeem a recovery token for the logged-in account.

    Validation failures are reported in the body with HTTP 200.
    """
    if pool is None:
        result = config_error_result()
    else:
        service = build_recovery_service(pool)
        result = await service.recover_admin_account(
            body.token, body.totp_code, body.user_email, user_id
        )
    return RecoveryResponse(success=result.success, message=result.message)


# ============================================
# Token Administration
# ============================================


@router.post("/tokens", response_model=IssuedTokenResponse, status_code=201)
async def issue_recovery_token(
    body: IssueTokenRequest,
    admin: User = Depends(require_admin),
    service: AdminRecoveryService = Depends(get_recovery_service),
) -> IssuedTokenResponse:
    """Issue a new 2FA recovery token. The secret is only ever shown here."""
    try:
        issued = await service.issue_token(body.email)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e
    except Exception as e:
        logger.exception(f"Failed to issue recovery token: {e}")
        raise HTTPException(status_code=500, detail="Failed to generate token") from None
    logger.info(f"Admin {admin.email} issued recovery token {issued.token}")
    return IssuedTokenResponse(
        token=issued.token,
        secret=issued.secret,
        otpauth_url=issued.otpauth_url,
        expires_at=issued.expires_at,
    )


@router.get("/tokens", response_model=list[RecoveryTokenResponse])
async def list_recovery_tokens(
    admin: User = Depends(require_admin),
    service: AdminRecoveryService = Depends(get_recovery_service),
) -> list[RecoveryTokenResponse]:
    try:
        tokens = await service.list_tokens()
    except Exception as e:
        logger.exception(f"Failed to list recovery tokens: {e}")
        raise HTTPException(status_code=500, detail="Failed to fetch tokens") from None
    return [RecoveryTokenResponse(**t) for t in tokens]


@router.post("/tokens/{token_id}/revoke", response_model=MessageResponse)
async def revoke_recovery_token(
    token_id: str,
    admin: User = Depends(require_admin),
    service: AdminRecoveryService = Depends(get_recovery_service),
) -> MessageResponse:
    """Revoke a pending token."""
    try:
        revoked = await service.revoke_token(token_id)
    except Exception as e:
        logger.exception(f"Failed to revoke recovery token: {e}")
        raise HTTPException(status_code=500, detail="Failed to revoke token") from None
    if not revoked:
        raise HTTPException(status_code=404, detail="No pending token with that ID")
    logger.info(f"Admin {admin.email} revoked recovery token {token_id}")
    return MessageResponse(message="Token revoked")
