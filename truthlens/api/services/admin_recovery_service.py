"""Admin recovery service: redeem and administer emergency admin tokens.

A recovery token is an 8-character ID stored in ``admin_setup_tokens``,
bound to an email and (for tokens issued since 2FA was introduced) a TOTP
secret. Redeeming it promotes the caller to admin. Tokens without a secret
are legacy emergency tokens: they skip the second factor entirely unless
``allow_legacy`` is switched off.
"""

from __future__ import annotations

import logging
import secrets
import string
from dataclasses import asdict, dataclass
from datetime import UTC, datetime, timedelta
from enum import StrEnum

import asyncpg
import pyotp

from truthlens.shared.models.recovery_token import RecoveryToken, TokenStatus
from truthlens.shared.repositories.recovery_token import RecoveryTokenRepository
from truthlens.shared.repositories.user import UserRepository

logger = logging.getLogger(__name__)

TOKEN_ID_LENGTH = 8
TOKEN_ID_ALPHABET = string.ascii_uppercase + string.digits
TOTP_DIGITS = 6
TOTP_PERIOD = 30

SUCCESS_MESSAGE = "Successfully recovered admin access."
GENERIC_FAILURE_MESSAGE = "Recovery failed. Please try again."
CONFIG_ERROR_MESSAGE = "Server configuration error. Contact support."


class RecoveryErrorKind(StrEnum):
    NOT_FOUND = "not_found"
    ALREADY_CONSUMED = "already_consumed"
    EMAIL_MISMATCH = "email_mismatch"
    EXPIRED = "expired"
    CODE_REQUIRED = "code_required"
    INVALID_CODE = "invalid_code"
    CONFIG_ERROR = "config_error"


class RecoveryError(Exception):
    """A recovery attempt was refused.

    ``new_status`` is set when the refusal itself changes the token state
    (lazy expiry); the caller is responsible for persisting it.
    """

    def __init__(
        self,
        kind: RecoveryErrorKind,
        message: str,
        *,
        status: TokenStatus | None = None,
        new_status: TokenStatus | None = None,
    ) -> None:
        super().__init__(message)
        self.kind = kind
        self.message = message
        self.status = status
        self.new_status = new_status


@dataclass
class RecoveryResult:
    success: bool
    message: str
    kind: RecoveryErrorKind | None = None


@dataclass
class IssuedToken:
    token: str
    secret: str
    otpauth_url: str
    expires_at: datetime


def generate_token_id() -> str:
    return "".join(secrets.choice(TOKEN_ID_ALPHABET) for _ in range(TOKEN_ID_LENGTH))


def normalize_token_id(raw: str | None) -> str:
    return (raw or "").strip()


def normalize_code(raw: str | None) -> str:
    return "".join((raw or "").split())


def verify_totp(secret: str, code: str, now: datetime, valid_window: int = 1) -> bool:
    """Check a 6-digit SHA-1 TOTP code, accepting ``valid_window`` steps of drift."""
    if len(code) != TOTP_DIGITS or not code.isdigit():
        return False
    totp = pyotp.TOTP(secret, digits=TOTP_DIGITS, interval=TOTP_PERIOD)
    return totp.verify(code, for_time=now, valid_window=valid_window)


def validate_recovery_token(
    token: RecoveryToken | None,
    presented_code: str | None,
    claimed_email: str,
    now: datetime,
    *,
    valid_window: int = 1,
    allow_legacy: bool = True,
) -> TokenStatus:
    """Decide whether *token* may be redeemed by *claimed_email* at *now*.

    Checks run in a fixed order and the first failure wins. Returns the status
    the token moves to on success; raises RecoveryError otherwise. Performs
    no I/O. Naive datetimes are taken as UTC.
    """
    if now.tzinfo is None:
        now = now.replace(tzinfo=UTC)

    if token is None:
        raise RecoveryError(RecoveryErrorKind.NOT_FOUND, "Invalid token.")

    if token.status is not TokenStatus.PENDING:
        raise RecoveryError(
            RecoveryErrorKind.ALREADY_CONSUMED,
            f"Token is {token.status.value}.",
            status=token.status,
        )

    if token.email and token.email.lower() != (claimed_email or "").lower():
        raise RecoveryError(
            RecoveryErrorKind.EMAIL_MISMATCH, "This token is not for this email address."
        )

    expires_at = token.expires_at
    if expires_at.tzinfo is None:
        expires_at = expires_at.replace(tzinfo=UTC)
    if now > expires_at:
        raise RecoveryError(
            RecoveryErrorKind.EXPIRED,
            "Token has expired.",
            status=token.status,
            new_status=TokenStatus.EXPIRED,
        )

    code = normalize_code(presented_code)
    if token.secret:
        if not code:
            raise RecoveryError(
                RecoveryErrorKind.CODE_REQUIRED,
                "Enter the 6-digit code from your authenticator app.",
            )
        if not verify_totp(token.secret, code, now, valid_window):
            raise RecoveryError(RecoveryErrorKind.INVALID_CODE, "Invalid authenticator code.")
    elif not allow_legacy:
        raise RecoveryError(
            RecoveryErrorKind.CODE_REQUIRED,
            "This token has no second factor and legacy tokens are disabled.",
        )
    else:
        logger.warning(f"Legacy recovery token {token.id} redeemed without a second factor")

    return TokenStatus.USED


def config_error_result() -> RecoveryResult:
    logger.error("Admin recovery unavailable: database not initialized")
    return RecoveryResult(False, CONFIG_ERROR_MESSAGE, RecoveryErrorKind.CONFIG_ERROR)


class AdminRecoveryService:
    """API-facing recovery token operations."""

    def __init__(
        self,
        pool: asyncpg.Pool,
        *,
        issuer: str = "TruthLens",
        token_ttl: timedelta = timedelta(hours=24),
        valid_window: int = 1,
        allow_legacy: bool = True,
    ) -> None:
        self.pool = pool
        self.tokens = RecoveryTokenRepository(pool)
        self.users = UserRepository(pool)
        self.issuer = issuer
        self.token_ttl = token_ttl
        self.valid_window = valid_window
        self.allow_legacy = allow_legacy

    async def recover_admin_account(
        self,
        token_id: str,
        totp_code: str | None,
        user_email: str,
        user_id: str,
        *,
        now: datetime | None = None,
    ) -> RecoveryResult:
        """Redeem a recovery token and grant admin to *user_id*.

        Never raises: every outcome is a RecoveryResult with a message fit for
        the end user.
        """
        now = now or datetime.now(UTC)
        token_id = normalize_token_id(token_id)
        logger.info(f"Admin recovery attempt for {user_email} with token {token_id}")

        try:
            await self._redeem(token_id, totp_code, user_email, user_id, now)
        except RecoveryError as e:
            logger.warning(f"Admin recovery refused for {user_email}: {e.kind.value}")
            return RecoveryResult(False, e.message, e.kind)
        except Exception as e:
            logger.exception(f"Admin recovery failed for {user_email}: {e}")
            return RecoveryResult(False, GENERIC_FAILURE_MESSAGE)

        logger.info(f"Admin recovery succeeded, promoted {user_email} ({user_id}) to admin")
        return RecoveryResult(True, SUCCESS_MESSAGE)

    async def _lookup(self, token_id: str) -> RecoveryToken | None:
        """Exact ID first, then the upper-cased form issued IDs use."""
        if not token_id:
            return None
        token = await self.tokens.get(token_id)
        if token is None and token_id.upper() != token_id:
            token = await self.tokens.get(token_id.upper())
        return token

    async def _redeem(
        self,
        token_id: str,
        totp_code: str | None,
        user_email: str,
        user_id: str,
        now: datetime,
    ) -> None:
        token = await self._lookup(token_id)

        try:
            validate_recovery_token(
                token,
                totp_code,
                user_email,
                now,
                valid_window=self.valid_window,
                allow_legacy=self.allow_legacy,
            )
        except RecoveryError as e:
            if e.new_status is not None and token is not None:
                await self.tokens.transition_from_pending(token.id, e.new_status)
            raise

        # Token CAS and role grant commit together or not at all
        async with self.pool.acquire() as conn:
            async with conn.transaction():
                if not await self.tokens.mark_used(conn, token.id, user_email):
                    raise RecoveryError(
                        RecoveryErrorKind.ALREADY_CONSUMED, "Token has already been used."
                    )
                if not await self.users.grant_admin(conn, user_id, token.id):
                    raise RecoveryError(RecoveryErrorKind.NOT_FOUND, "User account not found.")

        # Invalidate after COMMIT, never inside the transaction
        self.users.invalidate(user_id)

    async def issue_token(self, email: str, *, now: datetime | None = None) -> IssuedToken:
        """Create a pending token bound to *email* with a fresh TOTP secret."""
        email = (email or "").strip().lower()
        if "@" not in email:
            raise ValueError("A valid email address is required")

        now = now or datetime.now(UTC)
        expires_at = now + self.token_ttl
        secret = pyotp.random_base32()

        for _ in range(5):
            token_id = generate_token_id()
            created = await self.tokens.create(token_id, email, secret, expires_at)
            if created is not None:
                break
            logger.warning(f"Recovery token ID collision on {token_id}, retrying")
        else:
            raise RuntimeError("Could not allocate a unique recovery token ID")

        totp = pyotp.TOTP(secret, digits=TOTP_DIGITS, interval=TOTP_PERIOD)
        otpauth_url = totp.provisioning_uri(
            name=f"Admin Recovery ({email})", issuer_name=self.issuer
        )
        logger.info(f"Issued admin recovery token {token_id} for {email}")
        return IssuedToken(token_id, secret, otpauth_url, expires_at)

    async def revoke_token(self, token_id: str) -> bool:
        """Revoke a pending token. Returns False if nothing was pending under that ID."""
        token = await self._lookup(normalize_token_id(token_id))
        if token is None:
            return False
        revoked = await self.tokens.transition_from_pending(token.id, TokenStatus.REVOKED)
        if revoked:
            logger.info(f"Revoked admin recovery token {token.id}")
        return revoked

    async def list_tokens(self) -> list[dict]:
        """All tokens newest first, secrets stripped."""
        result = []
        for token in await self.tokens.list_all():
            data = asdict(token)
            data["has_secret"] = bool(data.pop("secret"))
            data["status"] = token.status.value
            result.append(data)
        return result
