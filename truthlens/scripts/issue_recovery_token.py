"""Issue an admin recovery token from the shell.

Usage:
    python -m truthlens.scripts.issue_recovery_token admin@example.com
    python -m truthlens.scripts.issue_recovery_token admin@example.com --ttl-hours 2

Prints the token ID, the TOTP secret and the otpauth:// URL to load into an
authenticator app. The secret cannot be shown again afterwards.
"""

import argparse
import asyncio
import logging
import os
import sys
from datetime import timedelta
from pathlib import Path

from dotenv import load_dotenv

from truthlens.api.services.admin_recovery_service import AdminRecoveryService
from truthlens.shared.database import DatabaseManager, PoolConfig

load_dotenv(Path(__file__).resolve().parent.parent / "api" / ".env")

logging.basicConfig(level=logging.WARNING, format="%(levelname)s: %(message)s")


async def main(email: str, ttl_hours: int, issuer: str) -> None:
    database_url = os.getenv("DATABASE_URL")
    if not database_url:
        print("ERROR: DATABASE_URL not set")
        sys.exit(1)

    ssl = os.getenv("DATABASE_SSL", "require") or None
    db = DatabaseManager(database_url, PoolConfig.for_service("scripts", ssl=ssl))
    await db.connect()

    try:
        service = AdminRecoveryService(
            db.pool, issuer=issuer, token_ttl=timedelta(hours=ttl_hours)
        )
        issued = await service.issue_token(email)
    finally:
        await db.disconnect()

    print("=" * 60)
    print(f"Token ID   : {issued.token}")
    print(f"Secret     : {issued.secret}")
    print(f"Expires at : {issued.expires_at.isoformat()}")
    print(f"otpauth URL: {issued.otpauth_url}")
    print("=" * 60)
    print("Save the token ID and add the secret to your authenticator app now.")


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Issue an admin recovery token")
    parser.add_argument("email", help="Email address allowed to redeem the token")
    parser.add_argument("--ttl-hours", type=int, default=24, help="Token lifetime in hours")
    parser.add_argument("--issuer", default=os.getenv("TOTP_ISSUER", "TruthLens"))
    args = parser.parse_args()

    try:
        asyncio.run(main(args.email, args.ttl_hours, args.issuer))
    except ValueError as e:
        print(f"ERROR: {e}")
        sys.exit(1)
