from datetime import UTC, datetime, timedelta

import pyotp
import pytest

from truthlens.api.services.admin_recovery_service import (
    RecoveryError,
    RecoveryErrorKind,
    validate_recovery_token,
    verify_totp,
)
from truthlens.shared.models.recovery_token import RecoveryToken, TokenStatus

SECRET = "JBSWY3DPEHPK3PXP"
NOW = datetime(2025, 6, 1, 12, 0, 15, tzinfo=UTC)


def code_at(now: datetime, offset: int = 0) -> str:
    return pyotp.TOTP(SECRET).at(now, offset)


def make_token(**overrides) -> RecoveryToken:
    fields = {
        "id": "AB12CD34",
        "email": "a@x.com",
        "secret": SECRET,
        "status": TokenStatus.PENDING,
        "expires_at": NOW + timedelta(hours=1),
    }
    fields.update(overrides)
    return RecoveryToken(**fields)


def refused(token, code, email="a@x.com", now=NOW, **kwargs) -> RecoveryError:
    with pytest.raises(RecoveryError) as exc_info:
        validate_recovery_token(token, code, email, now, **kwargs)
    return exc_info.value


def test_example_case_insensitive_email_and_current_code():
    assert validate_recovery_token(make_token(), code_at(NOW), "A@X.COM", NOW) is TokenStatus.USED


def test_missing_token():
    assert refused(None, code_at(NOW)).kind is RecoveryErrorKind.NOT_FOUND


@pytest.mark.parametrize("status", ["used", "expired", "revoked"])
def test_terminal_status_always_refused(status):
    error = refused(make_token(status=status), code_at(NOW))
    assert error.kind is RecoveryErrorKind.ALREADY_CONSUMED
    assert error.status == TokenStatus(status)
    assert status in error.message
    assert error.new_status is None


def test_terminal_check_precedes_expiry():
    token = make_token(status="used", expires_at=NOW - timedelta(days=1))
    assert refused(token, code_at(NOW)).kind is RecoveryErrorKind.ALREADY_CONSUMED


def test_email_mismatch():
    assert refused(make_token(), code_at(NOW), "b@x.com").kind is RecoveryErrorKind.EMAIL_MISMATCH


def test_token_without_email_accepts_anyone():
    token = make_token(email=None)
    assert validate_recovery_token(token, code_at(NOW), "who@ever.com", NOW) is TokenStatus.USED


def test_expired_asks_for_expired_status():
    error = refused(make_token(expires_at=NOW - timedelta(seconds=1)), code_at(NOW))
    assert error.kind is RecoveryErrorKind.EXPIRED
    assert error.new_status is TokenStatus.EXPIRED


def test_expiry_instant_itself_is_still_valid():
    token = make_token(expires_at=NOW)
    assert validate_recovery_token(token, code_at(NOW), "a@x.com", NOW) is TokenStatus.USED


def test_naive_now_is_taken_as_utc():
    naive_now = NOW.replace(tzinfo=None)
    token = make_token(secret=None)
    assert validate_recovery_token(token, "", "a@x.com", naive_now) is TokenStatus.USED

    error = refused(make_token(secret=None), "", now=naive_now + timedelta(hours=2))
    assert error.kind is RecoveryErrorKind.EXPIRED


def test_naive_now_checks_code_against_utc_step():
    naive_now = NOW.replace(tzinfo=None)
    result = validate_recovery_token(make_token(), code_at(NOW), "a@x.com", naive_now)
    assert result is TokenStatus.USED


def test_email_checked_before_expiry():
    token = make_token(expires_at=NOW - timedelta(days=1))
    assert refused(token, code_at(NOW), "b@x.com").kind is RecoveryErrorKind.EMAIL_MISMATCH


@pytest.mark.parametrize("code", ["", None, "   "])
def test_code_required_when_secret_set(code):
    assert refused(make_token(), code).kind is RecoveryErrorKind.CODE_REQUIRED


@pytest.mark.parametrize("offset", [-1, 1])
def test_one_step_drift_accepted(offset):
    assert validate_recovery_token(make_token(), code_at(NOW, offset), "a@x.com", NOW)


@pytest.mark.parametrize("offset", [-2, 2])
def test_two_steps_away_rejected(offset):
    assert refused(make_token(), code_at(NOW, offset)).kind is RecoveryErrorKind.INVALID_CODE


def test_zero_window_only_accepts_current_step():
    assert refused(make_token(), code_at(NOW, 1), valid_window=0).kind is (
        RecoveryErrorKind.INVALID_CODE
    )


def test_code_with_spaces_is_normalised():
    code = code_at(NOW)
    assert validate_recovery_token(make_token(), f"{code[:3]} {code[3:]}", "a@x.com", NOW)


@pytest.mark.parametrize("code", ["12345", "1234567", "abcdef"])
def test_malformed_code_rejected(code):
    assert refused(make_token(), code).kind is RecoveryErrorKind.INVALID_CODE


def test_legacy_token_skips_code():
    token = make_token(secret=None)
    assert validate_recovery_token(token, "", "a@x.com", NOW) is TokenStatus.USED


def test_legacy_token_refused_when_disabled():
    error = refused(make_token(secret=None), "", allow_legacy=False)
    assert error.kind is RecoveryErrorKind.CODE_REQUIRED


def test_verify_totp_current_step():
    code = code_at(NOW)
    assert verify_totp(SECRET, code, NOW)
    assert not verify_totp(SECRET, "000000" if code != "000000" else "111111", NOW, 0)
