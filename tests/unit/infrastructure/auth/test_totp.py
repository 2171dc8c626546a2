from datetime import datetime, timedelta, timezone

import pyotp

from authforge.infrastructure.auth.totp import (
    current_totp,
    generate_recovery_codes,
    generate_totp_secret,
    get_provisioning_uri,
    hash_recovery_code,
    verify_totp,
)

AT = datetime(2026, 3, 2, 9, 0, tzinfo=timezone.utc)


def test_generated_secret_is_base32():
    secret = generate_totp_secret()
    pyotp.TOTP(secret).now()
    assert len(secret) >= 16


def test_current_code_verifies():
    secret = generate_totp_secret()
    assert verify_totp(secret, current_totp(secret, for_time=AT), for_time=AT) is True


def test_code_from_adjacent_step_accepted_within_window():
    secret = generate_totp_secret()
    previous = current_totp(secret, for_time=AT - timedelta(seconds=30))
    assert verify_totp(secret, previous, window=1, for_time=AT) is True
    assert verify_totp(secret, previous, window=0, for_time=AT) is False


def test_stale_code_rejected():
    secret = generate_totp_secret()
    old = current_totp(secret, for_time=AT - timedelta(minutes=5))
    assert verify_totp(secret, old, window=1, for_time=AT) is False


def test_empty_input_rejected():
    assert verify_totp("", "123456") is False
    assert verify_totp(generate_totp_secret(), "") is False


def test_provisioning_uri():
    uri = get_provisioning_uri("JBSWY3DPEHPK3PXP", "ana@acme.io", "AuthForge")
    assert uri.startswith("otpauth://totp/")
    assert "issuer=AuthForge" in uri


def test_recovery_codes_unique_and_formatted():
    codes = generate_recovery_codes(10)
    assert len(set(codes)) == 10
    assert all(len(code) == 11 and code[5] == "-" for code in codes)


def test_recovery_code_hash_normalises_input():
    assert hash_recovery_code(" ABCDE-12345 ") == hash_recovery_code("abcde-12345")
