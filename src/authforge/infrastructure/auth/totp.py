"""TOTP and recovery-code primitives.

TOTP itself comes from pyotp; this module only adapts it to the shapes the
MFA verifier needs and produces one-time recovery codes.
"""

import hashlib
import secrets
from datetime import datetime

import pyotp

RECOVERY_CODE_BYTES = 5


def generate_totp_secret() -> str:
    """Generate a new base32 TOTP secret."""
    return pyotp.random_base32()


def get_provisioning_uri(secret: str, email: str, issuer: str) -> str:
    """Build the ``otpauth://`` URI used to enrol an authenticator app."""
    return pyotp.TOTP(secret).provisioning_uri(name=email, issuer_name=issuer)


def verify_totp(
    secret: str, code: str, window: int = 1, for_time: datetime | None = None
) -> bool:
    """Verify a TOTP code, accepting ``window`` steps of clock drift either side."""
    if not secret or not code:
        return False
    return pyotp.TOTP(secret).verify(code.strip(), for_time=for_time, valid_window=window)


def current_totp(secret: str, for_time: datetime | None = None) -> str:
    """Return the code an authenticator would show at ``for_time`` (default now)."""
    totp = pyotp.TOTP(secret)
    return totp.at(for_time) if for_time is not None else totp.now()


def generate_recovery_codes(count: int) -> list[str]:
    """Generate ``count`` human-typable recovery codes (``xxxxx-xxxxx``)."""
    codes = []
    for _ in range(count):
        raw = secrets.token_hex(RECOVERY_CODE_BYTES)
        codes.append(f"{raw[:5]}-{raw[5:]}")
    return codes


def hash_recovery_code(code: str) -> str:
    """SHA-256 digest of a normalised recovery code."""
    normalised = code.strip().lower().replace(" ", "")
    return hashlib.sha256(normalised.encode()).hexdigest()
