"""Password hashing utility using Argon2.

Provides password hashing and verification using the Argon2id algorithm.
The same one-way function backs both the current credential and the
password history ledger.
"""

from argon2 import PasswordHasher
from argon2.exceptions import InvalidHashError, VerificationError, VerifyMismatchError

_hasher = PasswordHasher()

# Verified against when the account does not exist so that "unknown email"
# and "wrong password" cost the same.
DUMMY_PASSWORD_HASH = _hasher.hash("authforge-dummy-password-for-timing-parity")


def hash_password(password: str) -> str:
    """Hash a password using Argon2id.

    Args:
        password: The plaintext password to hash.

    Returns:
        The hashed password string.

    Example:
        >>> hashed = hash_password("SecureP@ss123!")
        >>> hashed.startswith("$argon2id$")
        True
    """
    return _hasher.hash(password)


def verify_password(password: str, hashed: str) -> bool:
    """Verify a password against a hash.

    Args:
        password: The plaintext password to verify.
        hashed: The hashed password to verify against.

    Returns:
        True if the password matches, False otherwise (including for
        malformed hashes).
    """
    try:
        _hasher.verify(hashed, password)
        return True
    except VerifyMismatchError:
        return False
    except (VerificationError, InvalidHashError):
        return False


def needs_rehash(hashed: str) -> bool:
    """Check if a password hash needs to be rehashed with current parameters."""
    return _hasher.check_needs_rehash(hashed)
