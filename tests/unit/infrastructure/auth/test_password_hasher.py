from authforge.infrastructure.auth.password_hasher import (
    DUMMY_PASSWORD_HASH,
    hash_password,
    needs_rehash,
    verify_password,
)


def test_hash_password_uses_argon2id():
    hashed = hash_password("SecureP@ss123!")
    assert hashed.startswith("$argon2id$")
    assert hashed != "SecureP@ss123!"


def test_hash_password_is_salted():
    assert hash_password("SecureP@ss123!") != hash_password("SecureP@ss123!")


def test_verify_password():
    hashed = hash_password("SecureP@ss123!")
    assert verify_password("SecureP@ss123!", hashed) is True
    assert verify_password("WrongP@ss123!", hashed) is False


def test_verify_password_malformed_hash():
    assert verify_password("anything", "not-a-hash") is False


def test_dummy_hash_never_matches_user_input():
    assert verify_password("SecureP@ss123!", DUMMY_PASSWORD_HASH) is False


def test_fresh_hash_needs_no_rehash():
    assert needs_rehash(hash_password("SecureP@ss123!")) is False
