import pytest
from httpx import AsyncClient

from authforge.infrastructure.auth.totp import current_totp

PASSWORD = "Correct-Horse-9"
NEW_PASSWORD = "Battery-Staple-7"
API = "/api/v1/auth"


def bearer(token: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {token}"}


async def register(client: AsyncClient, email: str = "ana@acme.io") -> dict:
    res = await client.post(f"{API}/register", json={"email": email, "password": PASSWORD})
    assert res.status_code == 201, res.text
    return res.json()


async def enable_mfa(client: AsyncClient, token: str, clock) -> tuple[str, list[str]]:
    enroll = await client.post(f"{API}/mfa/enroll", headers=bearer(token))
    assert enroll.status_code == 200
    secret = enroll.json()["secret"]

    verify = await client.post(
        f"{API}/mfa/verify",
        json={"code": current_totp(secret, for_time=clock())},
        headers=bearer(token),
    )
    assert verify.status_code == 200
    return secret, verify.json()["recovery_codes"]


@pytest.mark.asyncio
async def test_email_verification(client: AsyncClient, email_provider):
    body = await register(client)
    assert email_provider.outbox[-1]["subject"] == "Verify your email address"

    res = await client.post(f"{API}/verify-email", json={"token": body["verification_token"]})
    assert res.status_code == 200

    me = await client.get(f"{API}/me", headers=bearer(body["token"]))
    assert me.json()["email_verified"] is True

    again = await client.post(f"{API}/verify-email", json={"token": body["verification_token"]})
    assert again.status_code == 400
    assert again.json()["error"] == "invalid_challenge"


@pytest.mark.asyncio
async def test_resend_verification(client: AsyncClient):
    body = await register(client)

    resent = await client.post(f"{API}/resend-verification", headers=bearer(body["token"]))
    assert resent.status_code == 200
    fresh = resent.json()["debug_token"]

    stale = await client.post(f"{API}/verify-email", json={"token": body["verification_token"]})
    assert stale.status_code == 400
    assert (await client.post(f"{API}/verify-email", json={"token": fresh})).status_code == 200


@pytest.mark.asyncio
async def test_account_recovery(client: AsyncClient, email_provider):
    body = await register(client)

    # 1. Unknown addresses get a notice, not an error
    ghost = await client.post(f"{API}/request-account-recovery", json={"email": "ghost@acme.io"})
    assert ghost.status_code == 200
    assert ghost.json()["debug_token"] is None
    assert email_provider.outbox[-1]["subject"] == "Account recovery request"

    # 2. Known address receives a token
    res = await client.post(f"{API}/request-account-recovery", json={"email": "ana@acme.io"})
    token = res.json()["debug_token"]
    assert token

    # 3. Completing signs out every session
    done = await client.post(
        f"{API}/complete-account-recovery", json={"token": token, "new_password": NEW_PASSWORD}
    )
    assert done.status_code == 200
    assert (await client.get(f"{API}/me", headers=bearer(body["token"]))).status_code == 401

    login = await client.post(
        f"{API}/login", json={"email": "ana@acme.io", "password": NEW_PASSWORD}
    )
    assert login.status_code == 200


@pytest.mark.asyncio
async def test_account_recovery_with_mfa(client: AsyncClient, clock):
    body = await register(client)
    secret, _ = await enable_mfa(client, body["token"], clock)
    token = (
        await client.post(f"{API}/request-account-recovery", json={"email": "ana@acme.io"})
    ).json()["debug_token"]

    missing = await client.post(
        f"{API}/complete-account-recovery", json={"token": token, "new_password": NEW_PASSWORD}
    )
    assert missing.status_code == 401
    assert missing.json()["error"] == "mfa_required"

    done = await client.post(
        f"{API}/complete-account-recovery",
        json={
            "token": token,
            "new_password": NEW_PASSWORD,
            "mfa_code": current_totp(secret, for_time=clock()),
        },
    )
    assert done.status_code == 200


@pytest.mark.asyncio
async def test_mfa_login(client: AsyncClient, clock):
    """Enroll -> login stops at challenge -> code completes it."""
    body = await register(client)

    # 1. Enroll and confirm
    secret, recovery_codes = await enable_mfa(client, body["token"], clock)
    assert len(recovery_codes) == 10
    me = await client.get(f"{API}/me", headers=bearer(body["token"]))
    assert me.json()["mfa_enabled"] is True

    # 2. Password alone is not enough
    first = await client.post(f"{API}/login", json={"email": "ana@acme.io", "password": PASSWORD})
    assert first.status_code == 200
    pending = first.json()
    assert pending["requires_mfa"] is True
    assert "token" not in pending

    # 3. The temp token is not an access token
    assert (await client.get(f"{API}/me", headers=bearer(pending["temp_token"]))).status_code == 401

    # 4. A wrong code is refused
    wrong = await client.post(
        f"{API}/mfa/challenge", json={"temp_token": pending["temp_token"], "code": "not-a-code"}
    )
    assert wrong.status_code == 401
    assert wrong.json()["error"] == "mfa_invalid"

    # 5. A recovery code completes the login, once
    done = await client.post(
        f"{API}/mfa/challenge",
        json={"temp_token": pending["temp_token"], "code": recovery_codes[0]},
    )
    assert done.status_code == 200
    tokens = done.json()
    assert (await client.get(f"{API}/me", headers=bearer(tokens["token"]))).status_code == 200

    spent = await client.post(
        f"{API}/mfa/challenge",
        json={"temp_token": pending["temp_token"], "code": current_totp(secret, for_time=clock())},
    )
    assert spent.status_code == 401

    # 6. Disable with a TOTP code
    disable = await client.post(
        f"{API}/mfa/disable",
        json={"code": current_totp(secret, for_time=clock())},
        headers=bearer(tokens["token"]),
    )
    assert disable.status_code == 200
    plain = await client.post(f"{API}/login", json={"email": "ana@acme.io", "password": PASSWORD})
    assert "token" in plain.json()
