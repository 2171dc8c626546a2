"""Tests for refresh token rotation, replay detection and revocation."""

from unittest.mock import AsyncMock

import pytest

from authforge.domain.services.auth_errors import (
    ReplayDetectedError,
    TokenExpiredError,
    TokenInvalidError,
    TokenRevokedError,
)
from authforge.domain.services.token_service import REUSE_REASON, ROTATION_REASON
from authforge.infrastructure.api.dependencies import build_auth_service
from authforge.infrastructure.persistence.repositories import TenantMembershipRepository

PASSWORD = "Correct-Horse-9"


@pytest.fixture
async def registered(auth_service):
    return await auth_service.register("ana@acme.io", PASSWORD)


class TestIssue:

    @pytest.mark.asyncio
    async def test_access_token_bound_to_session(self, auth_service, registered):
        claims = auth_service.token_service.verify_access_token(registered.tokens.access_token)

        assert claims.user_id == registered.user.id
        assert claims.session_id == registered.tokens.session_id
        assert claims.email == "ana@acme.io"
        assert claims.tenants == []
        assert claims.tenant_id is None

    @pytest.mark.asyncio
    async def test_tenants_in_claims_oldest_first(self, auth_service, db_session, clock, registered):
        repo = TenantMembershipRepository(db_session)
        await repo.add(registered.user.id, "tenant-b", created_at=clock())
        clock.advance(seconds=1)
        await repo.add(registered.user.id, "tenant-a", created_at=clock())
        await db_session.commit()

        pair = await auth_service.refresh(registered.tokens.refresh_token)
        claims = auth_service.token_service.verify_access_token(pair.access_token)

        assert claims.tenants == ["tenant-b", "tenant-a"]
        assert claims.tenant_id == "tenant-b"

    @pytest.mark.asyncio
    async def test_only_hash_is_stored(self, auth_service, registered):
        stored = await auth_service.token_service.list_user_tokens(registered.user.id)
        assert len(stored) == 1
        assert stored[0].token_hash != registered.tokens.refresh_token
        assert len(stored[0].token_hash) == 64

    @pytest.mark.asyncio
    async def test_refresh_token_is_not_an_access_token(self, auth_service, registered):
        with pytest.raises(TokenInvalidError):
            auth_service.token_service.verify_access_token(registered.tokens.refresh_token)

    @pytest.mark.asyncio
    async def test_expired_access_token(self, auth_service, clock, registered):
        clock.advance(minutes=16)
        with pytest.raises(TokenExpiredError):
            auth_service.token_service.verify_access_token(registered.tokens.access_token)


class TestRotation:

    @pytest.mark.asyncio
    async def test_rotation_keeps_session_and_family(self, auth_service, registered):
        first = registered.tokens
        second = await auth_service.refresh(first.refresh_token)

        assert second.session_id == first.session_id
        assert second.family == first.family
        assert second.refresh_token != first.refresh_token

        tokens = await auth_service.token_service.list_user_tokens(
            registered.user.id, include_revoked=True
        )
        live = [t for t in tokens if not t.is_revoked]
        assert len(tokens) == 2
        assert len(live) == 1
        rotated = next(t for t in tokens if t.is_revoked)
        assert rotated.revocation_reason == ROTATION_REASON

    @pytest.mark.asyncio
    async def test_rotation_chain_shares_one_family(self, auth_service, registered):
        """Login plus four refreshes: five tokens, four superseded, one family."""
        repo = auth_service.token_service.refresh_token_repo
        chain = [registered.tokens]
        for _ in range(4):
            chain.append(await auth_service.refresh(chain[-1].refresh_token))

        tokens = await auth_service.token_service.list_user_tokens(
            registered.user.id, include_revoked=True
        )
        by_hash = {t.token_hash: t for t in tokens}
        superseded = [by_hash[repo.hash_token(pair.refresh_token)] for pair in chain[:-1]]
        live = by_hash[repo.hash_token(chain[-1].refresh_token)]

        assert len(tokens) == 5
        assert all(t.is_revoked for t in superseded)
        assert all(t.revocation_reason == ROTATION_REASON for t in superseded)
        assert not live.is_revoked
        assert {t.family for t in tokens} == {live.family}
        assert {pair.family for pair in chain} == {live.family}

    @pytest.mark.asyncio
    async def test_replaying_first_token_kills_newest(self, auth_service, registered):
        chain = [registered.tokens]
        for _ in range(3):
            chain.append(await auth_service.refresh(chain[-1].refresh_token))

        with pytest.raises(ReplayDetectedError):
            await auth_service.refresh(chain[0].refresh_token)

        with pytest.raises(TokenRevokedError):
            await auth_service.refresh(chain[-1].refresh_token)
        assert await auth_service.token_service.list_user_tokens(registered.user.id) == []

    @pytest.mark.asyncio
    async def test_replay_revokes_family_and_session(self, auth_service, registered):
        first = registered.tokens
        second = await auth_service.refresh(first.refresh_token)

        with pytest.raises(ReplayDetectedError):
            await auth_service.refresh(first.refresh_token)

        # The legitimate successor is gone too
        with pytest.raises(TokenRevokedError):
            await auth_service.refresh(second.refresh_token)

        session = await auth_service.session_service.get(first.session_id)
        assert not session.is_active
        assert session.revocation_reason == REUSE_REASON
        assert await auth_service.token_service.list_user_tokens(registered.user.id) == []

    @pytest.mark.asyncio
    async def test_replay_leaves_other_sessions_alone(self, auth_service, registered):
        other = await auth_service.login("ana@acme.io", PASSWORD)
        await auth_service.refresh(registered.tokens.refresh_token)

        with pytest.raises(ReplayDetectedError):
            await auth_service.refresh(registered.tokens.refresh_token)

        rotated = await auth_service.refresh(other.tokens.refresh_token)
        assert rotated.session_id == other.tokens.session_id

    @pytest.mark.asyncio
    async def test_lost_race_is_treated_as_replay(self, auth_service, registered):
        """When a concurrent request rotates the same token first, this one loses."""
        repo = auth_service.token_service.refresh_token_repo
        real_revoke = repo.revoke_if_active

        async def concurrent_winner(token_hash, revoked_by, reason, now):
            await real_revoke(token_hash, revoked_by, reason, now)
            return False

        repo.revoke_if_active = AsyncMock(side_effect=concurrent_winner)

        with pytest.raises(ReplayDetectedError):
            await auth_service.refresh(registered.tokens.refresh_token)

        repo.revoke_if_active.assert_awaited_once()
        session = await auth_service.session_service.get(registered.tokens.session_id)
        assert not session.is_active

    @pytest.mark.asyncio
    async def test_grace_window_rejects_without_revoking_family(
        self, db_session, settings_factory, clock, notification_service
    ):
        service = build_auth_service(
            db_session,
            settings_factory(refresh_reuse_grace_seconds=30),
            clock=clock,
            notification_service=notification_service,
        )
        first = (await service.register("ana@acme.io", PASSWORD)).tokens
        second = await service.refresh(first.refresh_token)

        with pytest.raises(TokenRevokedError) as exc_info:
            await service.refresh(first.refresh_token)
        assert not isinstance(exc_info.value, ReplayDetectedError)

        third = await service.refresh(second.refresh_token)

        clock.advance(seconds=31)
        with pytest.raises(ReplayDetectedError):
            await service.refresh(second.refresh_token)
        with pytest.raises(TokenRevokedError):
            await service.refresh(third.refresh_token)

    @pytest.mark.asyncio
    async def test_expired_refresh_token(self, auth_service, clock, registered):
        clock.advance(days=8)
        with pytest.raises(TokenExpiredError):
            await auth_service.refresh(registered.tokens.refresh_token)

    @pytest.mark.asyncio
    async def test_unknown_refresh_token(self, auth_service, registered):
        jwt_service = auth_service.token_service.jwt_service
        forged, _, _ = jwt_service.create_refresh_token(registered.user.id, "no-such-session")
        with pytest.raises(TokenInvalidError):
            await auth_service.refresh(forged)

    @pytest.mark.asyncio
    async def test_garbage_refresh_token(self, auth_service):
        with pytest.raises(TokenInvalidError):
            await auth_service.refresh("invalid.token.here")

    @pytest.mark.asyncio
    async def test_refresh_after_logout(self, auth_service, registered):
        await auth_service.logout(registered.tokens.session_id, registered.user.id)
        with pytest.raises(TokenRevokedError):
            await auth_service.refresh(registered.tokens.refresh_token)

    @pytest.mark.asyncio
    async def test_refresh_for_deactivated_user(self, auth_service, db_session, registered):
        registered.user.is_active = False
        await db_session.commit()

        with pytest.raises(TokenRevokedError):
            await auth_service.refresh(registered.tokens.refresh_token)


class TestRevocation:

    @pytest.mark.asyncio
    async def test_revoke_session_revokes_its_tokens(self, auth_service, registered):
        token_service = auth_service.token_service
        await token_service.revoke_session(
            registered.tokens.session_id, registered.user.id, "User logout"
        )

        assert await token_service.list_user_tokens(registered.user.id) == []

    @pytest.mark.asyncio
    async def test_suspicious_reason_revokes_family(self, auth_service, db_session, registered):
        second = await auth_service.refresh(registered.tokens.refresh_token)
        token_service = auth_service.token_service
        repo = token_service.refresh_token_repo

        revoked = await token_service.revoke_refresh_token(
            repo.hash_token(registered.tokens.refresh_token), registered.user.id, REUSE_REASON
        )
        await db_session.commit()

        assert revoked is False
        family = await repo.list_for_family(second.family)
        assert all(t.is_revoked for t in family)

    @pytest.mark.asyncio
    async def test_revoke_all_user_tokens(self, auth_service, registered):
        await auth_service.login("ana@acme.io", PASSWORD)
        revoked = await auth_service.logout_everywhere(registered.user.id)

        assert revoked == 2
        assert await auth_service.list_sessions(registered.user.id) == []

    @pytest.mark.asyncio
    async def test_cleanup_expired_tokens(self, auth_service, clock, registered):
        clock.advance(days=8)
        deleted = await auth_service.token_service.cleanup_expired_tokens()
        assert deleted == 1
        assert (
            await auth_service.token_service.list_user_tokens(
                registered.user.id, include_revoked=True
            )
            == []
        )


class TestMfaChallenge:

    @pytest.mark.asyncio
    async def test_challenge_round_trip(self, auth_service, registered):
        token_service = auth_service.token_service
        token = token_service.issue_mfa_challenge(registered.user, "sess-1")
        assert token_service.verify_mfa_challenge(token) == (registered.user.id, "sess-1")

    @pytest.mark.asyncio
    async def test_challenge_expires(self, auth_service, clock, registered):
        token_service = auth_service.token_service
        token = token_service.issue_mfa_challenge(registered.user, "sess-1")
        clock.advance(minutes=6)
        with pytest.raises(TokenExpiredError):
            token_service.verify_mfa_challenge(token)

    @pytest.mark.asyncio
    async def test_access_token_is_not_a_challenge(self, auth_service, registered):
        with pytest.raises(TokenInvalidError):
            auth_service.token_service.verify_mfa_challenge(registered.tokens.access_token)
