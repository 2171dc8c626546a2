import pytest

from authforge.domain.services.password_history_service import PasswordHistoryService
from authforge.infrastructure.auth.password_hasher import hash_password
from authforge.infrastructure.persistence.repositories import PasswordHistoryRepository


@pytest.fixture
def history_repo(db_session):
    return PasswordHistoryRepository(db_session)


@pytest.fixture
def history_service(history_repo, settings, clock):
    return PasswordHistoryService(history_repo, settings, clock)


@pytest.mark.asyncio
async def test_retention_keeps_newest_entries(history_service, history_repo, user):
    """With a history of 3, only the 3 newest hashes are kept."""
    for password in ("First-Pass1!", "Second-Pass2!", "Third-Pass3!", "Fourth-Pass4!"):
        await history_service.add_to_history(user.id, hash_password(password))

    entries = await history_repo.get_recent(user.id, 10)
    assert len(entries) == 3

    assert not await history_service.is_password_in_history(user.id, "First-Pass1!")
    for password in ("Second-Pass2!", "Third-Pass3!", "Fourth-Pass4!"):
        assert await history_service.is_password_in_history(user.id, password)


@pytest.mark.asyncio
async def test_history_count_override(history_service, user):
    for password in ("First-Pass1!", "Second-Pass2!"):
        await history_service.add_to_history(user.id, hash_password(password))

    assert await history_service.is_password_in_history(user.id, "First-Pass1!", history_count=2)
    assert not await history_service.is_password_in_history(
        user.id, "First-Pass1!", history_count=1
    )
    assert not await history_service.is_password_in_history(
        user.id, "Second-Pass2!", history_count=0
    )


@pytest.mark.asyncio
async def test_zero_history_still_blocks_current_password(
    db_session, settings_factory, clock, user
):
    """The current password is always part of the history."""
    service = PasswordHistoryService(
        PasswordHistoryRepository(db_session), settings_factory(password_history_count=0), clock
    )
    assert service.retention == 1

    await service.add_to_history(user.id, hash_password("First-Pass1!"))
    await service.add_to_history(user.id, hash_password("Second-Pass2!"))

    assert await service.is_password_in_history(user.id, "Second-Pass2!")
    assert not await service.is_password_in_history(user.id, "First-Pass1!")


@pytest.mark.asyncio
async def test_histories_are_per_user(history_service, user):
    await history_service.add_to_history(user.id, hash_password("First-Pass1!"))
    assert not await history_service.is_password_in_history("someone-else", "First-Pass1!")
