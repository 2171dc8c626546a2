"""Unit tests for notification delivery."""

from unittest.mock import AsyncMock

import pytest

from authforge.infrastructure.services.email.email_provider import LoggingEmailProvider
from authforge.infrastructure.services.email.smtp_provider import SMTPProvider
from authforge.infrastructure.services.notification_service import (
    NotificationService,
    build_email_provider,
)


class TestNotificationService:

    @pytest.mark.asyncio
    async def test_verification_link_carries_token(self, notification_service, email_provider):
        assert await notification_service.send_email_verification("ana@acme.io", "tok-123")

        message = email_provider.outbox[-1]
        assert message["to"] == "ana@acme.io"
        assert message["subject"] == "Verify your email address"
        assert "http://localhost:3000/verify-email?token=tok-123" in message["text_body"]
        assert "24 hours" in message["text_body"]

    @pytest.mark.asyncio
    async def test_reset_link(self, notification_service, email_provider):
        await notification_service.send_password_reset("ana@acme.io", "tok-456")
        assert "/reset-password?token=tok-456" in email_provider.outbox[-1]["html_body"]

    @pytest.mark.asyncio
    async def test_recovery_for_unknown_account_has_no_link(
        self, notification_service, email_provider
    ):
        await notification_service.send_recovery_notification("ghost@acme.io", None, False)

        message = email_provider.outbox[-1]
        assert message["subject"] == "Account recovery request"
        assert "no account exists" in message["text_body"]
        assert "token=" not in message["text_body"]

    @pytest.mark.asyncio
    async def test_recovery_for_known_account(self, notification_service, email_provider):
        await notification_service.send_recovery_notification("ana@acme.io", "tok-789", True)
        assert "/recover-account?token=tok-789" in email_provider.outbox[-1]["text_body"]

    @pytest.mark.asyncio
    async def test_provider_failure_is_swallowed(self, settings):
        provider = AsyncMock(spec=LoggingEmailProvider)
        provider.send_email.side_effect = ConnectionError("mail server down")
        service = NotificationService(provider=provider, settings=settings)

        assert await service.send_password_changed("ana@acme.io") is False
        provider.send_email.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_provider_refusal_reported(self, settings):
        provider = AsyncMock(spec=LoggingEmailProvider)
        provider.send_email.return_value = False
        service = NotificationService(provider=provider, settings=settings)

        assert await service.send_password_reset_success("ana@acme.io") is False

    @pytest.mark.asyncio
    async def test_sender_from_settings(self, settings_factory):
        provider = AsyncMock(spec=LoggingEmailProvider)
        provider.send_email.return_value = True
        service = NotificationService(
            provider=provider,
            settings=settings_factory(
                email_from_address="security@acme.io", email_from_name="Acme Security"
            ),
        )

        await service.send_account_recovery_success("ana@acme.io")

        kwargs = provider.send_email.call_args.kwargs
        assert kwargs["from_email"] == "security@acme.io"
        assert kwargs["from_name"] == "Acme Security"


def test_provider_selection(settings_factory):
    assert isinstance(build_email_provider(settings_factory()), LoggingEmailProvider)
    assert isinstance(
        build_email_provider(settings_factory(email_provider="smtp")), SMTPProvider
    )
