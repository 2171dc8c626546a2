"""Notification delivery for the authentication flows.

Every send is best effort: a provider failure is logged and swallowed so
that issuing a token never depends on the mail server being reachable.
Raw tokens only ever travel inside the message body.
"""

from urllib.parse import urlencode

from authforge.core.config import Settings, get_settings
from authforge.core.logging import get_logger
from authforge.infrastructure.services.email.email_provider import (
    EmailProvider,
    LoggingEmailProvider,
)
from authforge.infrastructure.services.email.smtp_provider import SMTPProvider, SMTPSettings
from authforge.infrastructure.services.email.template_renderer import (
    TemplateRenderer,
    get_template_renderer,
)
from authforge.infrastructure.services.email.templates import EMAIL_TEMPLATES

logger = get_logger(__name__)


def build_email_provider(settings: Settings) -> EmailProvider:
    """Create the provider selected by ``settings.email_provider``."""
    if settings.email_provider == "smtp":
        return SMTPProvider(SMTPSettings.from_app_settings(settings))
    return LoggingEmailProvider()


class NotificationService:
    """Sends the emails that accompany account lifecycle events."""

    def __init__(
        self,
        provider: EmailProvider | None = None,
        settings: Settings | None = None,
        renderer: TemplateRenderer | None = None,
    ) -> None:
        self.settings = settings or get_settings()
        self.provider = provider or build_email_provider(self.settings)
        self.renderer = renderer or get_template_renderer()

    def _link(self, path: str, token: str) -> str:
        return f"{self.settings.frontend_url.rstrip('/')}/{path}?{urlencode({'token': token})}"

    async def _send(self, to: str, template_type: str, variables: dict[str, str] | None = None) -> bool:
        template = EMAIL_TEMPLATES[template_type]
        context = {"app_name": self.settings.app_name, **(variables or {})}
        try:
            sent = await self.provider.send_email(
                to=to,
                subject=self.renderer.render(template.subject, context),
                html_body=self.renderer.render(template.html_body, context),
                text_body=self.renderer.render(template.text_body, context),
                from_email=self.settings.email_from_address,
                from_name=self.settings.email_from_name,
            )
        except Exception as e:
            logger.error(
                "Notification delivery failed",
                template_type=template_type,
                to=to,
                error=str(e),
            )
            return False
        if not sent:
            logger.warning("Notification not accepted by provider", template_type=template_type, to=to)
        return sent

    async def send_email_verification(self, email: str, token: str) -> bool:
        return await self._send(
            email,
            "email_verification",
            {
                "action_url": self._link("verify-email", token),
                "expires_hours": str(self.settings.email_verification_expire_hours),
            },
        )

    async def send_password_reset(self, email: str, token: str) -> bool:
        return await self._send(
            email,
            "password_reset",
            {
                "action_url": self._link("reset-password", token),
                "expires_hours": str(self.settings.reset_token_expire_hours),
            },
        )

    async def send_password_reset_success(self, email: str) -> bool:
        return await self._send(email, "password_reset_success")

    async def send_password_changed(self, email: str) -> bool:
        return await self._send(email, "password_changed")

    async def send_recovery_notification(
        self, email: str, token: str | None, account_exists: bool
    ) -> bool:
        """Send the recovery link, or a notice when no account uses the address.

        Args:
            email: Address the request was made for.
            token: Recovery token; ignored when the account does not exist.
            account_exists: Whether an account uses the address.
        """
        if not account_exists or token is None:
            return await self._send(email, "account_recovery_unknown")
        return await self._send(
            email,
            "account_recovery",
            {
                "action_url": self._link("recover-account", token),
                "expires_hours": str(self.settings.recovery_token_expire_hours),
            },
        )

    async def send_account_recovery_success(self, email: str) -> bool:
        return await self._send(email, "account_recovery_success")
