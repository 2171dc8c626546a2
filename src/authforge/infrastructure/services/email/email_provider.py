"""Email provider interface and the development log provider."""

from abc import ABC, abstractmethod

from authforge.core.logging import get_logger

logger = get_logger(__name__)


class EmailProvider(ABC):
    """Abstract base class for email providers."""

    @abstractmethod
    async def send_email(
        self,
        to: str,
        subject: str,
        html_body: str,
        text_body: str,
        from_email: str,
        from_name: str,
        reply_to: str | None = None,
    ) -> bool:
        """Send an email.

        Args:
            to: Recipient email address.
            subject: Email subject line.
            html_body: HTML email body.
            text_body: Plain text email body.
            from_email: Sender email address.
            from_name: Sender display name.
            reply_to: Optional reply-to email address.

        Returns:
            True if email was sent successfully, False otherwise.

        Raises:
            Exception: If email sending fails with an error.
        """

    @abstractmethod
    async def test_connection(self) -> tuple[bool, str | None]:
        """Test the email provider connection.

        Returns:
            Tuple of (success, error_message). error_message is None on success.
        """


class LoggingEmailProvider(EmailProvider):
    """Writes outgoing mail to the log instead of delivering it.

    Only the recipient and subject are logged; bodies carry live tokens.
    Sent messages are kept in ``outbox`` for inspection.
    """

    def __init__(self) -> None:
        self.outbox: list[dict[str, str]] = []

    async def send_email(
        self,
        to: str,
        subject: str,
        html_body: str,
        text_body: str,
        from_email: str,
        from_name: str,
        reply_to: str | None = None,
    ) -> bool:
        self.outbox.append(
            {"to": to, "subject": subject, "text_body": text_body, "html_body": html_body}
        )
        logger.info("[EMAIL] Message queued", to=to, subject=subject, from_email=from_email)
        return True

    async def test_connection(self) -> tuple[bool, str | None]:
        return True, None
