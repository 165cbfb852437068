import asyncio
import logging
import smtplib
from email.message import EmailMessage
from typing import List, Optional

from ..errors import NotificationError
from ..models.job import JobRecord
from ..utils.retry import RetryConfig, with_retry
from .digest import digest_subject, render_digest_text
from .telegram import TelegramNotifier

LOGGER = logging.getLogger(__name__)

# Delivery retries are slower than scraper retries; SMTP relays throttle hard
EMAIL_RETRY_CONFIG = RetryConfig(max_attempts=3, initial_delay=5.0, max_delay=20.0)


def split_recipients(recipients: str) -> List[str]:
    return [r.strip() for r in recipients.replace(";", ",").split(",") if r.strip()]


class EmailNotifier:
    """Sends the job digest over SMTP. Raises NotificationError when delivery fails."""

    def __init__(
        self,
        host: str,
        port: int = 587,
        user: str = "",
        password: str = "",
        sender: str = "Job Alerts <noreply@example.com>",
        use_tls: bool = True,
        timeout: float = 30.0,
        retry_config: Optional[RetryConfig] = None,
    ):
        self.host = host
        self.port = port
        self.user = user
        self.password = password
        self.sender = sender
        self.use_tls = use_tls
        self.timeout = timeout
        self.retry_config = retry_config or EMAIL_RETRY_CONFIG

    @classmethod
    def from_settings(cls, settings) -> "EmailNotifier":
        return cls(
            host=settings.smtp_host,
            port=settings.smtp_port,
            user=settings.smtp_user,
            password=settings.smtp_pass,
            sender=settings.email_from,
            use_tls=settings.smtp_use_tls,
        )

    def build_message(self, recipients: str, jobs: List[JobRecord], workflow_id: str) -> EmailMessage:
        message = EmailMessage()
        message["From"] = self.sender
        message["To"] = ", ".join(split_recipients(recipients))
        message["Subject"] = digest_subject(jobs)
        message.set_content(render_digest_text(jobs, workflow_id))
        return message

    def _deliver(self, message: EmailMessage) -> None:
        with smtplib.SMTP(self.host, self.port, timeout=self.timeout) as smtp:
            if self.use_tls:
                smtp.starttls()
            if self.user:
                smtp.login(self.user, self.password)
            smtp.send_message(message)

    async def send_digest(self, recipients: str, jobs: List[JobRecord], workflow_id: str) -> None:
        if not split_recipients(recipients):
            raise NotificationError("No valid e-mail recipients")

        message = self.build_message(recipients, jobs, workflow_id)
        try:
            await with_retry(
                lambda: asyncio.to_thread(self._deliver, message),
                self.retry_config,
                "Digest e-mail",
            )
        except (smtplib.SMTPException, OSError) as exc:
            raise NotificationError(f"Failed to send digest to {recipients}: {exc}") from exc

        LOGGER.info("Digest e-mail sent: workflow=%s to=%s jobs=%d", workflow_id, recipients, len(jobs))


def create_notifier(settings):
    """Picks the digest channel named by NOTIFIER (email by default)."""
    if settings.notifier == "telegram":
        return TelegramNotifier.from_settings(settings)
    return EmailNotifier.from_settings(settings)
