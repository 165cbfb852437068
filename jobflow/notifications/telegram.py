import asyncio
import logging
from typing import List

import requests

from ..errors import NotificationError
from ..models.job import JobRecord

LOGGER = logging.getLogger(__name__)

TELEGRAM_API_URL = "https://api.telegram.org/bot{token}/sendMessage"
MAX_JOBS_PER_MESSAGE = 10


def format_digest_message(jobs: List[JobRecord], workflow_id: str) -> str:
    """Telegram HTML message; long digests list the first jobs and a count of the rest."""
    lines = [f"🔥 <b>{len(jobs)} NEW JOBS</b> ({workflow_id})", ""]
    for job in jobs[:MAX_JOBS_PER_MESSAGE]:
        lines.append(f"<b>{job.title}</b> - {job.company} ({job.location})")
        if job.url:
            lines.append(f"<a href='{job.url}'>Apply Now</a>")
        lines.append("")
    remaining = len(jobs) - MAX_JOBS_PER_MESSAGE
    if remaining > 0:
        lines.append(f"<i>...and {remaining} more</i>")
    return "\n".join(lines)


class TelegramNotifier:
    """
    Sends the digest to a Telegram chat. The `recipients` string of the email
    node is kept in the message header only; the chat id comes from settings.
    """

    def __init__(self, bot_token: str, chat_id: str, timeout: float = 10.0):
        self.bot_token = bot_token
        self.chat_id = chat_id
        self.timeout = timeout

    @classmethod
    def from_settings(cls, settings) -> "TelegramNotifier":
        return cls(bot_token=settings.telegram_bot_token, chat_id=settings.telegram_chat_id)

    async def send_digest(self, recipients: str, jobs: List[JobRecord], workflow_id: str) -> None:
        if not self.bot_token or not self.chat_id:
            raise NotificationError("Telegram credentials missing (TELEGRAM_BOT_TOKEN / TELEGRAM_CHAT_ID)")

        payload = {
            "chat_id": self.chat_id,
            "text": format_digest_message(jobs, workflow_id),
            "parse_mode": "HTML",
            "disable_web_page_preview": True,
        }
        url = TELEGRAM_API_URL.format(token=self.bot_token)

        try:
            response = await asyncio.to_thread(requests.post, url, json=payload, timeout=self.timeout)
            body = response.json()
        except (requests.RequestException, ValueError) as exc:
            raise NotificationError(f"Failed to send Telegram digest: {exc}") from exc

        if response.status_code != 200 or not body.get("ok"):
            raise NotificationError(f"Telegram rejected the digest: {body.get('description', response.status_code)}")

        LOGGER.info("Telegram digest sent: workflow=%s jobs=%d (for %s)", workflow_id, len(jobs), recipients)

