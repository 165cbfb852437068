import logging
import os
from dataclasses import dataclass

from dotenv import load_dotenv

LOG_FORMAT = "%(asctime)s | %(name)s | %(levelname)s | %(message)s"


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    return float(raw)


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    return int(raw)


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


@dataclass
class Settings:
    # Scraping
    scraper_timeout: float = 30.0          # seconds, per source request
    scraper_retry_attempts: int = 3
    scraper_rate_limit_delay: float = 2.0  # seconds between two sources

    # Scheduling
    scheduler_timezone: str = "Asia/Kolkata"
    scheduler_poll_seconds: float = 30.0

    # Storage
    store_path: str = "jobflow_store.json"

    # Notifications
    notifier: str = "email"
    smtp_host: str = "smtp.gmail.com"
    smtp_port: int = 587
    smtp_user: str = ""
    smtp_pass: str = ""
    smtp_use_tls: bool = True
    email_from: str = "Job Alerts <noreply@example.com>"
    telegram_bot_token: str = ""
    telegram_chat_id: str = ""

    log_level: str = "INFO"

    @classmethod
    def from_env(cls, dotenv: bool = True) -> "Settings":
        """
        Loads settings from the process environment.
        A .env file in the working directory is read first unless dotenv=False.
        """
        if dotenv:
            load_dotenv()

        return cls(
            scraper_timeout=_env_float("SCRAPER_TIMEOUT", 30.0),
            scraper_retry_attempts=_env_int("SCRAPER_RETRY_ATTEMPTS", 3),
            scraper_rate_limit_delay=_env_float("SCRAPER_RATE_LIMIT_DELAY", 2.0),
            scheduler_timezone=os.getenv("SCHEDULER_TIMEZONE", "Asia/Kolkata"),
            scheduler_poll_seconds=_env_float("SCHEDULER_POLL_SECONDS", 30.0),
            store_path=os.getenv("JOBFLOW_STORE_PATH", "jobflow_store.json"),
            notifier=os.getenv("NOTIFIER", "email").strip().lower(),
            smtp_host=os.getenv("SMTP_HOST", "smtp.gmail.com"),
            smtp_port=_env_int("SMTP_PORT", 587),
            smtp_user=os.getenv("SMTP_USER", ""),
            smtp_pass=os.getenv("SMTP_PASS", ""),
            smtp_use_tls=_env_bool("SMTP_USE_TLS", True),
            email_from=os.getenv("EMAIL_FROM", "Job Alerts <noreply@example.com>"),
            telegram_bot_token=os.getenv("TELEGRAM_BOT_TOKEN", ""),
            telegram_chat_id=os.getenv("TELEGRAM_CHAT_ID", ""),
            log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
        )


def configure_logging(level: str = "INFO") -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format=LOG_FORMAT,
        handlers=[logging.StreamHandler()],
    )
