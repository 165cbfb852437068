from jobflow.config import Settings


class TestSettings:
    def test_defaults(self, monkeypatch):
        for name in ("SCRAPER_TIMEOUT", "SCHEDULER_TIMEZONE", "NOTIFIER", "SMTP_USE_TLS"):
            monkeypatch.delenv(name, raising=False)

        settings = Settings.from_env(dotenv=False)

        assert settings.scraper_timeout == 30.0
        assert settings.scheduler_timezone == "Asia/Kolkata"
        assert settings.notifier == "email"
        assert settings.smtp_use_tls is True

    def test_environment_overrides(self, monkeypatch):
        monkeypatch.setenv("SCRAPER_RATE_LIMIT_DELAY", "0.5")
        monkeypatch.setenv("SCRAPER_RETRY_ATTEMPTS", "5")
        monkeypatch.setenv("NOTIFIER", " Telegram ")
        monkeypatch.setenv("SMTP_USE_TLS", "no")

        settings = Settings.from_env(dotenv=False)

        assert settings.scraper_rate_limit_delay == 0.5
        assert settings.scraper_retry_attempts == 5
        assert settings.notifier == "telegram"
        assert settings.smtp_use_tls is False
