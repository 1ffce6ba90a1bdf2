from __future__ import annotations

import os
from dataclasses import dataclass

from dotenv import load_dotenv


@dataclass(frozen=True)
class Settings:
    mail_backend: str = "smtp"
    operator_email: str = "orders@paracay.com"
    from_email: str = "orders@paracay.com"
    from_name: str = "Paradise Cay Orders"
    message_title: str = "Paradise Cay Publications - Custom Order"
    smtp_host: str = "localhost"
    smtp_port: int = 25
    smtp_user: str | None = None
    smtp_password: str | None = None
    smtp_starttls: bool = False
    smtp_timeout_sec: float = 10.0
    capture_api_url: str = "http://localhost:8025/api/v2/messages"
    capture_timeout_sec: float = 10.0
    capture_report_failures: bool = False
    log_level: str = "INFO"
    port: int = 5000


def load_settings() -> Settings:
    load_dotenv()
    return Settings(
        mail_backend=os.getenv("MAIL_BACKEND", "smtp").strip().lower(),
        operator_email=os.getenv("ORDER_OPERATOR_EMAIL", "orders@paracay.com"),
        from_email=os.getenv("ORDER_FROM_EMAIL", "orders@paracay.com"),
        from_name=os.getenv("ORDER_FROM_NAME", "Paradise Cay Orders"),
        message_title=os.getenv(
            "ORDER_MESSAGE_TITLE", "Paradise Cay Publications - Custom Order"
        ),
        smtp_host=os.getenv("SMTP_HOST", "localhost"),
        smtp_port=int(os.getenv("SMTP_PORT", "25")),
        smtp_user=_optional_env("SMTP_USER"),
        smtp_password=_optional_env("SMTP_PASSWORD"),
        smtp_starttls=_env_bool("SMTP_STARTTLS", default=False),
        smtp_timeout_sec=float(os.getenv("SMTP_TIMEOUT_SEC", "10")),
        capture_api_url=os.getenv(
            "CAPTURE_API_URL", "http://localhost:8025/api/v2/messages"
        ),
        capture_timeout_sec=float(os.getenv("CAPTURE_TIMEOUT_SEC", "10")),
        capture_report_failures=_env_bool("CAPTURE_REPORT_FAILURES", default=False),
        log_level=os.getenv("LOG_LEVEL", "INFO"),
        port=int(os.getenv("PORT", "5000")),
    )


def _optional_env(name: str) -> str | None:
    value = os.getenv(name)
    if value is None or not value.strip():
        return None
    return value.strip()


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    normalized = raw.strip().lower()
    if normalized in {"1", "true", "yes", "on"}:
        return True
    if normalized in {"0", "false", "no", "off"}:
        return False
    raise ValueError(f"Invalid boolean value for {name}: {raw!r}")
