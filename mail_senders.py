"""Mail sender implementations.

The endpoint only knows the ``MailSender`` protocol: hand over recipients,
subject, body and headers and get a ``SendResult`` back. Which sender is
active is picked once at startup by ``build_mail_sender``.
"""

from __future__ import annotations

import logging
import smtplib
from dataclasses import dataclass
from email.message import EmailMessage
from typing import Mapping, Protocol, Sequence

import requests

from settings import Settings

logger = logging.getLogger(__name__)

SMTP_SENT_MESSAGE = "Order submitted successfully! A confirmation email has been sent."
SMTP_FAILED_MESSAGE = (
    "There was an issue sending the order email. Please check server logs or contact support."
)
CAPTURE_FORWARDED_MESSAGE = "Order data received. Email forwarded to MailHog."
CAPTURE_REJECTED_MESSAGE = "Order data received, but MailHog API returned an error."
CAPTURE_UNREACHABLE_MESSAGE = (
    "Order data received, but failed to forward to MailHog. Is MailHog running?"
)

# Headers the capture API stores alongside the message.
_CAPTURE_HEADERS = ("Content-Type", "Content-Transfer-Encoding", "Reply-To")


@dataclass(frozen=True)
class SendResult:
    ok: bool
    detail: str


class MailSender(Protocol):
    def send(
        self,
        recipients: Sequence[str],
        subject: str,
        body: str,
        headers: Mapping[str, str],
    ) -> SendResult: ...


class SmtpMailSender:
    """Deliver the order mail through an SMTP relay."""

    def __init__(
        self,
        *,
        host: str,
        port: int,
        envelope_from: str,
        user: str | None = None,
        password: str | None = None,
        starttls: bool = False,
        timeout_sec: float = 10.0,
    ) -> None:
        self._host = host
        self._port = port
        self._envelope_from = envelope_from
        self._user = user
        self._password = password
        self._starttls = starttls
        self._timeout_sec = timeout_sec

    def send(
        self,
        recipients: Sequence[str],
        subject: str,
        body: str,
        headers: Mapping[str, str],
    ) -> SendResult:
        message = build_email_message(recipients, subject, body, headers)
        try:
            with smtplib.SMTP(self._host, self._port, timeout=self._timeout_sec) as smtp:
                if self._starttls:
                    smtp.starttls()
                if self._user and self._password:
                    smtp.login(self._user, self._password)
                smtp.send_message(
                    message, from_addr=self._envelope_from, to_addrs=list(recipients)
                )
        except (smtplib.SMTPException, OSError) as exc:
            logger.error(
                "Mail failed to send to %s. Subject: %s. Error: %s",
                ",".join(recipients),
                subject,
                exc,
            )
            return SendResult(ok=False, detail=SMTP_FAILED_MESSAGE)
        return SendResult(ok=True, detail=SMTP_SENT_MESSAGE)


class CaptureMailSender:
    """Forward the order mail to a local MailHog API instead of delivering it.

    Forwarding problems are logged but, unless ``report_failures`` is set,
    still come back as ``ok=True`` so the order form shows its success modal.
    """

    def __init__(
        self,
        *,
        api_url: str,
        from_email: str,
        timeout_sec: float = 10.0,
        report_failures: bool = False,
    ) -> None:
        self._api_url = api_url
        self._from_email = from_email
        self._timeout_sec = timeout_sec
        self._report_failures = report_failures

    def send(
        self,
        recipients: Sequence[str],
        subject: str,
        body: str,
        headers: Mapping[str, str],
    ) -> SendResult:
        payload = build_capture_payload(self._from_email, recipients, subject, body, headers)
        try:
            response = requests.post(self._api_url, json=payload, timeout=self._timeout_sec)
        except requests.RequestException as exc:
            logger.error(
                "Failed to connect to MailHog at %s. Is MailHog running? %s",
                self._api_url,
                exc,
            )
            return self._failed(CAPTURE_UNREACHABLE_MESSAGE)

        if not 200 <= response.status_code < 300:
            logger.error(
                "MailHog API returned non-2xx status: %s %s",
                response.status_code,
                response.text[:300],
            )
            return self._failed(CAPTURE_REJECTED_MESSAGE)

        return SendResult(ok=True, detail=CAPTURE_FORWARDED_MESSAGE)

    def _failed(self, detail: str) -> SendResult:
        return SendResult(ok=not self._report_failures, detail=detail)


def build_email_message(
    recipients: Sequence[str],
    subject: str,
    body: str,
    headers: Mapping[str, str],
) -> EmailMessage:
    message = EmailMessage()
    # set_content owns MIME-Version, Content-Type and Content-Transfer-Encoding.
    message.set_content(body, subtype="plain", charset="utf-8", cte="8bit")
    message["To"] = ", ".join(recipients)
    message["Subject"] = subject
    for name, value in headers.items():
        if name not in message:
            message[name] = value
    return message


def build_capture_payload(
    from_email: str,
    recipients: Sequence[str],
    subject: str,
    body: str,
    headers: Mapping[str, str],
) -> dict[str, object]:
    return {
        "From": from_email,
        "To": list(recipients),
        "Subject": subject,
        "Body": body,
        "Headers": {name: headers[name] for name in _CAPTURE_HEADERS if name in headers},
    }


def build_mail_sender(settings: Settings) -> MailSender:
    if settings.mail_backend == "smtp":
        return SmtpMailSender(
            host=settings.smtp_host,
            port=settings.smtp_port,
            envelope_from=settings.from_email,
            user=settings.smtp_user,
            password=settings.smtp_password,
            starttls=settings.smtp_starttls,
            timeout_sec=settings.smtp_timeout_sec,
        )
    if settings.mail_backend == "capture":
        return CaptureMailSender(
            api_url=settings.capture_api_url,
            from_email=settings.from_email,
            timeout_sec=settings.capture_timeout_sec,
            report_failures=settings.capture_report_failures,
        )
    raise ValueError(f"Unknown MAIL_BACKEND: {settings.mail_backend!r}")
