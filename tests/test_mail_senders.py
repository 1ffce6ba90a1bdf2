from __future__ import annotations

import smtplib
import unittest
from unittest.mock import MagicMock, patch

import requests

from mail_senders import (
    CAPTURE_FORWARDED_MESSAGE,
    CAPTURE_REJECTED_MESSAGE,
    CAPTURE_UNREACHABLE_MESSAGE,
    SMTP_FAILED_MESSAGE,
    SMTP_SENT_MESSAGE,
    CaptureMailSender,
    SmtpMailSender,
    build_email_message,
    build_mail_sender,
)
from settings import Settings

RECIPIENTS = ["orders@paracay.com", "buyer@example.com"]
HEADERS = {
    "From": "Paradise Cay Orders <orders@paracay.com>",
    "Reply-To": "buyer@example.com",
    "MIME-Version": "1.0",
    "Content-Type": "text/plain; charset=UTF-8",
    "Content-Transfer-Encoding": "8bit",
}


def _smtp_sender(**overrides) -> SmtpMailSender:
    options = {"host": "smtp.local", "port": 2525, "envelope_from": "orders@paracay.com"}
    options.update(overrides)
    return SmtpMailSender(**options)


class SmtpMailSenderTests(unittest.TestCase):
    def test_successful_send(self) -> None:
        with patch("mail_senders.smtplib.SMTP") as smtp_cls:
            result = _smtp_sender().send(RECIPIENTS, "Custom Order from Acme", "body", HEADERS)

        self.assertTrue(result.ok)
        self.assertEqual(result.detail, SMTP_SENT_MESSAGE)
        smtp_cls.assert_called_once_with("smtp.local", 2525, timeout=10.0)
        smtp = smtp_cls.return_value.__enter__.return_value
        smtp.starttls.assert_not_called()
        smtp.login.assert_not_called()
        _args, kwargs = smtp.send_message.call_args
        self.assertEqual(kwargs["from_addr"], "orders@paracay.com")
        self.assertEqual(kwargs["to_addrs"], RECIPIENTS)

    def test_starttls_and_login_when_configured(self) -> None:
        sender = _smtp_sender(user="mailer", password="secret", starttls=True)
        with patch("mail_senders.smtplib.SMTP") as smtp_cls:
            result = sender.send(RECIPIENTS, "subject", "body", HEADERS)

        self.assertTrue(result.ok)
        smtp = smtp_cls.return_value.__enter__.return_value
        smtp.starttls.assert_called_once_with()
        smtp.login.assert_called_once_with("mailer", "secret")

    def test_smtp_error_reports_failure(self) -> None:
        with patch("mail_senders.smtplib.SMTP") as smtp_cls:
            smtp = smtp_cls.return_value.__enter__.return_value
            smtp.send_message.side_effect = smtplib.SMTPRecipientsRefused({})
            with self.assertLogs("mail_senders", level="ERROR"):
                result = _smtp_sender().send(RECIPIENTS, "subject", "body", HEADERS)

        self.assertFalse(result.ok)
        self.assertEqual(result.detail, SMTP_FAILED_MESSAGE)

    def test_connection_error_reports_failure(self) -> None:
        with patch("mail_senders.smtplib.SMTP", side_effect=ConnectionRefusedError("refused")):
            with self.assertLogs("mail_senders", level="ERROR"):
                result = _smtp_sender().send(RECIPIENTS, "subject", "body", HEADERS)

        self.assertFalse(result.ok)
        self.assertEqual(result.detail, SMTP_FAILED_MESSAGE)


class BuildEmailMessageTests(unittest.TestCase):
    def test_message_carries_headers_and_plain_body(self) -> None:
        message = build_email_message(RECIPIENTS, "Custom Order from Acme", "Line 1\nLine 2\n", HEADERS)

        self.assertEqual(message["To"], "orders@paracay.com, buyer@example.com")
        self.assertEqual(message["Subject"], "Custom Order from Acme")
        self.assertEqual(message["From"], "Paradise Cay Orders <orders@paracay.com>")
        self.assertEqual(message["Reply-To"], "buyer@example.com")
        self.assertEqual(message["MIME-Version"], "1.0")
        self.assertEqual(message["Content-Transfer-Encoding"], "8bit")
        self.assertEqual(message.get_content_type(), "text/plain")
        self.assertEqual(message.get_content_charset(), "utf-8")
        self.assertEqual(message.get_content(), "Line 1\nLine 2\n")
        self.assertEqual(len(message.get_all("Content-Type")), 1)


class CaptureMailSenderTests(unittest.TestCase):
    def setUp(self) -> None:
        self.sender = CaptureMailSender(
            api_url="http://mailhog.local:8025/api/v2/messages",
            from_email="orders@paracay.com",
            timeout_sec=3.0,
        )

    def test_forwards_payload_to_capture_api(self) -> None:
        with patch("mail_senders.requests.post", return_value=MagicMock(status_code=200)) as post:
            result = self.sender.send(RECIPIENTS, "Custom Order from Acme", "body", HEADERS)

        self.assertTrue(result.ok)
        self.assertEqual(result.detail, CAPTURE_FORWARDED_MESSAGE)
        post.assert_called_once_with(
            "http://mailhog.local:8025/api/v2/messages",
            json={
                "From": "orders@paracay.com",
                "To": RECIPIENTS,
                "Subject": "Custom Order from Acme",
                "Body": "body",
                "Headers": {
                    "Content-Type": "text/plain; charset=UTF-8",
                    "Content-Transfer-Encoding": "8bit",
                    "Reply-To": "buyer@example.com",
                },
            },
            timeout=3.0,
        )

    def test_unreachable_capture_service_still_reports_success(self) -> None:
        with patch(
            "mail_senders.requests.post",
            side_effect=requests.ConnectionError("connection refused"),
        ):
            with self.assertLogs("mail_senders", level="ERROR") as logs:
                result = self.sender.send(RECIPIENTS, "subject", "body", HEADERS)

        self.assertTrue(result.ok)
        self.assertEqual(result.detail, CAPTURE_UNREACHABLE_MESSAGE)
        self.assertIn("Failed to connect to MailHog", logs.output[0])

    def test_non_2xx_status_still_reports_success(self) -> None:
        response = MagicMock(status_code=500, text="internal error")
        with patch("mail_senders.requests.post", return_value=response):
            with self.assertLogs("mail_senders", level="ERROR") as logs:
                result = self.sender.send(RECIPIENTS, "subject", "body", HEADERS)

        self.assertTrue(result.ok)
        self.assertEqual(result.detail, CAPTURE_REJECTED_MESSAGE)
        self.assertIn("500", logs.output[0])

    def test_any_2xx_status_counts_as_forwarded(self) -> None:
        with patch("mail_senders.requests.post", return_value=MagicMock(status_code=201)):
            result = self.sender.send(RECIPIENTS, "subject", "body", HEADERS)

        self.assertTrue(result.ok)
        self.assertEqual(result.detail, CAPTURE_FORWARDED_MESSAGE)

    def test_report_failures_turns_forwarding_errors_into_failures(self) -> None:
        sender = CaptureMailSender(
            api_url="http://mailhog.local:8025/api/v2/messages",
            from_email="orders@paracay.com",
            report_failures=True,
        )
        with patch("mail_senders.requests.post", side_effect=requests.Timeout("slow")):
            with self.assertLogs("mail_senders", level="ERROR"):
                result = sender.send(RECIPIENTS, "subject", "body", HEADERS)

        self.assertFalse(result.ok)
        self.assertEqual(result.detail, CAPTURE_UNREACHABLE_MESSAGE)


class BuildMailSenderTests(unittest.TestCase):
    def test_smtp_backend(self) -> None:
        self.assertIsInstance(build_mail_sender(Settings(mail_backend="smtp")), SmtpMailSender)

    def test_capture_backend(self) -> None:
        self.assertIsInstance(
            build_mail_sender(Settings(mail_backend="capture")), CaptureMailSender
        )

    def test_unknown_backend_raises(self) -> None:
        with self.assertRaisesRegex(ValueError, "Unknown MAIL_BACKEND"):
            build_mail_sender(Settings(mail_backend="pigeon"))
