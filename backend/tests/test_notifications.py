"""
Tests for document status emails.
"""
from unittest.mock import patch

from talaty.services.notifications import NotificationService


class TestNotificationService:

    def test_without_smtp_host_only_logs(self):
        service = NotificationService(smtp_host="")

        with patch("talaty.services.notifications.smtplib.SMTP") as smtp:
            sent = service.send_document_status_email("a@example.com", "Amira", "Passport", "approved")

        assert sent is False
        smtp.assert_not_called()

    def test_sends_with_tls_and_login(self):
        service = NotificationService(
            smtp_host="smtp.example.com", smtp_port=2525,
            smtp_user="mailer", smtp_password="secret", use_tls=True,
        )

        with patch("talaty.services.notifications.smtplib.SMTP") as smtp:
            server = smtp.return_value.__enter__.return_value
            sent = service.send_document_status_email(
                "a@example.com", "Amira", "Passport", "rejected", notes="Expired passport",
            )

        assert sent is True
        smtp.assert_called_once_with("smtp.example.com", 2525, timeout=10)
        server.starttls.assert_called_once()
        server.login.assert_called_once_with("mailer", "secret")
        message = server.send_message.call_args.args[0]
        assert message["To"] == "a@example.com"
        assert "needs attention" in message["Subject"]

    def test_smtp_failure_returns_false(self):
        service = NotificationService(smtp_host="smtp.example.com", use_tls=False)

        with patch("talaty.services.notifications.smtplib.SMTP", side_effect=OSError("refused")):
            sent = service.send("a@example.com", "subject", "body")

        assert sent is False
