"""
Notification Service

Emails users when a reviewer changes the status of one of their
documents. Delivery is fire-and-forget: failures are logged and never
propagate to the verification workflow.
"""
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from typing import Optional
import logging
import smtplib

from .. import config


logger = logging.getLogger(__name__)


STATUS_SUBJECTS = {
    "approved": "Your document has been approved - Talaty",
    "rejected": "Your document needs attention - Talaty",
    "expired": "Your document has expired - Talaty",
}


class NotificationService:
    """SMTP email sender. Without SMTP_HOST it only logs what it would send."""

    def __init__(
        self,
        smtp_host: Optional[str] = None,
        smtp_port: Optional[int] = None,
        smtp_user: Optional[str] = None,
        smtp_password: Optional[str] = None,
        from_email: Optional[str] = None,
        use_tls: Optional[bool] = None,
    ):
        self.smtp_host = smtp_host if smtp_host is not None else config.SMTP_HOST
        self.smtp_port = smtp_port or config.SMTP_PORT
        self.smtp_user = smtp_user if smtp_user is not None else config.SMTP_USER
        self.smtp_password = smtp_password if smtp_password is not None else config.SMTP_PASSWORD
        self.from_email = from_email or config.FROM_EMAIL
        self.use_tls = config.SMTP_USE_TLS if use_tls is None else use_tls

    def send_document_status_email(
        self,
        email: str,
        first_name: str,
        document_name: str,
        status: str,
        notes: Optional[str] = None,
    ) -> bool:
        subject = STATUS_SUBJECTS.get(status, "Document status update - Talaty")
        lines = [
            f"Hi {first_name},",
            "",
            f'The status of your document "{document_name}" is now: {status}.',
        ]
        if notes:
            lines += ["", f"Reviewer notes: {notes}"]
        lines += ["", "Best regards,", "The Talaty Team"]

        return self.send(email, subject, "\n".join(lines))

    def send(self, recipient: str, subject: str, body: str) -> bool:
        """Send a plain-text email. Returns False on any failure."""
        if not self.smtp_host:
            logger.info(f"SMTP not configured; skipping email to {recipient}: {subject}")
            return False

        try:
            msg = MIMEMultipart()
            msg['From'] = self.from_email
            msg['To'] = recipient
            msg['Subject'] = subject
            msg.attach(MIMEText(body, 'plain'))

            with smtplib.SMTP(self.smtp_host, self.smtp_port, timeout=10) as server:
                if self.use_tls:
                    server.starttls()
                if self.smtp_user:
                    server.login(self.smtp_user, self.smtp_password)
                server.send_message(msg)

            logger.info(f"Email sent to {recipient}")
            return True
        except Exception as e:
            logger.error(f"Failed to send email to {recipient}: {e}")
            return False
