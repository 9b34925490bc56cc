"""
Notification gateway: delivers one-time codes out of band.

The core only relies on ``deliver(address, subject, body) -> bool``. Delivery
is bounded by the SMTP timeout and never raises; a False return means the
message did not go out and the caller decides what to report.
"""
from __future__ import annotations

import logging
import smtplib
import ssl
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText

from services.credentials import redact_email

logger = logging.getLogger(__name__)


class SMTPGateway:
    """SMTP delivery with STARTTLS or implicit TLS.

    Without a configured host the gateway runs in dev mode: it logs a redacted
    notice and reports success, so local setups work without a mail server.
    """

    def __init__(
        self,
        *,
        host: str | None = None,
        port: int = 587,
        username: str | None = None,
        password: str | None = None,
        use_tls: bool = True,
        sender: str | None = None,
        timeout: float = 10.0,
    ) -> None:
        self.host = host
        self.port = port
        self.username = username
        self.password = password
        self.use_tls = use_tls
        self.sender = sender or username
        self.timeout = timeout

    @classmethod
    def from_config(cls, config) -> "SMTPGateway":
        return cls(
            host=config.get("MAIL_SERVER"),
            port=int(config.get("MAIL_PORT", 587)),
            username=config.get("MAIL_USERNAME"),
            password=config.get("MAIL_PASSWORD"),
            use_tls=bool(config.get("MAIL_USE_TLS", True)),
            sender=config.get("MAIL_DEFAULT_SENDER"),
            timeout=float(config.get("MAIL_TIMEOUT", 10)),
        )

    @property
    def is_configured(self) -> bool:
        return bool(self.host and self.sender)

    def deliver(self, address: str, subject: str, body: str) -> bool:
        if not self.is_configured:
            # message bodies carry codes, so only the subject is logged
            logger.info("mail not configured; skipped '%s' to %s", subject, redact_email(address))
            return True

        msg = MIMEMultipart("alternative")
        msg["Subject"] = subject
        msg["From"] = self.sender
        msg["To"] = address
        msg.attach(MIMEText(body, "plain"))

        context = ssl.create_default_context()
        try:
            if self.use_tls:
                with smtplib.SMTP(self.host, self.port, timeout=self.timeout) as server:
                    server.starttls(context=context)
                    if self.username and self.password:
                        server.login(self.username, self.password)
                    server.sendmail(self.sender, [address], msg.as_string())
            else:
                with smtplib.SMTP_SSL(self.host, self.port, context=context, timeout=self.timeout) as server:
                    if self.username and self.password:
                        server.login(self.username, self.password)
                    server.sendmail(self.sender, [address], msg.as_string())
        except smtplib.SMTPRecipientsRefused:
            logger.error("recipient refused: %s", redact_email(address))
            return False
        except (smtplib.SMTPException, ssl.SSLError, OSError) as exc:
            logger.error(
                "mail delivery to %s failed: %s: %s",
                redact_email(address), type(exc).__name__, exc,
            )
            return False

        logger.info("sent '%s' to %s", subject, redact_email(address))
        return True
