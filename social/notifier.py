"""Outbound mail for password-reset links.

``send`` never blocks the request: delivery runs on a daemon thread and its
outcome is only logged.
"""

from __future__ import annotations

import logging
import smtplib
import threading
from email.message import EmailMessage
from typing import Dict, Optional

from flask import current_app


logger = logging.getLogger(__name__)


class Notifier:
    def __init__(self, settings: Dict) -> None:
        self.host: Optional[str] = settings.get("SMTP_HOST")
        self.port = int(settings.get("SMTP_PORT") or 587)
        self.username = settings.get("SMTP_USERNAME")
        self.password = settings.get("SMTP_PASSWORD")
        self.sender = settings.get("SMTP_SENDER") or "no-reply@localhost"
        self.use_tls = bool(settings.get("SMTP_USE_TLS", True))

    def build(self, recipient: str, subject: str, body: str) -> EmailMessage:
        message = EmailMessage()
        message["From"] = self.sender
        message["To"] = recipient
        message["Subject"] = subject
        message.set_content(body)
        return message

    def deliver(self, recipient: str, subject: str, body: str) -> bool:
        if not self.host:
            logger.warning("SMTP_HOST is not configured, dropping mail to %s: %s", recipient, subject)
            return False
        try:
            with smtplib.SMTP(self.host, self.port, timeout=10) as client:
                if self.use_tls:
                    client.starttls()
                if self.username and self.password:
                    client.login(self.username, self.password)
                client.send_message(self.build(recipient, subject, body))
        except (smtplib.SMTPException, OSError):
            logger.exception("Mail delivery to %s failed", recipient)
            return False
        logger.info("Mail sent to %s: %s", recipient, subject)
        return True

    def send(self, recipient: str, subject: str, body: str) -> threading.Thread:
        worker = threading.Thread(
            target=self.deliver,
            args=(recipient, subject, body),
            name="notifier",
            daemon=True,
        )
        worker.start()
        return worker


def get_notifier() -> Notifier:
    notifier = current_app.extensions.get("social_notifier")
    if notifier is None:
        notifier = Notifier(current_app.config)
        current_app.extensions["social_notifier"] = notifier
    return notifier
