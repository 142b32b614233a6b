"""
SMTP Transport
==============

Delivers sealed packages as email attachments.
"""

from __future__ import annotations

import logging
import os
import smtplib
import ssl
from email.message import EmailMessage
from typing import Optional

from medsecure.core.config import MailConfig
from medsecure.transport.base import SecureDelivery, Transport, TransportError

PASSWORD_ENV: str = "MEDSECURE_SMTP_PASSWORD"


class SmtpTransport(Transport):
    """
    Sends each delivery over a fresh SMTP connection.

    Implicit TLS when ``use_ssl`` is set (port 465), STARTTLS otherwise.
    """

    def __init__(self, config: MailConfig, password: Optional[str] = None, timeout: float = 30.0) -> None:
        self._config = config
        self._password = password if password is not None else os.environ.get(PASSWORD_ENV, "")
        self._timeout = timeout
        self._log = logging.getLogger("medsecure.transport")

    def _build_message(self, delivery: SecureDelivery) -> EmailMessage:
        message = EmailMessage()
        message["From"] = self._config.mail_from or self._config.username
        message["To"] = delivery.recipient
        message["Subject"] = delivery.subject
        message.set_content(delivery.body)

        for attachment in delivery.attachments:
            maintype, _, subtype = attachment.content_type.partition("/")
            message.add_attachment(
                attachment.content,
                maintype=maintype,
                subtype=subtype,
                filename=attachment.filename,
            )
        return message

    def deliver(self, delivery: SecureDelivery) -> None:
        try:
            message = self._build_message(delivery)
        except ValueError as e:
            # email.message refuses header values with CR/LF
            self._log.error("Mail message rejected: %s", type(e).__name__)
            raise TransportError("Mail message could not be built") from e

        context = ssl.create_default_context()

        try:
            if self._config.use_ssl:
                client = smtplib.SMTP_SSL(
                    self._config.host, self._config.port,
                    timeout=self._timeout, context=context,
                )
            else:
                client = smtplib.SMTP(self._config.host, self._config.port, timeout=self._timeout)

            with client:
                if not self._config.use_ssl:
                    client.starttls(context=context)
                if self._config.username:
                    client.login(self._config.username, self._password)
                client.send_message(message)
        except (smtplib.SMTPException, OSError) as e:
            self._log.error("Mail delivery failed: %s", type(e).__name__)
            raise TransportError("Mail delivery failed") from e

        self._log.info("Delivered %d attachment(s)", len(delivery.attachments))
