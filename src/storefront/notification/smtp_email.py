"""SMTP email adapter: delivers through an SMTP relay with aiosmtplib, optionally over STARTTLS.

``send`` is blocking. It runs its own event loop and is meant to be called
from the notifier's worker threads, never from a running loop.
"""

import asyncio
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from email.utils import formatdate, make_msgid

import aiosmtplib

from storefront.notification.email_port import EmailPort


class SmtpEmailAdapter(EmailPort):
    def __init__(
        self,
        host: str,
        port: int = 25,
        sender: str = "orders@storefront.local",
        username: str | None = None,
        password: str | None = None,
        use_tls: bool = False,
        timeout: float = 10.0,
    ):
        self.host = host
        self.port = port
        self.sender = sender
        self.username = username
        self.password = password
        self.use_tls = use_tls
        self.timeout = timeout

    def _build_message(self, to: str, subject: str, body: str, html_body: str | None) -> MIMEMultipart:
        message = MIMEMultipart("alternative")
        message["From"] = self.sender
        message["To"] = to
        message["Subject"] = subject
        message["Date"] = formatdate(localtime=False)
        message["Message-ID"] = make_msgid(domain=self.sender.rpartition("@")[2] or None)
        message.attach(MIMEText(body, "plain", "utf-8"))
        if html_body:
            message.attach(MIMEText(html_body, "html", "utf-8"))
        return message

    async def _deliver(self, message: MIMEMultipart):
        credentials = {}
        if self.username:
            credentials = {"username": self.username, "password": self.password or ""}
        return await aiosmtplib.send(
            message,
            hostname=self.host,
            port=self.port,
            start_tls=self.use_tls,
            timeout=self.timeout,
            **credentials,
        )

    def send(
        self,
        to: str,
        subject: str,
        body: str,
        html_body: str | None = None,
    ) -> dict:
        message = self._build_message(to, subject, body, html_body)
        try:
            asyncio.run(self._deliver(message))
        except (aiosmtplib.SMTPException, OSError) as exc:
            return {"message_id": None, "status": "failed", "error": str(exc)}

        return {"message_id": message["Message-ID"], "status": "sent"}
