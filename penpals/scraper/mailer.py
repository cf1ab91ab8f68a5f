"""Gmail SMTP sender for the dispatcher.

Env vars (a local ``.env`` file is honoured):
  - GMAIL_USER     account to authenticate as and default From address
  - APP_PASSWORD   Gmail app password for that account
  - SMTP_HOST / SMTP_PORT (optional, default smtp.gmail.com:587)
  - MAIL_FROM_NAME (optional display name)
"""

from __future__ import annotations

import os
import smtplib
from email.message import EmailMessage
from email.utils import formataddr, make_msgid
from typing import Callable, Optional

from dotenv import load_dotenv

DEFAULT_SMTP_HOST = "smtp.gmail.com"
DEFAULT_SMTP_PORT = 587


class GmailSender:
    def __init__(
        self,
        user: str,
        password: str,
        *,
        from_name: Optional[str] = None,
        host: str = DEFAULT_SMTP_HOST,
        port: int = DEFAULT_SMTP_PORT,
        timeout: float = 30,
        smtp_factory: Callable[..., smtplib.SMTP] = smtplib.SMTP,
    ) -> None:
        if not user or not password:
            raise RuntimeError("GMAIL_USER and APP_PASSWORD must be set")
        self.user = user
        self.password = password
        self.from_name = from_name
        self.host = host
        self.port = port
        self.timeout = timeout
        self.smtp_factory = smtp_factory

    @classmethod
    def from_env(cls) -> "GmailSender":
        load_dotenv()
        return cls(
            os.getenv("GMAIL_USER") or "",
            os.getenv("APP_PASSWORD") or "",
            from_name=os.getenv("MAIL_FROM_NAME") or None,
            host=os.getenv("SMTP_HOST", DEFAULT_SMTP_HOST),
            port=int(os.getenv("SMTP_PORT", str(DEFAULT_SMTP_PORT))),
        )

    @property
    def from_address(self) -> str:
        return formataddr((self.from_name, self.user)) if self.from_name else self.user

    def send(self, to: str, subject: str, text: str) -> str:
        """Send a plain-text message and return its Message-ID."""

        msg = EmailMessage()
        msg["From"] = self.from_address
        msg["To"] = to
        msg["Subject"] = subject
        msg["Message-ID"] = make_msgid(domain=self.user.split("@")[-1])
        msg.set_content(text)

        with self.smtp_factory(self.host, self.port, timeout=self.timeout) as smtp:
            smtp.ehlo()
            smtp.starttls()
            smtp.ehlo()
            smtp.login(self.user, self.password)
            smtp.send_message(msg)

        return msg["Message-ID"]


__all__ = ["GmailSender"]
