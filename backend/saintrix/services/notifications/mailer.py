"""
Outbound Email

One contract for every transport: connect once, send many, close.

    with build_mailer() as mailer:
        mailer.send(sender, to, subject, html_body)

SmtpMailer talks to any SMTP relay (STARTTLS); PostmarkMailer goes through the
Postmark API. Transport failures surface as ExternalServiceError.
"""
from abc import ABC, abstractmethod
from email.mime.text import MIMEText
from typing import Optional
import logging
import os
import smtplib

from postmarker.core import PostmarkClient

from ..exceptions import ExternalServiceError

logger = logging.getLogger(__name__)

EMAIL_TRANSPORT = os.getenv("EMAIL_TRANSPORT", "smtp")
SMTP_HOST = os.getenv("SMTP_HOST", "")
SMTP_PORT = int(os.getenv("SMTP_PORT", "587"))
SMTP_USER = os.getenv("SMTP_USER", "")
SMTP_PASS = os.getenv("SMTP_PASS", "")
SMTP_FROM = os.getenv("SMTP_FROM", "")
POSTMARK_SERVER_TOKEN = os.getenv("POSTMARK_SERVER_TOKEN", "")


class Mailer(ABC):
    """Abstract outbound email session."""

    @abstractmethod
    def connect(self) -> None:
        pass

    @abstractmethod
    def send(self, sender: str, to: str, subject: str, html_body: str) -> None:
        pass

    @abstractmethod
    def close(self) -> None:
        pass

    def __enter__(self):
        self.connect()
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()
        return False


class SmtpMailer(Mailer):
    """SMTP session with STARTTLS and login."""

    def __init__(
        self,
        host: str = SMTP_HOST,
        port: int = SMTP_PORT,
        username: str = SMTP_USER,
        password: str = SMTP_PASS,
        use_tls: bool = True,
    ):
        self.host = host
        self.port = port
        self.username = username
        self.password = password
        self.use_tls = use_tls
        self._smtp: Optional[smtplib.SMTP] = None

    def connect(self) -> None:
        if self._smtp is not None:
            return
        try:
            smtp = smtplib.SMTP(self.host, self.port, timeout=30)
            if self.use_tls:
                smtp.starttls()
            if self.username:
                smtp.login(self.username, self.password)
        except (smtplib.SMTPException, OSError) as e:
            raise ExternalServiceError("smtp", f"connect to {self.host}:{self.port} failed: {e}") from e
        self._smtp = smtp
        logger.info(f"SMTP session opened to {self.host}:{self.port}")

    def send(self, sender: str, to: str, subject: str, html_body: str) -> None:
        if self._smtp is None:
            self.connect()

        msg = MIMEText(html_body, "html", "utf-8")
        msg["Subject"] = subject
        msg["From"] = sender
        msg["To"] = to
        try:
            self._smtp.sendmail(sender, [to], msg.as_string())
        except (smtplib.SMTPException, OSError) as e:
            raise ExternalServiceError("smtp", f"send to {to} failed: {e}") from e

    def close(self) -> None:
        if self._smtp is None:
            return
        try:
            self._smtp.quit()
        except (smtplib.SMTPException, OSError) as e:
            logger.warning(f"SMTP quit failed: {e}")
        finally:
            self._smtp = None


class PostmarkMailer(Mailer):
    """Postmark API client; the connection is an HTTP client, opened lazily."""

    def __init__(self, server_token: str = POSTMARK_SERVER_TOKEN):
        self.server_token = server_token
        self.client: Optional[PostmarkClient] = None

    def connect(self) -> None:
        if self.client is None:
            if not self.server_token:
                raise ExternalServiceError("postmark", "POSTMARK_SERVER_TOKEN not set")
            self.client = PostmarkClient(server_token=self.server_token)

    def send(self, sender: str, to: str, subject: str, html_body: str) -> None:
        if self.client is None:
            self.connect()
        try:
            response = self.client.emails.send(
                From=sender,
                To=to,
                Subject=subject,
                HtmlBody=html_body,
            )
        except Exception as e:
            raise ExternalServiceError("postmark", f"send to {to} failed: {e}") from e
        logger.info(f"Postmark accepted message {response.get('MessageID')} for {to}")

    def close(self) -> None:
        self.client = None


def build_mailer(transport: str = EMAIL_TRANSPORT) -> Mailer:
    """Mailer for the configured transport."""
    if transport == "postmark":
        return PostmarkMailer()
    if transport == "smtp":
        return SmtpMailer()
    raise ValueError(f"Unknown EMAIL_TRANSPORT: {transport}")
