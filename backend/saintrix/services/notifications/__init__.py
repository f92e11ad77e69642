"""Outbound notifications."""
from .mailer import Mailer, SmtpMailer, PostmarkMailer, build_mailer, SMTP_FROM

__all__ = ["Mailer", "SmtpMailer", "PostmarkMailer", "build_mailer", "SMTP_FROM"]
