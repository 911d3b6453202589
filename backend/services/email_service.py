from __future__ import annotations

import logging
import smtplib
from email.message import EmailMessage
from html import escape
from typing import Callable

from config import settings

logger = logging.getLogger(__name__)

SIGNATURE_LINES = ["", "Best regards,", "Habit AI Team"]
SIGNATURE_HTML = "<p>Best regards,<br/>Habit AI Team</p>"


def send_email(*, to: str, subject: str, text: str, html: str) -> bool:
    if not settings.email_configured:
        logger.warning("Email not configured. Skipping email send.")
        return False

    msg = EmailMessage()
    msg["From"] = settings.SMTP_FROM
    msg["To"] = to
    msg["Subject"] = subject
    msg.set_content(text)
    msg.add_alternative(html, subtype="html")

    smtp_cls = smtplib.SMTP_SSL if settings.SMTP_SECURE else smtplib.SMTP
    with smtp_cls(settings.SMTP_HOST, int(settings.SMTP_PORT), timeout=15) as smtp:
        if not settings.SMTP_SECURE:
            smtp.starttls()
        smtp.login(settings.SMTP_USER, settings.SMTP_PASS)
        smtp.send_message(msg)
    return True


def send_welcome_email(email: str, name: str | None) -> bool:
    safe_name = name or "there"
    steps = [
        "Create your first habit with a clear goal and schedule.",
        "Log your daily progress.",
        "Open AI Coach for daily suggestions.",
    ]
    text = "\n".join(
        [
            f"Hi {safe_name},",
            "",
            "Welcome to Habit AI. Your account has been created successfully.",
            "You can now set goals, track daily progress, and receive personalized guidance.",
            "",
            "To get started:",
            *[f"{i}. {step}" for i, step in enumerate(steps, start=1)],
            "",
            "If you did not create this account, please reply to this email.",
            *SIGNATURE_LINES,
        ]
    )
    html = (
        f"<p>Hi {escape(safe_name)},</p>"
        "<p>Welcome to Habit AI. Your account has been created successfully.</p>"
        "<p>You can now set goals, track daily progress, and receive personalized guidance.</p>"
        "<p><strong>To get started:</strong></p>"
        "<ol>" + "".join(f"<li>{step}</li>" for step in steps) + "</ol>"
        "<p>If you did not create this account, please reply to this email.</p>" + SIGNATURE_HTML
    )
    return send_email(to=email, subject="Welcome to Habit AI", text=text, html=html)


def send_password_reset_email(email: str, code: str) -> bool:
    ttl = settings.RESET_CODE_TTL_MINUTES
    text = "\n".join(
        [
            "We received a request to reset your Habit AI password.",
            "",
            f"Your verification code is: {code}",
            "",
            f"This code expires in {ttl} minutes.",
            "If you did not request a password reset, you can safely ignore this email.",
            *SIGNATURE_LINES,
        ]
    )
    html = (
        "<p>We received a request to reset your Habit AI password.</p>"
        f"<p><strong>Your verification code is: {escape(code)}</strong></p>"
        f"<p>This code expires in {ttl} minutes.</p>"
        "<p>If you did not request a password reset, you can safely ignore this email.</p>" + SIGNATURE_HTML
    )
    return send_email(to=email, subject="Your Habit AI password reset code", text=text, html=html)


def send_password_reset_confirmation_email(email: str) -> bool:
    text = "\n".join(
        [
            "This is a confirmation that your Habit AI password was changed successfully.",
            "",
            "If you did not perform this change, please reset your password immediately and secure your account.",
            *SIGNATURE_LINES,
        ]
    )
    html = (
        "<p>This is a confirmation that your Habit AI password was changed successfully.</p>"
        "<p>If you did not perform this change, please reset your password immediately "
        "and secure your account.</p>" + SIGNATURE_HTML
    )
    return send_email(to=email, subject="Your Habit AI password was reset", text=text, html=html)


def send_quietly(sender: Callable[..., bool], *args) -> None:
    """Run an email sender, logging instead of raising on delivery failure."""
    try:
        sender(*args)
    except Exception as e:
        logger.warning(f"{sender.__name__} failed: {e}")
