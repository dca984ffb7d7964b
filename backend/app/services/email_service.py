"""Email dispatch for one-time passcodes.

EmailService is built explicitly (see app.dependencies.get_email_service) and
handed to the flows that send mail. SMTP settings are checked when a message
is sent, not at startup. Any failure raises UpstreamDependencyError so the
enclosing request fails and its transaction rolls back.

Modes:
    - console: log the message (development)
    - smtp: deliver via aiosmtplib
"""

import logging
from email.message import EmailMessage

import aiosmtplib

from app.config import Settings
from app.core.errors import UpstreamDependencyError

logger = logging.getLogger("coursetrack.email")

OTP_SUBJECTS = {
    "REGISTER": "Registration",
    "LOGIN": "Sign in",
    "PASSWORD_RESET": "Password reset",
}


class EmailService:
    def __init__(
        self,
        mode: str = "console",
        *,
        smtp_host: str | None = None,
        smtp_port: int | None = None,
        smtp_user: str | None = None,
        smtp_password: str | None = None,
        from_email: str | None = None,
    ):
        self._mode = mode
        self._smtp_host = smtp_host
        self._smtp_port = smtp_port
        self._smtp_user = smtp_user
        self._smtp_password = smtp_password
        self._from_email = from_email or smtp_user

    @classmethod
    def from_settings(cls, settings: Settings) -> "EmailService":
        return cls(
            settings.email_mode,
            smtp_host=settings.smtp_host,
            smtp_port=settings.smtp_port,
            smtp_user=settings.smtp_user,
            smtp_password=settings.smtp_password,
            from_email=settings.smtp_from,
        )

    async def send(self, to: str, subject: str, body: str) -> None:
        """Send a plain-text email or raise UpstreamDependencyError."""
        if self._mode == "console":
            self._send_console(to, subject, body)
        elif self._mode == "smtp":
            await self._send_smtp(to, subject, body)
        else:
            raise UpstreamDependencyError(f"Unknown email mode: {self._mode}", mode=self._mode)

    async def send_otp_email(self, *, to: str, code: str, purpose: str) -> None:
        label = OTP_SUBJECTS.get(purpose, purpose)
        subject = f"Your verification code ({label})"
        body = (
            f"Your one-time code: {code}\n\n"
            "The code is valid for a limited time. "
            "If you did not request it, you can ignore this email."
        )
        await self.send(to, subject, body)

    def _send_console(self, to: str, subject: str, body: str) -> None:
        logger.info("EMAIL (console mode) to=%s subject=%r\n%s", to, subject, body)

    def _check_smtp_config(self) -> None:
        missing = [
            name
            for name, value in (
                ("SMTP_HOST", self._smtp_host),
                ("SMTP_PORT", self._smtp_port),
                ("SMTP_USER", self._smtp_user),
                ("SMTP_PASSWORD", self._smtp_password),
            )
            if not value
        ]
        if missing:
            raise UpstreamDependencyError("SMTP is not configured", missing=",".join(missing))

    async def _send_smtp(self, to: str, subject: str, body: str) -> None:
        self._check_smtp_config()

        message = EmailMessage()
        message["Subject"] = subject
        message["From"] = self._from_email
        message["To"] = to
        message.set_content(body)

        # Implicit TLS on 465, STARTTLS elsewhere
        use_tls = self._smtp_port == 465
        try:
            await aiosmtplib.send(
                message,
                hostname=self._smtp_host,
                port=self._smtp_port,
                username=self._smtp_user,
                password=self._smtp_password,
                use_tls=use_tls,
                start_tls=not use_tls,
            )
        except (aiosmtplib.SMTPException, OSError) as e:
            logger.error("Failed to send email via SMTP to=%s: %s", to, e)
            raise UpstreamDependencyError("Email delivery failed", to=to) from e

        logger.info("Email sent via SMTP to=%s", to)
