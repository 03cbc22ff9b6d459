"""
Email Client
SMTP submission of templated account emails
"""

import os
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from typing import List, Optional, Dict, Any

import aiosmtplib
import structlog
from jinja2 import Environment, FileSystemLoader, select_autoescape

from parking_auth.config import settings
from parking_auth.exceptions import EmailDeliveryError
from parking_auth.models.schemas import Role

logger = structlog.get_logger(__name__)

TEMPLATES_DIR = os.path.join(os.path.dirname(__file__), "..", "templates")


class EmailMessage:
    """Email message container"""

    def __init__(
        self,
        to_emails: List[str],
        subject: str,
        html_content: Optional[str] = None,
        text_content: Optional[str] = None,
        from_email: Optional[str] = None,
        from_name: Optional[str] = None
    ):
        self.to_emails = to_emails if isinstance(to_emails, list) else [to_emails]
        self.subject = subject
        self.html_content = html_content
        self.text_content = text_content
        self.from_email = from_email
        self.from_name = from_name

        # Validation
        if not self.to_emails:
            raise ValueError("At least one recipient email is required")
        if not self.subject:
            raise ValueError("Subject is required")
        if not self.html_content and not self.text_content:
            raise ValueError("Either HTML or text content is required")


class EmailClient:
    """Sends account emails through SMTP. No retries: failures propagate."""

    def __init__(self, config=None, templates_dir: Optional[str] = None):
        self.config = config or settings
        self.jinja_env = Environment(
            loader=FileSystemLoader(templates_dir or TEMPLATES_DIR),
            autoescape=select_autoescape(['html', 'xml']),
            trim_blocks=True,
            lstrip_blocks=True
        )

    def render(self, template_name: str, **variables: Any) -> str:
        """Render an HTML template with the platform defaults"""
        template = self.jinja_env.get_template(template_name)
        return template.render(platform_name=self.config.default_from_name, **variables)

    async def send_email(self, email_message: EmailMessage) -> Dict[str, Any]:
        """
        Send an email

        Raises:
            EmailDeliveryError: if the SMTP exchange fails
        """
        mime_message = self._create_mime_message(email_message)

        try:
            await self._send_mime_message(mime_message)
        except (aiosmtplib.SMTPException, OSError) as e:
            logger.error("Email send failed", to=email_message.to_emails, error=str(e))
            raise EmailDeliveryError(f"Failed to send email: {e}") from e

        logger.info("Email sent", to=email_message.to_emails, subject=email_message.subject)
        return {
            "success": True,
            "message_id": mime_message.get('Message-ID'),
            "recipients": email_message.to_emails
        }

    def _create_mime_message(self, email_message: EmailMessage) -> MIMEMultipart:
        """Create MIME message from EmailMessage"""
        from_email = email_message.from_email or self.config.default_from_email
        from_name = email_message.from_name or self.config.default_from_name
        from_address = f"{from_name} <{from_email}>" if from_name else from_email

        if email_message.html_content and email_message.text_content:
            msg = MIMEMultipart('alternative')
        else:
            msg = MIMEMultipart()

        msg['From'] = from_address
        msg['To'] = ', '.join(email_message.to_emails)
        msg['Subject'] = email_message.subject

        if email_message.text_content:
            msg.attach(MIMEText(email_message.text_content, 'plain', 'utf-8'))

        if email_message.html_content:
            msg.attach(MIMEText(email_message.html_content, 'html', 'utf-8'))

        return msg

    async def _send_mime_message(self, message: MIMEMultipart):
        """Send MIME message via SMTP"""
        smtp = aiosmtplib.SMTP(
            hostname=self.config.smtp_host,
            port=self.config.smtp_port,
            use_tls=self.config.smtp_use_tls,
            timeout=self.config.smtp_timeout
        )

        await smtp.connect()
        try:
            if self.config.smtp_username and self.config.smtp_password:
                await smtp.login(self.config.smtp_username, self.config.smtp_password)

            return await smtp.send_message(message)
        finally:
            try:
                await smtp.quit()
            except aiosmtplib.SMTPException as e:
                logger.warning("SMTP quit failed", error=str(e))

    # ===== ACCOUNT EMAILS =====

    async def send_verification_code(self, email: str, code: str, role: Role) -> Dict[str, Any]:
        subject = "Verify Your Admin Email" if role == Role.ADMIN else "Verify Your Email"
        return await self.send_email(EmailMessage(
            to_emails=[email],
            subject=subject,
            html_content=self.render(
                "verification_code.html",
                code=code,
                expires_in=self.config.otp_expire_minutes
            ),
            text_content=f"Your verification code is: {code}"
        ))

    async def send_password_reset_code(self, email: str, code: str) -> Dict[str, Any]:
        return await self.send_email(EmailMessage(
            to_emails=[email],
            subject="Reset Your Password",
            html_content=self.render(
                "password_reset_code.html",
                code=code,
                expires_in=self.config.otp_expire_minutes
            )
        ))

    async def send_password_reset_confirmation(self, email: str) -> Dict[str, Any]:
        return await self.send_email(EmailMessage(
            to_emails=[email],
            subject="Password Reset Successful",
            html_content=self.render("password_reset_success.html")
        ))


# Global email client instance
email_client = EmailClient()


def get_email_client() -> EmailClient:
    """Get email client instance"""
    return email_client
