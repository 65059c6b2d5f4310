"""Email service for alert notifications."""

import asyncio
import logging
import smtplib
import ssl
from datetime import datetime
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from typing import Optional

from deepterm.core.config import settings
from deepterm.core.exceptions import EmailDeliveryError

logger = logging.getLogger(__name__)

POSITIVE_ALERT_TYPES = {"above", "crosses_above", "price_above"}


class EmailService:
    """Service for sending emails via SMTP."""

    def __init__(self):
        self.host = settings.SMTP_HOST
        self.port = settings.SMTP_PORT
        self.user = settings.SMTP_USER
        self.password = settings.SMTP_PASSWORD
        self.from_email = settings.SMTP_FROM_EMAIL
        self.from_name = settings.SMTP_FROM_NAME
        self.use_tls = settings.SMTP_TLS

    @property
    def is_configured(self) -> bool:
        """Check if email is properly configured."""
        return bool(self.host and self.user)

    def _get_base_template(self, content: str, title: str = "Deep Terminal") -> str:
        """Wrap content in base HTML template."""
        return f"""
<!DOCTYPE html>
<html lang="en">
<head>
    <meta charset="UTF-8">
    <meta name="viewport" content="width=device-width, initial-scale=1.0">
    <title>{title}</title>
    <style>
        body {{ font-family: -apple-system, BlinkMacSystemFont, 'Segoe UI', Roboto, sans-serif; margin: 0; padding: 0; background-color: #0a0a0a; }}
        .container {{ max-width: 600px; margin: 0 auto; padding: 40px 20px; }}
        .card {{ background: linear-gradient(135deg, #111827 0%, #1f2937 100%); border-radius: 16px; padding: 40px; border: 1px solid #374151; }}
        .logo {{ font-size: 24px; font-weight: bold; color: #06b6d4; margin-bottom: 30px; }}
        .title {{ font-size: 28px; font-weight: 600; color: #ffffff; margin-bottom: 16px; }}
        .text {{ font-size: 16px; color: #9ca3af; line-height: 1.6; margin-bottom: 20px; }}
        .highlight {{ color: #06b6d4; font-weight: 600; }}
        .button {{ display: inline-block; background: linear-gradient(135deg, #06b6d4 0%, #3b82f6 100%); color: #ffffff; padding: 14px 32px; border-radius: 8px; text-decoration: none; font-weight: 600; margin: 20px 0; }}
        .footer {{ margin-top: 40px; padding-top: 20px; border-top: 1px solid #374151; font-size: 12px; color: #6b7280; }}
        .stat-box {{ background: #1f2937; border-radius: 8px; padding: 16px; margin: 10px 0; }}
        .stat-label {{ font-size: 12px; color: #6b7280; text-transform: uppercase; }}
        .stat-value {{ font-size: 24px; color: #ffffff; font-weight: bold; }}
    </style>
</head>
<body>
    <div class="container">
        <div class="card">
            {content}
            <div class="footer">
                <p>Manage your alerts in the dashboard.</p>
                <p>&copy; {datetime.now().year} Deep Terminal. All rights reserved.</p>
            </div>
        </div>
    </div>
</body>
</html>
"""

    def build_alert_email(
        self,
        user_name: str,
        alert_type: str,
        symbol: str,
        condition: str,
        current_value: str,
    ) -> str:
        """Render the "Price Alert Triggered!" email."""
        color = "#10b981" if alert_type in POSITIVE_ALERT_TYPES else "#ef4444"

        content = f"""
            <div class="logo">🔔 Deep Terminal Alert</div>
            <h1 class="title">Price Alert Triggered!</h1>
            <p class="text">Hey {user_name}, your alert for <span class="highlight">{symbol}</span> has been triggered.</p>
            <div class="stat-box">
                <div class="stat-label">{symbol}</div>
                <div class="stat-value" style="color: {color};">{current_value}</div>
                <p style="color: #9ca3af; font-size: 14px; margin: 8px 0 0 0;">{condition}</p>
            </div>
            <a href="https://deepterminal.io/dashboard/stock-analysis?symbol={symbol}" class="button">View {symbol} →</a>
        """
        return self._get_base_template(content, f"Alert: {symbol}")

    async def send_email(
        self,
        to_email: str,
        subject: str,
        html_content: str,
        text_content: Optional[str] = None,
    ) -> bool:
        """
        Send an email.

        Args:
            to_email: Recipient email address
            subject: Email subject
            html_content: HTML body content
            text_content: Plain text fallback (optional)

        Returns:
            True if sent, False if SMTP is not configured

        Raises:
            EmailDeliveryError: the SMTP exchange failed
        """
        if not self.is_configured:
            logger.warning("Email not configured, skipping send")
            return False

        msg = MIMEMultipart("alternative")
        msg["Subject"] = subject
        msg["From"] = f"{self.from_name} <{self.from_email}>"
        msg["To"] = to_email

        if text_content:
            msg.attach(MIMEText(text_content, "plain", "utf-8"))
        msg.attach(MIMEText(html_content, "html", "utf-8"))

        try:
            # smtplib blocks, keep it off the event loop
            await asyncio.to_thread(self._deliver, to_email, msg.as_string())
        except (smtplib.SMTPException, OSError) as e:
            logger.error(f"Failed to send email to {to_email}: {e}")
            raise EmailDeliveryError(str(e)) from e

        logger.info(f"Email sent successfully to {to_email}: {subject}")
        return True

    def _deliver(self, to_email: str, message: str) -> None:
        """Run the SMTP exchange (blocking)."""
        context = ssl.create_default_context()

        if self.use_tls:
            with smtplib.SMTP(self.host, self.port) as server:
                server.starttls(context=context)
                server.login(self.user, self.password)
                server.sendmail(self.from_email, to_email, message)
        else:
            with smtplib.SMTP_SSL(self.host, self.port, context=context) as server:
                server.login(self.user, self.password)
                server.sendmail(self.from_email, to_email, message)


# Singleton instance
email_service = EmailService()
