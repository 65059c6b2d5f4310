"""Notification dispatch for triggered alerts: email and web push."""

import logging
from typing import Any, Dict, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from deepterm.models.alert import PortfolioAlert, StockAlert
from deepterm.models.user import User
from deepterm.schemas.alert_check import AlertCategoryStats, AlertCheckResults
from deepterm.services.alert_conditions import format_portfolio_condition, format_stock_condition
from deepterm.services.email_service import EmailService, email_service
from deepterm.services.push_service import PushService, push_service

logger = logging.getLogger(__name__)


def _enum_value(value) -> str:
    return getattr(value, "value", value)


class NotificationService:
    """
    Sends the notifications for one triggered alert.

    Each channel is attempted independently. A failing channel is logged and
    appended to the run's error list; it never stops the other channel or
    the next alert.
    """

    def __init__(
        self,
        email: Optional[EmailService] = None,
        push: Optional[PushService] = None,
    ):
        self.email = email or email_service
        self.push = push or push_service

    async def notify_stock_alert(
        self,
        db: AsyncSession,
        user: User,
        alert: StockAlert,
        symbol: str,
        current_price: float,
        results: AlertCheckResults,
    ) -> None:
        """Stock alerts email the owner (when an address is known) and always push."""
        condition = _enum_value(alert.condition)
        condition_text = format_stock_condition(condition, float(alert.target_price))

        if user.email:
            await self._send_email(
                user=user,
                alert_type=condition,
                symbol=symbol,
                condition_text=condition_text,
                current_price=current_price,
                subject=f"🔔 Price Alert: {symbol} - {condition_text}",
                stats=results.stock_alerts,
                results=results,
                error_context=f"stock alert {alert.id}",
            )

        await self._send_push(
            db=db,
            user_id=user.id,
            payload={
                "title": f"🔔 {symbol} Alert",
                "body": f"{condition_text} - Current price: ${current_price:.2f}",
                "tag": f"stock-alert-{alert.id}",
                "data": {
                    "type": "stock_alert",
                    "symbol": symbol,
                    "price": current_price,
                    "alertId": alert.id,
                },
            },
            results=results,
            error_context=f"stock alert {alert.id}",
        )

    async def notify_portfolio_alert(
        self,
        db: AsyncSession,
        user: User,
        alert: PortfolioAlert,
        symbol: str,
        current_price: float,
        results: AlertCheckResults,
    ) -> None:
        """Portfolio alerts follow the alert's own email/push toggles."""
        alert_type = _enum_value(alert.alert_type)
        condition_text = format_portfolio_condition(
            alert_type, alert.condition_value, alert.condition_percent
        )

        if user.email and alert.is_email_enabled:
            await self._send_email(
                user=user,
                alert_type=alert_type,
                symbol=symbol,
                condition_text=condition_text,
                current_price=current_price,
                subject=f"📊 Portfolio Alert: {symbol} - {condition_text}",
                stats=results.portfolio_alerts,
                results=results,
                error_context=f"portfolio alert {alert.id}",
            )

        if alert.is_push_enabled:
            await self._send_push(
                db=db,
                user_id=user.id,
                payload={
                    "title": f"📊 {symbol} Portfolio Alert",
                    "body": f"{condition_text} - Current price: ${current_price:.2f}",
                    "tag": f"portfolio-alert-{alert.id}",
                    "data": {
                        "type": "portfolio_alert",
                        "symbol": symbol,
                        "price": current_price,
                        "alertId": alert.id,
                        "portfolioId": alert.portfolio_id,
                    },
                },
                results=results,
                error_context=f"portfolio alert {alert.id}",
            )

    async def _send_email(
        self,
        user: User,
        alert_type: str,
        symbol: str,
        condition_text: str,
        current_price: float,
        subject: str,
        stats: AlertCategoryStats,
        results: AlertCheckResults,
        error_context: str,
    ) -> None:
        try:
            html = self.email.build_alert_email(
                user.display_name,
                alert_type,
                symbol,
                condition_text,
                f"${current_price:.2f}",
            )
            sent = await self.email.send_email(
                to_email=user.email,
                subject=subject,
                html_content=html,
            )
            if sent:
                stats.emails_sent += 1
        except Exception as e:
            logger.error(f"Failed to send email for {error_context}: {e}")
            results.errors.append(f"Failed to send email for {error_context}: {e}")

    async def _send_push(
        self,
        db: AsyncSession,
        user_id: str,
        payload: Dict[str, Any],
        results: AlertCheckResults,
        error_context: str,
    ) -> None:
        try:
            await self.push.send_push_notification(db, user_id, payload)
        except Exception as e:
            logger.error(f"Failed to send push for {error_context}: {e}")
            results.errors.append(f"Failed to send push for {error_context}: {e}")


# Singleton instance
notification_service = NotificationService()
