"""Persistence for stock and portfolio alerts."""

import logging
from datetime import datetime
from decimal import Decimal, InvalidOperation
from typing import List, Optional, Tuple

from sqlalchemy import delete, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from deepterm.core.exceptions import AlertValidationError
from deepterm.models.alert import AlertCondition, PortfolioAlert, PortfolioAlertType, StockAlert
from deepterm.models.user import User

logger = logging.getLogger(__name__)

MAX_ACTIVE_STOCK_ALERTS = 20

# Portfolio alert types and the condition field each one requires
_VALUE_REQUIRED = {
    PortfolioAlertType.PRICE_ABOVE,
    PortfolioAlertType.PRICE_BELOW,
    PortfolioAlertType.PORTFOLIO_VALUE,
}
_PERCENT_REQUIRED = {
    PortfolioAlertType.PERCENT_CHANGE,
    PortfolioAlertType.DAILY_GAIN_LOSS,
}


def _parse_decimal(value, field: str) -> Decimal:
    try:
        parsed = Decimal(str(value))
    except (InvalidOperation, ValueError):
        raise AlertValidationError(f"Valid {field} is required")
    if not parsed.is_finite():
        raise AlertValidationError(f"Valid {field} is required")
    return parsed


class AlertStore:
    """Queries and single-row updates used by the alert job."""

    async def list_active_stock_alerts(
        self,
        db: AsyncSession,
    ) -> List[Tuple[StockAlert, User]]:
        """Active stock alerts joined with their owner, oldest first."""
        result = await db.execute(
            select(StockAlert, User)
            .join(User, StockAlert.user_id == User.id)
            .where(StockAlert.is_active == True)  # noqa: E712
            .order_by(StockAlert.created_at)
        )
        return [(alert, user) for alert, user in result.all()]

    async def list_active_portfolio_alerts(
        self,
        db: AsyncSession,
    ) -> List[Tuple[PortfolioAlert, User]]:
        """Active portfolio alerts joined with their owner, oldest first."""
        result = await db.execute(
            select(PortfolioAlert, User)
            .join(User, PortfolioAlert.user_id == User.id)
            .where(PortfolioAlert.is_active == True)  # noqa: E712
            .order_by(PortfolioAlert.created_at)
        )
        return [(alert, user) for alert, user in result.all()]

    async def deactivate_stock_alert(
        self,
        db: AsyncSession,
        alert_id: str,
        triggered_at: datetime,
    ) -> None:
        """Mark a stock alert as triggered. It is never listed again."""
        await db.execute(
            update(StockAlert)
            .where(StockAlert.id == alert_id)
            .values(is_active=False, triggered_at=triggered_at, updated_at=triggered_at)
        )
        await db.commit()

    async def bump_portfolio_alert(
        self,
        db: AsyncSession,
        alert_id: str,
        last_triggered_at: datetime,
        trigger_count: int,
    ) -> None:
        """Record a portfolio alert trigger, keeping it active."""
        await db.execute(
            update(PortfolioAlert)
            .where(PortfolioAlert.id == alert_id)
            .values(
                last_triggered_at=last_triggered_at,
                trigger_count=trigger_count,
                updated_at=last_triggered_at,
            )
        )
        await db.commit()

    async def create_stock_alert(
        self,
        db: AsyncSession,
        user_id: str,
        symbol: str,
        condition: str,
        target_price,
    ) -> StockAlert:
        """Create a stock alert after validating it and the per-user limit."""
        if not symbol or not isinstance(symbol, str):
            raise AlertValidationError("Symbol is required")

        try:
            condition = AlertCondition(condition)
        except ValueError:
            allowed = ", ".join(c.value for c in AlertCondition)
            raise AlertValidationError(f"Valid condition is required ({allowed})")

        target = _parse_decimal(target_price, "target price")
        if target <= 0:
            raise AlertValidationError("Valid target price is required")

        result = await db.execute(
            select(func.count(StockAlert.id)).where(
                StockAlert.user_id == user_id,
                StockAlert.is_active == True,  # noqa: E712
            )
        )
        if (result.scalar() or 0) >= MAX_ACTIVE_STOCK_ALERTS:
            raise AlertValidationError(
                f"Maximum {MAX_ACTIVE_STOCK_ALERTS} active alerts allowed. "
                "Please delete some alerts first."
            )

        alert = StockAlert(
            user_id=user_id,
            symbol=symbol.strip().upper(),
            condition=condition,
            target_price=target,
            is_active=True,
        )
        db.add(alert)
        await db.commit()
        await db.refresh(alert)

        logger.info(f"Created stock alert {alert.id} for {alert.symbol} ({condition.value} {target})")
        return alert

    async def create_portfolio_alert(
        self,
        db: AsyncSession,
        user_id: str,
        portfolio_id: Optional[str],
        alert_type: str,
        symbol: Optional[str] = None,
        condition_value=None,
        condition_percent=None,
        message: Optional[str] = None,
        holding_id: Optional[str] = None,
        is_email_enabled: bool = True,
        is_push_enabled: bool = True,
    ) -> PortfolioAlert:
        """Create a portfolio alert; each alert type needs its condition field."""
        try:
            alert_type = PortfolioAlertType(alert_type)
        except ValueError:
            raise AlertValidationError("Alert type is required")

        if alert_type in _VALUE_REQUIRED and condition_value is None:
            raise AlertValidationError("Condition value is required for this alert type")
        if alert_type in _PERCENT_REQUIRED and condition_percent is None:
            raise AlertValidationError("Condition percent is required for this alert type")

        alert = PortfolioAlert(
            user_id=user_id,
            portfolio_id=portfolio_id,
            holding_id=holding_id,
            symbol=symbol.strip().upper() if symbol else None,
            alert_type=alert_type,
            condition_value=(
                _parse_decimal(condition_value, "condition value")
                if condition_value is not None else None
            ),
            condition_percent=(
                _parse_decimal(condition_percent, "condition percent")
                if condition_percent is not None else None
            ),
            message=message,
            is_active=True,
            is_email_enabled=is_email_enabled,
            is_push_enabled=is_push_enabled,
            trigger_count=0,
        )
        db.add(alert)
        await db.commit()
        await db.refresh(alert)
        return alert

    async def delete_stock_alert(
        self,
        db: AsyncSession,
        user_id: str,
        alert_id: str,
    ) -> bool:
        """Delete a user's stock alert. Returns False if it does not exist."""
        result = await db.execute(
            delete(StockAlert).where(
                StockAlert.id == alert_id,
                StockAlert.user_id == user_id,
            )
        )
        await db.commit()
        return result.rowcount > 0


# Singleton instance
alert_store = AlertStore()
