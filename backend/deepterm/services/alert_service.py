"""Scheduled alert evaluation: price every alerted symbol once, fire what matches."""

import asyncio
import logging
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from deepterm.core.config import settings
from deepterm.schemas.alert_check import AlertCheckResults
from deepterm.services.alert_conditions import (
    check_portfolio_alert_condition,
    check_stock_alert_condition,
    group_alerts_by_symbol,
)
from deepterm.services.alert_store import AlertStore, alert_store
from deepterm.services.notification_service import NotificationService, notification_service
from deepterm.services.price_service import PriceService

logger = logging.getLogger(__name__)

# Redis advisory lock shared by the HTTP endpoint and the Celery task
ALERT_CHECK_LOCK = "check-alerts"


class AlertService:
    """
    One linear pass over all active alerts.

    Stock alerts first, then portfolio alerts. Within each kind the alerts
    are grouped by symbol so the number of quote lookups is the number of
    distinct symbols. Groups are processed one after the other with a short
    fixed pause in between to stay gentle with the quote providers.
    """

    def __init__(
        self,
        price_service: Optional[PriceService] = None,
        store: Optional[AlertStore] = None,
        notifier: Optional[NotificationService] = None,
        symbol_delay: Optional[float] = None,
    ):
        self._price_service = price_service
        self.store = store or alert_store
        self.notifier = notifier or notification_service
        self.symbol_delay = (
            settings.ALERT_SYMBOL_DELAY_SECONDS if symbol_delay is None else symbol_delay
        )

    @property
    def price_service(self) -> PriceService:
        # Created lazily so importing the module does not open an HTTP client
        if self._price_service is None:
            self._price_service = PriceService()
        return self._price_service

    async def check_all_alerts(
        self,
        db: AsyncSession,
        results: Optional[AlertCheckResults] = None,
    ) -> AlertCheckResults:
        """
        Evaluate every active stock and portfolio alert.

        `results` is filled in place, so a caller holding it still sees the
        partial counts when an unexpected error escapes. Price and
        notification failures are recorded in `results.errors` and never
        abort the run.
        """
        if results is None:
            results = AlertCheckResults()

        await self._check_stock_alerts(db, results)
        await self._check_portfolio_alerts(db, results)

        logger.info(
            "Alert check completed",
            extra={
                "stock_checked": results.stock_alerts.checked,
                "stock_triggered": results.stock_alerts.triggered,
                "portfolio_checked": results.portfolio_alerts.checked,
                "portfolio_triggered": results.portfolio_alerts.triggered,
                "errors": len(results.errors),
            },
        )
        return results

    async def _check_stock_alerts(self, db: AsyncSession, results: AlertCheckResults) -> None:
        rows = await self.store.list_active_stock_alerts(db)
        if not rows:
            return

        groups = group_alerts_by_symbol(rows, lambda row: row[0].symbol)
        logger.info(f"Checking {len(rows)} stock alerts across {len(groups)} symbols")

        for index, (symbol, symbol_alerts) in enumerate(groups.items()):
            if index:
                await self._pause()

            current_price = await self.price_service.get_current_price(symbol)
            if current_price is None:
                results.errors.append(f"Failed to fetch price for {symbol}")
                continue

            for alert, user in symbol_alerts:
                results.stock_alerts.checked += 1

                if not check_stock_alert_condition(
                    alert.condition, float(alert.target_price), current_price
                ):
                    continue

                results.stock_alerts.triggered += 1
                logger.info(
                    f"Stock alert {alert.id} triggered: {symbol} at {current_price:.2f}",
                    extra={"alert_id": alert.id, "user_id": user.id},
                )

                await self.store.deactivate_stock_alert(db, alert.id, _utcnow())
                await self.notifier.notify_stock_alert(
                    db, user, alert, symbol, current_price, results
                )

    async def _check_portfolio_alerts(self, db: AsyncSession, results: AlertCheckResults) -> None:
        rows = await self.store.list_active_portfolio_alerts(db)
        if not rows:
            return

        # Only symbol-bound alerts are price driven
        groups = group_alerts_by_symbol(rows, lambda row: row[0].symbol)
        logger.info(f"Checking {len(rows)} portfolio alerts across {len(groups)} symbols")

        for index, (symbol, symbol_alerts) in enumerate(groups.items()):
            if index:
                await self._pause()

            current_price = await self.price_service.get_current_price(symbol)
            if current_price is None:
                results.errors.append(f"Failed to fetch price for portfolio alert symbol {symbol}")
                continue

            for alert, user in symbol_alerts:
                results.portfolio_alerts.checked += 1

                if not check_portfolio_alert_condition(
                    alert.alert_type,
                    alert.condition_value,
                    alert.condition_percent,
                    current_price,
                ):
                    continue

                results.portfolio_alerts.triggered += 1
                logger.info(
                    f"Portfolio alert {alert.id} triggered: {symbol} at {current_price:.2f}",
                    extra={"alert_id": alert.id, "user_id": user.id},
                )

                await self.store.bump_portfolio_alert(
                    db, alert.id, _utcnow(), (alert.trigger_count or 0) + 1
                )
                await self.notifier.notify_portfolio_alert(
                    db, user, alert, symbol, current_price, results
                )

    async def close(self) -> None:
        if self._price_service is not None:
            await self._price_service.close()
            self._price_service = None

    async def _pause(self) -> None:
        if self.symbol_delay > 0:
            await asyncio.sleep(self.symbol_delay)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


# Singleton instance
alert_service = AlertService()
