"""Trigger conditions for stock and portfolio alerts.

Everything in this module is pure: no I/O, no clock, no database. The alert
job feeds it the stored alert fields and the price fetched for the run.
"""

from collections import OrderedDict
from decimal import Decimal
from typing import Callable, Dict, Iterable, List, Optional, TypeVar, Union

from deepterm.models.alert import AlertCondition, PortfolioAlertType

T = TypeVar("T")

Number = Union[int, float, Decimal, str]


def _to_float(value: Optional[Number]) -> Optional[float]:
    """Convert a stored decimal/string value; None stays None."""
    if value is None:
        return None
    return float(value)


def check_stock_alert_condition(
    condition: str,
    target_price: float,
    current_price: float,
    previous_price: Optional[float] = None,
) -> bool:
    """Check whether a stock alert fires at `current_price`.

    `above` and `below` are both inclusive, so a price exactly at the target
    fires either one. Crossing conditions need a previous observation and
    never fire without it.
    """
    target = float(target_price)
    current = float(current_price)

    if condition == AlertCondition.ABOVE:
        return current >= target
    if condition == AlertCondition.BELOW:
        return current <= target
    if condition == AlertCondition.CROSSES_ABOVE:
        return previous_price is not None and previous_price < target and current >= target
    if condition == AlertCondition.CROSSES_BELOW:
        return previous_price is not None and previous_price > target and current <= target
    return False


def check_portfolio_alert_condition(
    alert_type: str,
    condition_value: Optional[Number],
    condition_percent: Optional[Number],
    current_price: float,
) -> bool:
    """Check whether a portfolio alert fires at `current_price`.

    `percent_change` fires whenever a percent is configured: no baseline
    price is stored to compute an actual change against. Portfolio value,
    daily gain/loss and news alerts are not price driven and never fire here.
    """
    value = _to_float(condition_value)
    current = float(current_price)

    if alert_type == PortfolioAlertType.PRICE_ABOVE:
        return value is not None and current >= value
    if alert_type == PortfolioAlertType.PRICE_BELOW:
        return value is not None and current <= value
    if alert_type == PortfolioAlertType.PERCENT_CHANGE:
        return condition_percent is not None
    return False


def format_stock_condition(condition: str, target_price: float) -> str:
    target = float(target_price)
    if condition == AlertCondition.ABOVE:
        return f"Price reached above ${target:.2f}"
    if condition == AlertCondition.BELOW:
        return f"Price dropped below ${target:.2f}"
    if condition == AlertCondition.CROSSES_ABOVE:
        return f"Price crossed above ${target:.2f}"
    if condition == AlertCondition.CROSSES_BELOW:
        return f"Price crossed below ${target:.2f}"
    return f"Target: ${target:.2f}"


def format_portfolio_condition(
    alert_type: str,
    condition_value: Optional[Number],
    condition_percent: Optional[Number],
) -> str:
    value = _to_float(condition_value) or 0.0

    if alert_type == PortfolioAlertType.PRICE_ABOVE:
        return f"Price reached above ${value:.2f}"
    if alert_type == PortfolioAlertType.PRICE_BELOW:
        return f"Price dropped below ${value:.2f}"
    if alert_type == PortfolioAlertType.PERCENT_CHANGE:
        percent = _to_float(condition_percent)
        return f"Percent change alert: {percent:g}%" if percent is not None else "Percent change alert"
    if alert_type == PortfolioAlertType.PORTFOLIO_VALUE:
        return "Portfolio value alert"
    if alert_type == PortfolioAlertType.DAILY_GAIN_LOSS:
        return "Daily gain/loss alert"
    if alert_type == PortfolioAlertType.NEWS:
        return "News alert"
    return "Portfolio alert triggered"


def group_alerts_by_symbol(
    rows: Iterable[T],
    symbol_of: Callable[[T], Optional[str]],
) -> Dict[str, List[T]]:
    """Group rows by ticker so each symbol is priced once.

    Symbols keep their first-seen order and rows keep their order inside a
    group. Rows without a symbol are left out.
    """
    groups: Dict[str, List[T]] = OrderedDict()
    for row in rows:
        symbol = symbol_of(row)
        if not symbol:
            continue
        groups.setdefault(symbol, []).append(row)
    return groups
