"""Tests for alert trigger conditions and grouping."""

from decimal import Decimal

import pytest

from deepterm.models.alert import AlertCondition, PortfolioAlertType
from deepterm.services.alert_conditions import (
    check_portfolio_alert_condition,
    check_stock_alert_condition,
    format_portfolio_condition,
    format_stock_condition,
    group_alerts_by_symbol,
)


class TestStockAlertCondition:
    @pytest.mark.parametrize(
        "condition,target,price,expected",
        [
            ("above", 150.0, 152.30, True),
            ("above", 150.0, 150.0, True),
            ("above", 150.0, 149.99, False),
            ("below", 100.0, 95.0, True),
            ("below", 100.0, 100.0, True),
            ("below", 100.0, 100.01, False),
        ],
    )
    def test_threshold_conditions(self, condition, target, price, expected):
        assert check_stock_alert_condition(condition, target, price) is expected

    def test_enum_members_are_accepted(self):
        assert check_stock_alert_condition(AlertCondition.ABOVE, 10, 11) is True
        assert check_stock_alert_condition(AlertCondition.BELOW, 10, 11) is False

    def test_equal_price_fires_both_directions(self):
        assert check_stock_alert_condition("above", 42.0, 42.0)
        assert check_stock_alert_condition("below", 42.0, 42.0)

    @pytest.mark.parametrize("condition", ["crosses_above", "crosses_below"])
    @pytest.mark.parametrize("price", [0.01, 199.99, 200.0, 350.0])
    def test_crossing_without_previous_never_fires(self, condition, price):
        assert check_stock_alert_condition(condition, 200.0, price) is False

    def test_crosses_above_with_previous(self):
        assert check_stock_alert_condition("crosses_above", 200.0, 201.0, previous_price=199.0)
        assert not check_stock_alert_condition("crosses_above", 200.0, 201.0, previous_price=200.5)

    def test_crosses_below_with_previous(self):
        assert check_stock_alert_condition("crosses_below", 200.0, 199.0, previous_price=201.0)
        assert not check_stock_alert_condition("crosses_below", 200.0, 199.0, previous_price=199.5)

    def test_unknown_condition(self):
        assert check_stock_alert_condition("sideways", 1.0, 1.0) is False


class TestPortfolioAlertCondition:
    def test_price_below(self):
        """price_below 50 at 45 fires."""
        assert check_portfolio_alert_condition("price_below", Decimal("50.00"), None, 45.0)

    def test_price_above(self):
        assert check_portfolio_alert_condition("price_above", Decimal("50.00"), None, 50.0)
        assert not check_portfolio_alert_condition("price_above", Decimal("50.00"), None, 49.0)

    def test_missing_value_never_fires(self):
        assert not check_portfolio_alert_condition("price_above", None, None, 1_000_000.0)
        assert not check_portfolio_alert_condition("price_below", None, None, 0.01)

    def test_zero_value_is_present(self):
        assert check_portfolio_alert_condition("price_below", Decimal("0"), None, 0.0)
        assert check_portfolio_alert_condition("price_above", 0, None, 0.5)

    def test_percent_change_fires_when_configured(self):
        assert check_portfolio_alert_condition("percent_change", None, Decimal("5"), 12.0)
        assert check_portfolio_alert_condition("percent_change", None, Decimal("0"), 12.0)
        assert not check_portfolio_alert_condition("percent_change", None, None, 12.0)

    @pytest.mark.parametrize(
        "alert_type",
        [
            PortfolioAlertType.PORTFOLIO_VALUE,
            PortfolioAlertType.DAILY_GAIN_LOSS,
            PortfolioAlertType.NEWS,
        ],
    )
    def test_non_price_types_never_fire(self, alert_type):
        assert not check_portfolio_alert_condition(alert_type, Decimal("1"), Decimal("1"), 100.0)


class TestFormatting:
    @pytest.mark.parametrize(
        "condition,expected",
        [
            ("above", "Price reached above $150.00"),
            ("below", "Price dropped below $150.00"),
            ("crosses_above", "Price crossed above $150.00"),
            ("crosses_below", "Price crossed below $150.00"),
            ("unknown", "Target: $150.00"),
        ],
    )
    def test_stock_condition_text(self, condition, expected):
        assert format_stock_condition(condition, Decimal("150")) == expected

    @pytest.mark.parametrize(
        "alert_type,value,percent,expected",
        [
            ("price_above", Decimal("50"), None, "Price reached above $50.00"),
            ("price_below", Decimal("49.5"), None, "Price dropped below $49.50"),
            ("percent_change", None, Decimal("5.0000"), "Percent change alert: 5%"),
            ("percent_change", None, Decimal("2.5"), "Percent change alert: 2.5%"),
            ("portfolio_value", Decimal("10000"), None, "Portfolio value alert"),
            ("daily_gain_loss", None, Decimal("3"), "Daily gain/loss alert"),
            ("news", None, None, "News alert"),
            ("other", None, None, "Portfolio alert triggered"),
        ],
    )
    def test_portfolio_condition_text(self, alert_type, value, percent, expected):
        assert format_portfolio_condition(alert_type, value, percent) == expected


class TestGroupAlertsBySymbol:
    def test_groups_keep_first_seen_order(self):
        rows = [("AAPL", 1), ("MSFT", 2), ("AAPL", 3), ("TSLA", 4), ("MSFT", 5)]

        groups = group_alerts_by_symbol(rows, lambda row: row[0])

        assert list(groups) == ["AAPL", "MSFT", "TSLA"]
        assert groups["AAPL"] == [("AAPL", 1), ("AAPL", 3)]
        assert groups["MSFT"] == [("MSFT", 2), ("MSFT", 5)]

    def test_grouping_is_lossless(self):
        rows = [(symbol, i) for i, symbol in enumerate("ABCABCAAB")]

        groups = group_alerts_by_symbol(rows, lambda row: row[0])

        flattened = [row for group in groups.values() for row in group]
        assert sorted(flattened) == sorted(rows)
        assert all(row[0] == symbol for symbol, group in groups.items() for row in group)

    def test_rows_without_symbol_are_skipped(self):
        rows = [(None, 1), ("", 2), ("KO", 3)]

        groups = group_alerts_by_symbol(rows, lambda row: row[0])

        assert groups == {"KO": [("KO", 3)]}

    def test_empty(self):
        assert group_alerts_by_symbol([], lambda row: row) == {}
