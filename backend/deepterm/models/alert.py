"""Stock and portfolio alert models."""

import enum
import uuid

from sqlalchemy import Boolean, Column, DateTime, Enum, ForeignKey, Integer, Numeric, String, Text
from sqlalchemy.sql import func

from deepterm.models import Base


class AlertCondition(str, enum.Enum):
    ABOVE = "above"
    BELOW = "below"
    CROSSES_ABOVE = "crosses_above"
    CROSSES_BELOW = "crosses_below"


class PortfolioAlertType(str, enum.Enum):
    PRICE_ABOVE = "price_above"
    PRICE_BELOW = "price_below"
    PERCENT_CHANGE = "percent_change"
    PORTFOLIO_VALUE = "portfolio_value"
    DAILY_GAIN_LOSS = "daily_gain_loss"
    NEWS = "news"


def _enum_values(enum_cls):
    # Store the lowercase wire values, not member names
    return [member.value for member in enum_cls]


class StockAlert(Base):
    """One-shot price threshold on a single ticker, deactivated once triggered."""

    __tablename__ = "stock_alerts"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    symbol = Column(String(10), nullable=False, index=True)
    condition = Column(Enum(AlertCondition, values_callable=_enum_values), nullable=False)
    target_price = Column(Numeric(precision=15, scale=2), nullable=False)
    is_active = Column(Boolean, default=True, nullable=False, index=True)
    triggered_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)


class PortfolioAlert(Base):
    """Recurring watch condition; stays active and counts its triggers."""

    __tablename__ = "portfolio_alerts"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    portfolio_id = Column(String(36), nullable=True, index=True)
    holding_id = Column(String(36), nullable=True)
    symbol = Column(String(10), nullable=True, index=True)
    alert_type = Column(Enum(PortfolioAlertType, values_callable=_enum_values), nullable=False)
    condition_value = Column(Numeric(precision=15, scale=2), nullable=True)
    condition_percent = Column(Numeric(precision=8, scale=4), nullable=True)
    message = Column(Text, nullable=True)
    is_active = Column(Boolean, default=True, nullable=False, index=True)
    is_email_enabled = Column(Boolean, default=True, nullable=False)
    is_push_enabled = Column(Boolean, default=True, nullable=False)
    last_triggered_at = Column(DateTime(timezone=True), nullable=True)
    trigger_count = Column(Integer, default=0, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)
