"""Pydantic schemas."""

from deepterm.schemas.alert_check import (
    AlertCategoryStats,
    AlertCheckResults,
    CheckAlertsErrorResponse,
    CheckAlertsResponse,
)

__all__ = [
    "AlertCategoryStats",
    "AlertCheckResults",
    "CheckAlertsErrorResponse",
    "CheckAlertsResponse",
]
