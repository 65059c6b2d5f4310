"""Alert check run schemas."""

from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


class AlertCategoryStats(BaseModel):
    """Counters for one alert category within a run."""

    model_config = ConfigDict(populate_by_name=True)

    checked: int = 0
    triggered: int = 0
    emails_sent: int = Field(0, alias="emailsSent")


class AlertCheckResults(BaseModel):
    """Accumulator for one alert check run, built fresh per invocation."""

    model_config = ConfigDict(populate_by_name=True)

    stock_alerts: AlertCategoryStats = Field(default_factory=AlertCategoryStats, alias="stockAlerts")
    portfolio_alerts: AlertCategoryStats = Field(
        default_factory=AlertCategoryStats, alias="portfolioAlerts"
    )
    errors: List[str] = Field(default_factory=list)

    def to_dict(self) -> dict:
        """Wire shape: camelCase keys."""
        return self.model_dump(by_alias=True)


class CheckAlertsResponse(BaseModel):
    """Successful (or skipped) run. Dump with exclude_none."""

    success: bool = True
    results: dict
    duration: int
    skipped: Optional[bool] = None
    reason: Optional[str] = None


class CheckAlertsErrorResponse(BaseModel):
    """Run aborted by an unexpected error; carries the partial results."""

    error: str
    details: str
    results: dict
    duration: int
