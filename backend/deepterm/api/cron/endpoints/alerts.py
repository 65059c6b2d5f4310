"""Scheduled alert check endpoint."""

import logging
import time

from fastapi import APIRouter, Depends, Request, status
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from deepterm.core.config import settings
from deepterm.core.database import get_db
from deepterm.core.redis_client import run_lock
from deepterm.core.security import verify_cron_auth
from deepterm.schemas.alert_check import (
    AlertCheckResults,
    CheckAlertsErrorResponse,
    CheckAlertsResponse,
)
from deepterm.services.alert_service import ALERT_CHECK_LOCK, alert_service

logger = logging.getLogger(__name__)

router = APIRouter()


def _elapsed_ms(start: float) -> int:
    return int((time.perf_counter() - start) * 1000)


@router.api_route("/check-alerts", methods=["GET", "POST"])
async def check_alerts(
    request: Request,
    db: AsyncSession = Depends(get_db),
) -> JSONResponse:
    """
    Check all active price alerts and notify owners of the triggered ones.

    Called by the platform scheduler (scheduler header) or an external cron
    service (bearer token). GET and POST behave the same.
    """
    if not verify_cron_auth(request.headers):
        logger.warning(
            "Unauthorized alert check invocation",
            extra={"client_ip": request.client.host if request.client else "unknown"},
        )
        return JSONResponse(
            status_code=status.HTTP_401_UNAUTHORIZED,
            content={"error": "Unauthorized"},
        )

    start = time.perf_counter()
    results = AlertCheckResults()

    async with run_lock(ALERT_CHECK_LOCK, settings.ALERT_RUN_LOCK_TTL) as acquired:
        if not acquired:
            body = CheckAlertsResponse(
                results=results.to_dict(),
                duration=_elapsed_ms(start),
                skipped=True,
                reason="Alert check already running",
            )
            return JSONResponse(content=body.model_dump(exclude_none=True))

        try:
            await alert_service.check_all_alerts(db, results)
        except Exception as e:
            logger.exception(f"Check alerts error: {type(e).__name__}: {e}")
            await db.rollback()
            body = CheckAlertsErrorResponse(
                error="Failed to check alerts",
                details=str(e) or type(e).__name__,
                results=results.to_dict(),
                duration=_elapsed_ms(start),
            )
            return JSONResponse(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                content=body.model_dump(),
            )

    body = CheckAlertsResponse(results=results.to_dict(), duration=_elapsed_ms(start))
    return JSONResponse(content=body.model_dump(exclude_none=True))
