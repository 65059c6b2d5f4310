"""Cron router: endpoints invoked by schedulers, not by users."""

from fastapi import APIRouter

from deepterm.api.cron.endpoints import alerts

cron_router = APIRouter()

cron_router.include_router(alerts.router, tags=["Cron"])
