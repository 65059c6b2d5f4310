"""Minimal conftest for unit tests - no database, no network."""

import os

# Set required env vars before any deepterm imports
os.environ.setdefault("APP_ENV", "test")
os.environ.setdefault("CRON_SECRET", "test-cron-secret-0123456789")
os.environ.setdefault("ALERT_SYMBOL_DELAY_SECONDS", "0")
os.environ.setdefault("ALERT_RUN_LOCK_ENABLED", "false")
os.environ.setdefault("POSTGRES_USER", "test")
os.environ.setdefault("POSTGRES_PASSWORD", "test")
