"""Security utilities: scheduler authorization."""

import hmac
from typing import Mapping, Optional

from deepterm.core.config import settings


def _bearer_token(authorization: str) -> Optional[str]:
    if authorization and authorization.startswith("Bearer "):
        return authorization[len("Bearer "):]
    return None


def is_valid_cron_secret(token: str) -> bool:
    """Constant-time comparison against CRON_SECRET. An unset secret matches nothing."""
    if not settings.CRON_SECRET or not token:
        return False
    return hmac.compare_digest(token.encode("utf-8"), settings.CRON_SECRET.encode("utf-8"))


def verify_cron_auth(headers: Mapping[str, str]) -> bool:
    """
    Decide whether a scheduled invocation is trusted.

    Accepted: development mode, the platform scheduler header set to "1",
    or a bearer token equal to CRON_SECRET.
    """
    if settings.is_development:
        return True

    if headers.get(settings.CRON_SCHEDULER_HEADER) == "1":
        return True

    token = _bearer_token(headers.get("authorization", ""))
    if token is not None:
        return is_valid_cron_secret(token)

    return False
