"""API key authentication for producer-facing routes."""
import structlog
from typing import Optional

from fastapi import Header, HTTPException, Request, status

from tracepulse.config import settings

logger = structlog.get_logger()


def require_api_key(
    request: Request,
    x_api_key: Optional[str] = Header(None, alias="X-API-Key"),
) -> str:
    """Accept the internal or the external API key, reject anything else with 401."""
    client_info = {
        "ip": request.headers.get("X-Forwarded-For", "unknown"),
        "user_agent": request.headers.get("User-Agent", "unknown"),
    }

    if not x_api_key:
        logger.warning("Missing API key", **client_info)
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Missing API key")

    if x_api_key not in (settings.INTERNAL_API_KEY, settings.EXTERNAL_API_KEY):
        logger.warning("Invalid API key", **client_info)
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid API key")

    return x_api_key
