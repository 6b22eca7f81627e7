"""HTTP API."""

from tracepulse.api.routes import router

__all__ = ["router"]
