"""API routes for event ingestion."""
import json
import structlog

from fastapi import APIRouter, Depends, Request, status
from fastapi.responses import JSONResponse
from pydantic import ValidationError

from tracepulse.api.auth import require_api_key
from tracepulse.api.schemas import HealthResponse, WebhookAcceptedResponse, WebhookPayload
from tracepulse.config import settings
from tracepulse.workers.tasks import process_events

logger = structlog.get_logger()

router = APIRouter()

webhook_router = APIRouter(prefix="/webhook", dependencies=[Depends(require_api_key)])


# ============== Health ==============

@router.get("/health", response_model=HealthResponse, tags=["Health"])
async def health_check():
    """Health check endpoint."""
    return HealthResponse(service=settings.APP_NAME.lower(), version=settings.APP_VERSION)


# ============== Webhook ==============

@webhook_router.post("/event", response_model=WebhookAcceptedResponse, tags=["Webhook"])
async def receive_events(request: Request):
    """
    Accept a batch of events and queue it for correlation analysis.

    The body is validated here rather than by FastAPI so that an invalid
    payload answers 400 with the validation details.
    """
    try:
        body = await request.json()
    except ValueError as e:
        logger.warning("Webhook body is not JSON", error=str(e))
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={"error": "Invalid payload", "details": [{"msg": "Body must be valid JSON"}]},
        )

    try:
        payload = WebhookPayload.model_validate(body)
    except ValidationError as e:
        details = json.loads(e.json(include_url=False))
        logger.warning("Webhook payload invalid", errors=details)
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={"error": "Invalid payload", "details": details},
        )

    logger.info(
        "Webhook received",
        event_count=len(payload.events),
        environment=payload.environment,
        event_types=[e.event_type for e in payload.events],
    )

    try:
        process_events.delay([e.to_wire() for e in payload.events], payload.environment)
    except Exception as e:
        logger.error("Failed to queue events", event_count=len(payload.events), error=str(e))
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"error": "Internal server error"},
        )

    return WebhookAcceptedResponse(message=f"Processing {len(payload.events)} events")


@webhook_router.get("/event", tags=["Webhook"])
async def event_method_not_allowed():
    """Events are only accepted via POST."""
    return JSONResponse(
        status_code=status.HTTP_405_METHOD_NOT_ALLOWED,
        content={"error": "Method not allowed", "message": "Use POST to send events"},
    )


router.include_router(webhook_router)
