"""API request/response schemas."""
from datetime import datetime
from typing import List, Optional
from pydantic import BaseModel, Field

from tracepulse.services.correlation import Event


# ============== Webhook Schemas ==============

class WebhookPayload(BaseModel):
    """Batch of events posted by producers."""
    events: List[Event]
    environment: Optional[str] = None


class WebhookAcceptedResponse(BaseModel):
    """Acknowledgement returned once a batch is queued for analysis."""
    status: str = "accepted"
    message: str
    timestamp: datetime = Field(default_factory=datetime.utcnow)


# ============== Health Schemas ==============

class HealthResponse(BaseModel):
    """Health check response."""
    status: str = "ok"
    service: str
    version: str
    timestamp: datetime = Field(default_factory=datetime.utcnow)
