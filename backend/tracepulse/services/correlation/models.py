"""Event models shared by the webhook, the correlator and the emitter."""
import enum
from typing import Any, Dict, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator


class EventLevel(str, enum.Enum):
    """Severity level of an event."""
    DEBUG = "debug"
    INFO = "info"
    WARN = "warn"
    ERROR = "error"
    CRITICAL = "critical"


class EventPriority(str, enum.Enum):
    """Producer-assigned priority of an event."""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class EventMetadata(BaseModel):
    """Optional identifiers attached to an event. Unknown keys are kept."""
    model_config = ConfigDict(
        populate_by_name=True, extra="allow", frozen=True, coerce_numbers_to_str=True
    )

    error_code: Optional[str] = Field(default=None, alias="errorCode")
    user_id: Optional[str] = Field(default=None, alias="userId")
    session_id: Optional[str] = Field(default=None, alias="sessionId")
    device_id: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("deviceId", "edgeDevice", "device_id"),
        serialization_alias="deviceId",
    )


class Event(BaseModel):
    """
    One tagged occurrence reported by an application.

    Field names follow the webhook's camelCase wire format through aliases;
    Python code uses the snake_case attributes. Events are immutable.
    """
    model_config = ConfigDict(populate_by_name=True, frozen=True)

    event_type: str = Field(alias="eventType", min_length=1)
    correlation_id: Optional[str] = Field(default=None, alias="correlationId")
    service: Optional[str] = None
    level: EventLevel = EventLevel.INFO
    priority: Optional[EventPriority] = None
    timestamp: Optional[str] = None
    details: Dict[str, Any] = Field(default_factory=dict)
    metadata: Optional[EventMetadata] = None

    @field_validator("level", mode="before")
    @classmethod
    def _null_level_is_info(cls, v: Any) -> Any:
        return EventLevel.INFO if v is None else v

    @property
    def error_code(self) -> Optional[str]:
        return self.metadata.error_code if self.metadata else None

    def to_wire(self) -> Dict[str, Any]:
        """Serialize to the webhook's camelCase JSON form."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)
