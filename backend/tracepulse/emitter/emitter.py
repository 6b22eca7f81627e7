"""Convenience API for producing TracePulse events."""
import time
import traceback
import uuid
from typing import Any, Dict, Optional, Union

from tracepulse.emitter.queue import EventQueueClient
from tracepulse.services.correlation import Event, EventLevel, EventPriority


def generate_correlation_id() -> str:
    """Millisecond timestamp plus a random suffix."""
    return f"{int(time.time() * 1000)}-{uuid.uuid4().hex[:9]}"


def _describe_error(error: Union[BaseException, str]) -> Union[Dict[str, Any], str]:
    if isinstance(error, BaseException):
        return {
            "message": str(error),
            "name": type(error).__name__,
            "stack": "".join(traceback.format_exception(type(error), error, error.__traceback__)),
        }
    return error


class EventEmitter:
    """
    Level-named helpers over an EventQueueClient.

    Each call builds one event; without an explicit correlation id a fresh
    one is generated, so the event forms its own transaction.
    """

    def __init__(self, client: Optional[EventQueueClient] = None, **client_options):
        self.client = client or EventQueueClient(**client_options)

    def log(
        self,
        event_type: str,
        details: Dict[str, Any],
        correlation_id: Optional[str] = None,
        level: EventLevel = EventLevel.INFO,
        priority: EventPriority = EventPriority.MEDIUM,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> Event:
        event = Event(
            event_type=event_type,
            details=details,
            correlation_id=correlation_id or generate_correlation_id(),
            level=level,
            priority=priority,
            metadata=metadata,
        )
        self.client.send(event.to_wire())
        return event

    def info(self, event_type: str, details: Dict[str, Any], **options) -> Event:
        return self.log(event_type, details, **{**options, "level": EventLevel.INFO})

    def warn(self, event_type: str, details: Dict[str, Any], **options) -> Event:
        return self.log(event_type, details, **{**options, "level": EventLevel.WARN})

    def error(
        self,
        event_type: str,
        error: Union[BaseException, str],
        details: Optional[Dict[str, Any]] = None,
        **options,
    ) -> Event:
        """Log an error event; priority defaults to high."""
        error_details = {**(details or {}), "error": _describe_error(error)}
        options.setdefault("priority", EventPriority.HIGH)
        return self.log(event_type, error_details, **{**options, "level": EventLevel.ERROR})

    def critical(self, event_type: str, details: Dict[str, Any], **options) -> Event:
        """Log a critical event; priority is always high."""
        return self.log(
            event_type,
            details,
            **{**options, "level": EventLevel.CRITICAL, "priority": EventPriority.HIGH},
        )

    def flush(self) -> bool:
        return self.client.flush()

    def close(self) -> None:
        self.client.close()
