"""Buffered delivery of events to the TracePulse webhook."""
import threading
import structlog
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

import httpx

from tracepulse.config import settings

logger = structlog.get_logger()

DEFAULT_BATCH_SIZE = 10
DEFAULT_FLUSH_INTERVAL_SECONDS = 5.0
DEFAULT_MAX_QUEUE_SIZE = 1000


class EventQueueClient:
    """
    Buffers wire-form events and posts them to the webhook in batches.

    A batch is sent when `batch_size` events are buffered and on every
    `flush_interval` tick of a background thread. A batch that cannot be
    delivered goes back to the front of the buffer. The buffer holds at
    most `max_queue_size` events; the oldest are dropped beyond that.
    """

    def __init__(
        self,
        endpoint: Optional[str] = None,
        api_key: Optional[str] = None,
        service: Optional[str] = None,
        environment: Optional[str] = None,
        batch_size: int = DEFAULT_BATCH_SIZE,
        flush_interval: float = DEFAULT_FLUSH_INTERVAL_SECONDS,
        max_queue_size: int = DEFAULT_MAX_QUEUE_SIZE,
        enabled: bool = True,
        timeout_seconds: float = 10.0,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        self.endpoint = endpoint or settings.TRACEPULSE_ENDPOINT
        self.api_key = api_key or settings.TRACEPULSE_API_KEY
        self.service = service or settings.SERVICE_NAME
        self.environment = environment or settings.ENVIRONMENT
        self.batch_size = max(1, batch_size)
        self.flush_interval = flush_interval
        self.max_queue_size = max(1, max_queue_size)
        self.enabled = enabled

        self._queue: List[Dict[str, Any]] = []
        self._lock = threading.Lock()
        self._send_lock = threading.Lock()
        self._stop = threading.Event()
        self._client = httpx.Client(timeout=timeout_seconds, transport=transport)
        self._timer: Optional[threading.Thread] = None

        if self.enabled and self.flush_interval > 0:
            self._timer = threading.Thread(
                target=self._flush_periodically,
                name="event-queue-flush",
                daemon=True,
            )
            self._timer.start()

    def __len__(self) -> int:
        with self._lock:
            return len(self._queue)

    def send(self, event: Dict[str, Any]) -> None:
        """Buffer one event, filling in service and timestamp when absent."""
        if not self.enabled:
            return

        enriched = {
            **event,
            "service": event.get("service") or self.service,
            "timestamp": event.get("timestamp") or datetime.now(timezone.utc).isoformat(),
        }
        with self._lock:
            self._queue.append(enriched)
            self._trim()
            full = len(self._queue) >= self.batch_size

        if full:
            self.flush()

    def flush(self) -> bool:
        """
        Post everything buffered as one batch.

        Returns:
            True if the buffer was empty or the batch was accepted
        """
        with self._send_lock:
            with self._lock:
                if not self._queue:
                    return True
                batch = self._queue
                self._queue = []

            try:
                response = self._client.post(
                    self.endpoint,
                    json={"events": batch, "environment": self.environment},
                    headers={"X-API-Key": self.api_key},
                )
                response.raise_for_status()
            except httpx.HTTPError as e:
                logger.error("Failed to send events", event_count=len(batch), error=str(e))
                with self._lock:
                    self._queue = batch + self._queue
                    self._trim()
                return False

        logger.debug("Events sent", event_count=len(batch))
        return True

    def close(self) -> None:
        """Stop the flush thread, send what is buffered and release the HTTP client."""
        self._stop.set()
        if self._timer is not None:
            self._timer.join(timeout=self.flush_interval)
        self.flush()
        self._client.close()

    def _trim(self) -> None:
        overflow = len(self._queue) - self.max_queue_size
        if overflow > 0:
            del self._queue[:overflow]
            logger.warning("Event queue full, dropped oldest events", dropped=overflow)

    def _flush_periodically(self) -> None:
        while not self._stop.wait(self.flush_interval):
            if len(self):
                self.flush()
