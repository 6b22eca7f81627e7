"""Producer-side client for sending events to TracePulse."""

from tracepulse.emitter.queue import EventQueueClient
from tracepulse.emitter.emitter import EventEmitter, generate_correlation_id

__all__ = ["EventEmitter", "EventQueueClient", "generate_correlation_id"]
