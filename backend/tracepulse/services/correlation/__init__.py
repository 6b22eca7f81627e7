"""Event models and transaction correlation."""

from tracepulse.services.correlation.models import (
    Event,
    EventLevel,
    EventMetadata,
    EventPriority,
)
from tracepulse.services.correlation.correlator import (
    UNCORRELATED_KEY,
    EventCorrelator,
    correlation_key,
    is_critical,
)

__all__ = [
    "Event",
    "EventLevel",
    "EventMetadata",
    "EventPriority",
    "UNCORRELATED_KEY",
    "EventCorrelator",
    "correlation_key",
    "is_critical",
]
