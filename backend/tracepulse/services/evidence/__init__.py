"""Evidence bundles handed to the hypothesis generator."""

from tracepulse.services.evidence.assembler import (
    NO_CHANGES_MARKER,
    EvidenceAssembler,
    EvidenceBundle,
    RelatedEvent,
)

__all__ = ["NO_CHANGES_MARKER", "EvidenceAssembler", "EvidenceBundle", "RelatedEvent"]
