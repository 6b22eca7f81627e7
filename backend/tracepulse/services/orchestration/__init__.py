"""Batch analysis pipeline."""

from tracepulse.services.orchestration.pipeline import EventProcessor, GroupState

__all__ = ["EventProcessor", "GroupState"]
