"""Pydantic schemas for hypotheses and analysis reports."""
import enum
from datetime import datetime
from typing import List

from pydantic import BaseModel, ConfigDict, Field


# ============== Hypotheses ==============

class EvidenceType(str, enum.Enum):
    """Kind of evidence backing a hypothesis."""
    LOG = "log"
    DIFF = "diff"
    SYSTEM_MAP = "system_map"
    CORRELATION = "correlation"


class EvidenceItem(BaseModel):
    """One piece of evidence supporting a hypothesis."""
    model_config = ConfigDict(frozen=True)

    type: EvidenceType = EvidenceType.LOG
    source: str = "unknown"
    detail: str = ""
    confidence: float = Field(default=50, ge=0, le=100, description="Confidence score 0-100")


class Hypothesis(BaseModel):
    """A root cause hypothesis. Created once, then only ranked."""
    model_config = ConfigDict(frozen=True)

    id: str
    title: str
    description: str = ""
    confidence: float = Field(default=50, ge=0, le=100, description="Confidence score 0-100")
    evidence: List[EvidenceItem] = Field(default_factory=list)
    suggested_actions: List[str] = Field(default_factory=list)
    related_services: List[str] = Field(default_factory=list)


# ============== Reports ==============

class AnalysisReport(BaseModel):
    """Result of analyzing one correlation group."""
    correlation_id: str
    event_type: str
    timestamp: datetime
    hypotheses: List[Hypothesis] = Field(default_factory=list, description="Ranked by confidence")
    affected_services: List[str] = Field(default_factory=list, description="Primary service first")
    summary: str
    used_fallback: bool = Field(default=False, description="Generation degraded to the fallback hypothesis")

    @property
    def top_hypothesis(self):
        return self.hypotheses[0] if self.hypotheses else None
