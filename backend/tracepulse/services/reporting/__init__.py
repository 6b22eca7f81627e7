"""Report ranking and summarization."""

from tracepulse.services.reporting.report_builder import ReportBuilder

__all__ = ["ReportBuilder"]
