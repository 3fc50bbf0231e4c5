"""Analyzer registry."""

from reviewbot.analyzers.base import (
    NOT_APPLICABLE,
    Analyzer,
    Finding,
    Severity,
    aggregate,
    get_by_severity,
    get_summary,
)
from reviewbot.analyzers.security_analyzer import SecurityAnalyzer
from reviewbot.analyzers.structure_analyzer import StructureAnalyzer

__all__ = [
    "NOT_APPLICABLE",
    "Analyzer",
    "Finding",
    "Severity",
    "aggregate",
    "get_by_severity",
    "get_summary",
    "SecurityAnalyzer",
    "StructureAnalyzer",
]
