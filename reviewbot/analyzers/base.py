"""Finding model and helpers shared by the analyzers."""

from dataclasses import asdict, dataclass
from enum import Enum
from typing import Any, Iterable, Optional


class Severity(str, Enum):
    """Finding severity levels."""

    CRITICAL = "critical"
    WARNING = "warning"
    INFO = "info"


# Line value for repo-wide findings that point at no particular line.
NOT_APPLICABLE = None


@dataclass(frozen=True)
class Finding:
    """A single detected issue with its location and fix guidance."""

    type: str
    severity: Severity
    file: str
    line: Optional[int]
    message: str
    description: str
    recommendation: str
    snippet: Optional[str] = None

    def __post_init__(self):
        if not isinstance(self.severity, Severity):
            raise ValueError(f"Invalid severity: {self.severity!r}")
        if self.line is not NOT_APPLICABLE and (
            isinstance(self.line, bool) or not isinstance(self.line, int) or self.line < 1
        ):
            raise ValueError(f"Line must be a positive integer or N/A, got {self.line!r}")

    @property
    def has_line(self) -> bool:
        return self.line is not NOT_APPLICABLE

    @property
    def display_line(self) -> str:
        return str(self.line) if self.has_line else "N/A"

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["severity"] = self.severity.value
        return data


def get_by_severity(findings: Iterable[Finding], severity: Severity) -> list[Finding]:
    """Return the findings of one severity, keeping their order."""
    return [f for f in findings if f.severity == severity]


def get_summary(findings: Iterable[Finding]) -> dict[str, int]:
    """Count findings per severity plus the total."""
    findings = list(findings)
    return {
        "total": len(findings),
        "critical": len(get_by_severity(findings, Severity.CRITICAL)),
        "warning": len(get_by_severity(findings, Severity.WARNING)),
        "info": len(get_by_severity(findings, Severity.INFO)),
    }


def aggregate(
    security_findings: Iterable[Finding],
    structure_findings: Iterable[Finding],
) -> list[Finding]:
    """Merge analyzer outputs: security findings first, no deduplication."""
    return [*security_findings, *structure_findings]


class Analyzer:
    """Base class for analyzers.

    Analyzers keep no state between runs; the summary accessors work on
    the findings returned by ``analyze``.
    """

    name: str = "base"

    def analyze(self, *args, **kwargs) -> list[Finding]:
        raise NotImplementedError

    @staticmethod
    def get_by_severity(findings: Iterable[Finding], severity: Severity) -> list[Finding]:
        return get_by_severity(findings, severity)

    @staticmethod
    def get_summary(findings: Iterable[Finding]) -> dict[str, int]:
        return get_summary(findings)
