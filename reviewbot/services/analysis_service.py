"""Runs both analyzers over a cloned repository."""

import logging
import os
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from typing import AsyncIterator

from reviewbot.analyzers import (
    Finding,
    SecurityAnalyzer,
    Severity,
    StructureAnalyzer,
    aggregate,
    get_by_severity,
    get_summary,
)
from reviewbot.services.clone_service import CloneService

logger = logging.getLogger(__name__)


@dataclass
class AnalysisReport:
    """Result of one analysis run."""

    repo_path: str
    source_files: list[str]
    security_findings: list[Finding] = field(default_factory=list)
    structure_findings: list[Finding] = field(default_factory=list)

    @property
    def findings(self) -> list[Finding]:
        return aggregate(self.security_findings, self.structure_findings)

    @property
    def summary(self) -> dict[str, int]:
        return get_summary(self.findings)

    @property
    def critical(self) -> list[Finding]:
        return get_by_severity(self.findings, Severity.CRITICAL)

    def relative_path(self, path: str) -> str:
        """Path of a finding's file relative to the repository root, with `/` separators."""
        rel = os.path.relpath(path, self.repo_path)
        if rel == ".":
            return "."
        return rel.replace(os.sep, "/")


class AnalysisService:
    """Orchestrates source listing and the two analyzers."""

    def __init__(self, clone_service: CloneService | None = None):
        self.clone_service = clone_service or CloneService()
        self.security_analyzer = SecurityAnalyzer()
        self.structure_analyzer = StructureAnalyzer()

    @asynccontextmanager
    async def cloned(self, repo_url: str) -> AsyncIterator[str]:
        """Clone a repository for the duration of the block, then remove it."""
        repo_path = await self.clone_service.clone_repo(repo_url)
        try:
            yield repo_path
        finally:
            self.clone_service.cleanup(repo_path)

    def run(self, repo_path: str, security_only: bool = False) -> AnalysisReport:
        """Analyze a local repository tree.

        Args:
            repo_path: Root of the cloned repository
            security_only: Skip the structure analyzer

        Returns:
            AnalysisReport with both analyzers' findings
        """
        source_files = self.clone_service.list_source_files(repo_path)
        report = AnalysisReport(repo_path=repo_path, source_files=source_files)
        report.security_findings = self.security_analyzer.analyze(source_files)
        if not security_only:
            report.structure_findings = self.structure_analyzer.analyze(repo_path, source_files)

        summary = report.summary
        logger.info(
            f"Analyzed {len(source_files)} file(s): {summary['critical']} critical, "
            f"{summary['warning']} warnings, {summary['info']} info"
        )
        return report
