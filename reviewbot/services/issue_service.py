"""Creates a summary issue from a repository analysis."""

import logging
from typing import Any

from reviewbot.analyzers import Finding, Severity, get_by_severity, get_summary
from reviewbot.errors import GitHubError
from reviewbot.services.analysis_service import AnalysisReport
from reviewbot.services.github_service import GitHubService

logger = logging.getLogger(__name__)


class IssueService:
    """Posts analysis results as a GitHub issue."""

    LABELS = ["code-review", "automated"]

    def __init__(self, github_service: GitHubService):
        self.github_service = github_service

    @staticmethod
    def build_title(findings: list[Finding]) -> str:
        summary = get_summary(findings)
        return (
            f"API Review: {summary['critical']} Critical, "
            f"{summary['warning']} Warnings, {summary['info']} Suggestions"
        )

    def build_body(self, report: AnalysisReport) -> str:
        """Render the issue body as Markdown."""
        findings = report.findings
        critical = get_by_severity(findings, Severity.CRITICAL)
        warnings = get_by_severity(findings, Severity.WARNING)
        info = get_by_severity(findings, Severity.INFO)

        sections = [
            "# API Security & Best Practices Review",
            "",
            "The automated review of this Node.js API found some areas for improvement.",
            "",
            "## Summary",
            "",
            f"- **Critical Issues:** {len(critical)}",
            f"- **Warnings:** {len(warnings)}",
            f"- **Suggestions:** {len(info)}",
            "",
            "---",
            "",
        ]

        if critical:
            sections += [
                "## Critical Issues (Must Fix)",
                "",
                "These are security vulnerabilities that need immediate attention.",
                "",
            ]
            for index, finding in enumerate(critical, 1):
                sections += [f"### {index}. {finding.message}", ""]
                sections.append(f"**Type:** `{finding.type}`")
                sections.append(f"**File:** `{report.relative_path(finding.file)}`")
                if finding.has_line:
                    sections.append(f"**Line:** {finding.line}")
                sections += ["", f"**Issue:** {finding.description}", ""]
                if finding.snippet:
                    sections += ["**Current Code:**", "```javascript", finding.snippet.strip(), "```", ""]
                sections += ["**How to Fix:**", "```javascript", finding.recommendation, "```", "", "---", ""]

        if warnings:
            sections += [
                "## Warnings (Should Fix)",
                "",
                "These are best practice violations that should be addressed.",
                "",
            ]
            for index, finding in enumerate(warnings, 1):
                sections += [f"### {index}. {finding.message}", ""]
                sections.append(f"**Type:** `{finding.type}`")
                if finding.file != report.repo_path:
                    sections.append(f"**File:** `{report.relative_path(finding.file)}`")
                sections += ["", f"**Issue:** {finding.description}", ""]
                sections += ["**Recommendation:**", "```", finding.recommendation, "```", "", "---", ""]

        if info:
            sections += ["## Suggestions (Nice to Have)", ""]
            for index, finding in enumerate(info, 1):
                sections.append(f"{index}. **{finding.message}** - {finding.description}")
            sections += ["", "---", ""]

        sections += [
            "## Next Steps",
            "",
            "1. Fix all critical security issues first",
            "2. Address warnings about code organization",
            "3. Consider implementing suggestions for better maintainability",
            "",
            "---",
            "*This review was generated automatically by api-review-bot.*",
        ]
        return "\n".join(sections)

    async def issue_exists(self, owner: str, repo: str, title: str) -> bool:
        """Check for an open bot issue with the same title.

        A failed lookup counts as "no such issue".
        """
        try:
            issues = await self.github_service.list_issues(
                owner, repo, state="open", creator=self.github_service.username or None
            )
        except GitHubError as e:
            logger.warning(f"Could not check existing issues: {e}")
            return False
        return any(issue.get("title") == title for issue in issues)

    async def create_review_issue(self, owner: str, repo: str, report: AnalysisReport) -> dict[str, Any] | None:
        """Create the review issue unless an identical one is already open.

        Returns:
            Created issue data, or None when skipped
        """
        title = self.build_title(report.findings)
        if await self.issue_exists(owner, repo, title):
            logger.info(f"Issue '{title}' already exists, skipping")
            return None

        body = self.build_body(report)
        try:
            issue = await self.github_service.create_issue(
                owner, repo, title, body, labels=self.LABELS, assignees=[owner]
            )
        except GitHubError as e:
            logger.warning(f"Could not add labels or assignee, creating plain issue: {e}")
            issue = await self.github_service.create_issue(owner, repo, title, body)

        logger.info(f"Issue created: {issue.get('html_url')}")
        return issue
