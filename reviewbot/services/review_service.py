"""PR review service: analyzes each open pull request and posts a review."""

import logging
import re
from dataclasses import dataclass, field
from typing import Any, AsyncIterator

from reviewbot.analyzers import Finding, Severity, get_by_severity
from reviewbot.errors import GitHubError
from reviewbot.services.analysis_service import AnalysisReport, AnalysisService
from reviewbot.services.github_service import GitHubService

logger = logging.getLogger(__name__)

SEVERITY_LABELS = {
    Severity.CRITICAL: "CRITICAL",
    Severity.WARNING: "WARNING",
    Severity.INFO: "SUGGESTION",
}


@dataclass
class PullReviewResult:
    """Outcome of reviewing one pull request."""

    number: int
    title: str
    author: str
    skipped: bool = False
    summary: dict[str, int] = field(default_factory=dict)
    event: str | None = None
    inline_comments: int = 0
    fallback_comment: bool = False


class ReviewService:
    """Reviews open PRs with both analyzers."""

    def __init__(self, github_service: GitHubService, analysis_service: AnalysisService):
        self.github_service = github_service
        self.analysis_service = analysis_service

    async def get_open_pulls(self, owner: str, repo: str) -> list[dict[str, Any]]:
        """Open PRs, excluding the ones opened by the bot itself."""
        pulls = await self.github_service.list_pulls(owner, repo, state="open")
        return [pr for pr in pulls if pr["user"]["login"] != self.github_service.username]

    async def has_been_reviewed(self, owner: str, repo: str, pr_number: int) -> bool:
        """Whether the bot already reviewed this PR; a failed lookup counts as no."""
        try:
            reviews = await self.github_service.list_pull_reviews(owner, repo, pr_number)
        except GitHubError as e:
            logger.warning(f"Could not check existing reviews for PR #{pr_number}: {e}")
            return False
        return any(
            (review.get("user") or {}).get("login") == self.github_service.username
            for review in reviews
        )

    async def review_open_pulls(
        self, owner: str, repo: str, repo_url: str
    ) -> AsyncIterator[PullReviewResult]:
        """Review every eligible open PR, yielding results as they complete.

        A failure stops the run; PRs reviewed before it keep their reviews.
        """
        for pr in await self.get_open_pulls(owner, repo):
            result = PullReviewResult(
                number=pr["number"],
                title=pr["title"],
                author=pr["user"]["login"],
            )
            if await self.has_been_reviewed(owner, repo, pr["number"]):
                logger.info(f"PR #{pr['number']} already reviewed, skipping")
                result.skipped = True
                yield result
                continue

            yield await self.review_pull(owner, repo, repo_url, pr, result)

    async def review_pull(
        self,
        owner: str,
        repo: str,
        repo_url: str,
        pr: dict[str, Any],
        result: PullReviewResult,
    ) -> PullReviewResult:
        """Analyze a PR's head and post a review when there are findings."""
        pr_number = pr["number"]
        pr_files = await self.github_service.list_pull_files(owner, repo, pr_number)

        async with self.analysis_service.cloned(repo_url) as repo_path:
            await self.analysis_service.clone_service.checkout_pull_request(repo_path, pr_number)
            report = self.analysis_service.run(repo_path)

            result.summary = report.summary
            if report.findings:
                await self.post_review(owner, repo, pr_number, report, pr_files, result)
        return result

    async def post_review(
        self,
        owner: str,
        repo: str,
        pr_number: int,
        report: AnalysisReport,
        pr_files: list[dict[str, Any]],
        result: PullReviewResult,
    ) -> None:
        """Post the review; fall back to a plain comment if the review is rejected."""
        findings = report.findings
        comments = self.map_findings_to_comments(report, pr_files)
        body = self.build_review_body(findings)
        event = "REQUEST_CHANGES" if get_by_severity(findings, Severity.CRITICAL) else "COMMENT"

        try:
            await self.github_service.create_review(
                owner, repo, pr_number, body, event=event, comments=comments or None
            )
            result.event = event
            result.inline_comments = len(comments)
        except GitHubError as e:
            logger.warning(f"Failed to create review for PR #{pr_number}, posting comment instead: {e}")
            await self.github_service.create_issue_comment(owner, repo, pr_number, body)
            result.fallback_comment = True

    def _parse_diff_lines(self, patch: str | None) -> list[int]:
        """Parse diff to get added line numbers."""
        if not patch:
            return []

        lines = []
        current_line = 0

        for line in patch.split("\n"):
            if line.startswith("@@"):
                # Parse @@ -start,count +start,count @@
                match = re.search(r"\+(\d+)", line)
                if match:
                    current_line = int(match.group(1)) - 1
            elif line.startswith("+") and not line.startswith("+++"):
                current_line += 1
                lines.append(current_line)
            elif not line.startswith("-") and not line.startswith("\\"):
                current_line += 1

        return lines

    def map_findings_to_comments(
        self, report: AnalysisReport, pr_files: list[dict[str, Any]]
    ) -> list[dict[str, Any]]:
        """Inline comments for findings on lines this PR adds.

        Findings without a line, in files the PR did not touch, or on lines
        outside the diff are left to the review body.
        """
        added_lines = {
            f["filename"]: set(self._parse_diff_lines(f.get("patch")))
            for f in pr_files
        }

        comments = []
        for finding in report.findings:
            if not finding.has_line:
                continue
            path = report.relative_path(finding.file)
            if finding.line not in added_lines.get(path, ()):
                continue
            comments.append(
                {
                    "path": path,
                    "line": finding.line,
                    "side": "RIGHT",
                    "body": self.format_inline_comment(finding),
                }
            )
        return comments

    def format_inline_comment(self, finding: Finding) -> str:
        comment = f"**{SEVERITY_LABELS[finding.severity]}: {finding.message}**\n\n{finding.description}\n\n"
        if finding.recommendation:
            comment += f"**How to fix:**\n```javascript\n{finding.recommendation}\n```"
        return comment

    def build_review_body(self, findings: list[Finding]) -> str:
        """Overall review comment grouped by severity."""
        critical = get_by_severity(findings, Severity.CRITICAL)
        warnings = get_by_severity(findings, Severity.WARNING)
        info_count = len(findings) - len(critical) - len(warnings)

        parts = ["# Code Review\n\n"]

        if critical:
            parts.append(f"## Critical Issues Found: {len(critical)}\n\n")
            parts.append(
                "Some **security vulnerabilities** need to be fixed before this can be merged.\n\n"
            )
            for index, finding in enumerate(critical, 1):
                parts.append(f"{index}. **{finding.message}** (Line {finding.display_line})\n")
            parts.append("\n**Action Required:** Please address all critical issues and push new commits.\n\n")

        if warnings:
            parts.append(f"## Warnings: {len(warnings)}\n\n")
            parts.append("Some best practices violations were found. These should be addressed:\n\n")
            for index, finding in enumerate(warnings, 1):
                parts.append(f"{index}. {finding.message}\n")
            parts.append("\n")

        if not critical and not warnings:
            parts.append("## Looks Good!\n\n")
            parts.append("No security issues or critical problems found. ")
            if info_count:
                parts.append(f"There are {info_count} optional suggestions for improvement.")
            else:
                parts.append("Great work!")

        parts.append("\n---\n*Automated review by api-review-bot*")
        return "".join(parts)
