"""Fix PR generation: mechanical source edits for critical security findings."""

import logging
import re
import time
from collections import defaultdict
from dataclasses import dataclass
from typing import Any

from reviewbot.analyzers import Finding, Severity, get_by_severity
from reviewbot.services.analysis_service import AnalysisReport
from reviewbot.services.clone_service import CloneService
from reviewbot.services.github_service import GitHubService

logger = logging.getLogger(__name__)

# Initializer must be a lone string literal; object literals are left alone.
SECRET_DECLARATION = re.compile(
    r"^(\s*)(const|let|var)\s+([A-Za-z_$][\w$]*)\s*=\s*(['\"])(?:\\.|(?!\4).)*\4\s*;?\s*$"
)


@dataclass
class CleanupResult:
    deleted: int = 0
    skipped: int = 0


def _indent(line: str) -> str:
    return line[: len(line) - len(line.lstrip())]


def _line_ending(line: str) -> str:
    """Lines are split on \\n only, so CRLF files keep a trailing \\r."""
    return "\r" if line.endswith("\r") else ""


def env_var_name(identifier: str) -> str:
    """apiKey -> API_KEY, stripeSecret2 -> STRIPE_SECRET2."""
    snake = re.sub(r"(?<=[a-z0-9])(?=[A-Z])", "_", identifier.replace("$", ""))
    return snake.upper()


def annotate_unsafe_query(lines: list[str], index: int) -> bool:
    """Insert TODO comments above the query call at lines[index]."""
    if index >= len(lines):
        return False
    line = lines[index]
    indent = _indent(line)
    eol = _line_ending(line)
    if "`" in line and "${" in line:
        hint = f"{indent}// Replace template literal with parameterized query:{eol}"
    else:
        hint = f"{indent}// Change to parameterized query:{eol}"
    lines[index:index] = [
        f"{indent}// TODO: Fix SQL injection vulnerability{eol}",
        hint,
        f'{indent}// db.run("SELECT ... WHERE id = ?", [userId], callback){eol}',
    ]
    return True


def replace_hardcoded_secret(lines: list[str], index: int) -> bool:
    """Comment out a `const name = '...'` secret and read it from the environment."""
    if index >= len(lines):
        return False
    line = lines[index]
    match = SECRET_DECLARATION.match(line)
    if not match:
        return False
    indent, keyword, name = match.group(1, 2, 3)
    eol = _line_ending(line)
    lines[index : index + 1] = [
        f"{indent}// {line.strip()} // SECURITY: Do not hardcode secrets{eol}",
        f"{indent}{keyword} {name} = process.env.{env_var_name(name)} // Fixed: Use environment variable{eol}",
    ]
    return True


FIXERS = {
    "unsafe-dynamic-query": annotate_unsafe_query,
    "exposed-secret": replace_hardcoded_secret,
}


def apply_fixes(findings: list[Finding]) -> list[Finding]:
    """Rewrite the affected files in place.

    Edits are applied bottom-up within each file so earlier line numbers
    stay valid. A line hit by several findings is fixed once.

    Returns:
        The findings that produced an edit
    """
    by_file: dict[str, list[Finding]] = defaultdict(list)
    for finding in findings:
        if finding.type in FIXERS and finding.has_line:
            by_file[finding.file].append(finding)

    fixed: list[Finding] = []
    for path, file_findings in by_file.items():
        with open(path, "r", encoding="utf-8", newline="") as f:
            lines = f.read().split("\n")

        touched_lines = set()
        changed = False
        for finding in sorted(file_findings, key=lambda f: f.line, reverse=True):
            if finding.line in touched_lines:
                continue
            if FIXERS[finding.type](lines, finding.line - 1):
                touched_lines.add(finding.line)
                fixed.append(finding)
                changed = True

        if changed:
            with open(path, "w", encoding="utf-8", newline="") as f:
                f.write("\n".join(lines))
            logger.info(f"Applied fixes to {path}")

    return fixed


class FixService:
    """Creates fix branches and pull requests."""

    def __init__(self, github_service: GitHubService, clone_service: CloneService):
        self.github_service = github_service
        self.clone_service = clone_service

    @property
    def branch_prefix(self) -> str:
        return f"{self.github_service.username}/security-fixes-"

    async def create_fix_pr(self, owner: str, repo: str, report: AnalysisReport) -> dict[str, Any] | None:
        """Fix what can be fixed mechanically and open a PR.

        Returns:
            Created PR data, or None when nothing could be changed
        """
        critical = get_by_severity(report.findings, Severity.CRITICAL)
        if not critical:
            logger.info("No critical issues to fix")
            return None

        branch = f"{self.branch_prefix}{int(time.time() * 1000)}"
        await self.clone_service.create_branch(report.repo_path, branch)

        fixed = apply_fixes(critical)
        if not fixed:
            logger.warning("Could not automatically fix any issue")
            return None

        await self.clone_service.commit_all(report.repo_path, self.build_commit_message(fixed))
        await self.clone_service.push(report.repo_path, branch)

        repo_data = await self.github_service.get_repo(owner, repo)
        pr = await self.github_service.create_pull(
            owner,
            repo,
            title=f"Security Fix: {len(fixed)} Critical Issue(s)",
            head=branch,
            base=repo_data["default_branch"],
            body=self.build_pr_body(report, fixed),
        )
        logger.info(f"PR created: {pr.get('html_url')}")
        return pr

    @staticmethod
    def build_commit_message(fixed: list[Finding]) -> str:
        lines = [f"fix: address {len(fixed)} critical security issue(s)", ""]
        if any(f.type == "unsafe-dynamic-query" for f in fixed):
            lines.append("- Flag SQL queries built from dynamic strings")
        if any(f.type == "exposed-secret" for f in fixed):
            lines.append("- Move hardcoded secrets to environment variables")
        return "\n".join(lines)

    def build_pr_body(self, report: AnalysisReport, fixed: list[Finding]) -> str:
        body = "# Security Fixes\n\n"
        body += "This PR addresses critical security vulnerabilities found in the automated code review.\n\n"
        body += "## Issues Fixed\n\n"
        for index, finding in enumerate(fixed, 1):
            body += f"{index}. **{finding.message}** ({finding.type})\n"
            body += f"   - File: `{report.relative_path(finding.file)}`\n"
            body += f"   - Line: {finding.line}\n"
            body += f"   - {finding.description}\n\n"
        body += "## What Changed\n\n"
        body += "- Added TODO comments above queries built from dynamic strings\n"
        body += "- Replaced hardcoded secrets with environment variables\n\n"
        body += "## Next Steps\n\n"
        body += "1. Review the changes\n"
        body += "2. Update any SQL queries to use parameterized queries\n"
        body += "3. Add the new variables to your `.env` file\n"
        body += "4. Test and merge when ready\n\n"
        body += "---\n*This PR was automatically generated by api-review-bot.*"
        return body

    async def cleanup_bot_branches(self, owner: str, repo: str, include_open: bool = False) -> CleanupResult:
        """Delete branches left behind by previous fix runs.

        Args:
            include_open: Also delete branches whose PR is still open
        """
        result = CleanupResult()
        branches = [
            b["name"] for b in await self.github_service.list_branches(owner, repo)
            if b["name"].startswith(self.branch_prefix)
        ]

        open_heads = set()
        if not include_open and branches:
            open_pulls = await self.github_service.list_pulls(owner, repo, state="open")
            open_heads = {pr["head"]["ref"] for pr in open_pulls}

        for branch in branches:
            if branch in open_heads:
                logger.info(f"Skipping {branch}: pull request still open")
                result.skipped += 1
                continue
            await self.github_service.delete_branch(owner, repo, branch)
            logger.info(f"Deleted branch {branch}")
            result.deleted += 1
        return result
