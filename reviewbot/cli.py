"""api-review-bot CLI - command registration and command implementations."""

import asyncio
import json
import logging
from functools import wraps
from typing import Any, Callable

import click

from reviewbot import __version__
from reviewbot.config import get_settings
from reviewbot.console import (
    console,
    display_findings,
    display_summary,
    print_error,
    print_success,
    print_warning,
)
from reviewbot.logging_config import configure_logging
from reviewbot.services.analysis_service import AnalysisService
from reviewbot.services.clone_service import CloneService
from reviewbot.services.fix_service import FixService
from reviewbot.services.github_service import GitHubService
from reviewbot.services.issue_service import IssueService
from reviewbot.services.review_service import ReviewService

logger = logging.getLogger(__name__)


def handle_errors(func: Callable[..., Any]) -> Callable[..., Any]:
    """Print any failure as a short message and exit with status 1."""

    @wraps(func)
    def wrapper(*args: Any, **kwargs: Any) -> Any:
        try:
            return func(*args, **kwargs)
        except (click.ClickException, click.exceptions.Exit, click.Abort):
            raise
        except Exception as e:
            logger.debug("Command failed", exc_info=True)
            print_error(str(e) or type(e).__name__)
            raise SystemExit(1)

    return wrapper


@click.group()
@click.option("-v", "--verbose", is_flag=True, help="Enable debug logging.")
@click.version_option(__version__, prog_name="api-review-bot")
def cli(verbose):
    """Automated code reviews for Node.js REST APIs."""
    configure_logging(get_settings().log_level, verbose=verbose)


async def _authenticate(repo_url: str) -> tuple[GitHubService, str, str]:
    github = GitHubService()
    owner, repo = CloneService.parse_github_url(repo_url)
    user = await github.verify_auth()
    print_success(f"Authenticated as {user['login']}")
    return github, owner, repo


# =============================================================================
# analyze
# =============================================================================


async def run_analyze(repo_url: str, as_json: bool) -> None:
    owner, repo = CloneService.parse_github_url(repo_url)
    analysis = AnalysisService()

    if not as_json:
        console.print(f"[info]Analyzing {owner}/{repo}[/info]")
    async with analysis.cloned(repo_url) as repo_path:
        report = analysis.run(repo_path)

    if as_json:
        click.echo(json.dumps(
            {"summary": report.summary, "findings": [f.to_dict() for f in report.findings]},
            indent=2,
        ))
        return

    console.print(f"Found {len(report.source_files)} source file(s)")
    display_summary(report.findings)
    display_findings(report.findings)
    console.print('\n[dim]Use the "issue" or "review" commands to post results to GitHub.[/dim]')


@cli.command("analyze")
@click.argument("repo_url")
@click.option("--json", "as_json", is_flag=True, help="Print findings as JSON.")
@handle_errors
def analyze(repo_url, as_json):
    """Analyze a repository and display results (no GitHub writes)."""
    asyncio.run(run_analyze(repo_url, as_json))


# =============================================================================
# issue
# =============================================================================


async def run_issue(repo_url: str) -> None:
    github, owner, repo = await _authenticate(repo_url)
    analysis = AnalysisService()

    console.print(f"[info]Analyzing {owner}/{repo}[/info]")
    async with analysis.cloned(repo_url) as repo_path:
        report = analysis.run(repo_path)
        display_summary(report.findings)

        if not report.findings:
            print_success("No issues found! Repository looks good.")
            return

        issue = await IssueService(github).create_review_issue(owner, repo, report)

    if issue is None:
        print_warning("Similar issue already exists")
    else:
        print_success(f"Issue created: {issue.get('html_url')}")


@cli.command("issue")
@click.argument("repo_url")
@handle_errors
def issue(repo_url):
    """Analyze a repository and open a GitHub issue with the findings."""
    asyncio.run(run_issue(repo_url))


# =============================================================================
# review
# =============================================================================


async def run_review(repo_url: str) -> None:
    github, owner, repo = await _authenticate(repo_url)
    reviews = ReviewService(github, AnalysisService())

    console.print(f"[info]Checking PRs in {owner}/{repo}[/info]")
    reviewed = 0
    async for result in reviews.review_open_pulls(owner, repo, repo_url):
        reviewed += 1
        console.print(f"\n[bold]PR #{result.number}[/bold]: {result.title} (by {result.author})", markup=False)
        if result.skipped:
            print_warning("Already reviewed, skipping")
            continue
        summary = result.summary
        console.print(
            f"   Found: {summary['critical']} critical, {summary['warning']} warnings, {summary['info']} info"
        )
        if result.fallback_comment:
            print_warning("Review rejected, posted as comment instead")
        elif result.event:
            print_success(f"Review posted ({result.event}, {result.inline_comments} inline comment(s))")
        else:
            print_success("No issues found")

    if not reviewed:
        console.print("[warning]No open pull requests found[/warning]")
    else:
        print_success("PR review complete")


@cli.command("review")
@click.argument("repo_url")
@handle_errors
def review(repo_url):
    """Review all open pull requests in a repository."""
    asyncio.run(run_review(repo_url))


# =============================================================================
# fix
# =============================================================================


async def run_fix(repo_url: str) -> None:
    github, owner, repo = await _authenticate(repo_url)
    clone_service = CloneService()
    analysis = AnalysisService(clone_service)

    console.print(f"[info]Creating fix PR for {owner}/{repo}[/info]")
    async with analysis.cloned(repo_url) as repo_path:
        report = analysis.run(repo_path, security_only=True)
        critical = report.critical
        if not critical:
            print_success("No critical security issues to fix!")
            return

        console.print(f"[critical]Critical issues found: {len(critical)}[/critical]")
        for index, finding in enumerate(critical, 1):
            console.print(f"   {index}. {finding.message} (Line {finding.display_line})", markup=False)

        pr = await FixService(github, clone_service).create_fix_pr(owner, repo, report)

    if pr is None:
        print_warning("Could not create fix PR: no issue could be fixed automatically")
    else:
        print_success(f"Fix PR created: {pr.get('html_url')}")


@cli.command("fix")
@click.argument("repo_url")
@handle_errors
def fix(repo_url):
    """Open a pull request with fixes for critical security issues."""
    asyncio.run(run_fix(repo_url))


# =============================================================================
# cleanup
# =============================================================================


async def run_cleanup(repo_url: str, include_open: bool) -> None:
    github, owner, repo = await _authenticate(repo_url)

    console.print(f"[info]Cleaning up bot branches in {owner}/{repo}[/info]")
    result = await FixService(github, CloneService()).cleanup_bot_branches(
        owner, repo, include_open=include_open
    )

    console.rule("[bold]CLEANUP SUMMARY[/bold]")
    console.print(f"  [success]Deleted: {result.deleted} branch(es)[/success]")
    console.print(f"  [warning]Skipped: {result.skipped} branch(es)[/warning]")
    if not result.deleted:
        console.print("\n[dim]No branches to clean up.[/dim]")


@cli.command("cleanup")
@click.argument("repo_url")
@click.option("-a", "--all", "include_open", is_flag=True, help="Delete all bot branches, including ones with open PRs.")
@handle_errors
def cleanup(repo_url, include_open):
    """Delete branches created by previous fix runs."""
    asyncio.run(run_cleanup(repo_url, include_open))


def main() -> None:
    cli()
