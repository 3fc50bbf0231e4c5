"""Tests for the command line interface."""

import json
import os
from contextlib import asynccontextmanager
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from click.testing import CliRunner

from reviewbot import __version__
from reviewbot.analyzers import NOT_APPLICABLE, Finding, Severity
from reviewbot.cli import cli
from reviewbot.services.analysis_service import AnalysisReport

REPO = os.path.join(os.sep, "clones", "acme-api")


def make_report():
    secret = Finding(
        type="exposed-secret",
        severity=Severity.CRITICAL,
        file=os.path.join(REPO, "app.js"),
        line=4,
        message="Potential API Key found in code",
        description="Hardcoded secret detected.",
        recommendation="Use environment variables.",
        snippet='const apiKey = "sk_live_x"',
    )
    readme = Finding(
        type="missing-essential-file",
        severity=Severity.INFO,
        file=REPO,
        line=NOT_APPLICABLE,
        message="Missing README.md",
        description="Project documentation not found in project root.",
        recommendation="Create README.md file",
    )
    return AnalysisReport(REPO, [os.path.join(REPO, "app.js")], [secret], [readme])


@pytest.fixture
def runner():
    return CliRunner()


@pytest.fixture
def fake_analysis():
    """Replace the analysis service so no clone happens."""
    instance = MagicMock()

    @asynccontextmanager
    async def cloned(repo_url):
        yield REPO

    instance.cloned = cloned
    instance.run.return_value = make_report()
    with patch("reviewbot.cli.AnalysisService", return_value=instance):
        yield instance


@pytest.fixture(autouse=True)
def no_token(monkeypatch):
    monkeypatch.delenv("GITHUB_TOKEN", raising=False)


class TestCliBasics:
    def test_version(self, runner):
        result = runner.invoke(cli, ["--version"])

        assert result.exit_code == 0
        assert __version__ in result.output

    def test_help_lists_commands(self, runner):
        result = runner.invoke(cli, ["--help"])

        assert result.exit_code == 0
        for command in ("analyze", "issue", "review", "fix", "cleanup"):
            assert command in result.output

    def test_missing_argument(self, runner):
        result = runner.invoke(cli, ["analyze"])

        assert result.exit_code == 2


class TestAnalyzeCommand:
    """Test the local-only analyze command."""

    def test_json_output(self, runner, fake_analysis):
        result = runner.invoke(cli, ["analyze", "--json", "https://github.com/acme/api"])

        assert result.exit_code == 0
        data = json.loads(result.output)
        assert data["summary"] == {"total": 2, "critical": 1, "warning": 0, "info": 1}
        assert data["findings"][0]["severity"] == "critical"
        assert data["findings"][1]["line"] is None

    def test_human_output(self, runner, fake_analysis):
        result = runner.invoke(cli, ["analyze", "https://github.com/acme/api"])

        assert result.exit_code == 0
        assert "Potential API Key found in code" in result.output
        assert "Missing README.md" in result.output

    def test_invalid_url_exits_with_error(self, runner):
        result = runner.invoke(cli, ["analyze", "not-a-repo"])

        assert result.exit_code == 1
        assert "Invalid GitHub URL" in result.output


class TestRemoteCommands:
    """Commands that write to GitHub need a token."""

    @pytest.mark.parametrize("command", ["issue", "review", "fix", "cleanup"])
    def test_missing_token(self, runner, command):
        result = runner.invoke(cli, [command, "https://github.com/acme/api"])

        assert result.exit_code == 1
        assert "GITHUB_TOKEN not found" in result.output

    def test_issue_created(self, runner, fake_analysis):
        github = MagicMock()
        github.verify_auth = AsyncMock(return_value={"login": "octo"})
        issues = MagicMock()
        issues.create_review_issue = AsyncMock(return_value={"html_url": "https://github.com/acme/api/issues/3"})

        with patch("reviewbot.cli.GitHubService", return_value=github), \
                patch("reviewbot.cli.IssueService", return_value=issues):
            result = runner.invoke(cli, ["issue", "https://github.com/acme/api"])

        assert result.exit_code == 0
        assert "issues/3" in result.output
        issues.create_review_issue.assert_awaited_once()

    def test_cleanup_all_flag(self, runner):
        github = MagicMock()
        github.verify_auth = AsyncMock(return_value={"login": "octo"})
        fixes = MagicMock()
        fixes.cleanup_bot_branches = AsyncMock(return_value=MagicMock(deleted=2, skipped=0))

        with patch("reviewbot.cli.GitHubService", return_value=github), \
                patch("reviewbot.cli.FixService", return_value=fixes):
            result = runner.invoke(cli, ["cleanup", "--all", "https://github.com/acme/api"])

        assert result.exit_code == 0
        assert fixes.cleanup_bot_branches.await_args.args == ("acme", "api")
        assert fixes.cleanup_bot_branches.await_args.kwargs["include_open"] is True
        assert "Deleted: 2" in result.output
