"""Terminal output for the bot.

Single rich console shared by the CLI and the log handler.
"""

from rich.console import Console
from rich.markup import escape
from rich.theme import Theme

from reviewbot.analyzers import Finding, Severity, get_by_severity, get_summary

BOT_THEME = Theme({
    "info": "bold blue",
    "warning": "bold yellow",
    "error": "bold red",
    "success": "bold green",
    "critical": "bold red",
    "path": "bold cyan",
    "dim": "dim white",
})

console = Console(theme=BOT_THEME, highlight=False)
error_console = Console(theme=BOT_THEME, stderr=True, highlight=False)

SECTIONS = [
    (Severity.CRITICAL, "CRITICAL ISSUES"),
    (Severity.WARNING, "WARNINGS"),
    (Severity.INFO, "SUGGESTIONS"),
]


def print_header(title: str) -> None:
    console.rule(f"[bold]{title}[/bold]")


def print_error(msg: str) -> None:
    error_console.print(f"[error]Error:[/error] {msg}")


def print_warning(msg: str) -> None:
    console.print(f"[warning]WARNING:[/warning] {msg}")


def print_success(msg: str) -> None:
    console.print(f"[success]OK:[/success] {msg}")


def display_summary(findings: list[Finding]) -> None:
    summary = get_summary(findings)
    print_header("SUMMARY")
    console.print(f"Total issues: {summary['total']}")
    console.print(f"  [critical]Critical: {summary['critical']}[/critical]")
    console.print(f"  [warning]Warnings: {summary['warning']}[/warning]")
    console.print(f"  [info]Info: {summary['info']}[/info]")
    console.print()


def display_findings(findings: list[Finding]) -> None:
    """Print findings grouped by severity, most severe first."""
    for severity, title in SECTIONS:
        group = get_by_severity(findings, severity)
        if not group:
            continue
        console.rule(f"[{severity.value}]{title}[/{severity.value}]")
        for index, finding in enumerate(group, 1):
            console.print(f"\n{index}. [bold]{escape(finding.message)}[/bold]")
            console.print(f"   Type: {finding.type}", markup=False)
            console.print(f"   File: {finding.file}", markup=False)
            if finding.has_line:
                console.print(f"   Line: {finding.line}", markup=False)
            console.print(f"   {finding.description}", markup=False)
            if finding.snippet:
                console.print(f"   Code: {finding.snippet}", markup=False)
            console.print("   [success]Fix:[/success] ", end="")
            console.print(finding.recommendation, markup=False)
