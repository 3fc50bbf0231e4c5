"""Structure analyzer for project layout and project-health issues."""

import logging
import os
import re
from typing import Optional

from reviewbot.analyzers.base import NOT_APPLICABLE, Analyzer, Finding, Severity

logger = logging.getLogger(__name__)

RECOMMENDED_FOLDERS = [
    ("routes", "Route definitions"),
    ("controllers", "Business logic"),
    ("models", "Data models"),
    ("middleware", "Custom middleware"),
    ("config", "Configuration files"),
]
MISSING_FOLDER_THRESHOLD = 3

ESSENTIAL_FILES = [
    (".env.example", "Environment variables template", Severity.WARNING),
    (".gitignore", "Git ignore rules", Severity.WARNING),
    ("README.md", "Project documentation", Severity.INFO),
    ("package.json", "Node.js dependencies", Severity.CRITICAL),
]
GITIGNORE_TEMPLATE = "Create .gitignore with:\nnode_modules/\n.env\n*.log\n.DS_Store"

ROUTE_PATTERN = re.compile(r"app\.(get|post|put|delete|patch)\(")
DB_PATTERN = re.compile(r"db\.(run|all|get|exec)\(")
MIXED_CONCERNS_MAX_LINES = 100
SINGLE_FILE_MAX_LINES = 150


def count_lines(content: str) -> int:
    """Number of newline-terminated lines; a trailing newline adds nothing."""
    if not content:
        return 0
    return content.count("\n") + (0 if content.endswith("\n") else 1)


def check_folder_structure(repo_root: str) -> list[Finding]:
    missing = [
        name for name, _ in RECOMMENDED_FOLDERS
        if not os.path.isdir(os.path.join(repo_root, name))
    ]
    if len(missing) < MISSING_FOLDER_THRESHOLD:
        return []

    layout = "\n".join(f"  - {name}/ ({purpose})" for name, purpose in RECOMMENDED_FOLDERS)
    return [
        Finding(
            type="missing-folder-structure",
            severity=Severity.WARNING,
            file=repo_root,
            line=NOT_APPLICABLE,
            message="Recommended folder structure not found",
            description=f"Missing {len(missing)} recommended folders: {', '.join(missing)}",
            recommendation=f"Consider organizing your code with folders:\n{layout}",
        )
    ]


def check_separation_of_concerns(file_path: str, content: str) -> list[Finding]:
    """Flag large files that register routes and talk to the database."""
    if not (ROUTE_PATTERN.search(content) and DB_PATTERN.search(content)):
        return []

    line_count = count_lines(content)
    if line_count <= MIXED_CONCERNS_MAX_LINES:
        return []

    file_name = os.path.basename(file_path)
    return [
        Finding(
            type="monolithic-file",
            severity=Severity.WARNING,
            file=file_path,
            line=NOT_APPLICABLE,
            message="Routes and database logic in same file",
            description=(
                f"{file_name} contains both route definitions and database operations "
                f"({line_count} lines). This violates separation of concerns."
            ),
            recommendation=(
                "Separate into:\n"
                "  - routes/ for route definitions\n"
                "  - controllers/ for business logic\n"
                "  - models/ for database operations"
            ),
        )
    ]


def check_essential_files(repo_root: str) -> list[Finding]:
    findings = []
    for name, description, severity in ESSENTIAL_FILES:
        if os.path.exists(os.path.join(repo_root, name)):
            continue
        findings.append(
            Finding(
                type="missing-essential-file",
                severity=severity,
                file=repo_root,
                line=NOT_APPLICABLE,
                message=f"Missing {name}",
                description=f"{description} not found in project root.",
                recommendation=GITIGNORE_TEMPLATE if name == ".gitignore" else f"Create {name} file",
            )
        )

    env_path = os.path.join(repo_root, ".env")
    gitignore_path = os.path.join(repo_root, ".gitignore")
    if os.path.exists(env_path) and os.path.exists(gitignore_path):
        with open(gitignore_path, "r", encoding="utf-8", errors="replace") as f:
            gitignore = f.read()
        if ".env" not in gitignore:
            findings.append(
                Finding(
                    type="env-not-ignored",
                    severity=Severity.CRITICAL,
                    file=gitignore_path,
                    line=NOT_APPLICABLE,
                    message=".env file not in .gitignore",
                    description=(
                        "Environment variables file exists but is not ignored by git. "
                        "This can expose secrets."
                    ),
                    recommendation="Add .env to your .gitignore file",
                )
            )
    return findings


def check_single_file_app(file_paths: list[str], contents: dict[str, str]) -> list[Finding]:
    """Flag an application that lives entirely in one large file."""
    if len(file_paths) != 1:
        return []

    file_path = file_paths[0]
    line_count = count_lines(contents.get(file_path, ""))
    if line_count <= SINGLE_FILE_MAX_LINES:
        return []

    return [
        Finding(
            type="single-file-app",
            severity=Severity.WARNING,
            file=file_path,
            line=NOT_APPLICABLE,
            message="Entire application in single file",
            description=(
                f"Application is {line_count} lines in a single file. "
                "This makes it hard to maintain and test."
            ),
            recommendation=(
                "Consider splitting into multiple files:\n"
                "  - app.js (main entry)\n"
                "  - routes/*.js (route definitions)\n"
                "  - controllers/*.js (business logic)\n"
                "  - models/*.js (data layer)"
            ),
        )
    ]


def _read_text(path: str) -> Optional[str]:
    try:
        with open(path, "r", encoding="utf-8", errors="replace") as f:
            return f.read()
    except OSError as e:
        logger.warning(f"Could not read {path}: {e}")
        return None


class StructureAnalyzer(Analyzer):
    name = "structure"

    def analyze(self, repo_root: str, file_paths: list[str]) -> list[Finding]:
        """Run the layout and project-health checks.

        Args:
            repo_root: Root of the cloned repository
            file_paths: Source files found in the repository

        Returns:
            Findings in check order
        """
        contents = {}
        for path in file_paths:
            text = _read_text(path)
            if text is not None:
                contents[path] = text

        findings: list[Finding] = []
        findings.extend(check_folder_structure(repo_root))
        for path in file_paths:
            if path in contents:
                findings.extend(check_separation_of_concerns(path, contents[path]))
        findings.extend(check_essential_files(repo_root))
        findings.extend(check_single_file_app(file_paths, contents))

        logger.info(f"Structure analysis found {len(findings)} issue(s)")
        return findings
