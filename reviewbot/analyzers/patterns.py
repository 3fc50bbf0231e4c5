"""Line-based pattern helpers for the security analyzer."""

import re
from dataclasses import dataclass

from reviewbot.analyzers.base import Finding, Severity


@dataclass(frozen=True)
class SecretPattern:
    name: str
    pattern: re.Pattern


SECRET_PATTERNS = [
    SecretPattern(
        name="API Key",
        pattern=re.compile(r"['\"](sk_live_|pk_live_|api_key_)[a-zA-Z0-9]{20,}['\"]"),
    ),
    SecretPattern(
        name="AWS Key",
        pattern=re.compile(r"['\"]AKIA[0-9A-Z]{16}['\"]"),
    ),
    # Only the identifier is case-insensitive; the literal must be word characters.
    SecretPattern(
        name="Generic Secret",
        pattern=re.compile(
            r"(?i:password|secret|token|api_key)\s*[:=]\s*['\"][A-Za-z0-9_]{10,}['\"]"
        ),
    ),
]

SECRET_DESCRIPTION = "Hardcoded secrets should never be committed to version control."
SECRET_RECOMMENDATION = (
    "Move secrets to environment variables (.env file) and use process.env.SECRET_NAME"
)


def match_secret_patterns(
    file_path: str,
    content: str,
    patterns: list[SecretPattern] = SECRET_PATTERNS,
) -> list[Finding]:
    """Test every line against every pattern; one finding per hit."""
    findings: list[Finding] = []
    for line_num, line in enumerate(content.split("\n"), 1):
        for secret in patterns:
            if secret.pattern.search(line):
                findings.append(
                    Finding(
                        type="exposed-secret",
                        severity=Severity.CRITICAL,
                        file=file_path,
                        line=line_num,
                        message=f"Potential {secret.name} found in code",
                        description=SECRET_DESCRIPTION,
                        snippet=line.strip(),
                        recommendation=SECRET_RECOMMENDATION,
                    )
                )
    return findings
