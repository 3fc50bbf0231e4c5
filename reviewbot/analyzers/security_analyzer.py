"""Security analyzer for unsafe query construction and hardcoded secrets.

Both checks are syntactic heuristics. The query check has no notion of
where an interpolated value comes from, so constant interpolation is
flagged too; recall matters more than precision for critical findings.
"""

import logging
from typing import Optional

from tree_sitter import Node

from reviewbot.analyzers.base import Analyzer, Finding, Severity
from reviewbot.analyzers.patterns import match_secret_patterns
from reviewbot.parsers.javascript_parser import (
    JavaScriptParser,
    ParsedFile,
    get_code_snippet,
    get_line_number,
    node_text,
    walk,
)

logger = logging.getLogger(__name__)

DB_OBJECT = "db"
DB_METHODS = {"run", "all", "get", "exec"}

# tree-sitter folds logical operators into binary_expression; these are not string building.
LOGICAL_OPERATORS = {"&&", "||", "??"}

QUERY_DESCRIPTION = (
    "Query uses string concatenation or template literals with user input. "
    "Use parameterized queries instead."
)
QUERY_RECOMMENDATION = (
    "Use parameterized queries with ? placeholders:\n"
    'db.run("SELECT * FROM users WHERE id = ?", [userId], callback)'
)


def _unwrap_parentheses(node: Node) -> Node:
    while node.type == "parenthesized_expression" and node.named_child_count:
        node = node.named_children[0]
    return node


def _first_argument(call: Node) -> Optional[Node]:
    arguments = call.child_by_field_name("arguments")
    # A tagged template (db.run`...`) has a template_string here, not an argument list.
    if arguments is None or arguments.type != "arguments":
        return None
    for child in arguments.named_children:
        if child.type != "comment":
            return _unwrap_parentheses(child)
    return None


def is_candidate_call(call: Node) -> bool:
    """True for `db.<run|all|get|exec>(...)` calls."""
    if call.type != "call_expression":
        return False
    callee = call.child_by_field_name("function")
    if callee is None or callee.type != "member_expression":
        return False
    obj = callee.child_by_field_name("object")
    prop = callee.child_by_field_name("property")
    if obj is None or prop is None:
        return False
    return (
        obj.type == "identifier"
        and node_text(obj) == DB_OBJECT
        and node_text(prop) in DB_METHODS
    )


def is_dynamic_query(arg: Node) -> bool:
    """True for concatenation-style or interpolated template query arguments."""
    if arg.type == "binary_expression":
        operator = arg.child_by_field_name("operator")
        return operator is None or operator.type not in LOGICAL_OPERATORS
    if arg.type == "template_string":
        return any(child.type == "template_substitution" for child in arg.children)
    return False


def check_unsafe_queries(parsed: ParsedFile) -> list[Finding]:
    """Flag database calls whose query is built from dynamic strings."""
    findings = []
    for node in walk(parsed.root):
        if not is_candidate_call(node):
            continue
        query_arg = _first_argument(node)
        if query_arg is None or not is_dynamic_query(query_arg):
            continue

        line = get_line_number(node)
        findings.append(
            Finding(
                type="unsafe-dynamic-query",
                severity=Severity.CRITICAL,
                file=parsed.path,
                line=line,
                message="SQL Injection vulnerability detected",
                description=QUERY_DESCRIPTION,
                snippet=get_code_snippet(parsed.source, line, line + 2) if line else None,
                recommendation=QUERY_RECOMMENDATION,
            )
        )
    return findings


def check_exposed_secrets(file_path: str, content: str) -> list[Finding]:
    """Flag lines that look like hardcoded credentials."""
    return match_secret_patterns(file_path, content)


class SecurityAnalyzer(Analyzer):
    name = "security"

    def __init__(self, parser: Optional[JavaScriptParser] = None):
        self.parser = parser or JavaScriptParser()

    def analyze(self, file_paths: list[str]) -> list[Finding]:
        """Run both security checks over the given files.

        The query check needs a syntax tree and skips files that fail to
        parse; the secret check only needs the text and runs regardless.

        Args:
            file_paths: Absolute paths of the source files

        Returns:
            Findings in file order, query findings before secret findings
        """
        findings: list[Finding] = []
        for path in file_paths:
            source = self.parser.read_source(path)
            if source is None:
                continue
            parsed = self.parser.parse_source(source, path)
            if parsed is not None:
                findings.extend(check_unsafe_queries(parsed))
            findings.extend(check_exposed_secrets(path, source))

        logger.info(f"Security analysis found {len(findings)} issue(s) in {len(file_paths)} file(s)")
        return findings
