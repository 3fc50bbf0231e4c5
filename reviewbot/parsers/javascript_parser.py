"""JavaScript/TypeScript parser using tree-sitter.

Produces a syntax tree with position information for every source file
handed to the security analyzer. Files that cannot be read or do not
parse cleanly are skipped with a warning; they never abort a run.
"""

import logging
import os
from dataclasses import dataclass
from typing import Iterator, Optional

import tree_sitter_typescript
from tree_sitter import Language, Node, Parser, Tree

logger = logging.getLogger(__name__)


@dataclass
class ParsedFile:
    """Syntax tree, raw source and originating path of one file."""

    tree: Tree
    source: str
    path: str

    @property
    def root(self) -> Node:
        return self.tree.root_node


class JavaScriptParser:
    """Parser for mixed JS/TS/JSX source."""

    # Plain TypeScript cannot use the TSX grammar: `<T>value` casts clash with JSX.
    TYPESCRIPT_EXTENSIONS = {".ts", ".mts", ".cts"}

    def __init__(self):
        """Initialize one tree-sitter parser per grammar."""
        self._tsx = Parser(Language(tree_sitter_typescript.language_tsx()))
        self._typescript = Parser(Language(tree_sitter_typescript.language_typescript()))

    def _parser_for(self, path: str) -> Parser:
        ext = os.path.splitext(path)[1].lower()
        if ext in self.TYPESCRIPT_EXTENSIONS:
            return self._typescript
        return self._tsx

    def parse_source(self, source: str, path: str) -> Optional[ParsedFile]:
        """Parse already-loaded source text.

        Args:
            source: File contents
            path: Path used for grammar selection and reporting

        Returns:
            ParsedFile, or None when the source has syntax errors
        """
        tree = self._parser_for(path).parse(source.encode("utf-8"))
        if tree.root_node.has_error:
            logger.warning(f"Could not parse {path}: syntax error near line {_first_error_line(tree.root_node)}")
            return None
        return ParsedFile(tree=tree, source=source, path=path)

    def read_source(self, path: str) -> Optional[str]:
        """Read a source file as UTF-8; None (with a warning) if unreadable."""
        try:
            with open(path, "r", encoding="utf-8") as f:
                return f.read()
        except (OSError, UnicodeDecodeError) as e:
            logger.warning(f"Could not read {path}: {e}")
            return None

    def parse_file(self, path: str) -> Optional[ParsedFile]:
        """Read and parse a single file; None if it cannot be parsed."""
        source = self.read_source(path)
        if source is None:
            return None
        return self.parse_source(source, path)

    def parse_files(self, paths: list[str]) -> list[ParsedFile]:
        """Parse files in order, keeping only the successes."""
        results = []
        for path in paths:
            parsed = self.parse_file(path)
            if parsed is not None:
                results.append(parsed)
        logger.debug(f"Parsed {len(results)}/{len(paths)} files")
        return results


def walk(node: Node) -> Iterator[Node]:
    """Yield node and all its descendants depth-first, in source order."""
    stack = [node]
    while stack:
        current = stack.pop()
        yield current
        stack.extend(reversed(current.children))


def get_line_number(node) -> Optional[int]:
    """1-based start line of a node, or None when it carries no position."""
    point = getattr(node, "start_point", None)
    if point is None:
        return None
    return point[0] + 1


def get_code_snippet(source: str, start_line: int, end_line: int) -> str:
    """Return the source lines in the inclusive 1-based range."""
    lines = source.split("\n")
    return "\n".join(lines[max(start_line - 1, 0) : end_line])


def node_text(node: Node) -> str:
    return node.text.decode("utf-8") if node.text is not None else ""


def _first_error_line(root: Node) -> Optional[int]:
    for node in walk(root):
        if node.type == "ERROR" or node.is_missing:
            return get_line_number(node)
    return None
