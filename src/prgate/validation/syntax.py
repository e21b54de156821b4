"""Per-extension syntax checks for changed files."""

from __future__ import annotations

import json
import tomllib
from functools import lru_cache
from pathlib import PurePosixPath
from typing import Callable

import libcst as cst
import tree_sitter_javascript
import tree_sitter_typescript
import yaml
from tree_sitter import Language, Node, Parser

from .issues import IssueKind, IssueSeverity, ValidationIssue

SyntaxChecker = Callable[[str, str], list[ValidationIssue]]


def _error(path: str, message: str, line: int | None = None, column: int | None = None) -> ValidationIssue:
    return ValidationIssue(
        kind=IssueKind.SYNTAX,
        severity=IssueSeverity.ERROR,
        file=path,
        message=message,
        line=line,
        column=column,
        suggestion="Fix syntax error",
    )


def check_python(path: str, content: str) -> list[ValidationIssue]:
    try:
        cst.parse_module(content)
    except cst.ParserSyntaxError as error:
        message = getattr(error, "message", None) or str(error).splitlines()[0]
        return [_error(path, message, getattr(error, "raw_line", None), getattr(error, "raw_column", None))]
    return []


def check_json(path: str, content: str) -> list[ValidationIssue]:
    try:
        json.loads(content)
    except json.JSONDecodeError as error:
        return [_error(path, error.msg, error.lineno, error.colno)]
    return []


def check_yaml(path: str, content: str) -> list[ValidationIssue]:
    try:
        list(yaml.safe_load_all(content))
    except yaml.YAMLError as error:
        mark = getattr(error, "problem_mark", None)
        problem = getattr(error, "problem", None) or str(error).splitlines()[0]
        if mark is not None:
            return [_error(path, problem, mark.line + 1, mark.column + 1)]
        return [_error(path, problem)]
    return []


def check_toml(path: str, content: str) -> list[ValidationIssue]:
    try:
        tomllib.loads(content)
    except tomllib.TOMLDecodeError as error:
        message = getattr(error, "msg", None) or str(error)
        return [_error(path, message, getattr(error, "lineno", None), getattr(error, "colno", None))]
    return []


@lru_cache(maxsize=None)
def _language(grammar: str) -> Language:
    if grammar == "typescript":
        return Language(tree_sitter_typescript.language_typescript())
    if grammar == "tsx":
        return Language(tree_sitter_typescript.language_tsx())
    return Language(tree_sitter_javascript.language())


def _first_error(root: Node) -> Node | None:
    stack = [root]
    while stack:
        node = stack.pop()
        if node.type == "ERROR" or node.is_missing:
            return node
        stack.extend(reversed([child for child in node.children if child.has_error or child.is_missing]))
    return None


def _script_checker(grammar: str) -> SyntaxChecker:
    def check(path: str, content: str) -> list[ValidationIssue]:
        tree = Parser(_language(grammar)).parse(content.encode("utf-8"))
        root = tree.root_node
        if not root.has_error:
            return []
        node = _first_error(root)
        if node is None:
            return [_error(path, "Syntax error")]
        row, column = node.start_point
        if node.is_missing:
            message = f"Missing \"{node.type}\""
        else:
            snippet = (node.text or b"").decode("utf-8", errors="replace").strip().splitlines()
            message = f"Unexpected \"{snippet[0][:40]}\"" if snippet else "Unexpected token"
        return [_error(path, message, row + 1, column + 1)]

    check.__name__ = f"check_{grammar}"
    return check


check_javascript = _script_checker("javascript")
check_typescript = _script_checker("typescript")
check_tsx = _script_checker("tsx")

def check_css(path: str, content: str) -> list[ValidationIssue]:
    """Brace balance plus a missing-semicolon heuristic for declarations."""
    issues: list[ValidationIssue] = []
    depth = 0
    for number, raw in enumerate(content.splitlines(), start=1):
        line = raw.strip()
        if not line or line.startswith(("/*", "*", "//")):
            continue
        opens = line.count("{")
        closes = line.count("}")
        in_rule = depth > 0 or opens > 0
        is_declaration = ":" in line and "{" not in line and "}" not in line
        if in_rule and is_declaration and not line.endswith((";", ",")):
            issues.append(
                ValidationIssue(
                    kind=IssueKind.SYNTAX,
                    severity=IssueSeverity.WARNING,
                    file=path,
                    line=number,
                    message="Missing semicolon after CSS property",
                    suggestion="Add semicolon at the end of the line",
                )
            )
        depth += opens - closes
        if depth < 0:
            issues.append(_error(path, "Unexpected closing brace", number))
            depth = 0
    if depth != 0:
        issues.append(_error(path, "Unmatched CSS braces"))
    return issues


CHECKERS: dict[str, SyntaxChecker] = {
    ".py": check_python,
    ".pyi": check_python,
    ".json": check_json,
    ".yaml": check_yaml,
    ".yml": check_yaml,
    ".toml": check_toml,
    ".css": check_css,
    ".scss": check_css,
    ".js": check_javascript,
    ".jsx": check_javascript,
    ".mjs": check_javascript,
    ".cjs": check_javascript,
    ".ts": check_typescript,
    ".mts": check_typescript,
    ".cts": check_typescript,
    ".tsx": check_tsx,
}


def checker_for(path: str) -> SyntaxChecker | None:
    return CHECKERS.get(PurePosixPath(path.replace("\\", "/")).suffix.lower())


def check_syntax(path: str, content: str) -> list[ValidationIssue]:
    """Parse ``content`` with the grammar for ``path``; unknown extensions pass."""
    checker = checker_for(path)
    if checker is None:
        return []
    return checker(path, content)


__all__ = [
    "CHECKERS",
    "check_css",
    "check_javascript",
    "check_json",
    "check_python",
    "check_syntax",
    "check_toml",
    "check_tsx",
    "check_typescript",
    "check_yaml",
    "checker_for",
]
