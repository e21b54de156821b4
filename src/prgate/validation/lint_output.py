"""Parsers that turn linter output into validation issues."""

from __future__ import annotations

import re
from typing import Iterable

from .issues import IssueKind, IssueSeverity, ValidationIssue

# eslint --format unix / compact style: path:line:col: error: message
_SEVERITY_LINE = re.compile(
    r"^(?P<path>.+?):(?P<line>\d+):(?P<col>\d+):\s+(?P<severity>error|warning):\s+(?P<message>.+)$",
    re.IGNORECASE,
)
# ruff / flake8 style: path:line:col: E501 message
_CODE_LINE = re.compile(
    r"^(?P<path>.+?):(?P<line>\d+):(?P<col>\d+):\s+(?P<code>[A-Z]+\d+)\s+(?P<message>.+)$"
)
_ERROR_CODE_PREFIXES = ("E", "F")


def parse_lint_output(output: str | Iterable[str]) -> list[ValidationIssue]:
    """Parse lint findings from ``output``, ignoring lines that match no format."""
    lines = output.splitlines() if isinstance(output, str) else list(output)
    issues: list[ValidationIssue] = []
    seen: set[tuple[str, int, int, str]] = set()
    for raw in lines:
        line = raw.strip()
        if not line:
            continue
        issue = _parse_line(line)
        if issue is None:
            continue
        key = (issue.file, issue.line or 0, issue.column or 0, issue.message)
        if key in seen:
            continue
        seen.add(key)
        issues.append(issue)
    return issues


def _parse_line(line: str) -> ValidationIssue | None:
    match = _SEVERITY_LINE.match(line)
    if match:
        severity = IssueSeverity(match.group("severity").lower())
        return _issue(match, severity, match.group("message"))
    match = _CODE_LINE.match(line)
    if match:
        code = match.group("code")
        severity = IssueSeverity.ERROR if code.startswith(_ERROR_CODE_PREFIXES) else IssueSeverity.WARNING
        return _issue(match, severity, f"{code} {match.group('message')}")
    return None


def _issue(match: re.Match[str], severity: IssueSeverity, message: str) -> ValidationIssue:
    return ValidationIssue(
        kind=IssueKind.LINT,
        severity=severity,
        file=match.group("path").strip(),
        line=int(match.group("line")),
        column=int(match.group("col")),
        message=message.strip(),
        suggestion="Fix linting issue",
    )


__all__ = ["parse_lint_output"]
