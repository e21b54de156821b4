"""Validation issue model and the confidence score derived from it."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Iterable, Literal

StageStatus = Literal["passed", "failed", "skipped"]

SYNTAX_PENALTY = 0.4
BUILD_PENALTY = 0.3
TEST_PENALTY = 0.2
LINT_PENALTY = 0.1
ERROR_ISSUE_PENALTY = 0.05
WARNING_ISSUE_PENALTY = 0.02


class IssueKind(str, Enum):
    SYNTAX = "syntax"
    BUILD = "build"
    TEST = "test"
    LINT = "lint"
    RUNTIME = "runtime"


class IssueSeverity(str, Enum):
    ERROR = "error"
    WARNING = "warning"
    INFO = "info"


@dataclass(frozen=True, slots=True)
class ValidationIssue:
    """Single finding reported by one validation stage."""

    kind: IssueKind
    severity: IssueSeverity
    file: str
    message: str
    line: int | None = None
    column: int | None = None
    suggestion: str | None = None

    @property
    def location(self) -> str:
        location = self.file or "(unknown)"
        if self.line is not None:
            location = f"{location}:{self.line}"
            if self.column is not None:
                location = f"{location}:{self.column}"
        return location


def count_severity(issues: Iterable[ValidationIssue], severity: IssueSeverity) -> int:
    return sum(1 for issue in issues if issue.severity == severity)


def compute_score(
    *,
    syntax_valid: bool,
    builds_successfully: bool,
    tests_pass: bool,
    linting_passes: bool,
    issues: Iterable[ValidationIssue] = (),
) -> float:
    """Reduce stage flags and issues to a confidence score in ``[0, 1]``."""
    collected = list(issues)
    score = 1.0
    if not syntax_valid:
        score -= SYNTAX_PENALTY
    if not builds_successfully:
        score -= BUILD_PENALTY
    if not tests_pass:
        score -= TEST_PENALTY
    if not linting_passes:
        score -= LINT_PENALTY
    score -= ERROR_ISSUE_PENALTY * count_severity(collected, IssueSeverity.ERROR)
    score -= WARNING_ISSUE_PENALTY * count_severity(collected, IssueSeverity.WARNING)
    # Round away float noise so 1 - 0.3 - 0.1 compares equal to 0.6.
    return round(min(max(score, 0.0), 1.0), 10)


@dataclass(frozen=True, slots=True)
class ValidationResult:
    """Aggregated outcome of the validation pipeline over one change set."""

    syntax_valid: bool = True
    builds_successfully: bool = True
    tests_pass: bool = True
    linting_passes: bool = True
    issues: tuple[ValidationIssue, ...] = ()
    stages: dict[str, StageStatus] = field(default_factory=dict)

    @property
    def score(self) -> float:
        return compute_score(
            syntax_valid=self.syntax_valid,
            builds_successfully=self.builds_successfully,
            tests_pass=self.tests_pass,
            linting_passes=self.linting_passes,
            issues=self.issues,
        )

    @property
    def error_count(self) -> int:
        return count_severity(self.issues, IssueSeverity.ERROR)

    @property
    def warning_count(self) -> int:
        return count_severity(self.issues, IssueSeverity.WARNING)

    def issues_of(self, kind: IssueKind) -> list[ValidationIssue]:
        return [issue for issue in self.issues if issue.kind == kind]

    def to_dict(self) -> dict[str, object]:
        return {
            "score": self.score,
            "syntax_valid": self.syntax_valid,
            "builds_successfully": self.builds_successfully,
            "tests_pass": self.tests_pass,
            "linting_passes": self.linting_passes,
            "stages": dict(self.stages),
            "issues": [
                {
                    "kind": issue.kind.value,
                    "severity": issue.severity.value,
                    "file": issue.file,
                    "line": issue.line,
                    "column": issue.column,
                    "message": issue.message,
                    "suggestion": issue.suggestion,
                }
                for issue in self.issues
            ],
        }


__all__ = [
    "IssueKind",
    "IssueSeverity",
    "StageStatus",
    "ValidationIssue",
    "ValidationResult",
    "compute_score",
    "count_severity",
]
