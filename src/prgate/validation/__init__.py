"""Validation stages, command runners and the confidence score."""

from .issues import (
    IssueKind,
    IssueSeverity,
    StageStatus,
    ValidationIssue,
    ValidationResult,
    compute_score,
)
from .lint_output import parse_lint_output
from .pipeline import StageOutcome, ValidationPipeline
from .runner import CommandError, CommandResult, CommandRunner, SubprocessRunner
from .syntax import check_syntax

__all__ = [
    "CommandError",
    "CommandResult",
    "CommandRunner",
    "IssueKind",
    "IssueSeverity",
    "StageOutcome",
    "StageStatus",
    "SubprocessRunner",
    "ValidationIssue",
    "ValidationPipeline",
    "ValidationResult",
    "check_syntax",
    "compute_score",
    "parse_lint_output",
]
