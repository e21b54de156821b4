"""Multi-stage validation of generated file changes.

Syntax and lint have no data dependency on each other and run on a small
thread pool. Build waits for syntax and only runs when every changed file
parsed; tests run unless the build failed, so a build skipped for syntax
errors does not block them. Issues are always reported in stage
order (syntax, build, lint, test) regardless of which worker finished first.
"""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from pathlib import PurePosixPath
from typing import Iterable, Sequence

from ..config import ValidationConfig
from ..structured import FileChange
from .issues import IssueKind, IssueSeverity, StageStatus, ValidationIssue, ValidationResult
from .lint_output import parse_lint_output
from .runner import CommandRunner
from .syntax import check_syntax, checker_for

LOGGER = logging.getLogger(__name__)


@dataclass(slots=True)
class StageOutcome:
    """Issues and status produced by one stage."""

    status: StageStatus
    issues: list[ValidationIssue] = field(default_factory=list)

    @property
    def passed(self) -> bool:
        return self.status != "failed"


class ValidationPipeline:
    """Validate a set of file changes and summarise them as a :class:`ValidationResult`."""

    def __init__(self, runner: CommandRunner, config: ValidationConfig | None = None) -> None:
        self._runner = runner
        self._config = config or ValidationConfig()

    @property
    def config(self) -> ValidationConfig:
        return self._config

    def validate(self, changes: Iterable[FileChange]) -> ValidationResult:
        pending = [change for change in changes if not change.deleted]
        LOGGER.info("Validating %d changed file(s)", len(pending))

        with ThreadPoolExecutor(max_workers=max(1, self._config.max_workers)) as pool:
            syntax_future = pool.submit(self.run_syntax, pending)
            lint_future = pool.submit(self.run_lint, pending)

            syntax = syntax_future.result()
            if syntax.passed:
                build = self.run_build()
            else:
                LOGGER.info("Skipping build: syntax errors present.")
                build = StageOutcome("skipped")

            if build.passed:
                tests = self.run_tests()
            else:
                LOGGER.info("Skipping tests: build failed.")
                tests = StageOutcome("skipped")

            lint = lint_future.result()

        result = ValidationResult(
            syntax_valid=syntax.passed,
            builds_successfully=build.passed,
            tests_pass=tests.passed,
            linting_passes=lint.passed,
            issues=tuple(syntax.issues + build.issues + lint.issues + tests.issues),
            stages={
                "syntax": syntax.status,
                "build": build.status,
                "lint": lint.status,
                "test": tests.status,
            },
        )
        LOGGER.info(
            "Validation complete - score %.0f%% (%d errors, %d warnings)",
            result.score * 100,
            result.error_count,
            result.warning_count,
        )
        return result

    # ------------------------------------------------------------------ stages
    def run_syntax(self, changes: Sequence[FileChange]) -> StageOutcome:
        issues: list[ValidationIssue] = []
        for change in changes:
            if checker_for(change.path) is None:
                continue
            try:
                content = change.new_content
                if content is None:
                    content = self._runner.read_file(change.path)
                issues.extend(check_syntax(change.path, content))
            except Exception as error:
                issues.append(
                    ValidationIssue(
                        kind=IssueKind.SYNTAX,
                        severity=IssueSeverity.ERROR,
                        file=change.path,
                        message=f"Syntax validation failed: {error}",
                        suggestion="Check file syntax and formatting",
                    )
                )
        failed = any(issue.severity == IssueSeverity.ERROR for issue in issues)
        return StageOutcome("failed" if failed else "passed", issues)

    def run_build(self) -> StageOutcome:
        command = self._config.build_command
        if not command:
            return StageOutcome(
                "passed",
                [
                    ValidationIssue(
                        kind=IssueKind.BUILD,
                        severity=IssueSeverity.WARNING,
                        file="build",
                        message="No build command configured",
                        suggestion="Set validation.build_command in prgate.yaml",
                    )
                ],
            )
        return self._run_checked(IssueKind.BUILD, "Build", command, self._config.build_timeout)

    def run_tests(self) -> StageOutcome:
        command = self._config.test_command
        if not command:
            return StageOutcome(
                "passed",
                [
                    ValidationIssue(
                        kind=IssueKind.TEST,
                        severity=IssueSeverity.INFO,
                        file="tests",
                        message="No test command configured",
                        suggestion="Consider adding tests to your project",
                    )
                ],
            )
        return self._run_checked(IssueKind.TEST, "Tests", command, self._config.test_timeout)

    def run_lint(self, changes: Sequence[FileChange]) -> StageOutcome:
        command = self._config.lint_command
        if not command:
            return StageOutcome("skipped")
        targets = [change.path for change in changes if self._lintable(change.path)]
        if not targets:
            return StageOutcome("skipped")

        LOGGER.info("Running linter on %d file(s)", len(targets))
        try:
            result = self._runner.run_command([*command, *targets], self._config.lint_timeout)
        except Exception as error:
            LOGGER.warning("Linting could not run: %s", error)
            return StageOutcome("skipped")
        if result.timed_out:
            LOGGER.warning("Linting timed out after %ss; ignoring.", self._config.lint_timeout)
            return StageOutcome("skipped")

        issues = parse_lint_output("\n".join(part for part in (result.stdout, result.stderr) if part))
        if result.exit_code != 0 and not issues:
            LOGGER.warning("Linter exited with %d but reported nothing parseable.", result.exit_code)
        failed = any(issue.severity == IssueSeverity.ERROR for issue in issues)
        return StageOutcome("failed" if failed else "passed", issues)

    # ------------------------------------------------------------------ helpers
    def _lintable(self, path: str) -> bool:
        suffix = PurePosixPath(path.replace("\\", "/")).suffix.lower()
        return suffix in self._config.lint_extensions

    def _run_checked(self, kind: IssueKind, label: str, command: Sequence[str], timeout: float) -> StageOutcome:
        LOGGER.info("Running %s command: %s", label.lower(), " ".join(command))
        try:
            result = self._runner.run_command(command, timeout)
        except Exception as error:
            LOGGER.warning("%s command could not run: %s", label, error)
            return StageOutcome(
                "failed",
                [self._stage_error(kind, f"{label} validation failed: {error}", "Check the configured command")],
            )
        if result.timed_out:
            return StageOutcome(
                "failed",
                [self._stage_error(kind, f"{label} timed out after {timeout:g}s", result.first_line() or None)],
            )
        if result.exit_code != 0:
            return StageOutcome(
                "failed",
                [
                    self._stage_error(
                        kind,
                        f"{label} failed (exit code {result.exit_code})",
                        result.first_line() or "Check the command output and fix errors",
                    )
                ],
            )
        return StageOutcome("passed")

    @staticmethod
    def _stage_error(kind: IssueKind, message: str, suggestion: str | None) -> ValidationIssue:
        return ValidationIssue(
            kind=kind,
            severity=IssueSeverity.ERROR,
            file="build" if kind == IssueKind.BUILD else "tests",
            message=message,
            suggestion=suggestion,
        )


__all__ = ["StageOutcome", "ValidationPipeline"]
