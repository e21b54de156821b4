"""End-to-end wiring: scheduler, validation pipeline and publication gate."""

from __future__ import annotations

import json
import logging
from dataclasses import asdict, dataclass, field, is_dataclass
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Any, Optional

from .actions.base import ActionRegistry
from .config import AppConfig
from .context import RunContext
from .gate import PublicationDecision, decide_publication, render_validation_report, review_labels
from .models.advisor import ReasoningAdvisor
from .scheduler import RunReport, Scheduler
from .structured import ChangeRequest
from .utils.slug import branch_name, slugify
from .validation.pipeline import ValidationPipeline
from .validation.issues import ValidationResult
from .validation.runner import CommandRunner, SubprocessRunner
from .workflow import build_default_registry

LOGGER = logging.getLogger(__name__)


@dataclass(slots=True)
class PipelineResult:
    """Everything a caller needs to publish (or not) one change request."""

    run: RunReport
    validation: Optional[ValidationResult]
    decision: PublicationDecision
    labels: list[str] = field(default_factory=list)
    report: str = ""
    branch: str = ""
    artifact_path: Optional[Path] = None
    error: Optional[str] = None

    @property
    def success(self) -> bool:
        return self.run.success and self.error is None


class Orchestrator:
    """Drive one change request from scheduling through the publication gate."""

    def __init__(
        self,
        config: AppConfig | None = None,
        *,
        runner: CommandRunner | None = None,
        advisor: Optional[ReasoningAdvisor] = None,
        registry: ActionRegistry | None = None,
    ) -> None:
        self.config = config or AppConfig()
        self.runner = runner or SubprocessRunner(self.config.workspace_root())
        self.advisor = advisor
        self.registry = registry or build_default_registry(self.runner, advisor)

    def _scheduler(self) -> Scheduler:
        run_cfg = self.config.run
        return Scheduler(
            self.registry,
            advisor=self.advisor,
            max_iterations=run_cfg.max_iterations,
            max_attempts=run_cfg.max_action_attempts,
            terminal_action_types=run_cfg.terminal_action_types,
        )

    def plan(self, request: ChangeRequest) -> RunReport:
        """Run only the scheduler; nothing is validated or published."""
        return self._scheduler().run(RunContext(request))

    def run(self, request: ChangeRequest) -> PipelineResult:
        threshold = self.config.run.confidence_threshold
        report = self.plan(request)
        context = report.context
        branch = branch_name(request.branch_description())

        if not report.success:
            LOGGER.error("Run failed before validation: %s", report.error)
            result = PipelineResult(
                run=report,
                validation=None,
                decision=PublicationDecision.WITHHOLD,
                branch=branch,
                error=report.error,
            )
            result.artifact_path = self._write_artifact(request, result)
            return result

        changes = list(context.file_changes)
        if changes:
            validation: ValidationResult | None = ValidationPipeline(self.runner, self.config.validation).validate(
                changes
            )
            score = validation.score
        else:
            LOGGER.info("No file changes produced; nothing to validate.")
            validation = None
            score = 0.0

        decision = decide_publication(score, change_count=len(changes), threshold=threshold)
        LOGGER.info("Publication decision: %s (score %.2f, threshold %.2f)", decision.value, score, threshold)
        result = PipelineResult(
            run=report,
            validation=validation,
            decision=decision,
            labels=review_labels(validation, threshold=threshold) if validation is not None else [],
            report=render_validation_report(validation) if validation is not None else "",
            branch=branch,
        )
        result.artifact_path = self._write_artifact(request, result)
        return result

    def _write_artifact(self, request: ChangeRequest, result: PipelineResult) -> Path | None:
        logs_dir = self.config.logs_dir()
        if logs_dir is None:
            return None
        timestamp = datetime.now(timezone.utc)
        name = f"{timestamp.strftime('%Y%m%dT%H%M%S%fZ')}-{slugify(request.branch_description(), max_length=40)}.json"
        payload = {
            "timestamp": timestamp.isoformat(),
            "request": _json_safe(request),
            "branch": result.branch,
            "decision": result.decision.value,
            "labels": result.labels,
            "error": result.error,
            "run": {
                "success": result.run.success,
                "stop_reason": result.run.stop_reason.value,
                "iterations": result.run.iterations,
                "phase": result.run.final_state.phase.value,
                "progress": result.run.final_state.progress,
                "selections": _json_safe(result.run.selections),
                "history": _json_safe(result.run.context.history),
                "decisions": _json_safe(result.run.context.decisions),
            },
            "validation": result.validation.to_dict() if result.validation is not None else None,
        }
        try:
            logs_dir.mkdir(parents=True, exist_ok=True)
            path = logs_dir / name
            path.write_text(json.dumps(payload, indent=2, sort_keys=True, ensure_ascii=False), encoding="utf-8")
        except OSError as error:
            LOGGER.warning("Failed to write run artifact to %s: %s", logs_dir, error)
            return None
        LOGGER.info("Wrote run artifact %s", path)
        return path


def _json_safe(value: Any) -> Any:
    """Coerce dataclasses, enums and timestamps into JSON-serialisable values."""
    if value is None or isinstance(value, (bool, int, float)):
        return value
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, str):
        return value
    if isinstance(value, (datetime, Path)):
        return value.isoformat() if isinstance(value, datetime) else value.as_posix()
    if is_dataclass(value) and not isinstance(value, type):
        return _json_safe(asdict(value))
    if isinstance(value, dict):
        return {str(key): _json_safe(item) for key, item in value.items()}
    if isinstance(value, (list, tuple, set, frozenset)):
        return [_json_safe(item) for item in value]
    return str(value)


__all__ = ["Orchestrator", "PipelineResult"]
