"""Command-line entry point for prgate."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, List, Optional

import typer
import yaml

from .config import DEFAULT_CONFIG_NAME, AppConfig, load_config
from .errors import ConfigError, PrgateError
from .gate import PublicationDecision, render_validation_report
from .models import ReasoningAdvisor, ResponsesAdvisor
from .orchestrator import Orchestrator
from .structured import ChangeRequest, FileChange
from .validation import SubprocessRunner, ValidationPipeline
from .workflow import build_default_registry

APP_HELP = "Turn proposed file changes into a validated pull-request candidate."
WITHHELD_EXIT_CODE = 2

app = typer.Typer(help=APP_HELP)


def _configure_logging(level: str) -> None:
    numeric = logging.getLevelName(level.upper())
    if not isinstance(numeric, int):
        raise typer.BadParameter(f"Unknown log level: {level}", param_hint="--log-level")
    logging.basicConfig(level=numeric, format="%(asctime)s %(levelname)s %(name)s: %(message)s")


def _load_app_config(config: Optional[str]) -> AppConfig:
    try:
        return load_config(config)
    except ConfigError as error:
        typer.echo(f"Configuration error: {error}")
        raise typer.Exit(code=1) from error


def _load_request(path: Path) -> ChangeRequest:
    if not path.exists():
        raise typer.BadParameter(f"Change request not found: {path}")
    try:
        text = path.read_text(encoding="utf-8")
        data: Any = json.loads(text) if path.suffix.lower() == ".json" else yaml.safe_load(text)
    except (json.JSONDecodeError, yaml.YAMLError) as error:
        typer.echo(f"Failed to parse change request: {error}")
        raise typer.Exit(code=1) from error
    if not isinstance(data, dict):
        typer.echo("Change request must be a mapping at the top level.")
        raise typer.Exit(code=1)
    try:
        return ChangeRequest.from_payload(data)
    except PrgateError as error:
        typer.echo(str(error))
        raise typer.Exit(code=1) from error


def _build_advisor(config: AppConfig, *, use_advisor: bool) -> Optional[ReasoningAdvisor]:
    if not (use_advisor and config.advisor.enabled):
        return None
    try:
        return ResponsesAdvisor(
            model=config.advisor.model,
            base_url=config.advisor.base_url,
            timeout=config.advisor.timeout,
            max_attempts=config.advisor.max_attempts,
        )
    except ValueError as error:
        typer.echo(f"Advisor unavailable ({error}); continuing with local heuristics.")
        return None


@app.command()
def run(
    request: Path = typer.Argument(..., help="Change request file (YAML or JSON)."),
    config: Optional[str] = typer.Option(
        None,
        "--config",
        "-c",
        help=f"Path to the configuration file (defaults to {DEFAULT_CONFIG_NAME} when present).",
    ),
    use_advisor: bool = typer.Option(
        True,
        "--use-advisor/--no-use-advisor",
        help="Consult the configured reasoning advisor (requires an API key).",
    ),
    dry_run: bool = typer.Option(
        False,
        "--dry-run",
        help="Only schedule the workflow actions; skip validation and the publication gate.",
    ),
    log_level: str = typer.Option("WARNING", "--log-level", help="Logging level."),
) -> None:
    """Schedule the workflow for REQUEST, validate the result and decide publication."""
    _configure_logging(log_level)
    app_config = _load_app_config(config)
    change_request = _load_request(request)
    orchestrator = Orchestrator(app_config, advisor=_build_advisor(app_config, use_advisor=use_advisor))

    if dry_run:
        report = orchestrator.plan(change_request)
        for selection in report.selections:
            typer.echo(f"{selection.iteration}. {selection.action_type} ({selection.source})")
        typer.echo(f"Stopped: {report.stop_reason.value}; phase {report.final_state.phase.value}.")
        if not report.success:
            typer.echo(f"Run failed: {report.error}")
            raise typer.Exit(code=1)
        return

    result = orchestrator.run(change_request)
    if result.error:
        typer.echo(f"Run failed: {result.error}")
        raise typer.Exit(code=1)

    failed = [entry for entry in result.run.context.history if not entry.success]
    typer.echo(f"Branch: {result.branch}")
    typer.echo(
        f"Actions: {len(result.run.context.completed_types())} completed, {len(failed)} failed "
        f"({result.run.stop_reason.value})."
    )
    for entry in failed:
        typer.echo(f"- {entry.action_type}: {entry.error}")
    if result.report:
        typer.echo(result.report)
    if result.labels:
        typer.echo(f"Labels: {', '.join(result.labels)}")
    typer.echo(f"Decision: {result.decision.value}")
    if result.artifact_path is not None:
        typer.echo(f"Run artifact: {result.artifact_path}")
    if result.decision is PublicationDecision.WITHHOLD:
        raise typer.Exit(code=WITHHELD_EXIT_CODE)


@app.command()
def validate(
    paths: List[str] = typer.Argument(..., help="Workspace-relative files to validate as modified."),
    config: Optional[str] = typer.Option(
        None,
        "--config",
        "-c",
        help=f"Path to the configuration file (defaults to {DEFAULT_CONFIG_NAME} when present).",
    ),
    log_level: str = typer.Option("WARNING", "--log-level", help="Logging level."),
) -> None:
    """Run the validation pipeline over files already present in the workspace."""
    _configure_logging(log_level)
    app_config = _load_app_config(config)
    runner = SubprocessRunner(app_config.workspace_root())
    changes = [FileChange(path=path) for path in paths]
    result = ValidationPipeline(runner, app_config.validation).validate(changes)
    typer.echo(render_validation_report(result))
    if result.score < app_config.run.confidence_threshold:
        raise typer.Exit(code=1)


@app.command()
def actions(
    config: Optional[str] = typer.Option(
        None,
        "--config",
        "-c",
        help=f"Path to the configuration file (defaults to {DEFAULT_CONFIG_NAME} when present).",
    ),
) -> None:
    """List the default workflow actions in registration order."""
    app_config = _load_app_config(config)
    registry = build_default_registry(SubprocessRunner(app_config.workspace_root()))
    terminal = set(app_config.run.terminal_action_types)
    for action in registry:
        deps = ", ".join(sorted(action.dependencies)) or "-"
        marker = " [terminal]" if action.type in terminal else ""
        typer.echo(f"{action.type} (priority {action.priority}; depends on {deps}){marker}")
        if action.description:
            typer.echo(f"    {action.description}")


if __name__ == "__main__":  # pragma: no cover - manual invocation
    app()
