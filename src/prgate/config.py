"""Loading and validation of ``prgate.yaml``."""

from __future__ import annotations

import shlex
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Mapping, Optional

import yaml
from pydantic import ValidationError
from pydantic.type_adapter import TypeAdapter

from .errors import ConfigError

DEFAULT_CONFIG_NAME = "prgate.yaml"

DEFAULT_TERMINAL_ACTIONS: tuple[str, ...] = (
    "evaluate-change-intent",
    "evaluate-repo-structure",
    "determine-pr-strategy",
    "generate-file-changes",
)

DEFAULT_LINT_EXTENSIONS: tuple[str, ...] = (".py", ".pyi", ".js", ".jsx", ".ts", ".tsx")


@dataclass(slots=True)
class RunConfig:
    max_iterations: int = 10
    max_action_attempts: Optional[int] = None
    confidence_threshold: float = 0.7
    terminal_action_types: list[str] = field(default_factory=lambda: list(DEFAULT_TERMINAL_ACTIONS))
    enable_parallel_actions: bool = False


@dataclass(slots=True)
class ValidationConfig:
    """External commands and timeouts (seconds) for the validation stages."""

    build_command: list[str] = field(default_factory=list)
    lint_command: list[str] = field(default_factory=list)
    test_command: list[str] = field(default_factory=list)
    build_timeout: float = 60.0
    lint_timeout: float = 30.0
    test_timeout: float = 120.0
    max_workers: int = 2
    lint_extensions: tuple[str, ...] = DEFAULT_LINT_EXTENSIONS


@dataclass(slots=True)
class AdvisorConfig:
    enabled: bool = False
    model: str = "gpt-5-mini"
    base_url: str = "https://api.openai.com/v1/responses"
    timeout: float = 60.0
    max_attempts: int = 2


@dataclass(slots=True)
class PathsConfig:
    workspace: str = "."
    logs: Optional[str] = None


@dataclass(slots=True)
class AppConfig:
    run: RunConfig = field(default_factory=RunConfig)
    validation: ValidationConfig = field(default_factory=ValidationConfig)
    advisor: AdvisorConfig = field(default_factory=AdvisorConfig)
    paths: PathsConfig = field(default_factory=PathsConfig)
    source: Optional[Path] = None

    def workspace_root(self) -> Path:
        root = Path(self.paths.workspace)
        if not root.is_absolute() and self.source is not None:
            root = self.source.parent / root
        return root.resolve()

    def logs_dir(self) -> Path | None:
        if not self.paths.logs:
            return None
        logs = Path(self.paths.logs)
        if not logs.is_absolute():
            logs = self.workspace_root() / logs
        return logs


def load_config(path: Path | str | None = None) -> AppConfig:
    """Read ``path`` (default ``prgate.yaml``) and return a validated :class:`AppConfig`.

    A missing default file yields the built-in defaults; a missing explicit
    path is an error.
    """
    explicit = path is not None
    config_path = Path(path) if path is not None else Path(DEFAULT_CONFIG_NAME)
    if not config_path.exists():
        if explicit:
            raise ConfigError(f"Config file not found: {config_path}")
        return AppConfig()

    try:
        with config_path.open("r", encoding="utf-8") as handle:
            data = yaml.safe_load(handle) or {}
    except yaml.YAMLError as error:
        raise ConfigError(f"Failed to parse config {config_path}: {error}") from error

    if not isinstance(data, Mapping):
        raise ConfigError("Configuration must be a mapping at the top level.")

    config = config_from_mapping(data)
    config.source = config_path.resolve()
    return config


def config_from_mapping(data: Mapping[str, Any]) -> AppConfig:
    """Coerce a raw mapping into :class:`AppConfig` and validate value ranges."""
    sections = {
        "run": (RunConfig, data.get("run")),
        "validation": (ValidationConfig, _normalise_commands(data.get("validation"))),
        "advisor": (AdvisorConfig, data.get("advisor")),
        "paths": (PathsConfig, data.get("paths")),
    }
    values: dict[str, Any] = {}
    for name, (section_type, raw) in sections.items():
        if raw is None:
            values[name] = section_type()
            continue
        if not isinstance(raw, Mapping):
            raise ConfigError(f"Config section '{name}' must be a mapping.")
        try:
            values[name] = TypeAdapter(section_type).validate_python(dict(raw))
        except ValidationError as error:
            raise ConfigError(f"Config section '{name}' did not validate: {error}") from error

    config = AppConfig(**values)
    validate_config(config)
    return config


def validate_config(config: AppConfig) -> None:
    """Raise :class:`ConfigError` when values are out of range."""
    run = config.run
    if not 0.0 <= run.confidence_threshold <= 1.0:
        raise ConfigError("run.confidence_threshold must be between 0 and 1.")
    if run.max_iterations < 1:
        raise ConfigError("run.max_iterations must be at least 1.")
    if run.max_action_attempts is not None and run.max_action_attempts < 1:
        raise ConfigError("run.max_action_attempts must be at least 1.")
    if run.enable_parallel_actions:
        raise ConfigError(
            "run.enable_parallel_actions is not supported: actions share one context and run sequentially."
        )
    validation = config.validation
    for name in ("build_timeout", "lint_timeout", "test_timeout"):
        if getattr(validation, name) <= 0:
            raise ConfigError(f"validation.{name} must be positive.")
    if validation.max_workers < 1:
        raise ConfigError("validation.max_workers must be at least 1.")
    if config.advisor.timeout <= 0:
        raise ConfigError("advisor.timeout must be positive.")


def _normalise_commands(raw: Any) -> Any:
    """Allow shell-style strings for command entries."""
    if not isinstance(raw, Mapping):
        return raw
    normalised = dict(raw)
    for key in ("build_command", "lint_command", "test_command"):
        value = normalised.get(key)
        if value is None:
            normalised[key] = []
        elif isinstance(value, str):
            normalised[key] = shlex.split(value)
    extensions = normalised.get("lint_extensions")
    if isinstance(extensions, (list, tuple)):
        normalised["lint_extensions"] = tuple(
            ext if str(ext).startswith(".") else f".{ext}" for ext in (str(item).lower() for item in extensions)
        )
    return normalised


__all__ = [
    "AdvisorConfig",
    "AppConfig",
    "DEFAULT_CONFIG_NAME",
    "DEFAULT_TERMINAL_ACTIONS",
    "PathsConfig",
    "RunConfig",
    "ValidationConfig",
    "config_from_mapping",
    "load_config",
    "validate_config",
]
