"""File and command access used by the validation stages."""

from __future__ import annotations

import logging
import os
import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import Protocol, Sequence, runtime_checkable

from ..errors import PrgateError

LOGGER = logging.getLogger(__name__)


class CommandError(PrgateError):
    """Raised when a command cannot be started at all."""


@dataclass(slots=True)
class CommandResult:
    """Exit status and captured output of one command invocation."""

    exit_code: int
    stdout: str = ""
    stderr: str = ""
    timed_out: bool = False

    @property
    def ok(self) -> bool:
        return self.exit_code == 0 and not self.timed_out

    def first_line(self) -> str:
        text = self.stderr.strip() or self.stdout.strip()
        return text.splitlines()[0] if text else ""


@runtime_checkable
class CommandRunner(Protocol):
    def read_file(self, path: str) -> str:
        ...

    def run_command(self, argv: Sequence[str], timeout_seconds: float) -> CommandResult:
        ...


class SubprocessRunner:
    """Runs commands with :mod:`subprocess` inside a workspace directory."""

    def __init__(self, root: Path | str = ".", *, env: dict[str, str] | None = None) -> None:
        self.root = Path(root).resolve()
        self._env = env

    def _resolve(self, path: str) -> Path:
        candidate = Path(path)
        if not candidate.is_absolute():
            candidate = self.root / candidate
        return candidate

    def read_file(self, path: str) -> str:
        return self._resolve(path).read_text(encoding="utf-8")

    def run_command(self, argv: Sequence[str], timeout_seconds: float) -> CommandResult:
        command = [str(part) for part in argv]
        if not command:
            raise CommandError("Cannot run an empty command.")
        env = None
        if self._env:
            env = os.environ.copy()
            env.update(self._env)
        LOGGER.debug("Running %s (timeout %.0fs) in %s", command, timeout_seconds, self.root)
        try:
            process = subprocess.run(  # noqa: S603  # command comes from local configuration
                command,
                cwd=self.root,
                env=env,
                check=False,
                capture_output=True,
                text=True,
                timeout=timeout_seconds,
            )
        except subprocess.TimeoutExpired as error:
            # subprocess.run kills the child before re-raising.
            return CommandResult(
                exit_code=-1,
                stdout=_decode(error.stdout),
                stderr=_decode(error.stderr) or f"Command timed out after {timeout_seconds:g}s",
                timed_out=True,
            )
        except OSError as error:
            raise CommandError(f"Failed to start {command[0]}: {error}") from error
        return CommandResult(exit_code=process.returncode, stdout=process.stdout, stderr=process.stderr)


def _decode(value: bytes | str | None) -> str:
    if value is None:
        return ""
    if isinstance(value, bytes):
        return value.decode("utf-8", errors="replace")
    return value


__all__ = ["CommandError", "CommandResult", "CommandRunner", "SubprocessRunner"]
