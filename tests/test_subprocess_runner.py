from __future__ import annotations

import sys
from pathlib import Path

import pytest

from prgate.validation import CommandError, SubprocessRunner


def test_runs_inside_workspace_and_captures_output(tmp_path: Path) -> None:
    (tmp_path / "marker.txt").write_text("hello", encoding="utf-8")
    runner = SubprocessRunner(tmp_path)
    result = runner.run_command(
        [sys.executable, "-c", "import pathlib; print(pathlib.Path('marker.txt').read_text())"],
        timeout_seconds=30,
    )

    assert result.ok
    assert result.stdout.strip() == "hello"
    assert runner.read_file("marker.txt") == "hello"


def test_nonzero_exit_is_reported_not_raised(tmp_path: Path) -> None:
    result = SubprocessRunner(tmp_path).run_command(
        [sys.executable, "-c", "import sys; sys.stderr.write('bad things\\n'); sys.exit(3)"],
        timeout_seconds=30,
    )

    assert result.exit_code == 3
    assert not result.ok
    assert result.first_line() == "bad things"


def test_timeout_kills_the_process(tmp_path: Path) -> None:
    result = SubprocessRunner(tmp_path).run_command(
        [sys.executable, "-c", "import time; time.sleep(30)"],
        timeout_seconds=0.5,
    )

    assert result.timed_out
    assert not result.ok
    assert "timed out" in result.first_line()


def test_extra_environment_is_passed_through(tmp_path: Path) -> None:
    runner = SubprocessRunner(tmp_path, env={"PRGATE_MARKER": "42"})
    result = runner.run_command(
        [sys.executable, "-c", "import os; print(os.environ['PRGATE_MARKER'])"],
        timeout_seconds=30,
    )

    assert result.stdout.strip() == "42"


def test_missing_program_and_empty_command_raise(tmp_path: Path) -> None:
    runner = SubprocessRunner(tmp_path)
    with pytest.raises(CommandError):
        runner.run_command(["definitely-not-installed-prgate-tool"], timeout_seconds=5)
    with pytest.raises(CommandError):
        runner.run_command([], timeout_seconds=5)
    with pytest.raises(FileNotFoundError):
        runner.read_file("absent.txt")
