from __future__ import annotations

import os
import subprocess
import sys
import textwrap
from dataclasses import dataclass
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parents[1]
SRC = ROOT / "src"

if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))


@dataclass(slots=True)
class Workspace:
    """Synthetic project the validation pipeline and CLI run against."""

    root: Path
    config_path: Path
    request_path: Path

    def run_cli(self, *args: str) -> subprocess.CompletedProcess[str]:
        """Invoke ``python -m prgate.cli`` with the provided arguments."""

        env = os.environ.copy()
        pythonpath = str(SRC)
        if env.get("PYTHONPATH"):
            pythonpath = os.pathsep.join([pythonpath, env["PYTHONPATH"]])
        env["PYTHONPATH"] = pythonpath
        env.pop("PRGATE_API_KEY", None)
        env.pop("OPENAI_API_KEY", None)

        command = [sys.executable, "-m", "prgate.cli", *args]
        return subprocess.run(  # noqa: S603 - command constructed from known values
            command,
            cwd=self.root,
            env=env,
            capture_output=True,
            text=True,
            check=False,
        )


@pytest.fixture()
def workspace(tmp_path: Path) -> Workspace:
    """Create a tiny project with a config file and a change request."""

    root = tmp_path / "project"
    package = root / "src" / "tiny_app"
    package.mkdir(parents=True)
    (package / "__init__.py").write_text("", encoding="utf-8")
    (package / "calculator.py").write_text(
        textwrap.dedent(
            """
            def add(left, right):
                return left + right
            """
        ).lstrip(),
        encoding="utf-8",
    )
    (root / "settings.json").write_text('{"debug": false}\n', encoding="utf-8")

    python = sys.executable
    config_path = root / "prgate.yaml"
    config_path.write_text(
        textwrap.dedent(
            f"""
            run:
              max_iterations: 10
              confidence_threshold: 0.7
            validation:
              build_command: ["{python}", "-c", "print('build ok')"]
              test_command: ["{python}", "-c", "print('tests ok')"]
              build_timeout: 30
              test_timeout: 30
            paths:
              workspace: .
              logs: logs
            """
        ).lstrip(),
        encoding="utf-8",
    )

    request_path = root / "request.yaml"
    request_path.write_text(
        textwrap.dedent(
            """
            title: Rename add parameters
            description: Use clearer parameter names in the calculator.
            changes:
              - path: src/tiny_app/calculator.py
                summary: Rename parameters
                component: calculator
                new_content: |
                  def add(a, b):
                      return a + b
            """
        ).lstrip(),
        encoding="utf-8",
    )
    return Workspace(root=root, config_path=config_path, request_path=request_path)
