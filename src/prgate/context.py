"""Shared run context threaded through every action and the validator."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Iterable

from .errors import PrgateError
from .structured import ChangeRequest, FileChange, FileContext


def utc_now() -> datetime:
    """Return the current UTC timestamp."""
    return datetime.now(timezone.utc)


class RunPhase(str, Enum):
    """Lifecycle phases of a single scheduler run."""

    ANALYZING = "analyzing"
    PLANNING = "planning"
    EXECUTING = "executing"
    COMPLETED = "completed"
    ERROR = "error"


@dataclass(frozen=True, slots=True)
class ActionResult:
    """Outcome of one execution attempt of an action."""

    action_type: str
    success: bool
    data: Any = None
    error: str | None = None
    reasoning: str | None = None
    timestamp: datetime = field(default_factory=utc_now)
    duration_ms: int = 0


@dataclass(slots=True)
class RunState:
    """Run metadata updated by the scheduler between iterations."""

    phase: RunPhase = RunPhase.ANALYZING
    progress: int = 0
    current_action: str | None = None
    iteration: int = 0
    started_at: datetime | None = None


class RunContext:
    """Mutable aggregate owned by exactly one scheduler run.

    ``history`` is append-only: it is exposed as a tuple and only
    :meth:`record` may add to it. Actions read the history and may write
    ``decisions``, ``file_contexts``, ``file_changes`` and ``metadata``.
    """

    def __init__(
        self,
        request: ChangeRequest | None = None,
        *,
        decisions: dict[str, Any] | None = None,
        metadata: dict[str, Any] | None = None,
    ) -> None:
        self.request = request or ChangeRequest()
        self.decisions: dict[str, Any] = dict(decisions or {})
        self.metadata: dict[str, Any] = dict(metadata or {})
        self.state = RunState()
        self.file_contexts: list[FileContext] = []
        self.file_changes: list[FileChange] = []
        self._history: list[ActionResult] = []
        self._owner: object | None = None

    @property
    def history(self) -> tuple[ActionResult, ...]:
        return tuple(self._history)

    def record(self, result: ActionResult) -> None:
        """Append ``result`` to the run history."""
        self._history.append(result)

    def has_succeeded(self, action_type: str) -> bool:
        """Return True once any successful result exists for ``action_type``."""
        return any(entry.success and entry.action_type == action_type for entry in self._history)

    def completed_types(self) -> set[str]:
        return {entry.action_type for entry in self._history if entry.success}

    def results_for(self, action_type: str) -> list[ActionResult]:
        return [entry for entry in self._history if entry.action_type == action_type]

    def latest_success(self, action_type: str) -> ActionResult | None:
        for entry in reversed(self._history):
            if entry.success and entry.action_type == action_type:
                return entry
        return None

    def count_completed(self, action_types: Iterable[str]) -> int:
        completed = self.completed_types()
        return sum(1 for action_type in action_types if action_type in completed)

    # Ownership is claimed by the scheduler for the duration of one run.
    def claim(self, owner: object) -> None:
        if self._owner is not None and self._owner is not owner:
            raise PrgateError("RunContext is already owned by another run.")
        self._owner = owner

    def release(self, owner: object) -> None:
        if self._owner is owner:
            self._owner = None

    def __repr__(self) -> str:
        return (
            f"RunContext(phase={self.state.phase.value!r}, progress={self.state.progress}, "
            f"history={len(self._history)}, changes={len(self.file_changes)})"
        )


__all__ = ["ActionResult", "RunContext", "RunPhase", "RunState", "utc_now"]
