"""Action contract and the registry that maps action types to their values."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Callable, Iterable, Iterator

from ..errors import RegistryError

if TYPE_CHECKING:
    from ..context import RunContext


Guard = Callable[["RunContext"], bool]


@dataclass(slots=True)
class ActionOutcome:
    """Payload returned by an action's ``execute`` callable."""

    data: Any = None
    reasoning: str | None = None


Executor = Callable[["RunContext"], "ActionOutcome | Mapping[str, Any] | None"]


def always(_context: "RunContext") -> bool:
    return True


@dataclass(frozen=True, slots=True)
class Action:
    """Named unit of work with a priority, prerequisites and a guard predicate."""

    type: str
    execute: Executor
    priority: int = 0
    dependencies: frozenset[str] = field(default_factory=frozenset)
    guard: Guard = always
    description: str = ""

    def __post_init__(self) -> None:
        if not isinstance(self.type, str) or not self.type.strip():
            raise RegistryError("Action type must be a non-empty string.")
        if not isinstance(self.dependencies, frozenset):
            object.__setattr__(self, "dependencies", frozenset(self.dependencies))
        if self.type in self.dependencies:
            raise RegistryError(f"Action '{self.type}' cannot depend on itself.")


def coerce_outcome(raw: Any) -> ActionOutcome:
    """Normalise whatever ``execute`` returned into an :class:`ActionOutcome`."""
    if raw is None:
        return ActionOutcome()
    if isinstance(raw, ActionOutcome):
        return raw
    if isinstance(raw, Mapping) and set(raw.keys()) <= {"data", "reasoning"}:
        reasoning = raw.get("reasoning")
        return ActionOutcome(data=raw.get("data"), reasoning=str(reasoning) if reasoning is not None else None)
    return ActionOutcome(data=raw)


class ActionRegistry:
    """Ordered dispatch table keyed by action type.

    Registration order is preserved and used to break priority ties.
    """

    def __init__(self, actions: Iterable[Action] = ()) -> None:
        self._actions: dict[str, Action] = {}
        for action in actions:
            self.register(action)

    def register(self, action: Action) -> Action:
        if action.type in self._actions:
            raise RegistryError(f"Action '{action.type}' is already registered.")
        self._actions[action.type] = action
        return action

    def get(self, action_type: str) -> Action:
        try:
            return self._actions[action_type]
        except KeyError as error:
            known = ", ".join(self._actions) or "none"
            raise RegistryError(f"Unknown action '{action_type}'. Registered: {known}") from error

    def order_of(self, action_type: str) -> int:
        for index, key in enumerate(self._actions):
            if key == action_type:
                return index
        raise RegistryError(f"Unknown action '{action_type}'.")

    def types(self) -> list[str]:
        return list(self._actions)

    def missing_dependencies(self) -> dict[str, set[str]]:
        """Return dependencies that name no registered action, keyed by action type."""
        missing: dict[str, set[str]] = {}
        for action in self._actions.values():
            unknown = {dep for dep in action.dependencies if dep not in self._actions}
            if unknown:
                missing[action.type] = unknown
        return missing

    def __iter__(self) -> Iterator[Action]:
        return iter(list(self._actions.values()))

    def __len__(self) -> int:
        return len(self._actions)

    def __contains__(self, action_type: object) -> bool:
        return action_type in self._actions


__all__ = ["Action", "ActionOutcome", "ActionRegistry", "Executor", "Guard", "always", "coerce_outcome"]
