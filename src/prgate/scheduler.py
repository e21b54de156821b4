"""Action scheduler: ready-set computation, selection and the execution loop."""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Iterable, Literal, Optional

from .actions.base import Action, ActionRegistry, coerce_outcome
from .context import ActionResult, RunContext, RunPhase, RunState, utc_now
from .models.advisor import AdvisorError, ReasoningAdvisor
from .parsing import StructuredParseError, parse_structured
from .prompts import SELECTION_SYSTEM_MESSAGE, render_selection_prompt

LOGGER = logging.getLogger(__name__)

DEFAULT_MAX_ITERATIONS = 10

SelectionSource = Literal["single", "advisor", "priority"]


class StopReason(str, Enum):
    """Why the execution loop exited."""

    NO_READY_ACTIONS = "no-ready-actions"
    MAX_ITERATIONS = "max-iterations"
    TERMINAL_COMPLETE = "terminal-actions-complete"
    ERROR = "error"


@dataclass(slots=True)
class DecisionAlternative:
    action: str
    reasoning: str = ""
    confidence: float = 0.0


@dataclass(slots=True)
class ActionDecision:
    """Structured answer expected from the advisor when breaking ties."""

    action: str
    reasoning: str = ""
    confidence: float = 0.0
    alternatives: list[DecisionAlternative] = field(default_factory=list)


@dataclass(frozen=True, slots=True)
class SelectionDecision:
    """Record of how one iteration's action was chosen."""

    iteration: int
    action_type: str
    source: SelectionSource
    candidates: tuple[str, ...]
    reasoning: str = ""
    confidence: float | None = None


@dataclass(slots=True)
class RunReport:
    """Result of one scheduler run."""

    success: bool
    context: RunContext
    final_state: RunState
    stop_reason: StopReason
    iterations: int = 0
    selections: list[SelectionDecision] = field(default_factory=list)
    error: str | None = None


def ready_actions(
    registry: ActionRegistry,
    context: RunContext,
    *,
    max_attempts: int | None = None,
) -> list[Action]:
    """Return the actions eligible to run now, in registration order.

    An action is ready when it has no successful result yet, every dependency
    has one, and its guard accepts the context. Guards of completed actions
    are never evaluated. A failed action stays ready; only an explicit
    ``max_attempts`` withdraws one that already failed that many times.
    """
    completed = context.completed_types()
    ready: list[Action] = []
    for action in registry:
        if action.type in completed:
            continue
        if max_attempts is not None and len(context.results_for(action.type)) >= max_attempts:
            continue
        if not action.dependencies <= completed:
            continue
        try:
            accepted = bool(action.guard(context))
        except Exception as error:
            LOGGER.warning("Guard for action '%s' raised %s; treating as not ready.", action.type, error)
            accepted = False
        if accepted:
            ready.append(action)
    return ready


def priority_choice(ready: list[Action]) -> Action:
    """Highest priority wins; ``sorted`` is stable so registration order breaks ties."""
    return sorted(ready, key=lambda action: -action.priority)[0]


class Scheduler:
    """Runs registered actions one at a time against a single run context."""

    def __init__(
        self,
        registry: ActionRegistry,
        *,
        advisor: Optional[ReasoningAdvisor] = None,
        max_iterations: int = DEFAULT_MAX_ITERATIONS,
        max_attempts: int | None = None,
        terminal_action_types: Iterable[str] = (),
    ) -> None:
        if max_iterations < 1:
            raise ValueError("max_iterations must be at least 1")
        self._registry = registry
        self._advisor = advisor
        self._max_iterations = max_iterations
        self._max_attempts = max_attempts
        self._terminal = tuple(dict.fromkeys(terminal_action_types))
        unknown = [action_type for action_type in self._terminal if action_type not in registry]
        if unknown:
            LOGGER.warning("Terminal action types are not registered: %s", ", ".join(unknown))
        for action_type, missing in registry.missing_dependencies().items():
            LOGGER.warning(
                "Action '%s' depends on unregistered actions (%s); it will never become ready.",
                action_type,
                ", ".join(sorted(missing)),
            )

    @property
    def registry(self) -> ActionRegistry:
        return self._registry

    @property
    def terminal_action_types(self) -> tuple[str, ...]:
        return self._terminal

    def ready_actions(self, context: RunContext) -> list[Action]:
        return ready_actions(self._registry, context, max_attempts=self._max_attempts)

    def run(self, context: RunContext) -> RunReport:
        """Drive the loop until nothing is ready, the cap is hit, or terminal actions finish."""
        token = object()
        context.claim(token)
        selections: list[SelectionDecision] = []
        iteration = 0
        try:
            context.state.phase = RunPhase.ANALYZING
            context.state.started_at = utc_now()
            self._update_progress(context)

            while True:
                if self._terminal_complete(context):
                    stop_reason = StopReason.TERMINAL_COMPLETE
                    break
                if iteration >= self._max_iterations:
                    LOGGER.warning("Reached maximum iterations (%d); stopping.", self._max_iterations)
                    stop_reason = StopReason.MAX_ITERATIONS
                    break
                ready = self.ready_actions(context)
                if not ready:
                    LOGGER.info("No ready actions remain; stopping.")
                    stop_reason = StopReason.NO_READY_ACTIONS
                    break

                iteration += 1
                context.state.iteration = iteration
                selection = self._select(ready, context, iteration)
                selections.append(selection)
                action = self._registry.get(selection.action_type)
                LOGGER.info(
                    "Iteration %d/%d: running '%s' (%s)",
                    iteration,
                    self._max_iterations,
                    action.type,
                    selection.source,
                )
                context.state.current_action = action.type
                result = self._execute(action, context)
                context.record(result)
                if not result.success:
                    LOGGER.warning("Action '%s' failed: %s", action.type, result.error)
                self._update_progress(context)

            context.state.current_action = None
            context.state.phase = RunPhase.COMPLETED
            context.metadata["selections"] = selections
            return RunReport(
                success=True,
                context=context,
                final_state=context.state,
                stop_reason=stop_reason,
                iterations=iteration,
                selections=selections,
            )
        except Exception as error:
            LOGGER.exception("Scheduler run failed")
            context.state.phase = RunPhase.ERROR
            return RunReport(
                success=False,
                context=context,
                final_state=context.state,
                stop_reason=StopReason.ERROR,
                iterations=iteration,
                selections=selections,
                error=str(error) or error.__class__.__name__,
            )
        finally:
            context.release(token)

    # ------------------------------------------------------------------ selection
    def _select(self, ready: list[Action], context: RunContext, iteration: int) -> SelectionDecision:
        candidates = tuple(action.type for action in ready)
        if len(ready) == 1:
            return SelectionDecision(iteration, ready[0].type, "single", candidates)

        advisor = self._advisor
        if advisor is not None:
            decision = self._ask_advisor(advisor, ready, context)
            if decision is not None:
                return SelectionDecision(
                    iteration,
                    decision.action,
                    "advisor",
                    candidates,
                    reasoning=decision.reasoning,
                    confidence=decision.confidence,
                )

        chosen = priority_choice(ready)
        return SelectionDecision(
            iteration,
            chosen.type,
            "priority",
            candidates,
            reasoning=f"highest priority ({chosen.priority}) among {len(ready)} ready actions",
        )

    @staticmethod
    def _ask_advisor(advisor: ReasoningAdvisor, ready: list[Action], context: RunContext) -> ActionDecision | None:
        prompt = render_selection_prompt(ready, context)
        try:
            text = advisor.generate(prompt, SELECTION_SYSTEM_MESSAGE)
            decision = parse_structured(text, ActionDecision)
        except (AdvisorError, StructuredParseError) as error:
            LOGGER.warning("Advisor selection failed, falling back to priority: %s", error)
            return None
        except Exception as error:
            LOGGER.warning("Advisor raised unexpectedly, falling back to priority: %s", error)
            return None

        choice = decision.action.strip()
        if choice not in {action.type for action in ready}:
            LOGGER.warning("Advisor chose '%s' which is not ready; falling back to priority.", choice)
            return None
        decision.action = choice
        LOGGER.info("Advisor selected '%s' (confidence %.2f): %s", choice, decision.confidence, decision.reasoning)
        return decision

    # ------------------------------------------------------------------ execution
    @staticmethod
    def _execute(action: Action, context: RunContext) -> ActionResult:
        started = utc_now()
        clock = time.perf_counter()
        try:
            outcome = coerce_outcome(action.execute(context))
        except Exception as error:
            return ActionResult(
                action_type=action.type,
                success=False,
                error=str(error) or error.__class__.__name__,
                timestamp=started,
                duration_ms=int((time.perf_counter() - clock) * 1000),
            )
        return ActionResult(
            action_type=action.type,
            success=True,
            data=outcome.data,
            reasoning=outcome.reasoning,
            timestamp=started,
            duration_ms=int((time.perf_counter() - clock) * 1000),
        )

    # ------------------------------------------------------------------ progress
    def _progress_targets(self) -> tuple[str, ...]:
        return self._terminal or tuple(self._registry.types())

    def _terminal_complete(self, context: RunContext) -> bool:
        if not self._terminal:
            return False
        return context.count_completed(self._terminal) == len(self._terminal)

    def _update_progress(self, context: RunContext) -> None:
        targets = self._progress_targets()
        if not targets:
            context.state.progress = 0
            return
        done = context.count_completed(targets)
        context.state.progress = round(100 * done / len(targets))
        if done == 0:
            context.state.phase = RunPhase.ANALYZING
        elif done < len(targets):
            context.state.phase = RunPhase.PLANNING
        else:
            context.state.phase = RunPhase.EXECUTING


__all__ = [
    "ActionDecision",
    "DecisionAlternative",
    "RunReport",
    "Scheduler",
    "SelectionDecision",
    "StopReason",
    "priority_choice",
    "ready_actions",
]
