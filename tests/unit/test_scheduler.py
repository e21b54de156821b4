from __future__ import annotations

import json
from typing import Any

import pytest

from prgate.actions import Action, ActionOutcome, ActionRegistry
from prgate.context import RunContext, RunPhase
from prgate.errors import PrgateError, RegistryError
from prgate.models import AdvisorTransportError, CannedAdvisor, FailingAdvisor
from prgate.scheduler import Scheduler, StopReason, priority_choice, ready_actions


def _recorder(log: list[str], name: str, result: Any = None):
    def execute(_context: RunContext) -> Any:
        log.append(name)
        return result

    return execute


def _failing(log: list[str], name: str):
    def execute(_context: RunContext) -> Any:
        log.append(name)
        raise ValueError(f"{name} exploded")

    return execute


def _decision(action: str, confidence: float = 0.9) -> str:
    return json.dumps({"action": action, "reasoning": "because", "confidence": confidence, "alternatives": []})


def test_dependency_waits_for_guard_and_success() -> None:
    log: list[str] = []
    gate = {"open": False}
    registry = ActionRegistry(
        [
            Action("a", _recorder(log, "a"), priority=100, dependencies={"b"}),
            Action("b", _recorder(log, "b"), priority=10, guard=lambda _ctx: gate["open"]),
        ]
    )
    scheduler = Scheduler(registry)
    context = RunContext()

    report = scheduler.run(context)
    assert log == []
    assert report.stop_reason == StopReason.NO_READY_ACTIONS
    assert report.final_state.phase == RunPhase.COMPLETED

    gate["open"] = True
    scheduler.run(context)
    assert log == ["b", "a"]


def test_priority_fallback_is_deterministic_without_advisor() -> None:
    for _ in range(3):
        log: list[str] = []
        registry = ActionRegistry(
            [
                Action("low", _recorder(log, "low"), priority=80),
                Action("high", _recorder(log, "high"), priority=100),
                Action("mid", _recorder(log, "mid"), priority=90),
            ]
        )
        report = Scheduler(registry).run(RunContext())
        assert log == ["high", "mid", "low"]
        assert [item.source for item in report.selections] == ["priority", "priority", "single"]


def test_priority_ties_follow_registration_order() -> None:
    registry = ActionRegistry(
        [
            Action("first", _recorder([], "first"), priority=5),
            Action("second", _recorder([], "second"), priority=5),
        ]
    )
    assert priority_choice(list(registry)).type == "first"


def test_failing_action_is_contained_and_independent_actions_run() -> None:
    log: list[str] = []
    registry = ActionRegistry(
        [
            Action("broken", _failing(log, "broken"), priority=100),
            Action("downstream", _recorder(log, "downstream"), priority=90, dependencies={"broken"}),
            Action("independent", _recorder(log, "independent"), priority=50),
        ]
    )
    context = RunContext()
    report = Scheduler(registry, max_attempts=2).run(context)

    assert report.success
    assert report.final_state.phase == RunPhase.COMPLETED
    assert "independent" in log
    assert "downstream" not in log
    failures = [entry for entry in context.history if not entry.success]
    assert [entry.error for entry in failures] == ["broken exploded", "broken exploded"]
    assert report.stop_reason == StopReason.NO_READY_ACTIONS
    assert context.has_succeeded("independent")


def test_completed_actions_are_never_reevaluated() -> None:
    calls = {"guard": 0, "execute": 0}

    def guard(_context: RunContext) -> bool:
        calls["guard"] += 1
        return True

    def execute(_context: RunContext) -> None:
        calls["execute"] += 1

    registry = ActionRegistry([Action("once", execute, guard=guard)])
    scheduler = Scheduler(registry)
    context = RunContext()

    scheduler.run(context)
    scheduler.run(context)
    scheduler.run(context)

    assert calls == {"guard": 1, "execute": 1}
    assert len(context.history) == 1


def test_advisor_breaks_ties_among_ready_actions() -> None:
    log: list[str] = []
    registry = ActionRegistry(
        [
            Action("high", _recorder(log, "high"), priority=100),
            Action("low", _recorder(log, "low"), priority=1),
        ]
    )
    advisor = CannedAdvisor([f"```json\n{_decision('low')}\n```"])
    report = Scheduler(registry, advisor=advisor).run(RunContext())

    assert log == ["low", "high"]
    assert report.selections[0].source == "advisor"
    assert report.selections[0].confidence == pytest.approx(0.9)
    # Only one action was left for the second iteration.
    assert len(advisor.calls) == 1
    prompt, system_message = advisor.calls[0]
    assert "- high:" in prompt and "- low:" in prompt
    assert system_message


@pytest.mark.parametrize(
    "reply",
    [
        "I think you should run low first.",
        _decision("not-registered"),
        json.dumps({"reasoning": "missing action key"}),
        AdvisorTransportError("timeout"),
    ],
)
def test_bad_advisor_answers_fall_back_to_priority(reply: Any) -> None:
    log: list[str] = []
    registry = ActionRegistry(
        [
            Action("high", _recorder(log, "high"), priority=100),
            Action("low", _recorder(log, "low"), priority=1),
        ]
    )
    report = Scheduler(registry, advisor=CannedAdvisor([reply])).run(RunContext())

    assert log == ["high", "low"]
    assert report.selections[0].source == "priority"
    assert report.success


def test_failing_advisor_never_surfaces_errors() -> None:
    log: list[str] = []
    advisor = FailingAdvisor()
    registry = ActionRegistry(
        [
            Action("a", _recorder(log, "a"), priority=3),
            Action("b", _recorder(log, "b"), priority=2),
            Action("c", _recorder(log, "c"), priority=1),
        ]
    )
    report = Scheduler(registry, advisor=advisor).run(RunContext())

    assert report.success
    assert log == ["a", "b", "c"]
    assert advisor.calls == 2


def test_single_ready_action_skips_advisor() -> None:
    advisor = CannedAdvisor()
    registry = ActionRegistry(
        [
            Action("first", _recorder([], "first")),
            Action("second", _recorder([], "second"), dependencies={"first"}),
        ]
    )
    report = Scheduler(registry, advisor=advisor).run(RunContext())

    assert advisor.calls == []
    assert [item.source for item in report.selections] == ["single", "single"]


def test_iteration_cap_stops_run_without_error() -> None:
    log: list[str] = []
    registry = ActionRegistry(
        [Action(f"step-{index}", _recorder(log, f"step-{index}"), priority=-index) for index in range(5)]
    )
    report = Scheduler(registry, max_iterations=2).run(RunContext())

    assert report.success
    assert report.stop_reason == StopReason.MAX_ITERATIONS
    assert report.iterations == 2
    assert log == ["step-0", "step-1"]
    assert report.final_state.phase == RunPhase.COMPLETED


def test_terminal_actions_stop_the_loop_and_drive_progress() -> None:
    log: list[str] = []
    registry = ActionRegistry(
        [
            Action("analyse", _recorder(log, "analyse"), priority=10),
            Action("publish", _recorder(log, "publish"), priority=5, dependencies={"analyse"}),
            Action("cleanup", _recorder(log, "cleanup"), priority=1),
        ]
    )
    context = RunContext()
    report = Scheduler(registry, terminal_action_types=["analyse", "publish"]).run(context)

    assert report.stop_reason == StopReason.TERMINAL_COMPLETE
    assert log == ["analyse", "publish"]
    assert context.state.progress == 100
    assert context.state.phase == RunPhase.COMPLETED


def test_progress_reflects_partial_terminal_completion() -> None:
    registry = ActionRegistry(
        [
            Action("ok", _recorder([], "ok"), priority=10),
            Action("boom", _failing([], "boom"), priority=5),
        ]
    )
    context = RunContext()
    Scheduler(registry, terminal_action_types=["ok", "boom"]).run(context)

    assert context.state.progress == 50
    assert context.state.phase == RunPhase.COMPLETED


def test_outcome_data_and_reasoning_are_recorded() -> None:
    registry = ActionRegistry(
        [
            Action("outcome", lambda _ctx: ActionOutcome(data=[1, 2], reasoning="two items")),
            Action("mapping", lambda _ctx: {"data": "x", "reasoning": "mapped"}, priority=-1),
        ]
    )
    context = RunContext()
    Scheduler(registry).run(context)

    outcome = context.latest_success("outcome")
    mapping = context.latest_success("mapping")
    assert outcome is not None and outcome.data == [1, 2] and outcome.reasoning == "two items"
    assert mapping is not None and mapping.data == "x" and mapping.reasoning == "mapped"


def test_raising_guard_is_treated_as_not_ready() -> None:
    def guard(_context: RunContext) -> bool:
        raise KeyError("missing")

    registry = ActionRegistry([Action("guarded", _recorder([], "guarded"), guard=guard)])
    assert ready_actions(registry, RunContext()) == []


def test_scheduler_logic_failure_sets_error_phase() -> None:
    class ExplodingRegistry(ActionRegistry):
        def get(self, action_type: str) -> Action:
            raise RegistryError("lookup broke")

    registry = ExplodingRegistry([Action("a", _recorder([], "a"))])
    context = RunContext()
    report = Scheduler(registry).run(context)

    assert not report.success
    assert report.stop_reason == StopReason.ERROR
    assert report.error == "lookup broke"
    assert context.state.phase == RunPhase.ERROR


def test_context_cannot_be_shared_by_concurrent_runs() -> None:
    context = RunContext()
    other = object()
    context.claim(other)
    with pytest.raises(PrgateError):
        Scheduler(ActionRegistry()).run(context)
    context.release(other)
    assert Scheduler(ActionRegistry()).run(context).success


def test_registry_rejects_duplicates_and_self_dependencies() -> None:
    registry = ActionRegistry([Action("a", _recorder([], "a"))])
    with pytest.raises(RegistryError):
        registry.register(Action("a", _recorder([], "a")))
    with pytest.raises(RegistryError):
        Action("loop", _recorder([], "loop"), dependencies={"loop"})
    with pytest.raises(RegistryError):
        registry.get("missing")


def test_failed_action_is_retried_until_attempts_run_out() -> None:
    log: list[str] = []
    registry = ActionRegistry([Action("flaky", _failing(log, "flaky"))])

    Scheduler(registry, max_attempts=3).run(RunContext())
    assert log == ["flaky"] * 3

    log.clear()
    report = Scheduler(registry, max_attempts=None, max_iterations=4).run(RunContext())
    assert log == ["flaky"] * 4
    assert report.stop_reason == StopReason.MAX_ITERATIONS


def test_failed_action_stays_ready_by_default() -> None:
    attempts: list[int] = []

    def flaky(_context: RunContext) -> str:
        attempts.append(len(attempts) + 1)
        if len(attempts) < 3:
            raise ValueError(f"attempt {len(attempts)} failed")
        return "done"

    registry = ActionRegistry([Action("flaky", flaky)])
    context = RunContext()
    report = Scheduler(registry, terminal_action_types=["flaky"]).run(context)

    assert attempts == [1, 2, 3]
    assert [entry.success for entry in context.history] == [False, False, True]
    assert context.has_succeeded("flaky")
    assert report.stop_reason == StopReason.TERMINAL_COMPLETE
    assert context.state.progress == 100
