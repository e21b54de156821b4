from __future__ import annotations

import json
from typing import Sequence

from prgate.context import RunContext
from prgate.models import CannedAdvisor, FailingAdvisor
from prgate.scheduler import Scheduler, StopReason
from prgate.structured import ChangeRequest, ProposedChange
from prgate.validation import CommandResult
from prgate.workflow import (
    ChangeIntent,
    ChangeIntentAnalysis,
    PRGroup,
    PRStrategy,
    WorkflowActions,
    DETERMINE_PR_STRATEGY,
    EVALUATE_CHANGE_INTENT,
    EVALUATE_REPO_STRUCTURE,
    GENERATE_FILE_CHANGES,
    RETRIEVE_FILE_CONTEXT,
    build_default_registry,
    change_intents,
    pr_strategy,
)

TERMINAL = (EVALUATE_CHANGE_INTENT, EVALUATE_REPO_STRUCTURE, DETERMINE_PR_STRATEGY, GENERATE_FILE_CHANGES)


class MemoryRunner:
    def __init__(self, files: dict[str, str]) -> None:
        self.files = files

    def read_file(self, path: str) -> str:
        if path not in self.files:
            raise FileNotFoundError(path)
        return self.files[path]

    def run_command(self, argv: Sequence[str], timeout_seconds: float) -> CommandResult:
        return CommandResult(exit_code=0)


def _request() -> ChangeRequest:
    return ChangeRequest(
        title="Tidy helpers",
        changes=[
            ProposedChange(path="src/a.py", summary="Rename", component="a", new_content="A = 2\n"),
            ProposedChange(path="src/b.py", summary="Docs only", component="b"),
            ProposedChange(path="src/c.py", summary="Add module", action="create", new_content="C = 3\n"),
        ],
    )


def _run(advisor=None) -> tuple[RunContext, object]:
    runner = MemoryRunner({"src/a.py": "A = 1\n", "src/b.py": "B = 1\n"})
    registry = build_default_registry(runner, advisor)
    context = RunContext(_request())
    report = Scheduler(registry, advisor=advisor, terminal_action_types=TERMINAL).run(context)
    return context, report


def test_default_workflow_runs_in_priority_order_without_advisor() -> None:
    context, report = _run()

    assert report.success
    assert report.stop_reason == StopReason.TERMINAL_COMPLETE
    assert [entry.action_type for entry in context.history] == [
        RETRIEVE_FILE_CONTEXT,
        EVALUATE_CHANGE_INTENT,
        EVALUATE_REPO_STRUCTURE,
        DETERMINE_PR_STRATEGY,
        GENERATE_FILE_CHANGES,
    ]
    assert context.state.progress == 100


def test_file_contexts_and_generated_changes() -> None:
    context, _ = _run()

    contexts = {item.path: item for item in context.file_contexts}
    assert contexts["src/a.py"].content == "A = 1\n"
    assert contexts["src/c.py"].confidence == 1.0 and contexts["src/c.py"].content == ""

    changes = {change.path: change for change in context.file_changes}
    assert set(changes) == {"src/a.py", "src/c.py"}
    assert changes["src/a.py"].old_content == "A = 1\n"
    assert changes["src/c.py"].action == "create"
    assert context.decisions[GENERATE_FILE_CHANGES]["skipped"] == ["src/b.py"]


def test_unreadable_file_gets_zero_confidence() -> None:
    runner = MemoryRunner({})
    context = RunContext(ChangeRequest(changes=[ProposedChange(path="gone.py", new_content="x = 1\n")]))
    Scheduler(build_default_registry(runner), terminal_action_types=TERMINAL).run(context)

    assert context.file_contexts[0].confidence == 0.0
    assert context.has_succeeded(GENERATE_FILE_CHANGES)


def test_failing_advisor_falls_back_to_local_heuristics() -> None:
    advisor = FailingAdvisor()
    context, report = _run(advisor)

    assert report.success
    assert [intent.id for intent in change_intents(context)] == ["change-1", "change-2", "change-3"]
    assert advisor.calls > 0
    assert context.has_succeeded(GENERATE_FILE_CHANGES)


def test_advisor_drafts_are_used_when_valid() -> None:
    intents = {
        "change_intents": [
            {"id": "change-1", "description": "rename", "path": "src/a.py", "component": "a"},
            {"id": "change-2", "description": "docs", "path": "src/b.py", "component": "b"},
            {"id": "change-3", "description": "module", "path": "src/c.py", "component": "c"},
        ],
        "summary": "three edits",
    }
    strategy = {
        "pr_groups": [
            {"id": "pr-1", "change_intents": ["change-3"], "title": "New module first"},
        ],
        "reasoning": "module lands first",
    }

    def reply(prompt: str, _system: str | None) -> str:
        if "Break the proposed changes" in prompt:
            return json.dumps(intents)
        if "Group the change intents" in prompt:
            return f"```json\n{json.dumps(strategy)}\n```"
        return "not json"

    context, report = _run(CannedAdvisor(default=reply))

    assert report.success
    assert change_intents(context)[0].description == "rename"
    plan = pr_strategy(context)
    assert plan is not None
    assert [group.change_intents for group in plan.pr_groups] == [["change-3"], ["change-1", "change-2"]]
    assert plan.pr_groups[1].title == "Additional changes"
    assert plan.reasoning == "module lands first"
    # Generated changes follow pull-request group order.
    assert [change.path for change in context.file_changes] == ["src/c.py", "src/a.py"]


def test_empty_request_has_nothing_ready() -> None:
    context = RunContext(ChangeRequest())
    report = Scheduler(build_default_registry(MemoryRunner({})), terminal_action_types=TERMINAL).run(context)

    assert report.stop_reason == StopReason.NO_READY_ACTIONS
    assert context.history == ()
    assert context.state.progress == 0


def test_drafted_intents_outside_the_request_fall_back_to_local_heuristics() -> None:
    foreign = {
        "change_intents": [{"id": "change-1", "description": "elsewhere", "path": "src/other.py"}],
        "summary": "wrong file",
    }
    strategy = {"pr_groups": [{"id": "pr-1", "change_intents": ["change-1"], "title": "Elsewhere"}]}

    def reply(prompt: str, _system: str | None) -> str:
        if "Break the proposed changes" in prompt:
            return json.dumps(foreign)
        if "Group the change intents" in prompt:
            return json.dumps(strategy)
        return "not json"

    context, report = _run(CannedAdvisor(default=reply))

    assert report.success
    assert [intent.path for intent in change_intents(context)] == ["src/a.py", "src/b.py", "src/c.py"]
    assert [entry.success for entry in context.history if entry.action_type == GENERATE_FILE_CHANGES] == [True]
    assert {change.path for change in context.file_changes} == {"src/a.py", "src/c.py"}


def test_generated_changes_ignore_intent_paths_missing_from_the_request() -> None:
    context = RunContext(_request())
    context.decisions[EVALUATE_CHANGE_INTENT] = ChangeIntentAnalysis(
        change_intents=[
            ChangeIntent(id="change-1", description="stray", path="src/other.py"),
            ChangeIntent(id="change-2", description="module", path="src/c.py"),
        ]
    )
    context.decisions[DETERMINE_PR_STRATEGY] = PRStrategy(
        pr_groups=[PRGroup(id="pr-1", change_intents=["change-1", "change-2"])]
    )

    outcome = WorkflowActions(MemoryRunner({"src/a.py": "A = 1\n"})).generate_file_changes(context)

    assert [change.path for change in outcome.data] == ["src/c.py", "src/a.py"]
    assert context.decisions[GENERATE_FILE_CHANGES]["skipped"] == ["src/b.py"]


def test_deeply_nested_advisor_reply_falls_back_to_local_heuristics() -> None:
    nested = "[" * 100_000 + "]" * 100_000
    context, report = _run(CannedAdvisor(default=nested))

    assert report.success
    assert [intent.id for intent in change_intents(context)] == ["change-1", "change-2", "change-3"]
    assert context.has_succeeded(GENERATE_FILE_CHANGES)
