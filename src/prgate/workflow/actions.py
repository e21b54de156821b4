"""Default actions that turn a change request into file changes."""

from __future__ import annotations

import logging
from dataclasses import asdict
from typing import Any, Callable, Optional, TypeVar

from ..actions.base import Action, ActionOutcome, ActionRegistry
from ..context import RunContext
from ..models.advisor import AdvisorError, ReasoningAdvisor
from ..parsing import StructuredParseError, parse_structured
from ..prompts import ANALYSIS_SYSTEM_MESSAGE, render_analysis_prompt
from ..structured import FileChange, FileContext
from ..validation.runner import CommandRunner
from . import local
from .schemas import ChangeIntent, ChangeIntentAnalysis, ImpactAnalysis, ImpactReport, PRStrategy

LOGGER = logging.getLogger(__name__)

T = TypeVar("T")

RETRIEVE_FILE_CONTEXT = "retrieve-file-context"
EVALUATE_CHANGE_INTENT = "evaluate-change-intent"
EVALUATE_REPO_STRUCTURE = "evaluate-repo-structure"
DETERMINE_PR_STRATEGY = "determine-pr-strategy"
GENERATE_FILE_CHANGES = "generate-file-changes"

_INTENT_FORMAT = {
    "change_intents": [
        {
            "id": "change-1",
            "description": "What needs to change",
            "path": "src/app.py",
            "component": "app",
            "changes": [{"property": "name", "before": "old", "after": "new", "category": "other"}],
            "complexity": "simple|moderate|complex",
            "scope": "component|global|multiple-components",
        }
    ],
    "summary": "Brief overview",
    "total_complexity": 0.5,
}
_IMPACT_FORMAT = {
    "analyses": [
        {
            "change_intent_id": "change-1",
            "affected_components": ["app"],
            "global_changes": False,
            "risk_level": "low|medium|high",
            "recommendation": "inline",
            "reasoning": "...",
        }
    ]
}
_STRATEGY_FORMAT = {
    "number_of_prs": 1,
    "pr_groups": [
        {
            "id": "pr-1",
            "change_intents": ["change-1"],
            "title": "Short title",
            "description": "...",
            "reasoning": "...",
            "priority": "low|medium|high",
        }
    ],
    "reasoning": "...",
}


def change_intents(context: RunContext) -> list[ChangeIntent]:
    analysis = context.decisions.get(EVALUATE_CHANGE_INTENT)
    return list(analysis.change_intents) if isinstance(analysis, ChangeIntentAnalysis) else []


def impact_analyses(context: RunContext) -> list[ImpactAnalysis]:
    report = context.decisions.get(EVALUATE_REPO_STRUCTURE)
    return list(report.analyses) if isinstance(report, ImpactReport) else []


def pr_strategy(context: RunContext) -> PRStrategy | None:
    strategy = context.decisions.get(DETERMINE_PR_STRATEGY)
    return strategy if isinstance(strategy, PRStrategy) else None


class WorkflowActions:
    """Executors for the default workflow, each drafting with the advisor when one is set."""

    def __init__(self, runner: CommandRunner, advisor: Optional[ReasoningAdvisor] = None) -> None:
        self._runner = runner
        self._advisor = advisor

    def _draft(self, task: str, payload: Any, response_format: dict, model: type[T], fallback: Callable[[], T]) -> T:
        if self._advisor is None:
            return fallback()
        prompt = render_analysis_prompt(task, payload, response_format)
        try:
            text = self._advisor.generate(prompt, ANALYSIS_SYSTEM_MESSAGE)
            return parse_structured(text, model)
        except (AdvisorError, StructuredParseError) as error:
            LOGGER.warning("Advisor draft for '%s' failed, using local heuristics: %s", task, error)
            return fallback()

    # ------------------------------------------------------------------ executors
    def retrieve_file_context(self, context: RunContext) -> ActionOutcome:
        contexts: list[FileContext] = []
        for change in context.request.changes:
            if any(item.path == change.path for item in contexts):
                continue
            component = change.component or ""
            if change.action == "create":
                contexts.append(FileContext(change.path, "", component, 1.0))
                continue
            try:
                content = self._runner.read_file(change.path)
            except (OSError, UnicodeDecodeError) as error:
                LOGGER.warning("Could not retrieve %s: %s", change.path, error)
                contexts.append(FileContext(change.path, "", component, 0.0))
                continue
            contexts.append(FileContext(change.path, content, component, 1.0))

        context.file_contexts = contexts
        retrieved = sum(1 for item in contexts if item.content)
        context.decisions[RETRIEVE_FILE_CONTEXT] = {
            "files_retrieved": len(contexts),
            "successful_retrievals": retrieved,
            "total_size": sum(len(item.content) for item in contexts),
        }
        return ActionOutcome(
            data=contexts,
            reasoning=f"Retrieved {len(contexts)} file contexts. {retrieved} successful retrievals.",
        )

    def evaluate_change_intent(self, context: RunContext) -> ActionOutcome:
        analysis = self._draft(
            "Break the proposed changes into discrete change intents.",
            asdict(context.request),
            _INTENT_FORMAT,
            ChangeIntentAnalysis,
            lambda: local.analyse_change_intents(context.request),
        )
        requested = set(context.request.paths)
        unknown = sorted({intent.path for intent in analysis.change_intents} - requested)
        if unknown:
            LOGGER.warning(
                "Drafted intents target paths outside the request (%s); using local heuristics.",
                ", ".join(unknown),
            )
        if not analysis.change_intents or unknown:
            analysis = local.analyse_change_intents(context.request)
        context.decisions[EVALUATE_CHANGE_INTENT] = analysis
        return ActionOutcome(
            data=analysis,
            reasoning=f"Identified {len(analysis.change_intents)} distinct change intents. {analysis.summary}".strip(),
        )

    def evaluate_repo_structure(self, context: RunContext) -> ActionOutcome:
        intents = change_intents(context)
        report = self._draft(
            "Assess the risk and impact of each change intent.",
            {
                "change_intents": [asdict(intent) for intent in intents],
                "files": [{"path": item.path, "size": len(item.content)} for item in context.file_contexts],
            },
            _IMPACT_FORMAT,
            ImpactReport,
            lambda: local.analyse_impact(intents),
        )
        known = {intent.id for intent in intents}
        if not report.analyses or not known <= {analysis.change_intent_id for analysis in report.analyses}:
            report = local.analyse_impact(intents)
        context.decisions[EVALUATE_REPO_STRUCTURE] = report
        high = sum(1 for analysis in report.analyses if analysis.risk_level == "high")
        global_changes = sum(1 for analysis in report.analyses if analysis.global_changes)
        return ActionOutcome(
            data=report,
            reasoning=(
                f"Analyzed {len(report.analyses)} changes: {high} high-risk, "
                f"{global_changes} global impact."
            ),
        )

    def determine_pr_strategy(self, context: RunContext) -> ActionOutcome:
        intents = change_intents(context)
        impacts = impact_analyses(context)
        strategy = self._draft(
            "Group the change intents into pull requests that are easy to review.",
            {
                "change_intents": [asdict(intent) for intent in intents],
                "impact": [asdict(analysis) for analysis in impacts],
            },
            _STRATEGY_FORMAT,
            PRStrategy,
            lambda: local.plan_strategy(intents, impacts),
        )
        strategy = local.finalise_strategy(strategy, intents, impacts)
        context.decisions[DETERMINE_PR_STRATEGY] = strategy
        return ActionOutcome(data=strategy, reasoning=strategy.reasoning)

    def generate_file_changes(self, context: RunContext) -> ActionOutcome:
        strategy = pr_strategy(context)
        proposals = {change.path: change for change in context.request.changes}
        intent_paths = {intent.id: intent.path for intent in change_intents(context)}
        ordered_paths: list[str] = []
        if strategy is not None:
            for group in strategy.pr_groups:
                for intent_id in group.change_intents:
                    path = intent_paths.get(intent_id)
                    if path in proposals and path not in ordered_paths:
                        ordered_paths.append(path)
        for path in proposals:
            if path not in ordered_paths:
                ordered_paths.append(path)

        existing = {item.path: item.content for item in context.file_contexts}
        changes: list[FileChange] = []
        skipped: list[str] = []
        for path in ordered_paths:
            proposal = proposals[path]
            if proposal.action != "delete" and proposal.new_content is None:
                skipped.append(path)
                continue
            changes.append(
                FileChange(
                    path=path,
                    action=proposal.action,
                    new_content=proposal.new_content,
                    old_content=existing.get(path) or None,
                )
            )
        if skipped:
            LOGGER.info("No new content supplied for %s; leaving them unchanged.", ", ".join(skipped))

        context.file_changes = changes
        context.decisions[GENERATE_FILE_CHANGES] = {
            "files": [change.path for change in changes],
            "skipped": skipped,
        }
        return ActionOutcome(
            data=changes,
            reasoning=f"Generated {len(changes)} file change(s); skipped {len(skipped)} without content.",
        )


def _has_changes(context: RunContext) -> bool:
    return bool(context.request.changes)


def build_default_registry(runner: CommandRunner, advisor: Optional[ReasoningAdvisor] = None) -> ActionRegistry:
    """Register the default workflow in its canonical order."""
    actions = WorkflowActions(runner, advisor)
    return ActionRegistry(
        [
            Action(
                RETRIEVE_FILE_CONTEXT,
                actions.retrieve_file_context,
                priority=150,
                guard=_has_changes,
                description="Retrieve current content for every targeted file",
            ),
            Action(
                EVALUATE_CHANGE_INTENT,
                actions.evaluate_change_intent,
                priority=100,
                guard=_has_changes,
                description="Identify distinct change intents and their scope",
            ),
            Action(
                EVALUATE_REPO_STRUCTURE,
                actions.evaluate_repo_structure,
                priority=90,
                dependencies=frozenset({EVALUATE_CHANGE_INTENT}),
                guard=lambda context: bool(change_intents(context)),
                description="Assess risk and impact of each change intent",
            ),
            Action(
                DETERMINE_PR_STRATEGY,
                actions.determine_pr_strategy,
                priority=80,
                dependencies=frozenset({EVALUATE_CHANGE_INTENT, EVALUATE_REPO_STRUCTURE}),
                guard=lambda context: bool(change_intents(context)) and bool(impact_analyses(context)),
                description="Decide how to organise changes into pull requests",
            ),
            Action(
                GENERATE_FILE_CHANGES,
                actions.generate_file_changes,
                priority=70,
                dependencies=frozenset({DETERMINE_PR_STRATEGY}),
                guard=lambda context: pr_strategy(context) is not None,
                description="Materialise file changes in pull-request group order",
            ),
        ]
    )


__all__ = [
    "DETERMINE_PR_STRATEGY",
    "EVALUATE_CHANGE_INTENT",
    "EVALUATE_REPO_STRUCTURE",
    "GENERATE_FILE_CHANGES",
    "RETRIEVE_FILE_CONTEXT",
    "WorkflowActions",
    "build_default_registry",
    "change_intents",
    "impact_analyses",
    "pr_strategy",
]
