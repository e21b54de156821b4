"""Deterministic heuristics used when no advisor is available or it fails."""

from __future__ import annotations

from pathlib import PurePosixPath
from typing import Sequence

from ..structured import ChangeRequest, ProposedChange
from .schemas import (
    ChangeIntent,
    ChangeIntentAnalysis,
    Complexity,
    ImpactAnalysis,
    ImpactReport,
    PRGroup,
    PRStrategy,
    RiskLevel,
    Scope,
)

COMPLEXITY_WEIGHTS: dict[str, float] = {"simple": 0.2, "moderate": 0.5, "complex": 1.0}
RISK_WEIGHTS: dict[str, float] = {"low": 0.1, "medium": 0.3, "high": 0.6}
GLOBAL_CHANGE_WEIGHT = 0.2
WIDE_IMPACT_WEIGHT = 0.3
WIDE_IMPACT_COMPONENTS = 3

_SHARED_STEMS = frozenset({"global", "globals", "theme", "variables", "tokens", "settings", "base"})
_RISK_ORDER: tuple[RiskLevel, ...] = ("low", "medium", "high")


def intent_complexity(change: ProposedChange) -> Complexity:
    if change.action in ("create", "delete"):
        return "moderate"
    lines = len((change.new_content or "").splitlines())
    if len(change.properties) > 8 or lines > 300:
        return "complex"
    if len(change.properties) <= 2 and lines <= 50:
        return "simple"
    return "moderate"


def intent_scope(change: ProposedChange, request: ChangeRequest) -> Scope:
    if PurePosixPath(change.path).stem.lower() in _SHARED_STEMS:
        return "global"
    if change.component:
        return "component"
    components = {item.component for item in request.changes if item.component}
    return "multiple-components" if len(components) > 1 else "component"


def complexity_label(value: float) -> str:
    if value < 0.3:
        return "low"
    if value < 0.7:
        return "moderate"
    return "high"


def analyse_change_intents(request: ChangeRequest) -> ChangeIntentAnalysis:
    """One intent per proposed change."""
    intents: list[ChangeIntent] = []
    for index, change in enumerate(request.changes, start=1):
        description = change.summary.strip() or f"{change.action.capitalize()} {change.path}"
        intents.append(
            ChangeIntent(
                id=f"change-{index}",
                description=description,
                path=change.path,
                component=change.component or PurePosixPath(change.path).stem,
                changes=list(change.properties),
                complexity=intent_complexity(change),
                scope=intent_scope(change, request),
            )
        )
    average = (
        sum(COMPLEXITY_WEIGHTS[intent.complexity] for intent in intents) / len(intents) if intents else 0.0
    )
    return ChangeIntentAnalysis(
        change_intents=intents,
        summary=f"Derived {len(intents)} change intent(s) from the request.",
        total_complexity=round(average, 4),
    )


def analyse_impact(intents: Sequence[ChangeIntent]) -> ImpactReport:
    by_path: dict[str, set[str]] = {}
    for intent in intents:
        by_path.setdefault(intent.path, set()).add(intent.component)

    analyses: list[ImpactAnalysis] = []
    for intent in intents:
        risk: RiskLevel = {"simple": "low", "moderate": "medium", "complex": "high"}[intent.complexity]
        global_changes = intent.scope == "global"
        if global_changes or intent.scope == "multiple-components":
            risk = _RISK_ORDER[min(_RISK_ORDER.index(risk) + 1, len(_RISK_ORDER) - 1)]
        affected = sorted(component for component in by_path.get(intent.path, set()) if component)
        analyses.append(
            ImpactAnalysis(
                change_intent_id=intent.id,
                affected_components=affected,
                global_changes=global_changes,
                risk_level=risk,
                recommendation="style-file" if global_changes else "inline",
                reasoning=f"{intent.complexity} change with {intent.scope} scope",
            )
        )
    return ImpactReport(analyses=analyses)


def plan_strategy(intents: Sequence[ChangeIntent], impacts: Sequence[ImpactAnalysis]) -> PRStrategy:
    """Single PR unless high-risk work should be isolated from the rest."""
    risk_by_id = {analysis.change_intent_id: analysis.risk_level for analysis in impacts}
    risky = [intent.id for intent in intents if risk_by_id.get(intent.id) == "high"]
    others = [intent.id for intent in intents if intent.id not in risky]

    if not risky or not others:
        groups = [
            PRGroup(
                id="pr-1",
                change_intents=[intent.id for intent in intents],
                title="Apply proposed changes",
                description=f"Update {len(intents)} file change(s)",
                reasoning="Changes are related and can be reviewed together",
            )
        ]
    else:
        groups = [
            PRGroup(
                id="pr-1",
                change_intents=others,
                title="Apply low-risk changes",
                description=f"{len(others)} low or medium risk change(s)",
                reasoning="Lower risk changes grouped for a quick review",
                priority="high",
            ),
            PRGroup(
                id="pr-2",
                change_intents=risky,
                title="Apply high-risk changes",
                description=f"{len(risky)} high risk change(s)",
                reasoning="High risk changes isolated for safer rollback",
            ),
        ]
    return finalise_strategy(PRStrategy(pr_groups=groups), intents, impacts)


def finalise_strategy(
    strategy: PRStrategy,
    intents: Sequence[ChangeIntent],
    impacts: Sequence[ImpactAnalysis],
) -> PRStrategy:
    """Drop unknown ids, add a catch-all group for unassigned intents and recompute complexity."""
    known = [intent.id for intent in intents]
    assigned: dict[str, None] = {}
    for group in strategy.pr_groups:
        kept: list[str] = []
        for item in group.change_intents:
            if item in known and item not in assigned:
                assigned[item] = None
                kept.append(item)
        group.change_intents = kept
    strategy.pr_groups = [group for group in strategy.pr_groups if group.change_intents]

    unassigned = [item for item in known if item not in assigned]
    if unassigned:
        strategy.pr_groups.append(
            PRGroup(
                id=f"pr-{len(strategy.pr_groups) + 1}",
                change_intents=unassigned,
                title="Additional changes",
                description="Remaining changes that were not initially grouped",
                reasoning="Catch-all for unassigned change intents",
            )
        )
    strategy.number_of_prs = len(strategy.pr_groups)
    strategy.total_complexity = total_complexity(strategy, intents, impacts)
    if not strategy.reasoning:
        plural = "s" if strategy.number_of_prs != 1 else ""
        strategy.reasoning = (
            f"{strategy.number_of_prs} pull request{plural} with {complexity_label(strategy.total_complexity)} "
            f"overall complexity ({strategy.total_complexity:.2f})."
        )
    return strategy


def total_complexity(
    strategy: PRStrategy,
    intents: Sequence[ChangeIntent],
    impacts: Sequence[ImpactAnalysis],
) -> float:
    """Average weighted complexity of every grouped intent that has an impact analysis."""
    intent_by_id = {intent.id: intent for intent in intents}
    impact_by_id = {analysis.change_intent_id: analysis for analysis in impacts}
    total = 0.0
    counted = 0
    for group in strategy.pr_groups:
        for intent_id in group.change_intents:
            intent = intent_by_id.get(intent_id)
            impact = impact_by_id.get(intent_id)
            if intent is None or impact is None:
                continue
            score = COMPLEXITY_WEIGHTS.get(intent.complexity, 0.0) + RISK_WEIGHTS.get(impact.risk_level, 0.0)
            if impact.global_changes:
                score += GLOBAL_CHANGE_WEIGHT
            if len(impact.affected_components) > WIDE_IMPACT_COMPONENTS:
                score += WIDE_IMPACT_WEIGHT
            total += score
            counted += 1
    return round(total / counted, 4) if counted else 0.0


__all__ = [
    "COMPLEXITY_WEIGHTS",
    "RISK_WEIGHTS",
    "analyse_change_intents",
    "analyse_impact",
    "complexity_label",
    "finalise_strategy",
    "intent_complexity",
    "intent_scope",
    "plan_strategy",
    "total_complexity",
]
