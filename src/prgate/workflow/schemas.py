"""Structured payloads produced by the default workflow actions."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Literal

from ..structured import PropertyChange

Complexity = Literal["simple", "moderate", "complex"]
Scope = Literal["component", "global", "multiple-components"]
RiskLevel = Literal["low", "medium", "high"]


@dataclass(slots=True)
class ChangeIntent:
    id: str
    description: str
    path: str = ""
    component: str = ""
    changes: list[PropertyChange] = field(default_factory=list)
    complexity: Complexity = "moderate"
    scope: Scope = "component"


@dataclass(slots=True)
class ChangeIntentAnalysis:
    change_intents: list[ChangeIntent] = field(default_factory=list)
    summary: str = ""
    total_complexity: float = 0.0


@dataclass(slots=True)
class ImpactAnalysis:
    """Risk assessment for one change intent."""

    change_intent_id: str
    affected_components: list[str] = field(default_factory=list)
    global_changes: bool = False
    risk_level: RiskLevel = "low"
    recommendation: str = "inline"
    reasoning: str = ""


@dataclass(slots=True)
class ImpactReport:
    analyses: list[ImpactAnalysis] = field(default_factory=list)


@dataclass(slots=True)
class PRGroup:
    id: str
    change_intents: list[str] = field(default_factory=list)
    title: str = ""
    description: str = ""
    reasoning: str = ""
    priority: Literal["low", "medium", "high"] = "medium"


@dataclass(slots=True)
class PRStrategy:
    number_of_prs: int = 1
    pr_groups: list[PRGroup] = field(default_factory=list)
    total_complexity: float = 0.0
    reasoning: str = ""


__all__ = [
    "ChangeIntent",
    "ChangeIntentAnalysis",
    "Complexity",
    "ImpactAnalysis",
    "ImpactReport",
    "PRGroup",
    "PRStrategy",
    "RiskLevel",
    "Scope",
]
