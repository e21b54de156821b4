"""Default change-request workflow."""

from .actions import (
    DETERMINE_PR_STRATEGY,
    EVALUATE_CHANGE_INTENT,
    EVALUATE_REPO_STRUCTURE,
    GENERATE_FILE_CHANGES,
    RETRIEVE_FILE_CONTEXT,
    WorkflowActions,
    build_default_registry,
    change_intents,
    impact_analyses,
    pr_strategy,
)
from .schemas import ChangeIntent, ChangeIntentAnalysis, ImpactAnalysis, ImpactReport, PRGroup, PRStrategy

__all__ = [
    "ChangeIntent",
    "ChangeIntentAnalysis",
    "DETERMINE_PR_STRATEGY",
    "EVALUATE_CHANGE_INTENT",
    "EVALUATE_REPO_STRUCTURE",
    "GENERATE_FILE_CHANGES",
    "ImpactAnalysis",
    "ImpactReport",
    "PRGroup",
    "PRStrategy",
    "RETRIEVE_FILE_CONTEXT",
    "WorkflowActions",
    "build_default_registry",
    "change_intents",
    "impact_analyses",
    "pr_strategy",
]
