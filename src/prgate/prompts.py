"""Prompt templates shared by the scheduler and the workflow actions."""

from __future__ import annotations

import json
from typing import TYPE_CHECKING, Any, Mapping, Sequence

if TYPE_CHECKING:
    from .actions.base import Action
    from .context import RunContext

JSON_RESPONSE_INSTRUCTION = (
    "Return only JSON. Emit a single JSON object that satisfies the documented response format. "
    "A fenced ```json block is accepted; do not add explanations outside it."
)

SELECTION_SYSTEM_MESSAGE = (
    "You coordinate an automated workflow that turns proposed file changes into a pull request. "
    "Pick the next step so that analysis happens before generation and every prerequisite is met."
)

ANALYSIS_SYSTEM_MESSAGE = (
    "You are a senior engineer reviewing proposed code changes. Be precise and concise."
)

_DECISION_PREVIEW_CHARS = 200


def render_selection_prompt(ready: Sequence["Action"], context: "RunContext") -> str:
    """Render the prompt asking the advisor to pick one of the ready actions."""
    actions = "\n".join(
        f"- {action.type}: {action.description or 'no description'} (priority {action.priority})"
        for action in ready
    )
    completed = ", ".join(sorted(context.completed_types())) or "none"
    decisions = _render_decisions(context.decisions)
    return (
        "Decide which action to run next.\n\n"
        "## Current Context\n"
        f"- Proposed changes: {len(context.request.changes)}\n"
        f"- Completed actions: {completed}\n"
        f"- Current phase: {context.state.phase.value}\n\n"
        "## Available Actions\n"
        f"{actions}\n\n"
        "## Decisions So Far\n"
        f"{decisions}\n\n"
        "## Response Format\n"
        '{"action": "<one of the available action types>", "reasoning": "...", '
        '"confidence": 0.0, "alternatives": [{"action": "...", "reasoning": "...", "confidence": 0.0}]}\n\n'
        f"{JSON_RESPONSE_INSTRUCTION}"
    )


def render_analysis_prompt(task: str, payload: Any, response_format: Mapping[str, Any]) -> str:
    """Render a drafting prompt for one of the workflow analyses."""
    body = json.dumps(payload, indent=2, sort_keys=True, default=str)
    fmt = json.dumps(response_format, indent=2)
    return f"## Task\n{task}\n\n## Input\n{body}\n\n## Response Format\n{fmt}\n\n{JSON_RESPONSE_INSTRUCTION}"


def _render_decisions(decisions: Mapping[str, Any]) -> str:
    if not decisions:
        return "None yet"
    lines = []
    for key, value in decisions.items():
        try:
            text = json.dumps(value, sort_keys=True, default=str)
        except (TypeError, ValueError):
            text = str(value)
        if len(text) > _DECISION_PREVIEW_CHARS:
            text = f"{text[:_DECISION_PREVIEW_CHARS]}..."
        lines.append(f"- {key}: {text}")
    return "\n".join(lines)


__all__ = [
    "ANALYSIS_SYSTEM_MESSAGE",
    "JSON_RESPONSE_INSTRUCTION",
    "SELECTION_SYSTEM_MESSAGE",
    "render_analysis_prompt",
    "render_selection_prompt",
]
