"""Publication gate: turn a validation score into a publish decision."""

from __future__ import annotations

from enum import Enum

from .validation.issues import IssueSeverity, ValidationResult

DEFAULT_CONFIDENCE_THRESHOLD = 0.7

_SEVERITY_ICONS = {
    IssueSeverity.ERROR: "❌",
    IssueSeverity.WARNING: "⚠️",
    IssueSeverity.INFO: "ℹ️",
}


class PublicationDecision(str, Enum):
    PUBLISH_READY = "publish-ready"
    PUBLISH_DRAFT = "publish-draft"
    WITHHOLD = "withhold"

    @property
    def publishes(self) -> bool:
        return self is not PublicationDecision.WITHHOLD


def decide_publication(
    score: float,
    *,
    change_count: int,
    threshold: float = DEFAULT_CONFIDENCE_THRESHOLD,
) -> PublicationDecision:
    """Map ``score`` to a decision.

    With no file changes there is nothing to publish, whatever the score. A
    score of exactly zero is also withheld.
    """
    if change_count <= 0:
        return PublicationDecision.WITHHOLD
    if score >= threshold:
        return PublicationDecision.PUBLISH_READY
    if score > 0:
        return PublicationDecision.PUBLISH_DRAFT
    return PublicationDecision.WITHHOLD


def review_labels(result: ValidationResult, *, threshold: float = DEFAULT_CONFIDENCE_THRESHOLD) -> list[str]:
    labels: list[str] = []
    if result.score < threshold:
        labels.append("needs-review")
    if not result.syntax_valid:
        labels.append("syntax-errors")
    if not result.builds_successfully:
        labels.append("build-failing")
    if not result.tests_pass:
        labels.append("tests-failing")
    return labels


def _stage_line(label: str, passed: bool, status: str | None) -> str:
    if status == "skipped":
        return f"- {label}: ⏭️ skipped"
    return f"- {label}: {'✅' if passed else '❌'}"


def render_validation_report(result: ValidationResult, *, max_issues: int = 20) -> str:
    """Render the Markdown validation section used in a pull-request body."""
    stages = result.stages
    lines = [
        "## Validation",
        "",
        f"**Confidence score:** {round(result.score * 100)}%",
        "",
        _stage_line("Syntax", result.syntax_valid, stages.get("syntax")),
        _stage_line("Build", result.builds_successfully, stages.get("build")),
        _stage_line("Lint", result.linting_passes, stages.get("lint")),
        _stage_line("Tests", result.tests_pass, stages.get("test")),
    ]
    if result.issues:
        lines.extend(["", "### Issues", ""])
        for issue in result.issues[:max_issues]:
            icon = _SEVERITY_ICONS.get(issue.severity, "-")
            lines.append(f"- {icon} `{issue.location}` ({issue.kind.value}): {issue.message}")
        hidden = len(result.issues) - max_issues
        if hidden > 0:
            lines.append(f"- ... and {hidden} more")
    return "\n".join(lines)


__all__ = [
    "DEFAULT_CONFIDENCE_THRESHOLD",
    "PublicationDecision",
    "decide_publication",
    "render_validation_report",
    "review_labels",
]
