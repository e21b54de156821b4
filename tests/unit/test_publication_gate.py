from __future__ import annotations

from prgate.gate import PublicationDecision, decide_publication, render_validation_report, review_labels
from prgate.validation import IssueKind, IssueSeverity, ValidationIssue, ValidationResult


def test_decision_thresholds() -> None:
    assert decide_publication(0.75, change_count=1) is PublicationDecision.PUBLISH_READY
    assert decide_publication(0.7, change_count=1) is PublicationDecision.PUBLISH_READY
    assert decide_publication(0.65, change_count=1) is PublicationDecision.PUBLISH_DRAFT
    assert decide_publication(0.0, change_count=3) is PublicationDecision.WITHHOLD
    assert decide_publication(0.9, change_count=2, threshold=0.95) is PublicationDecision.PUBLISH_DRAFT


def test_no_changes_are_never_published() -> None:
    decision = decide_publication(1.0, change_count=0)
    assert decision is PublicationDecision.WITHHOLD
    assert not decision.publishes
    assert PublicationDecision.PUBLISH_DRAFT.publishes


def test_review_labels_reflect_failed_stages() -> None:
    result = ValidationResult(
        builds_successfully=False,
        tests_pass=False,
        issues=(ValidationIssue(IssueKind.BUILD, IssueSeverity.ERROR, "build", "Build failed (exit code 1)"),),
    )
    assert review_labels(result, threshold=0.7) == ["needs-review", "build-failing", "tests-failing"]
    assert review_labels(ValidationResult(), threshold=0.7) == []


def test_report_lists_stages_and_issues() -> None:
    result = ValidationResult(
        syntax_valid=False,
        issues=(
            ValidationIssue(IssueKind.SYNTAX, IssueSeverity.ERROR, "src/app.py", "invalid syntax", line=2, column=5),
            ValidationIssue(IssueKind.SYNTAX, IssueSeverity.WARNING, "site.css", "Missing semicolon", line=4),
        ),
        stages={"syntax": "failed", "build": "skipped", "lint": "passed", "test": "skipped"},
    )
    report = render_validation_report(result)

    assert report.startswith("## Validation")
    assert "**Confidence score:** 53%" in report
    assert "- Syntax: ❌" in report
    assert "- Build: ⏭️ skipped" in report
    assert "- Lint: ✅" in report
    assert "`src/app.py:2:5` (syntax): invalid syntax" in report
    assert "`site.css:4`" in report


def test_report_truncates_long_issue_lists() -> None:
    issues = tuple(
        ValidationIssue(IssueKind.LINT, IssueSeverity.WARNING, f"f{index}.py", "style") for index in range(25)
    )
    report = render_validation_report(ValidationResult(issues=issues), max_issues=20)

    assert "- ... and 5 more" in report
    assert "`f24.py`" not in report
