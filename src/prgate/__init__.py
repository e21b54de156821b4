"""prgate: schedule change-request actions, validate the output and gate publication."""

from .actions import Action, ActionOutcome, ActionRegistry
from .context import ActionResult, RunContext, RunPhase, RunState
from .gate import PublicationDecision, decide_publication
from .orchestrator import Orchestrator, PipelineResult
from .scheduler import RunReport, Scheduler, StopReason
from .structured import ChangeRequest, FileChange, ProposedChange
from .validation import ValidationIssue, ValidationPipeline, ValidationResult

__version__ = "0.1.0"

__all__ = [
    "Action",
    "ActionOutcome",
    "ActionRegistry",
    "ActionResult",
    "ChangeRequest",
    "FileChange",
    "Orchestrator",
    "PipelineResult",
    "ProposedChange",
    "PublicationDecision",
    "RunContext",
    "RunPhase",
    "RunReport",
    "RunState",
    "Scheduler",
    "StopReason",
    "ValidationIssue",
    "ValidationPipeline",
    "ValidationResult",
    "decide_publication",
]
