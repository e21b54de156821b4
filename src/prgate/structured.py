"""Typed payloads describing proposed and generated file changes."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Literal, Mapping

from pydantic import ValidationError
from pydantic.type_adapter import TypeAdapter

from .errors import PrgateError

ChangeAction = Literal["modify", "create", "delete"]


@dataclass(slots=True)
class PropertyChange:
    """Single before/after delta attached to a proposed change."""

    property: str
    before: str = ""
    after: str = ""
    category: str = "other"


@dataclass(slots=True)
class ProposedChange:
    """Change requested by the caller for one file."""

    path: str
    summary: str = ""
    action: ChangeAction = "modify"
    new_content: str | None = None
    component: str | None = None
    properties: list[PropertyChange] = field(default_factory=list)


@dataclass(slots=True)
class ChangeRequest:
    """Set of proposed changes that a run turns into a pull-request candidate."""

    title: str = ""
    description: str = ""
    changes: list[ProposedChange] = field(default_factory=list)

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> "ChangeRequest":
        """Validate a raw mapping (YAML/JSON) into a :class:`ChangeRequest`."""
        try:
            return TypeAdapter(cls).validate_python(dict(payload))
        except ValidationError as error:
            raise PrgateError(f"Change request did not validate: {error}") from error

    @property
    def paths(self) -> list[str]:
        seen: list[str] = []
        for change in self.changes:
            if change.path not in seen:
                seen.append(change.path)
        return seen

    def branch_description(self) -> str:
        """Short human description used to derive a working branch name."""
        if self.title.strip():
            return self.title.strip()
        if len(self.changes) == 1:
            return self.changes[0].summary or "update"
        components = {change.component for change in self.changes if change.component}
        if len(components) == 1:
            return f"update-{next(iter(components)).lower()}"
        if not self.changes:
            return "update"
        return f"{len(self.changes)}-file-updates"


@dataclass(slots=True)
class FileContext:
    """Current content of a file targeted by the change request."""

    path: str
    content: str
    component: str
    confidence: float


@dataclass(slots=True)
class FileChange:
    """Concrete file change handed to the validation pipeline."""

    path: str
    action: ChangeAction = "modify"
    new_content: str | None = None
    old_content: str | None = None

    @property
    def deleted(self) -> bool:
        return self.action == "delete"


__all__ = [
    "ChangeAction",
    "ChangeRequest",
    "FileChange",
    "FileContext",
    "PropertyChange",
    "ProposedChange",
]
