"""Action contract exposed to action implementers."""

from .base import Action, ActionOutcome, ActionRegistry, always, coerce_outcome

__all__ = ["Action", "ActionOutcome", "ActionRegistry", "always", "coerce_outcome"]
