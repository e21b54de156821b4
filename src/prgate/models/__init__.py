"""Convenience exports for reasoning advisor implementations."""

from .advisor import (
    Advisor,
    AdvisorError,
    AdvisorRequest,
    AdvisorResponseError,
    AdvisorTransportError,
    ReasoningAdvisor,
)
from .offline import CannedAdvisor, FailingAdvisor
from .responses import ResponsesAdvisor

__all__ = [
    "Advisor",
    "AdvisorError",
    "AdvisorRequest",
    "AdvisorResponseError",
    "AdvisorTransportError",
    "CannedAdvisor",
    "FailingAdvisor",
    "ReasoningAdvisor",
    "ResponsesAdvisor",
]
