"""Reasoning advisor interface and the retrying base class shared by implementations."""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Any, Dict, Optional, Protocol, runtime_checkable

from ..errors import PrgateError

LOGGER = logging.getLogger(__name__)


class AdvisorError(PrgateError):
    """Base error raised when the reasoning advisor cannot answer."""


class AdvisorTransportError(AdvisorError):
    """The request never produced a response (network, timeout, rejected call)."""


class AdvisorResponseError(AdvisorError):
    """Raised when the service answers without any usable text."""


@runtime_checkable
class ReasoningAdvisor(Protocol):
    """Fallible oracle that answers a prompt with free text."""

    def generate(self, prompt: str, system_message: Optional[str] = None) -> str:
        ...


@dataclass(slots=True)
class AdvisorRequest:
    """One prompt, rendered as Responses-style ``input`` messages."""

    prompt: str
    system_message: Optional[str] = None

    def to_payload(self, model: str) -> Dict[str, Any]:
        turns = [("system", self.system_message), ("user", self.prompt)]
        return {
            "model": model,
            "input": [
                {"role": role, "content": [{"type": "input_text", "text": text}]}
                for role, text in turns
                if text
            ],
        }


class Advisor:
    """Retrying advisor base class; subclasses implement :meth:`_raw_generate`.

    Only :class:`AdvisorTransportError` is retried. An empty or unusable
    answer is raised immediately since asking again rarely helps.
    """

    def __init__(self, model: str, *, max_attempts: int = 2, retry_delay: float = 0.5) -> None:
        self._model = model
        self._max_attempts = max(1, max_attempts)
        self._retry_delay = retry_delay

    @property
    def model(self) -> str:
        return self._model

    def generate(self, prompt: str, system_message: Optional[str] = None) -> str:
        payload = AdvisorRequest(prompt, system_message).to_payload(self._model)
        failures: list[AdvisorTransportError] = []
        while len(failures) < self._max_attempts:
            if failures and self._retry_delay > 0:
                time.sleep(self._retry_delay)
            try:
                text = self._raw_generate(payload)
            except AdvisorTransportError as error:
                failures.append(error)
                LOGGER.debug("Advisor attempt %d/%d failed: %s", len(failures), self._max_attempts, error)
                continue
            if not text.strip():
                raise AdvisorResponseError(f"Advisor {self._model} returned an empty response.")
            return text

        last = failures[-1]
        raise AdvisorTransportError(
            f"Advisor {self._model} failed after {self._max_attempts} attempt(s): {last}"
        ) from last

    def _raw_generate(self, payload: Dict[str, Any]) -> str:
        raise NotImplementedError


__all__ = [
    "Advisor",
    "AdvisorError",
    "AdvisorRequest",
    "AdvisorResponseError",
    "AdvisorTransportError",
    "ReasoningAdvisor",
]
