"""Deterministic advisors used offline and in tests."""

from __future__ import annotations

from collections import deque
from typing import Callable, Iterable, Optional, Union

from .advisor import AdvisorTransportError

Reply = Union[str, Callable[[str, Optional[str]], str], BaseException]


class CannedAdvisor:
    """Returns canned replies in order and records every prompt it receives.

    A reply may be a string, a callable ``(prompt, system_message) -> str`` or
    an exception instance to raise. Once the queue is exhausted the ``default``
    reply is used; without a default the advisor raises a transport error.
    """

    def __init__(self, replies: Iterable[Reply] = (), *, default: Reply | None = None) -> None:
        self._replies: deque[Reply] = deque(replies)
        self._default = default
        self.calls: list[tuple[str, Optional[str]]] = []

    def generate(self, prompt: str, system_message: Optional[str] = None) -> str:
        self.calls.append((prompt, system_message))
        if self._replies:
            reply = self._replies.popleft()
        elif self._default is not None:
            reply = self._default
        else:
            raise AdvisorTransportError("CannedAdvisor has no replies left.")
        if isinstance(reply, BaseException):
            raise reply
        if callable(reply):
            return reply(prompt, system_message)
        return reply


class FailingAdvisor:
    """Advisor whose every call fails, used to exercise fallback paths."""

    def __init__(self, message: str = "advisor unavailable") -> None:
        self._message = message
        self.calls = 0

    def generate(self, prompt: str, system_message: Optional[str] = None) -> str:
        self.calls += 1
        raise AdvisorTransportError(self._message)


__all__ = ["CannedAdvisor", "FailingAdvisor"]
