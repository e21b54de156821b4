"""Advisor that speaks a JSON Responses-style HTTP API."""

from __future__ import annotations

import json
import os
import urllib.error
import urllib.request
from typing import Any, Callable, Dict, Iterator, Optional

from .advisor import Advisor, AdvisorResponseError, AdvisorTransportError

Transport = Callable[[Dict[str, Any]], str]

API_KEY_VARIABLES = ("PRGATE_API_KEY", "OPENAI_API_KEY")
TIMEOUT_VARIABLE = "PRGATE_ADVISOR_TIMEOUT"


def _env_timeout(default: float) -> float:
    raw = os.getenv(TIMEOUT_VARIABLE)
    if not raw:
        return default
    try:
        value = float(raw)
    except ValueError:
        return default
    return value if value > 0 else default


class ResponsesAdvisor(Advisor):
    """Posts prompts to a Responses-style endpoint and returns the first text output.

    ``transport`` replaces the HTTP call entirely, which is how tests and
    alternative clients plug in. Without one an API key is mandatory.
    """

    def __init__(
        self,
        *,
        api_key: Optional[str] = None,
        base_url: str = "https://api.openai.com/v1/responses",
        model: str = "gpt-5-mini",
        transport: Optional[Transport] = None,
        timeout: float = 60.0,
        max_attempts: int = 2,
        retry_delay: float = 0.5,
    ) -> None:
        super().__init__(model=model, max_attempts=max_attempts, retry_delay=retry_delay)
        self._api_key = api_key or next((os.environ[name] for name in API_KEY_VARIABLES if os.getenv(name)), None)
        if transport is None and not self._api_key:
            raise ValueError(f"Set one of {', '.join(API_KEY_VARIABLES)} or pass a transport.")
        self._base_url = base_url
        self._timeout = _env_timeout(timeout)
        self._transport: Transport = transport or self._post

    def _raw_generate(self, payload: Dict[str, Any]) -> str:
        try:
            body = self._transport(payload)
        except AdvisorTransportError:
            raise
        except Exception as error:
            raise AdvisorTransportError(f"Transport rejected the request: {error}") from error

        text = extract_output_text(body)
        if text is None:
            raise AdvisorResponseError("Advisor response did not contain output text.")
        return text

    def _post(self, payload: Dict[str, Any]) -> str:
        request = urllib.request.Request(
            self._base_url,
            data=json.dumps(payload).encode("utf-8"),
            headers={
                "Authorization": f"Bearer {self._api_key}",
                "Content-Type": "application/json",
                "User-Agent": "prgate/0.1",
            },
            method="POST",
        )
        try:
            with urllib.request.urlopen(request, timeout=self._timeout) as response:  # noqa: S310
                return response.read().decode("utf-8")
        except urllib.error.HTTPError as error:  # pragma: no cover - network-dependent
            detail = error.read().decode("utf-8", errors="ignore")[:500]
            raise AdvisorTransportError(f"Advisor endpoint answered HTTP {error.code}: {detail}") from error
        except (urllib.error.URLError, TimeoutError) as error:  # pragma: no cover - network-dependent
            reason = getattr(error, "reason", error)
            raise AdvisorTransportError(f"Advisor endpoint unreachable: {reason}") from error


def extract_output_text(body: str | None) -> Optional[str]:
    """Return the first usable text in a response body.

    Responses envelopes (``output[].content[]``, possibly nested under
    ``response``) and chat-completion envelopes (``choices[].message``) are
    understood. A structured ``json`` content part is re-serialised. Bodies
    that are not JSON are returned unchanged.
    """
    if not body:
        return None
    try:
        data = json.loads(body)
    except json.JSONDecodeError:
        return body
    if not isinstance(data, dict):
        return body

    containers = [data, data.get("response")]
    for container in containers:
        if not isinstance(container, dict):
            continue
        for key in ("output", "outputs", "content", "choices"):
            for text in _texts(container.get(key)):
                return text
    return body


def _texts(items: Any) -> Iterator[str]:
    """Yield candidate texts from a list (or single mapping) of output items."""
    if isinstance(items, dict):
        items = [items]
    if not isinstance(items, list):
        return
    for item in items:
        if not isinstance(item, dict):
            continue
        parts = item.get("content")
        if isinstance(parts, list):
            for part in parts:
                if not isinstance(part, dict):
                    continue
                if isinstance(part.get("json"), (dict, list)):
                    yield json.dumps(part["json"])
                elif _usable(part.get("text")):
                    yield part["text"]
        if _usable(item.get("text")):
            yield item["text"]
        message = item.get("message")
        if isinstance(message, dict):
            for key in ("content", "text"):
                if _usable(message.get(key)):
                    yield message[key]


def _usable(value: Any) -> bool:
    return isinstance(value, str) and bool(value.strip())


__all__ = ["ResponsesAdvisor", "extract_output_text"]
