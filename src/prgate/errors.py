"""Exception hierarchy shared across prgate modules."""

from __future__ import annotations


class PrgateError(RuntimeError):
    """Base error raised for prgate failures."""


class ConfigError(PrgateError):
    """Raised when configuration is missing, malformed or out of range."""


class RegistryError(PrgateError):
    """Raised when an action cannot be registered or resolved."""


__all__ = ["ConfigError", "PrgateError", "RegistryError"]
