"""Exception hierarchy shared by the compiler, dispatcher and modules.

- ``ConfigError``: malformed configuration (routes, modules, config files).
  Raised while loading/compiling; aborts the whole reload.
- ``DomainError``: recognized application error. Its message is considered
  safe to show to callers; the dispatcher turns it into ``Forbidden``.
- ``ParameterError`` and its subclasses carry the offending parameter
  ``name`` and are domain errors.

Any other exception reaching the dispatcher is an internal error and is never
shown to callers verbatim.
"""

from __future__ import annotations

from typing import Optional

__all__ = [
    "SmartChainError",
    "ConfigError",
    "DomainError",
    "ParameterError",
    "MissingParameterError",
    "InvalidParameterError",
]


class SmartChainError(Exception):
    """Root of all SmartChain errors."""


class ConfigError(SmartChainError):
    """Invalid route, module or application configuration."""

    def __init__(self, message: str, *, route: Optional[str] = None):
        super().__init__(message)
        self.route = route


class DomainError(SmartChainError):
    """Application-level error whose message may be exposed to callers."""


class ParameterError(DomainError):
    def __init__(self, name: str, message: str):
        super().__init__(message)
        self.name = name


class MissingParameterError(ParameterError):
    def __init__(self, name: str):
        super().__init__(name, f"missing parameter '{name}'")


class InvalidParameterError(ParameterError):
    def __init__(self, name: str, reason: str = ""):
        message = f"invalid parameter '{name}'"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(name, message)
        self.reason = reason
