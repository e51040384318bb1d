"""Decorator helpers for marking command methods (source of truth).

Only marker helpers live here; no router mutation happens at decoration time.

``route(router, *, name=None, **kwargs)``

- Stores a list of marker dicts on the function under ``TARGET_ATTR_NAME``.
  Each payload starts with ``{"name": router}``; ``name`` becomes
  ``entry_name``; extra ``kwargs`` (``description``, ``parameters``, plugin
  options such as ``logging_before=False``) are copied verbatim.
- Existing markers are preserved so several routers can target the same
  function. The function itself is returned unchanged.

``command(name=None, *, description=None, parameters=None, **kwargs)``

- Shorthand for ``route("commands", ...)``: the router every
  :class:`~smartchain.core.module.Module` builds for its command table.
- ``parameters`` maps argument names to descriptions (or lists explicit
  :class:`~smartchain.core.parameters.Parameter` objects).
"""

from __future__ import annotations

from typing import Any, Callable, Dict, Optional

from .base_router import TARGET_ATTR_NAME

__all__ = ["route", "command", "COMMANDS_ROUTER"]

COMMANDS_ROUTER = "commands"


def route(router: str, *, name: Optional[str] = None, **kwargs: Any) -> Callable:
    """Mark a method for inclusion in the given router.

    Args:
        router: Router identifier (e.g. ``"commands"``).
        name: Optional explicit entry name (overrides function name/prefix stripping).
    """

    def decorator(func: Callable) -> Callable:
        markers = list(getattr(func, TARGET_ATTR_NAME, []))
        payload: Dict[str, Any] = {"name": router}
        if name is not None:
            payload["entry_name"] = name
        payload.update(kwargs)
        markers.append(payload)
        setattr(func, TARGET_ATTR_NAME, markers)
        return func

    return decorator


def command(
    name: Optional[str] = None,
    *,
    description: Optional[str] = None,
    parameters: Any = None,
    **kwargs: Any,
) -> Callable:
    """Mark a module method as a command."""
    if description is not None:
        kwargs["description"] = description
    if parameters is not None:
        kwargs["parameters"] = parameters
    return route(COMMANDS_ROUTER, name=name, **kwargs)
