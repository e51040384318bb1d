"""Plugin contract used by the command Router (source of truth).

Objects
~~~~~~~
``MethodEntry``
    Dataclass capturing a command at registration time:

    - ``name`` – logical command name (lowercased, after prefix stripping)
    - ``func`` – bound callable invoked by the Router (sync or async)
    - ``router`` – Router instance that owns the command
    - ``plugins`` – names of plugins applied to the command (order matters)
    - ``description`` – one-line description shown in self-descriptions
    - ``parameters`` – :class:`~smartchain.core.parameters.ParameterList`
      derived from the handler signature
    - ``metadata`` – mutable dict used by plugins to store annotations

``BasePlugin``
    Base class every plugin subclasses. Required class attributes:
    ``plugin_code`` (registration key) and ``plugin_description``.

    ``BasePlugin(router, **config)`` stores the router, provisions its bucket
    in ``router._plugin_info`` and forwards ``config`` to ``configure``.

    ``configure(**config)``
        Subclasses declare the accepted options in the signature. The method
        is wrapped by ``__init_subclass__`` so that:

        - ``flags="enabled,before:off"`` is parsed into booleans;
        - ``_target`` selects the bucket (``"--base--"`` for router level, a
          command name, or ``"a,b"`` for several commands);
        - options are validated with pydantic ``validate_call``;
        - validated options are written to the store.

    ``configuration(method_name=None)``
        Merged view: router level config overridden by the command bucket.

    ``on_decore(router, func, entry)``
        Called once per command registration (default no-op).

    ``wrap_handler(router, entry, call_next)``
        Returns the middleware layer. ``call_next`` is always an ``async``
        callable; the returned callable must be awaitable as well.

    ``entry_metadata(router, entry)``
        Optional extra data merged into ``Router.describe`` output.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional

from pydantic import validate_call

from smartchain.core.parameters import ParameterList

__all__ = ["BasePlugin", "MethodEntry"]


@dataclass
class MethodEntry:
    """Metadata for a registered command handler."""

    name: str
    func: Callable
    router: Any
    plugins: List[str]
    description: str = ""
    parameters: ParameterList = field(default_factory=ParameterList)
    metadata: Dict[str, Any] = field(default_factory=dict)


def _wrap_configure(original_configure: Callable) -> Callable:
    validated = validate_call(original_configure)

    def wrapper(
        self: "BasePlugin", *, _target: str = "--base--", flags: Optional[str] = None, **kwargs: Any
    ) -> None:
        if flags:
            kwargs.update(self._parse_flags(flags))

        if "," in _target:
            for target in (t.strip() for t in _target.split(",")):
                if target:
                    wrapper(self, _target=target, **kwargs)
            return

        validated(self, **kwargs)
        self._write_config(_target.lower() if _target != "--base--" else _target, kwargs)

    return wrapper


class BasePlugin:
    """Hook interface + configuration helpers for router plugins."""

    __slots__ = ("name", "_router")

    plugin_code: str = ""
    plugin_description: str = ""

    def __init_subclass__(cls, **kwargs: Any) -> None:
        super().__init_subclass__(**kwargs)
        if "configure" in cls.__dict__:
            cls.configure = _wrap_configure(cls.__dict__["configure"])

    def __init__(self, router: Any, **config: Any):
        self.name = self.plugin_code
        self._router = router
        store = self._get_store()
        store.setdefault(self.name, {}).setdefault(
            "--base--", {"config": {"enabled": True}, "locals": {}}
        )
        self.configure(**config)

    def configure(self, *, _target: str = "--base--", flags: Optional[str] = None) -> None:
        """Base plugins only understand ``flags``."""
        if flags:
            self._write_config(_target, self._parse_flags(flags))

    def _write_config(self, target: str, config: Dict[str, Any]) -> None:
        if not config:
            return
        plugin_bucket = self._get_store().setdefault(self.name, {})
        bucket = plugin_bucket.setdefault(target, {"config": {}, "locals": {}})
        bucket["config"].update(config)

    def configuration(self, method_name: Optional[str] = None) -> Dict[str, Any]:
        """Read merged configuration (base + optional per-command override)."""
        plugin_bucket = self._get_store().get(self.name)
        if not plugin_bucket:
            return {}
        merged = dict(plugin_bucket.get("--base--", {}).get("config", {}))
        if method_name:
            merged.update(plugin_bucket.get(method_name.lower(), {}).get("config", {}))
        return merged

    @staticmethod
    def _parse_flags(flags: str) -> Dict[str, bool]:
        mapping: Dict[str, bool] = {}
        for chunk in flags.split(","):
            chunk = chunk.strip()
            if not chunk:
                continue
            if ":" in chunk:
                name, value = chunk.split(":", 1)
                mapping[name.strip()] = value.strip().lower() != "off"
            else:
                mapping[chunk] = True
        return mapping

    def on_decore(
        self, router: Any, func: Callable, entry: MethodEntry
    ) -> None:  # pragma: no cover - default no-op
        """Hook run when the command is registered."""

    def wrap_handler(self, router: Any, entry: MethodEntry, call_next: Callable) -> Callable:
        """Wrap handler invocation; default passthrough."""
        return call_next

    def entry_metadata(self, router: Any, entry: MethodEntry) -> Dict[str, Any]:
        return {}

    def _get_store(self) -> Dict[str, Any]:
        return getattr(self._router, "_plugin_info")
