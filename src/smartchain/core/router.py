"""Command router with plugin pipeline (source of truth).

``Router`` extends ``BaseRouter`` with a global plugin registry, per-router
plugin instances, async middleware wrapping and plugin state stored on the
router instance.

Internal state
--------------
- ``_plugin_specs``: list of ``_PluginSpec`` (factory, kwargs copy).
- ``_plugins``: instantiated plugins in the order they were attached.
- ``_plugins_by_name``: name → plugin instance.
- ``_plugin_info``: per-plugin store with a ``"--base--"`` bucket for router
  level config and one bucket per command, each with ``config`` and ``locals``.

Global registry
---------------
``Router.register_plugin(plugin_class, name=None)`` requires a ``BasePlugin``
subclass with a ``plugin_code``. Re-registering a code with a different class
raises ``ValueError`` unless ``name`` is given explicitly.
``available_plugins`` returns a shallow copy of the registry.

Attaching plugins
-----------------
``plug(plugin_name, **config)`` instantiates a registered plugin, applies its
``on_decore`` to existing commands, rebuilds handlers and returns ``self``.
Unknown names raise ``ValueError`` listing the available plugins.
``__getattr__`` exposes attached plugins by name.
Decorator options prefixed with a plugin name (``logging_before=False``,
``logging_flags="enabled:off"``) land in the command bucket; ``flags`` strings
are expanded into booleans there.

Wrapping pipeline
-----------------
``_wrap_handler(entry, call_next)`` layers plugins in reverse order (first
attached = outermost). Each layer is an ``async`` guard that skips the plugin
when ``is_plugin_enabled(entry.name, plugin.name)`` is False.

Description hooks
-----------------
``_describe_entry_extra`` collects per-plugin ``config`` and
``entry_metadata`` into a ``plugins`` key of ``describe()`` items.
"""

from __future__ import annotations

import inspect
from dataclasses import dataclass
from functools import wraps
from typing import Any, Callable, Dict, List, Optional, Type

from smartchain.core.base_router import BaseRouter
from smartchain.plugins._base_plugin import BasePlugin, MethodEntry

__all__ = ["Router"]

_PLUGIN_REGISTRY: Dict[str, Type[BasePlugin]] = {}


@dataclass
class _PluginSpec:
    factory: Type[BasePlugin]
    kwargs: Dict[str, Any]

    def instantiate(self, router: "Router") -> BasePlugin:
        return self.factory(router=router, **self.kwargs)


class Router(BaseRouter):
    """Router with plugin registry/pipeline support."""

    __slots__ = BaseRouter.__slots__ + (
        "_plugin_specs",
        "_plugins",
        "_plugins_by_name",
        "_plugin_info",
    )

    def __init__(self, *args, **kwargs):
        self._plugin_specs: List[_PluginSpec] = []
        self._plugins: List[BasePlugin] = []
        self._plugins_by_name: Dict[str, BasePlugin] = {}
        self._plugin_info: Dict[str, Dict[str, Any]] = {}
        super().__init__(*args, **kwargs)

    # ------------------------------------------------------------------
    # Plugin registration
    # ------------------------------------------------------------------
    @classmethod
    def register_plugin(cls, plugin_class: Type[BasePlugin], name: Optional[str] = None) -> None:
        """Register a plugin class globally.

        Args:
            plugin_class: A BasePlugin subclass with plugin_code defined
            name: Optional override name; an explicit name may replace an
                  existing registration.
        """
        if not isinstance(plugin_class, type) or not issubclass(plugin_class, BasePlugin):
            raise TypeError("plugin_class must be a BasePlugin subclass")
        if not getattr(plugin_class, "plugin_code", None):
            raise ValueError(f"Plugin {plugin_class.__name__} is missing plugin_code")
        code = name or plugin_class.plugin_code
        if name is None:
            existing = _PLUGIN_REGISTRY.get(code)
            if existing is not None and existing is not plugin_class:
                raise ValueError(f"Plugin '{code}' already registered")
        _PLUGIN_REGISTRY[code] = plugin_class

    @classmethod
    def available_plugins(cls) -> Dict[str, Type[BasePlugin]]:
        return dict(_PLUGIN_REGISTRY)

    def plug(self, plugin: str, **config: Any) -> "Router":
        """Attach a plugin by name (previously registered globally)."""
        if not isinstance(plugin, str):
            raise TypeError(
                f"Plugin must be referenced by name string, got {type(plugin).__name__}"
            )
        plugin_class = _PLUGIN_REGISTRY.get(plugin)
        if plugin_class is None:
            available = ", ".join(sorted(_PLUGIN_REGISTRY)) or "none"
            raise ValueError(f"Unknown plugin '{plugin}'. Available plugins: {available}")
        if plugin in self._plugins_by_name:
            return self
        spec = _PluginSpec(plugin_class, dict(config))
        self._plugin_specs.append(spec)
        instance = spec.instantiate(self)
        self._plugins.append(instance)
        self._plugins_by_name[instance.name] = instance
        self._apply_plugin_to_entries(instance)
        self._rebuild_handlers()
        return self

    def iter_plugins(self) -> List[BasePlugin]:  # type: ignore[override]
        """Return attached plugin instances in application order."""
        return list(self._plugins)

    def get_config(self, plugin_name: str, method_name: Optional[str] = None) -> Dict[str, Any]:
        """Return plugin config (global + per-command overrides) for an attached plugin."""
        plugin = self._plugins_by_name.get(plugin_name)
        if plugin is None:
            raise AttributeError(
                f"No plugin named '{plugin_name}' attached to router '{self.name}'"
            )
        return plugin.configuration(method_name)

    def __getattr__(self, name: str) -> Any:
        plugin = self._plugins_by_name.get(name)
        if plugin is None:
            raise AttributeError(f"No plugin named '{name}' attached to router '{self.name}'")
        return plugin

    def _plugin_bucket(self, plugin_name: str) -> Dict[str, Any]:
        bucket = self._plugin_info.get(plugin_name)
        if bucket is None:
            raise AttributeError(
                f"No plugin named '{plugin_name}' attached to router '{self.name}'"
            )
        bucket.setdefault("--base--", {"config": {}, "locals": {}})
        return bucket

    # ------------------------------------------------------------------
    # Runtime switches (state stored on plugin_info)
    # ------------------------------------------------------------------
    def set_plugin_enabled(self, method_name: str, plugin_name: str, enabled: bool = True) -> None:
        bucket = self._plugin_bucket(plugin_name)
        entry = bucket.setdefault(method_name.lower(), {"config": {}, "locals": {}})
        entry.setdefault("locals", {})["enabled"] = bool(enabled)

    def is_plugin_enabled(self, method_name: str, plugin_name: str) -> bool:
        bucket = self._plugin_bucket(plugin_name)
        entry_locals = bucket.get(method_name.lower(), {}).get("locals", {})
        if "enabled" in entry_locals:
            return bool(entry_locals["enabled"])
        return bool(bucket["--base--"].get("locals", {}).get("enabled", True))

    # ------------------------------------------------------------------
    # Overrides/hooks
    # ------------------------------------------------------------------
    def _wrap_handler(self, entry: MethodEntry, call_next: Callable) -> Callable:  # type: ignore[override]
        wrapped = call_next
        for plugin in reversed(self._plugins):
            plugin_call = plugin.wrap_handler(self, entry, wrapped)
            wrapped = self._create_wrapper(plugin, entry, plugin_call, wrapped)
        return wrapped

    def _create_wrapper(
        self,
        plugin: BasePlugin,
        entry: MethodEntry,
        plugin_call: Callable,
        next_handler: Callable,
    ) -> Callable:
        @wraps(next_handler)
        async def wrapper(*args, **kwargs):
            call = plugin_call if self.is_plugin_enabled(entry.name, plugin.name) else next_handler
            result = call(*args, **kwargs)
            if inspect.isawaitable(result):
                result = await result
            return result

        return wrapper

    def _apply_plugin_to_entries(self, plugin: BasePlugin) -> None:
        for entry in self._entries.values():
            if plugin.name not in entry.plugins:
                entry.plugins.append(plugin.name)
            plugin.on_decore(self, entry.func, entry)

    def _after_entry_registered(self, entry: MethodEntry) -> None:  # type: ignore[override]
        for pname, cfg in entry.metadata.get("plugin_config", {}).items():
            bucket = self._plugin_info.setdefault(pname, {"--base--": {"config": {}, "locals": {}}})
            entry_bucket = bucket.setdefault(entry.name, {"config": {}, "locals": {}})
            cfg = dict(cfg)
            flags = cfg.pop("flags", None)
            if flags:
                cfg.update(BasePlugin._parse_flags(flags))
            entry_bucket["config"].update(cfg)
        for plugin in self._plugins:
            if plugin.name not in entry.plugins:
                entry.plugins.append(plugin.name)
            plugin.on_decore(self, entry.func, entry)

    def _describe_entry_extra(  # type: ignore[override]
        self, entry: MethodEntry, base_description: Dict[str, Any]
    ) -> Dict[str, Any]:
        plugins_info: Dict[str, Dict[str, Any]] = {}
        for plugin in self._plugins:
            plugin_data: Dict[str, Any] = {}
            config = plugin.configuration(entry.name)
            if config:
                plugin_data["config"] = config
            meta = plugin.entry_metadata(self, entry)
            if meta:
                plugin_data["metadata"] = meta
            if plugin_data:
                plugins_info[plugin.name] = plugin_data
        if plugins_info:
            return {"plugins": plugins_info}
        return {}
