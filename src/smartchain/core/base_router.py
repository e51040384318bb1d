"""Plugin-free command router (source of truth).

The module exposes :class:`BaseRouter`, which binds marked methods of an owner
instance into a case-insensitive command table, derives a parameter schema
for each command and exposes introspection data. Subclasses add middleware
but must preserve these semantics.

Constructor and slots
---------------------
Constructor signature::

    BaseRouter(owner, name=None, prefix=None, *,
               get_default_handler=None, get_kwargs=None,
               auto_discover=True, auto_selector="*")

- ``owner`` is required; ``None`` raises ``ValueError``. Routers are bound to
  this instance and never re-bound.
- Slots: ``instance``, ``name``, ``prefix`` (string trimmed from function
  names), ``_entries`` (lowercased name → MethodEntry), ``_handlers``
  (lowercased name → async callable), ``_get_defaults`` (defaults merged
  through ``SmartOptions`` in ``get()``).
- On init: registers with the owner via an optional ``_register_router`` hook,
  then auto-discovers marked methods when ``auto_discover`` is true.

Registration and naming
-----------------------
``add_entry(target, *, name=None, metadata=None, replace=False, **options)``

- Accepts a callable, an attribute name, a comma-separated string or an
  iterable of those. Empty strings are ignored. ``"*"``, ``"_all_"`` and
  ``"__all__"`` trigger marker discovery.
- Options named ``<plugin>_<key>`` for a registered plugin are split off and
  stored as per-command plugin config.
- Logical names are lowercased: the command table is case-insensitive.
  ``prefix`` is stripped from function names; an explicit ``name`` wins.
  Collisions raise ``ValueError`` unless ``replace=True``.

Command metadata
----------------
- ``description``: marker/option ``description`` or the first docstring line.
- ``parameters``: built from ``inspect.signature`` of the bound handler and
  its resolved type hints (``*args``/``**kwargs`` are skipped). A marker
  ``parameters`` option may be a mapping name → description, or an iterable
  of :class:`Parameter` objects replacing the derived schema entirely.

Execution
---------
- ``_rebuild_handlers`` turns every entry into an ``async`` callable (sync
  handlers are called directly, awaitables are awaited) and passes it through
  ``_wrap_handler`` (default: passthrough).
- ``get(selector, **options)`` resolves case-insensitively; falls back to
  ``default_handler``; otherwise raises ``NotImplementedError``.
- ``has(name)`` is the case-insensitive membership test used at compile time.
- ``call(selector, *args, **kwargs)`` awaits the resolved handler.

Introspection
-------------
``describe()`` returns ``[{name, description, parameters}]`` in registration
order, extended by ``_describe_entry_extra``.
"""

from __future__ import annotations

import inspect
from typing import Any, Callable, Dict, Iterator, List, Optional, Tuple, get_type_hints

from smartseeds import SmartOptions

from smartchain.core.parameters import Parameter, ParameterList
from smartchain.plugins._base_plugin import MethodEntry

__all__ = ["BaseRouter", "TARGET_ATTR_NAME"]

TARGET_ATTR_NAME = "__smartchain_targets__"


def _as_async(func: Callable) -> Callable:
    async def invoke(*args, **kwargs):
        result = func(*args, **kwargs)
        if inspect.isawaitable(result):
            result = await result
        return result

    invoke.__name__ = getattr(func, "__name__", "handler")
    invoke.__doc__ = getattr(func, "__doc__", None)
    return invoke


class BaseRouter:
    """Plugin-free router bound to an object instance."""

    __slots__ = (
        "instance",
        "name",
        "prefix",
        "_entries",
        "_handlers",
        "_get_defaults",
    )

    def __init__(
        self,
        owner: Any,
        name: Optional[str] = None,
        prefix: Optional[str] = None,
        *,
        get_default_handler: Optional[Callable] = None,
        get_kwargs: Optional[Dict[str, Any]] = None,
        auto_discover: bool = True,
        auto_selector: str = "*",
    ) -> None:
        if owner is None:
            raise ValueError("Router requires a parent instance")
        self.instance = owner
        self.name = name
        self.prefix = prefix or ""
        self._entries: Dict[str, MethodEntry] = {}
        self._handlers: Dict[str, Callable] = {}
        defaults: Dict[str, Any] = dict(get_kwargs or {})
        if get_default_handler is not None:
            defaults.setdefault("default_handler", get_default_handler)
        self._get_defaults: Dict[str, Any] = defaults
        self._register_with_owner()
        if auto_discover:
            self.add_entry(auto_selector)

    def _is_known_plugin(self, prefix: str) -> bool:
        from smartchain.core.router import Router

        return prefix in Router.available_plugins()

    # ------------------------------------------------------------------
    # Registration helpers
    # ------------------------------------------------------------------
    def _register_with_owner(self) -> None:
        hook = getattr(self.instance, "_register_router", None)
        if callable(hook):
            hook(self)

    def _split_plugin_options(
        self, options: Dict[str, Any]
    ) -> Tuple[Dict[str, Any], Dict[str, Dict[str, Any]]]:
        core: Dict[str, Any] = {}
        plugin_options: Dict[str, Dict[str, Any]] = {}
        for key, value in options.items():
            if "_" in key:
                plugin_name, plug_key = key.split("_", 1)
                if plugin_name and plug_key and self._is_known_plugin(plugin_name):
                    plugin_options.setdefault(plugin_name, {})[plug_key] = value
                    continue
            core[key] = value
        return core, plugin_options

    def add_entry(
        self,
        target: Any,
        *,
        name: Optional[str] = None,
        metadata: Optional[Dict[str, Any]] = None,
        replace: bool = False,
        **options: Any,
    ) -> "BaseRouter":
        """Register command handler(s) on this router.

        Args:
            target: Callable, attribute name(s), comma-separated string, or wildcard marker.
            name: Logical name override for this entry.
            metadata: Extra metadata stored on the MethodEntry.
            replace: Allow overwriting an existing logical name.
            options: Extra metadata (``description``, ``parameters``, plugin options).

        Returns:
            self (to allow chaining).

        Raises:
            ValueError: on command name collision when replace is False.
            AttributeError: when resolving missing attributes on owner.
            TypeError: on unsupported target type.
        """
        core_options, plugin_options = self._split_plugin_options(options)

        if isinstance(target, (list, tuple, set)):
            for item in target:
                self.add_entry(
                    item, name=name, metadata=dict(metadata or {}), replace=replace, **options
                )
            return self

        if isinstance(target, str):
            target = target.strip()
            if not target:
                return self
            if target in {"*", "_all_", "__all__"}:
                self._register_marked(
                    name=name,
                    metadata=metadata,
                    replace=replace,
                    extra=core_options,
                    plugin_options=plugin_options,
                )
                return self
            if "," in target:
                for chunk in target.split(","):
                    self.add_entry(
                        chunk, name=name, metadata=dict(metadata or {}), replace=replace, **options
                    )
                return self
            bound = getattr(self.instance, target)
        elif callable(target):
            bound = (
                target
                if inspect.ismethod(target)
                else target.__get__(self.instance, type(self.instance))
            )
        else:
            raise TypeError(f"Unsupported add_entry target: {target!r}")

        entry_meta = dict(metadata or {})
        entry_meta.update(core_options)
        self._register_callable(
            bound,
            name=name,
            metadata=entry_meta,
            replace=replace,
            plugin_options=plugin_options,
        )
        return self

    def _register_callable(
        self,
        bound: Callable,
        *,
        name: Optional[str] = None,
        metadata: Optional[Dict[str, Any]] = None,
        replace: bool = False,
        plugin_options: Optional[Dict[str, Dict[str, Any]]] = None,
    ) -> None:
        logical_name = self._resolve_name(bound.__name__, name_override=name)
        if logical_name in self._entries and not replace:
            raise ValueError(f"Command name collision: {logical_name}")
        meta = dict(metadata or {})
        description = meta.pop("description", None)
        declared = meta.pop("parameters", None)
        entry = MethodEntry(
            name=logical_name,
            func=bound,
            router=self,
            plugins=[],
            description=description if description is not None else _first_doc_line(bound),
            parameters=self._build_parameters(bound, declared),
            metadata=meta,
        )
        if plugin_options:
            entry.metadata["plugin_config"] = plugin_options
        self._entries[logical_name] = entry
        self._after_entry_registered(entry)
        self._rebuild_handlers()

    def _register_marked(
        self,
        *,
        name: Optional[str],
        metadata: Optional[Dict[str, Any]],
        replace: bool,
        extra: Dict[str, Any],
        plugin_options: Optional[Dict[str, Dict[str, Any]]] = None,
    ) -> None:
        for func, marker in self._iter_marked_methods():
            entry_override = marker.pop("entry_name", None)
            entry_name = name if name is not None else entry_override
            entry_meta = dict(metadata or {})
            entry_meta.update(marker)
            entry_meta.update(extra)
            core_marker, marker_plugin_opts = self._split_plugin_options(entry_meta)
            merged_plugin_opts: Dict[str, Dict[str, Any]] = {
                pname: dict(pdata) for pname, pdata in (plugin_options or {}).items()
            }
            for pname, pdata in marker_plugin_opts.items():
                merged_plugin_opts.setdefault(pname, {}).update(pdata)
            self._register_callable(
                func.__get__(self.instance, type(self.instance)),
                name=entry_name,
                metadata=core_marker,
                replace=replace,
                plugin_options=merged_plugin_opts or None,
            )

    def _iter_marked_methods(self) -> Iterator[Tuple[Callable, Dict[str, Any]]]:
        seen: set[int] = set()
        for base in reversed(type(self.instance).__mro__):
            for value in vars(base).values():
                if not inspect.isfunction(value) or id(value) in seen:
                    continue
                seen.add(id(value))
                for marker in getattr(value, TARGET_ATTR_NAME, None) or ():
                    if marker.get("name") != self.name:
                        continue
                    payload = dict(marker)
                    payload.pop("name", None)
                    yield value, payload

    def _resolve_name(self, func_name: str, *, name_override: Optional[str]) -> str:
        if name_override:
            return name_override.lower()
        if self.prefix and func_name.startswith(self.prefix):
            func_name = func_name[len(self.prefix) :]
        return func_name.lower()

    def _build_parameters(self, bound: Callable, declared: Any) -> ParameterList:
        if declared is not None and not isinstance(declared, dict):
            return ParameterList(declared)
        descriptions: Dict[str, str] = dict(declared or {})
        try:
            hints = get_type_hints(bound)
        except Exception:
            hints = {}
        params: List[Parameter] = []
        for param in inspect.signature(bound).parameters.values():
            if param.kind in (param.VAR_POSITIONAL, param.VAR_KEYWORD):
                continue
            params.append(
                Parameter.from_annotation(
                    param.name,
                    hints.get(param.name, param.annotation),
                    param.default,
                    description=descriptions.get(param.name, ""),
                )
            )
        return ParameterList(params)

    def _wrap_handler(
        self, entry: MethodEntry, call_next: Callable
    ) -> Callable:  # pragma: no cover - overridden by plugin routers
        return call_next

    # ------------------------------------------------------------------
    # Handler execution
    # ------------------------------------------------------------------
    def _rebuild_handlers(self) -> None:
        self._handlers = {
            logical_name: self._wrap_handler(entry, _as_async(entry.func))
            for logical_name, entry in self._entries.items()
        }

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------
    def get(self, selector: str, **options: Any) -> Callable:
        """Resolve and return the async handler registered as ``selector``.

        Falls back to ``default_handler`` if provided, otherwise raises
        NotImplementedError.
        """
        opts = SmartOptions(options, defaults=self._get_defaults)
        handler = self._handlers.get(selector.lower())
        if handler is None:
            handler = getattr(opts, "default_handler", None)
        if handler is None:
            raise NotImplementedError(f"Command '{selector}' not found on router '{self.name}'")
        return handler

    __getitem__ = get

    def has(self, selector: str) -> bool:
        return selector.lower() in self._entries

    def entry(self, selector: str) -> MethodEntry:
        return self._entries[selector.lower()]

    async def call(self, selector: str, *args, **kwargs):
        """Fetch and await a handler in one step."""
        handler = self.get(selector)
        result = handler(*args, **kwargs)
        if inspect.isawaitable(result):
            result = await result
        return result

    def entries(self) -> Tuple[str, ...]:
        """Return the logical command names registered on this router."""
        return tuple(self._handlers.keys())

    # ------------------------------------------------------------------
    # Introspection helpers
    # ------------------------------------------------------------------
    def describe(self) -> List[Dict[str, Any]]:
        """Return command descriptions in registration order."""
        described = []
        for entry in self._entries.values():
            info: Dict[str, Any] = {
                "name": entry.name,
                "description": entry.description,
                "parameters": entry.parameters.to_json(),
            }
            extra = self._describe_entry_extra(entry, info)
            if extra:
                info.update(extra)
            described.append(info)
        return described

    def iter_plugins(self) -> List[Any]:  # pragma: no cover - base router has no plugins
        return []

    def _after_entry_registered(
        self, entry: MethodEntry
    ) -> None:  # pragma: no cover - hook for subclasses
        return None

    def _describe_entry_extra(
        self, entry: MethodEntry, base_description: Dict[str, Any]
    ) -> Dict[str, Any]:  # pragma: no cover - overridden when plugins present
        return {}


def _first_doc_line(func: Callable) -> str:
    doc = inspect.getdoc(func) or ""
    return doc.strip().splitlines()[0] if doc.strip() else ""
