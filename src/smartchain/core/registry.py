"""Module registry: named, case-insensitive collection of live modules.

``load`` imports ``package.module:Class`` (``package.module.Class`` works as
well), instantiates it with the configured options and registers it. Import
failures, non-module classes, constructor option mismatches and duplicate
names are configuration errors.

The registry is the only owner of module lifetimes: ``init_all`` runs every
module's ``init`` hook and ``close_all`` every ``close`` hook. Compiled routes
only borrow references.
"""

from __future__ import annotations

import asyncio
import importlib
import logging
from typing import Any, Dict, Iterable, Iterator, List, Optional

from smartseeds.typeutils import safe_is_instance

from smartchain.config import ModuleConfig

from .errors import ConfigError
from .module import Module

__all__ = ["ModuleRegistry", "import_class"]

logger = logging.getLogger("smartchain.registry")


def import_class(class_path: str) -> Any:
    """Resolve ``package.module:Class`` or ``package.module.Class``."""
    if ":" in class_path:
        module_path, class_name = class_path.split(":", 1)
    elif "." in class_path:
        module_path, class_name = class_path.rsplit(".", 1)
    else:
        raise ConfigError(f"invalid module class path '{class_path}'")
    try:
        mod = importlib.import_module(module_path)
    except ImportError as exc:
        raise ConfigError(f"cannot import '{module_path}': {exc}") from exc
    try:
        return getattr(mod, class_name)
    except AttributeError as exc:
        raise ConfigError(f"module '{module_path}' has no class '{class_name}'") from exc


class ModuleRegistry:
    """Case-insensitive name → module mapping."""

    def __init__(self, modules: Iterable[Module] = ()):
        self._modules: Dict[str, Module] = {}
        for module in modules:
            self.add(module)

    def __contains__(self, name: object) -> bool:
        return isinstance(name, str) and name.lower() in self._modules

    def __iter__(self) -> Iterator[Module]:
        return iter(list(self._modules.values()))

    def __len__(self) -> int:
        return len(self._modules)

    def __getitem__(self, name: str) -> Module:
        module = self.get(name)
        if module is None:
            raise KeyError(name)
        return module

    def get(self, name: str) -> Optional[Module]:
        return self._modules.get(name.lower())

    def names(self) -> List[str]:
        return [module.name for module in self._modules.values()]

    def add(self, module: Module, *, replace: bool = False) -> Module:
        if not safe_is_instance(module, "smartchain.core.module.Module"):
            raise ConfigError(f"{module!r} is not a module")
        key = module.name.lower()
        if key in self._modules and not replace:
            raise ConfigError(f"module {module.name} is already registered")
        self._modules[key] = module
        return module

    def load(self, config: ModuleConfig) -> Module:
        """Import, instantiate and register the module described by ``config``."""
        factory = import_class(config.class_path)
        try:
            module = factory(**config.options)
        except TypeError as exc:
            raise ConfigError(f"invalid options for module '{config.class_path}': {exc}") from exc
        if config.name:
            module.name = config.name
        self.add(module)
        logger.debug("loaded module %s from %s", module.name, config.class_path)
        return module

    def load_all(self, configs: Iterable[ModuleConfig]) -> None:
        for config in configs:
            self.load(config)

    async def init_all(self) -> None:
        await asyncio.gather(*(module.init() for module in self._modules.values()))

    async def close_all(self) -> None:
        results = await asyncio.gather(
            *(module.close() for module in self._modules.values()), return_exceptions=True
        )
        errors = [result for result in results if isinstance(result, BaseException)]
        if errors:
            raise errors[0]

    def describe(self) -> List[Dict[str, Any]]:
        return [module.to_json() for module in self._modules.values()]
