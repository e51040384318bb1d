"""Logging plugin (source of truth).

Responsibilities
----------------
- Wrap each command call and emit configurable messages through a stdlib
  logger (default ``logging.getLogger("smartchain")``):
  * ``before`` (default True): ``"<module>.<command> start"``
  * ``after`` (default True): ``"<module>.<command> end (<ms> ms)"`` with
    ``{elapsed:.2f}`` formatting.
- ``enabled`` gates the plugin entirely (default True); ``level`` picks the
  logging level name (default ``"INFO"``).
- Exceptions propagate; the end message is skipped when the command raises.

Configuration
-------------
Router level through ``plug("logging", before=False)`` or
``router.logging.configure(flags="after:off")``; per command through
``configure(_target="cmd", ...)`` or decorator options such as
``@command(logging_after=False)``.

Registration
------------
At import the plugin registers itself as ``"logging"``.
"""

from __future__ import annotations

import logging
import time
from typing import Callable, Optional

from smartchain.core.router import Router
from smartchain.plugins._base_plugin import BasePlugin, MethodEntry


class LoggingPlugin(BasePlugin):
    """Logs command calls with timing."""

    plugin_code = "logging"
    plugin_description = "Logs command calls with timing"

    __slots__ = ("_logger",)

    def __init__(self, router, *, logger: Optional[logging.Logger] = None, **cfg):
        self._logger = logger or logging.getLogger("smartchain")
        super().__init__(router, **cfg)

    def configure(
        self,
        enabled: bool = True,
        before: bool = True,
        after: bool = True,
        level: str = "INFO",
    ):
        """Storage is handled by the wrapper added in ``__init_subclass__``."""

    def wrap_handler(self, route, entry: MethodEntry, call_next: Callable):
        owner = getattr(route.instance, "name", None) or type(route.instance).__name__
        label = f"{owner}.{entry.name}"

        async def logged(*args, **kwargs):
            cfg = self._effective_config(entry.name)
            if not cfg["enabled"]:
                return await call_next(*args, **kwargs)
            level = logging.getLevelName(cfg["level"])
            if not isinstance(level, int):
                level = logging.INFO
            if cfg["before"]:
                self._logger.log(level, "%s start", label)
            t0 = time.perf_counter()
            result = await call_next(*args, **kwargs)
            elapsed = (time.perf_counter() - t0) * 1000
            if cfg["after"]:
                self._logger.log(level, "%s end (%.2f ms)", label, elapsed)
            return result

        return logged

    def _effective_config(self, entry_name: str) -> dict:
        cfg = {"enabled": True, "before": True, "after": True, "level": "INFO"}
        cfg.update(self.configuration(entry_name))
        return cfg


Router.register_plugin(LoggingPlugin)
