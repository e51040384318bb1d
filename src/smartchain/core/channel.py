"""Listener channel used for message and error observation."""

from __future__ import annotations

import logging
import threading
from typing import Any, Callable, List

__all__ = ["Channel"]

logger = logging.getLogger("smartchain")


class Channel:
    """Publish/subscribe hook list.

    Listeners are called synchronously in subscription order. A failing
    listener is logged and does not prevent the others from running.
    """

    def __init__(self, name: str) -> None:
        self.name = name
        self._listeners: List[Callable[..., Any]] = []
        self._lock = threading.Lock()

    def __len__(self) -> int:
        return len(self._listeners)

    def __repr__(self) -> str:
        return f"<Channel {self.name} listeners={len(self._listeners)}>"

    def subscribe(self, listener: Callable[..., Any]) -> Callable[..., Any]:
        with self._lock:
            if listener not in self._listeners:
                self._listeners.append(listener)
        return listener

    def unsubscribe(self, listener: Callable[..., Any]) -> None:
        with self._lock:
            if listener in self._listeners:
                self._listeners.remove(listener)

    def emit(self, *args: Any) -> None:
        with self._lock:
            listeners = list(self._listeners)
        for listener in listeners:
            try:
                listener(*args)
            except Exception:
                logger.exception("listener %r failed on channel %s", listener, self.name)
