"""SmartChain public API surface.

- Public exports: ``App``, ``Module``, ``command``, ``route``, ``Router``,
  ``Response``/``ResponseCode``, the parameter types and the error hierarchy.
- Built-in plugins (``logging``, ``pydantic``) are imported for their side
  effect of calling ``Router.register_plugin``; ``import_module`` keeps the
  import order explicit.
- ``__version__`` lives here for packaging tools.
"""

from importlib import import_module

__version__ = "0.1.0"

from .core import (
    App,
    ConfigError,
    DomainError,
    InvalidParameterError,
    MissingParameterError,
    Module,
    Parameter,
    ParameterError,
    ParameterList,
    Response,
    ResponseCode,
    ResponseType,
    Router,
    SmartChainError,
    command,
    route,
)
from .config import AppConfig, load_config

# Import plugins to trigger auto-registration
for _plugin in ("logging", "pydantic"):
    import_module(f"{__name__}.plugins.{_plugin}")
del _plugin

__all__ = [
    "App",
    "AppConfig",
    "ConfigError",
    "DomainError",
    "InvalidParameterError",
    "MissingParameterError",
    "Module",
    "Parameter",
    "ParameterError",
    "ParameterList",
    "Response",
    "ResponseCode",
    "ResponseType",
    "Router",
    "SmartChainError",
    "command",
    "load_config",
    "route",
]
