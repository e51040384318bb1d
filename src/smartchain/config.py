"""Configuration models and loader.

Configuration files are JSON (``.json``) or YAML (``.yaml``/``.yml``)
documents validated against :class:`AppConfig`::

    name: demo
    debug: true
    modules:
      - class: myapp.modules:Accounts
        options: {dsn: "sqlite://"}
    routes:
      signup:
        description: creates an account and logs in
        paths:
          - accounts validate
          - accounts create --role user
          - session login

Every load failure (missing file, parse error, validation error) is reported
as :class:`~smartchain.core.errors.ConfigError`. Nothing is ever written back.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Union

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from smartchain.core.errors import ConfigError

__all__ = [
    "RouteOptions",
    "RouteSpec",
    "ModuleConfig",
    "ServerConfig",
    "AppConfig",
    "load_config",
]


class RouteOptions(BaseModel):
    model_config = ConfigDict(frozen=True, extra="ignore")

    broadcast: bool = False


class RouteSpec(BaseModel):
    """Raw route definition as found in configuration."""

    model_config = ConfigDict(extra="ignore")

    name: str = ""
    description: str = ""
    options: RouteOptions = Field(default_factory=RouteOptions)
    paths: List[str] = Field(default_factory=list)


class ModuleConfig(BaseModel):
    """Where to import a module from and how to build it."""

    model_config = ConfigDict(extra="forbid", populate_by_name=True)

    class_path: str = Field(alias="class")
    name: Optional[str] = None
    options: Dict[str, Any] = Field(default_factory=dict)


class ServerConfig(BaseModel):
    model_config = ConfigDict(extra="ignore")

    host: str = "localhost"
    port: int = 4431
    allowed_request_headers: List[str] = Field(default_factory=list)
    allowed_origins: List[str] = Field(default_factory=list)
    response_headers: Dict[str, str] = Field(default_factory=dict)


class AppConfig(BaseModel):
    model_config = ConfigDict(extra="ignore")

    name: str = "smartchain"
    version: str = "1.0"
    author: str = ""
    description: str = ""
    repository: str = ""
    debug: bool = False
    log_file: Optional[str] = None
    modules: List[ModuleConfig] = Field(default_factory=list)
    routes: Dict[str, RouteSpec] = Field(default_factory=dict)
    server: ServerConfig = Field(default_factory=ServerConfig)


def _read(path: Path) -> Dict[str, Any]:
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise ConfigError(f"cannot read config file '{path}': {exc}") from exc
    try:
        if path.suffix.lower() in (".yaml", ".yml"):
            data = yaml.safe_load(text)
        else:
            data = json.loads(text)
    except (yaml.YAMLError, ValueError) as exc:
        raise ConfigError(f"cannot parse config file '{path}': {exc}") from exc
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError(f"config file '{path}' must contain a mapping")
    return data


def load_config(
    path: Union[str, Path, None] = None,
    overrides: Optional[Mapping[str, Any]] = None,
) -> AppConfig:
    """Load and validate the configuration, applying shallow ``overrides``."""
    data: Dict[str, Any] = _read(Path(path)) if path else {}
    data.update({key: value for key, value in (overrides or {}).items() if value is not None})
    try:
        return AppConfig.model_validate(data)
    except ValidationError as exc:
        raise ConfigError(f"invalid configuration: {exc}") from exc
