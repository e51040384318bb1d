"""Parameter schemas and the argument filter (source of truth).

Every command declares an ordered :class:`ParameterList`. Routes aggregate the
lists of their steps. ``ParameterList.filter`` is the only place where caller
supplied values are admitted into a module call.

Parameter
---------
``Parameter(name, type="any", description="", optional=False, default=MISSING,
annotation=Any)``

- ``type`` is the schema type shown to callers (``string``, ``integer``,
  ``number``, ``boolean``, ``array``, ``object``, ``any``).
- ``annotation`` is the Python type used for coercion through a cached
  pydantic ``TypeAdapter`` (lax mode: ``"5"`` becomes ``5`` for integers,
  ``"true"`` becomes ``True`` for booleans).
- A parameter is *required* when it is not optional and has no default.
- Scalars passed to ``array`` parameters are wrapped in a list; strings passed
  to ``object`` parameters are decoded as JSON.
- ``Parameter.from_annotation`` derives a schema from a handler signature
  entry: ``Optional[X]`` marks the parameter optional.

ParameterList
-------------
Immutable, ordered, unique by lowercased name (first declaration wins).

- ``merge(other)`` appends parameters whose names are not present yet.
- ``without(names)`` drops names (case-insensitive).
- ``filter(raw_args, strict=True)``:
    * declared and present → coerced value stored under the declared spelling;
      coercion failure raises ``InvalidParameterError``;
    * absent with a default → default;
    * absent, optional without default → skipped;
    * absent and required → ``MissingParameterError`` in strict mode, skipped
      in lenient mode (there is no default to substitute);
    * keys that are not declared are dropped.

Flag strings
------------
``parse_args("--key value --flag --list a --list b")`` returns
``{"key": "value", "flag": True, "list": ["a", "b"]}``. ``--key=value`` is
accepted. Values are kept as strings; coercion is the filter's job. A token
that is neither a flag nor a flag's value raises ``ValueError``.
"""

from __future__ import annotations

import inspect
import json
import shlex
from collections import abc
from dataclasses import dataclass, field
from functools import lru_cache
from typing import Any, Dict, Iterable, Iterator, List, Mapping, Optional, Sequence, Tuple, Union
from typing import get_args, get_origin

from pydantic import TypeAdapter, ValidationError

from .errors import InvalidParameterError, MissingParameterError

__all__ = ["MISSING", "Parameter", "ParameterList", "parse_args"]


class _Missing:
    def __repr__(self) -> str:
        return "MISSING"

    def __bool__(self) -> bool:
        return False


MISSING: Any = _Missing()

_SCHEMA_TYPES: Dict[str, Any] = {
    "string": str,
    "integer": int,
    "number": float,
    "boolean": bool,
    "array": list,
    "object": dict,
    "any": Any,
}

_NONE_TYPE = type(None)


@lru_cache(maxsize=None)
def _adapter(annotation: Any) -> TypeAdapter:
    return TypeAdapter(annotation)


def _schema_type(annotation: Any) -> str:
    origin = get_origin(annotation) or annotation
    if origin is bool:
        return "boolean"
    if origin is int:
        return "integer"
    if origin is float:
        return "number"
    if origin is str:
        return "string"
    if origin in (list, tuple, set, frozenset, abc.Sequence):
        return "array"
    if origin in (dict, abc.Mapping):
        return "object"
    return "any"


def _unwrap_optional(annotation: Any) -> Tuple[Any, bool]:
    if get_origin(annotation) is Union:
        args = [arg for arg in get_args(annotation) if arg is not _NONE_TYPE]
        if len(args) != len(get_args(annotation)):
            inner = args[0] if len(args) == 1 else Union[tuple(args)]
            return inner, True
    return annotation, False


@dataclass(frozen=True)
class Parameter:
    """Schema of a single named parameter."""

    name: str
    type: str = "any"
    description: str = ""
    optional: bool = False
    default: Any = MISSING
    annotation: Any = field(default=None, compare=False, repr=False)

    def __post_init__(self) -> None:
        if not self.name:
            raise ValueError("Parameter name cannot be empty")
        if self.type not in _SCHEMA_TYPES:
            raise ValueError(f"Unknown parameter type '{self.type}' for '{self.name}'")
        if self.annotation is None:
            object.__setattr__(self, "annotation", _SCHEMA_TYPES[self.type])

    @classmethod
    def from_annotation(
        cls,
        name: str,
        annotation: Any = inspect.Parameter.empty,
        default: Any = inspect.Parameter.empty,
        description: str = "",
    ) -> "Parameter":
        if annotation is inspect.Parameter.empty or isinstance(annotation, str):
            annotation = Any
        annotation, optional = _unwrap_optional(annotation)
        has_default = default is not inspect.Parameter.empty
        return cls(
            name=name,
            type=_schema_type(annotation),
            description=description,
            optional=optional or has_default,
            default=default if has_default else MISSING,
            annotation=annotation,
        )

    @property
    def has_default(self) -> bool:
        return self.default is not MISSING

    @property
    def required(self) -> bool:
        return not self.optional and not self.has_default

    def coerce(self, value: Any) -> Any:
        """Validate ``value`` against the declared type."""
        if value is None and self.optional:
            return None
        if self.type == "array" and not isinstance(value, (list, tuple, set, frozenset)):
            value = [value]
        elif self.type == "object" and isinstance(value, (str, bytes)):
            try:
                value = json.loads(value)
            except ValueError as exc:
                raise InvalidParameterError(self.name, "expected a JSON object") from exc
        try:
            return _adapter(self.annotation).validate_python(value)
        except ValidationError as exc:
            reason = exc.errors()[0].get("msg", "") if exc.errors() else ""
            raise InvalidParameterError(self.name, reason) from exc

    def to_json(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "type": self.type,
            "description": self.description,
            "optional": self.optional or self.has_default,
            "default": self.default if self.has_default else None,
        }


class ParameterList:
    """Ordered, case-insensitively unique collection of parameters."""

    __slots__ = ("_params",)

    def __init__(self, params: Iterable[Parameter] = ()):
        ordered: List[Parameter] = []
        seen: set[str] = set()
        for param in params:
            key = param.name.lower()
            if key in seen:
                continue
            seen.add(key)
            ordered.append(param)
        self._params: Tuple[Parameter, ...] = tuple(ordered)

    def __iter__(self) -> Iterator[Parameter]:
        return iter(self._params)

    def __len__(self) -> int:
        return len(self._params)

    def __contains__(self, name: object) -> bool:
        return isinstance(name, str) and self.get(name) is not None

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, ParameterList):
            return NotImplemented
        return self._params == other._params

    def __repr__(self) -> str:
        return f"ParameterList({', '.join(p.name for p in self._params)})"

    def get(self, name: str) -> Optional[Parameter]:
        key = name.lower()
        for param in self._params:
            if param.name.lower() == key:
                return param
        return None

    def names(self) -> List[str]:
        return [param.name for param in self._params]

    def merge(self, other: Iterable[Parameter]) -> "ParameterList":
        return ParameterList((*self._params, *other))

    def without(self, names: Iterable[str]) -> "ParameterList":
        dropped = {name.lower() for name in names}
        return ParameterList(p for p in self._params if p.name.lower() not in dropped)

    def filter(self, raw_args: Optional[Mapping[str, Any]], strict: bool = True) -> Dict[str, Any]:
        """Return the declared, coerced subset of ``raw_args``."""
        lowered = {str(key).lower(): value for key, value in (raw_args or {}).items()}
        safe: Dict[str, Any] = {}
        for param in self._params:
            key = param.name.lower()
            if key in lowered:
                safe[param.name] = param.coerce(lowered[key])
            elif param.has_default:
                safe[param.name] = param.default
            elif param.optional:
                continue
            elif strict:
                raise MissingParameterError(param.name)
        return safe

    def to_json(self) -> List[Dict[str, Any]]:
        return [param.to_json() for param in self._params]


def parse_args(source: Union[str, Sequence[str], None]) -> Dict[str, Any]:
    """Parse ``--key value`` flags into a dict."""
    if not source:
        return {}
    tokens = shlex.split(source) if isinstance(source, str) else list(source)
    result: Dict[str, Any] = {}

    def store(key: str, value: Any) -> None:
        if key in result:
            current = result[key]
            if isinstance(current, list):
                current.append(value)
            else:
                result[key] = [current, value]
        else:
            result[key] = value

    index = 0
    while index < len(tokens):
        token = tokens[index]
        if not token.startswith("--") or len(token) == 2:
            raise ValueError(f"unexpected argument '{token}'")
        key = token[2:]
        if "=" in key:
            key, value = key.split("=", 1)
            store(key, value)
        elif index + 1 < len(tokens) and not tokens[index + 1].startswith("--"):
            index += 1
            store(key, tokens[index])
        else:
            store(key, True)
        index += 1
    return result
