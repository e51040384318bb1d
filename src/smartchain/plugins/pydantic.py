"""Pydantic validation plugin (source of truth).

Responsibilities
----------------
- At registration time (``on_decore``), inspect command type hints and build a
  pydantic model capturing the annotated parameters.
- At call time (``wrap_handler``), validate annotated arguments before calling
  the real command; non-annotated parameters bypass validation.
- Validation failures surface as
  :class:`~smartchain.core.errors.InvalidParameterError` naming the first
  offending field, so the dispatcher reports them like any other parameter
  error.

Behaviour and data
------------------
- ``on_decore(route, func, entry)``:
    * resolves hints via ``get_type_hints(func)``; failures skip the model;
    * drops the ``return`` hint; no hints left means no model;
    * builds the fields from the signature (defaults preserved, otherwise
      required) and creates ``<func.__name__>_Model`` via ``create_model``;
    * stores ``{"model", "hints", "signature"}`` in
      ``entry.metadata["pydantic"]``.
- ``wrap_handler``: passthrough without a model; otherwise binds arguments,
  validates the annotated ones unless the ``disabled`` option is set, and calls
  ``call_next`` with the validated values.
- ``entry_metadata`` exposes the JSON schema of the model.

Registration
------------
Registers itself as ``"pydantic"`` at import.
"""

from __future__ import annotations

import inspect
from typing import Any, Callable, Dict, get_type_hints

from pydantic import ValidationError, create_model

from smartchain.core.errors import InvalidParameterError
from smartchain.core.router import Router
from smartchain.plugins._base_plugin import BasePlugin, MethodEntry


class PydanticPlugin(BasePlugin):
    """Validate command inputs with pydantic using type hints."""

    plugin_code = "pydantic"
    plugin_description = "Validates command inputs using pydantic type hints"

    def configure(self, disabled: bool = False):
        """Storage is handled by the wrapper added in ``__init_subclass__``."""

    def on_decore(self, route: Router, func: Callable, entry: MethodEntry) -> None:
        try:
            hints = get_type_hints(func)
        except Exception:
            return

        hints.pop("return", None)
        if not hints:
            return

        sig = inspect.signature(func)
        fields = {}
        for param_name, hint in hints.items():
            param = sig.parameters.get(param_name)
            if param is None:
                raise ValueError(
                    f"Command '{func.__name__}' has type hint for '{param_name}' "
                    f"which is not in the function signature"
                )
            if param.default is inspect.Parameter.empty:
                fields[param_name] = (hint, ...)
            else:
                fields[param_name] = (hint, param.default)

        entry.metadata["pydantic"] = {
            "model": create_model(f"{func.__name__}_Model", **fields),  # type: ignore
            "hints": hints,
            "signature": sig,
        }

    def wrap_handler(self, route: Router, entry: MethodEntry, call_next: Callable):
        meta = entry.metadata.get("pydantic", {})
        model = meta.get("model")
        if not model:
            return call_next

        sig = meta["signature"]
        hints = meta["hints"]

        async def validated_call(*args, **kwargs):
            if self.configuration(entry.name).get("disabled"):
                return await call_next(*args, **kwargs)

            bound = sig.bind(*args, **kwargs)
            bound.apply_defaults()
            to_validate = {k: v for k, v in bound.arguments.items() if k in hints}
            final_args = {k: v for k, v in bound.arguments.items() if k not in hints}
            try:
                validated = model(**to_validate)
            except ValidationError as exc:
                first = exc.errors()[0] if exc.errors() else {}
                field_name = ".".join(str(part) for part in first.get("loc", ())) or entry.name
                raise InvalidParameterError(field_name, first.get("msg", "")) from exc

            for key, value in validated:
                final_args[key] = value
            return await call_next(**final_args)

        return validated_call

    def entry_metadata(self, router: Any, entry: MethodEntry) -> Dict[str, Any]:
        model = entry.metadata.get("pydantic", {}).get("model")
        if model is None:
            return {}
        return {"schema": model.model_json_schema()}


Router.register_plugin(PydanticPlugin)
