"""Tests for instance-bound command routers."""

import asyncio

import pytest

from smartchain import Router, route
from smartchain.core.base_router import BaseRouter
from smartchain.core.parameters import Parameter
from smartchain.plugins._base_plugin import BasePlugin  # Not public API


class Orders:
    def __init__(self, label: str):
        self.label = label
        self.api = Router(self, name="orders")

    @route("orders")
    def list(self):
        return ["order-1", "order-2"]

    @route("orders")
    async def retrieve(self, ident: str):
        return f"{self.label}:{ident}"

    @route("orders", name="Create", description="Creates an order.")
    def make(self, payload: dict, urgent: bool = False):
        return {"status": "created", "urgent": urgent, **payload}


class Prefixed:
    def __init__(self):
        self.routes = Router(self, name="routes", prefix="handle_")

    @route("routes")
    def handle_list(self):
        """Lists things.

        Longer description is ignored.
        """
        return "list"


def test_marked_methods_are_bound_per_instance():
    first = Orders("acme")
    second = Orders("globex")
    assert asyncio.run(first.api.call("retrieve", "42")) == "acme:42"
    assert asyncio.run(second.api.call("retrieve", ident="7")) == "globex:7"
    assert first.api.entries() == ("list", "retrieve", "create")


def test_names_are_case_insensitive():
    orders = Orders("acme")
    assert orders.api.has("LIST")
    assert asyncio.run(orders.api.get("CREATE")({"id": 1})) == {
        "status": "created",
        "urgent": False,
        "id": 1,
    }


def test_handlers_are_always_awaitable():
    orders = Orders("acme")
    result = orders.api.get("list")()
    assert asyncio.iscoroutine(result)
    assert asyncio.run(result) == ["order-1", "order-2"]


def test_prefix_is_stripped_and_doc_line_used():
    svc = Prefixed()
    assert svc.routes.entries() == ("list",)
    assert svc.routes.entry("list").description == "Lists things."


def test_parameters_come_from_signature():
    orders = Orders("acme")
    params = orders.api.entry("create").parameters
    assert params.names() == ["payload", "urgent"]
    assert params.get("payload").type == "object"
    assert params.get("urgent").default is False
    assert orders.api.entry("create").description == "Creates an order."


def test_explicit_parameters_and_descriptions():
    class Svc:
        def __init__(self):
            self.api = Router(self, name="api")

        @route("api", parameters={"who": "name to greet"})
        def hello(self, who: str = "world"):
            return who

        @route("api", parameters=[Parameter("raw", "integer")])
        def manual(self, **kwargs):
            return kwargs

    svc = Svc()
    assert svc.api.entry("hello").parameters.get("who").description == "name to greet"
    assert svc.api.entry("manual").parameters.names() == ["raw"]


def test_name_collision_raises():
    class Svc:
        def __init__(self):
            self.api = Router(self, name="api")

        @route("api", name="same")
        def one(self):
            return 1

        @route("api", name="SAME")
        def two(self):
            return 2

    with pytest.raises(ValueError, match="collision"):
        Svc()


def test_add_entry_accepts_names_callables_and_replace():
    class Svc:
        def __init__(self):
            self.api = Router(self, name="api", auto_discover=False)

        def alpha(self):
            return "a"

        def beta(self):
            return "b"

    svc = Svc()
    svc.api.add_entry("alpha, beta")
    assert svc.api.entries() == ("alpha", "beta")
    svc.api.add_entry(Svc.alpha, name="beta", replace=True)
    assert asyncio.run(svc.api.call("beta")) == "a"
    with pytest.raises(TypeError):
        svc.api.add_entry(42)
    with pytest.raises(AttributeError):
        svc.api.add_entry("missing")


def test_missing_command_and_default_handler():
    orders = Orders("acme")
    with pytest.raises(NotImplementedError):
        orders.api.get("nope")

    async def fallback():
        return "fallback"

    class Svc:
        def __init__(self):
            self.api = Router(self, name="api", get_default_handler=fallback)

    assert asyncio.run(Svc().api.call("anything")) == "fallback"


def test_router_requires_owner():
    with pytest.raises(ValueError):
        BaseRouter(None, name="api")


def test_describe_lists_entries_in_order():
    described = Orders("acme").api.describe()
    assert [item["name"] for item in described] == ["list", "retrieve", "create"]
    assert described[1]["parameters"][0]["name"] == "ident"


class CapturePlugin(BasePlugin):
    plugin_code = "capture"

    def __init__(self, router, **config):
        self.calls = []
        super().__init__(router, **config)

    def on_decore(self, router, func, entry):
        entry.metadata["capture"] = True

    def wrap_handler(self, router, entry, call_next):
        async def wrapper(*args, **kwargs):
            self.calls.append(entry.name)
            return await call_next(*args, **kwargs)

        return wrapper

    def entry_metadata(self, router, entry):
        return {"captured": entry.metadata.get("capture", False)}


Router.register_plugin(CapturePlugin)


def test_plugin_pipeline_wraps_and_decorates():
    orders = Orders("acme")
    orders.api.plug("capture")
    assert asyncio.run(orders.api.call("list")) == ["order-1", "order-2"]
    assert orders.api.capture.calls == ["list"]
    assert orders.api.entry("list").metadata["capture"] is True
    assert "capture" in orders.api.entry("list").plugins
    described = orders.api.describe()[0]
    assert described["plugins"]["capture"]["metadata"] == {"captured": True}


def test_plug_is_idempotent_and_validates_names():
    orders = Orders("acme")
    orders.api.plug("capture").plug("capture")
    assert len(orders.api.iter_plugins()) == 1
    with pytest.raises(ValueError, match="Unknown plugin"):
        orders.api.plug("does-not-exist")
    with pytest.raises(TypeError):
        orders.api.plug(CapturePlugin)  # type: ignore[arg-type]
    with pytest.raises(AttributeError):
        orders.api.missing_plugin


def test_plugin_can_be_disabled_per_command():
    orders = Orders("acme")
    orders.api.plug("capture")
    orders.api.set_plugin_enabled("LIST", "capture", False)
    assert not orders.api.is_plugin_enabled("list", "capture")
    asyncio.run(orders.api.call("list"))
    asyncio.run(orders.api.call("retrieve", "1"))
    assert orders.api.capture.calls == ["retrieve"]


def test_register_plugin_rejects_invalid_classes():
    class NoCode(BasePlugin):
        pass

    class Other(BasePlugin):
        plugin_code = "capture"

    with pytest.raises(TypeError):
        Router.register_plugin(object)  # type: ignore[arg-type]
    with pytest.raises(ValueError, match="plugin_code"):
        Router.register_plugin(NoCode)
    with pytest.raises(ValueError, match="already registered"):
        Router.register_plugin(Other)
    assert "capture" in Router.available_plugins()
