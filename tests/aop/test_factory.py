"""Tests for ProxyFactory — synthesis, naming, options, caching and instantiation."""

from __future__ import annotations

import pytest
import structlog

from pyweave.aop import (
    AopSupport,
    BaseInterceptor,
    ProxyBuildOptions,
    ProxyFactory,
    ProxyScope,
    ProxyTypeCache,
    build_proxy,
    build_proxy_with_options,
    get_proxy_type,
    get_target_type,
    intercept,
    is_proxy_type,
    new_instance,
)
from pyweave.config.properties.aop import AopProperties
from pyweave.core.config import Config
from pyweave.kernel.exceptions import (
    ConstructionFailedError,
    ProxyConstructionError,
    ProxyErrorKind,
    SealedTypeError,
)


class Upper(BaseInterceptor):
    def on_after_method_call(self, call):
        if isinstance(call.return_value, str):
            call.return_value = call.return_value.upper()


class Greeter:
    """Says hello."""

    def __init__(self, greeting: str = "hello", *, punctuation: str = "") -> None:
        self.greeting = greeting
        self.punctuation = punctuation

    @intercept(Upper)
    def greet(self, name: str) -> str:
        return f"{self.greeting} {name}{self.punctuation}"


class Plain:
    def work(self) -> str:
        return "plain"


# ---------------------------------------------------------------------------
# Synthesis
# ---------------------------------------------------------------------------


class TestProxyTypeSynthesis:
    def test_proxy_type_subclasses_target(self) -> None:
        proxy_type = ProxyFactory().build_proxy_type(Greeter)

        assert issubclass(proxy_type, Greeter)
        assert proxy_type is not Greeter
        assert is_proxy_type(proxy_type)
        assert get_target_type(proxy_type) is Greeter
        assert proxy_type.__doc__ == "Says hello."
        assert set(proxy_type.__pyweave_members__) == {"greet"}

    def test_default_name_and_module(self) -> None:
        proxy_type = ProxyFactory().build_proxy_type(Greeter)

        assert proxy_type.__name__ == "Aspect_Greeter"
        assert proxy_type.__module__ == f"pyweave.proxies.{__name__}"

    def test_overridden_method_keeps_metadata(self) -> None:
        proxy_type = ProxyFactory().build_proxy_type(Greeter)

        assert proxy_type.greet.__name__ == "greet"
        assert proxy_type.greet.__wrapped__ is Greeter.__dict__["greet"]

    def test_type_without_interceptable_members_passes_through(self) -> None:
        factory = ProxyFactory()

        assert factory.build_proxy_type(Plain) is Plain
        assert factory.get_proxy_type(Plain) is Plain
        instance = factory.build_proxy(Plain)
        assert type(instance) is Plain
        assert not is_proxy_type(Plain)
        assert get_target_type(Plain) is Plain

    def test_constructor_arguments_are_forwarded(self) -> None:
        greeter = build_proxy(Greeter, "hi", punctuation="!")

        assert isinstance(greeter, Greeter)
        assert greeter.greet("ann") == "HI ANN!"

    def test_proxy_instance_is_usable_where_target_is_expected(self) -> None:
        def speak(g: Greeter) -> str:
            return g.greet("bob")

        assert speak(build_proxy(Greeter)) == "HELLO BOB"

    def test_sealed_target_raises(self) -> None:
        with pytest.raises(SealedTypeError):
            ProxyFactory().build_proxy_type(bool)

    def test_synthesis_failure_is_wrapped(self) -> None:
        def explode(namespace, target):
            raise RuntimeError("hook failed")

        options = ProxyBuildOptions(on_type_initialized=explode)

        with pytest.raises(ConstructionFailedError) as exc_info:
            ProxyFactory().build_proxy_type(Greeter, options)

        error = exc_info.value
        assert isinstance(error, ProxyConstructionError)
        assert error.kind is ProxyErrorKind.CONSTRUCTION_FAILED
        assert isinstance(error.__cause__, RuntimeError)
        assert error.context["cause"] == "RuntimeError"
        assert "Greeter" in str(error)


# ---------------------------------------------------------------------------
# Constructor forwarding
# ---------------------------------------------------------------------------


class Configurable:
    def __init__(self, options: str | None = None, scope: str = "local") -> None:
        self.options = options
        self.scope = scope

    @intercept(Upper)
    def describe(self) -> str:
        return f"{self.options}@{self.scope}"


class Allocated:
    def __new__(cls, value: int):
        instance = super().__new__(cls)
        instance.value = value
        return instance

    @intercept(Upper)
    def label(self) -> str:
        return f"v{self.value}"


class Bare:
    @intercept(Upper)
    def name(self) -> str:
        return "bare"


class TestConstructorForwarding:
    def test_options_keyword_reaches_target_constructor(self) -> None:
        proxy = build_proxy(Configurable, options="fast", scope="shared")

        assert type(proxy) is get_proxy_type(Configurable)
        assert proxy.options == "fast"
        assert proxy.describe() == "FAST@SHARED"

    def test_factory_forwards_options_keyword(self) -> None:
        proxy = ProxyFactory().build_proxy(Configurable, options="slow")

        assert proxy.options == "slow"
        assert proxy.describe() == "SLOW@LOCAL"

    def test_build_proxy_with_options_names_the_type(self) -> None:
        options = ProxyBuildOptions(type_name_formatter="{name}Proxy")

        greeter = build_proxy_with_options(Greeter, options, "hi", punctuation="?")

        assert type(greeter).__name__ == "GreeterProxy"
        assert greeter.greet("ann") == "HI ANN?"

    def test_build_proxy_with_options_forwards_options_keyword(self) -> None:
        factory = ProxyFactory()
        build_options = ProxyBuildOptions(type_name_formatter="Woven{name}")

        proxy = factory.build_proxy_with_options(Configurable, build_options, options="eager")

        assert type(proxy) is factory.get_proxy_type(Configurable, build_options)
        assert proxy.options == "eager"

    def test_new_instance_forwards_options_keyword(self) -> None:
        class Service(AopSupport):
            def __init__(self, options: str) -> None:
                self.options = options

            @intercept(Upper)
            def read(self) -> str:
                return self.options

        assert new_instance(Service, options="abc").read() == "ABC"

    def test_target_constructed_by_new_only(self) -> None:
        proxy = build_proxy(Allocated, 5)

        assert isinstance(proxy, Allocated)
        assert proxy.value == 5
        assert proxy.label() == "V5"

    def test_target_without_constructor(self) -> None:
        assert build_proxy(Bare).name() == "BARE"

    def test_target_without_constructor_rejects_arguments(self) -> None:
        with pytest.raises(TypeError, match="takes no arguments"):
            build_proxy(Bare, 1)


# ---------------------------------------------------------------------------
# Build options
# ---------------------------------------------------------------------------


class TestProxyBuildOptions:
    def test_format_string_name(self) -> None:
        options = ProxyBuildOptions(type_name_formatter="{name}Proxy")

        assert ProxyFactory().build_proxy_type(Greeter, options).__name__ == "GreeterProxy"

    def test_positional_format_string_name(self) -> None:
        options = ProxyBuildOptions(type_name_formatter="Woven{0}")

        assert ProxyFactory().build_proxy_type(Greeter, options).__name__ == "WovenGreeter"

    def test_callable_name_formatter(self) -> None:
        options = ProxyBuildOptions(type_name_formatter=lambda t: t.__name__.lower() + "_proxy")

        assert ProxyFactory().build_proxy_type(Greeter, options).__name__ == "greeter_proxy"

    def test_type_initialized_hook_can_extend_namespace(self) -> None:
        seen: list = []

        def hook(namespace, target):
            seen.append(target)
            namespace["marker"] = "added"

        proxy_type = ProxyFactory().build_proxy_type(Greeter, ProxyBuildOptions(on_type_initialized=hook))

        assert seen == [Greeter]
        assert proxy_type.marker == "added"

    def test_shared_scope_collects_types(self) -> None:
        class Other:
            @intercept(Upper)
            def name(self) -> str:
                return "other"

        scope = ProxyScope(name="app.proxies")
        initialized: list = []
        options = ProxyBuildOptions(scope=scope, on_scope_initialized=lambda s: initialized.append(s))
        factory = ProxyFactory()

        greeter_type = factory.build_proxy_type(Greeter, options)
        other_type = factory.build_proxy_type(Other, options)

        assert initialized == [scope, scope]
        assert scope.types == {"Aspect_Greeter": greeter_type, "Aspect_Other": other_type}
        assert greeter_type.__module__ == "app.proxies"

    def test_options_are_hashable(self) -> None:
        scope = ProxyScope()

        assert hash(ProxyBuildOptions(scope=scope)) == hash(ProxyBuildOptions(scope=scope))
        assert ProxyBuildOptions(scope=scope) != ProxyBuildOptions(scope=ProxyScope())


# ---------------------------------------------------------------------------
# Caching
# ---------------------------------------------------------------------------


class TestProxyTypeCaching:
    def test_get_proxy_type_is_idempotent(self) -> None:
        factory = ProxyFactory()

        first = factory.get_proxy_type(Greeter)
        second = factory.get_proxy_type(Greeter)

        assert first is second
        assert (Greeter, None) in factory.cache

    def test_distinct_options_build_distinct_types(self) -> None:
        factory = ProxyFactory()
        options = ProxyBuildOptions(type_name_formatter="{name}Proxy")

        default_type = factory.get_proxy_type(Greeter)
        named_type = factory.get_proxy_type(Greeter, options)

        assert default_type is not named_type
        assert factory.get_proxy_type(Greeter, options) is named_type
        assert len(factory.cache) == 2

    def test_module_level_cache_is_shared(self) -> None:
        assert get_proxy_type(Greeter) is get_proxy_type(Greeter)
        assert type(build_proxy(Greeter)) is get_proxy_type(Greeter)

    def test_cache_can_be_disabled(self) -> None:
        factory = ProxyFactory(properties=AopProperties(cache_enabled=False))

        first = factory.get_proxy_type(Greeter)
        second = factory.get_proxy_type(Greeter)

        assert first is not second
        assert len(factory.cache) == 0

    def test_injected_cache_is_used(self) -> None:
        cache = ProxyTypeCache()
        factory = ProxyFactory(cache=cache)

        proxy_type = factory.get_proxy_type(Greeter)

        assert cache.get(Greeter) is proxy_type


# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------


class TestProxyFactoryConfiguration:
    @pytest.fixture(autouse=True)
    def _reset_structlog(self):
        yield
        structlog.reset_defaults()

    def test_defaults(self) -> None:
        properties = ProxyFactory().properties

        assert properties.type_name_format == "Aspect_{name}"
        assert properties.cache_enabled is True

    def test_from_config_binds_aop_section(self) -> None:
        config = Config({"pyweave": {"aop": {"type-name-format": "Woven{name}", "cache-enabled": False}}})

        factory = ProxyFactory.from_config(config)

        assert factory.properties.cache_enabled is False
        assert factory.build_proxy_type(Greeter).__name__ == "WovenGreeter"

    def test_from_config_configures_structlog_by_default(self) -> None:
        ProxyFactory.from_config(Config({"pyweave": {"logging": {"format": "json"}}}))

        assert structlog.is_configured()
        processors = structlog.get_config()["processors"]
        assert isinstance(processors[-1], structlog.processors.JSONRenderer)


# ---------------------------------------------------------------------------
# new_instance / AopSupport
# ---------------------------------------------------------------------------


class Supported(AopSupport):
    def __init__(self, value: str) -> None:
        self.value = value

    @intercept(Upper)
    def read(self) -> str:
        return self.value


class TestNewInstance:
    def test_aop_support_subclass_is_proxied(self) -> None:
        instance = new_instance(Supported, "abc")

        assert is_proxy_type(type(instance))
        assert instance.read() == "ABC"

    def test_plain_class_is_not_proxied(self) -> None:
        instance = new_instance(Greeter)

        assert type(instance) is Greeter
        assert instance.greet("ann") == "hello ann"

    def test_proxy_type_is_not_proxied_again(self) -> None:
        proxy_type = get_proxy_type(Supported)

        instance = new_instance(proxy_type, "xyz")

        assert type(instance) is proxy_type
        assert instance.read() == "XYZ"
