# Copyright 2026 Firefly Software Solutions Inc.
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.
"""Proxy factory — synthesizes, caches and instantiates proxy types."""

from __future__ import annotations

import functools
import types
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any, TypeVar

import structlog

from pyweave.aop.analyzer import analyze
from pyweave.aop.cache import ProxyTypeCache
from pyweave.aop.continuation import build_async_method
from pyweave.aop.decorators import AopSupport
from pyweave.aop.pipeline import build_method, build_property, prepare_instance
from pyweave.aop.types import InterceptableMember, MemberKind
from pyweave.config.properties.aop import AopProperties
from pyweave.core.config import Config
from pyweave.kernel.exceptions import ConstructionFailedError, ProxyConstructionError
from pyweave.logging.port import ENGINE_LOGGER, LoggingPort
from pyweave.logging.structlog_adapter import StructlogAdapter

logger = structlog.get_logger(ENGINE_LOGGER)

T = TypeVar("T")


# ---------------------------------------------------------------------------
# Build options
# ---------------------------------------------------------------------------


@dataclass(eq=False)
class ProxyScope:
    """Named container shared by several builds.

    Proxy types built into a scope report ``name`` as their ``__module__``
    and are registered in :attr:`types` under their class name.
    """

    name: str = "pyweave.proxies"
    types: dict[str, type] = field(default_factory=dict)

    def register(self, proxy_type: type) -> None:
        self.types[proxy_type.__name__] = proxy_type


@dataclass(frozen=True)
class ProxyBuildOptions:
    """Pass-through configuration for proxy type synthesis.

    Attributes:
        type_name_formatter: Format string using ``{name}`` (or ``{0}``) for
            the target class name, or a callable ``(target) -> str``.
        on_type_initialized: Called with ``(namespace, target)`` right before
            the class is created; may add attributes to the namespace.
        on_scope_initialized: Called with the :class:`ProxyScope` used for
            the build.
        scope: Shared scope; a fresh one per build when omitted.
    """

    type_name_formatter: str | Callable[[type], str] | None = None
    on_type_initialized: Callable[[dict[str, Any], type], None] | None = None
    on_scope_initialized: Callable[[ProxyScope], None] | None = None
    scope: ProxyScope | None = None


# ---------------------------------------------------------------------------
# Factory
# ---------------------------------------------------------------------------


def is_proxy_type(cls: Any) -> bool:
    """Return True if *cls* is (or derives from) a generated proxy type."""
    return isinstance(cls, type) and bool(getattr(cls, "__pyweave_proxy__", False))


def get_target_type(cls: type) -> type:
    """Return the class a proxy type was generated for (or *cls* itself)."""
    return getattr(cls, "__pyweave_target__", cls) if is_proxy_type(cls) else cls


class ProxyFactory:
    """Entry point for building proxy types and proxy instances.

    Usage::

        factory = ProxyFactory.from_config(config)
        greeter = factory.build_proxy(Greeter, "hello")
        greeter.greet("Ann")   # runs the declared interceptor pipeline
    """

    def __init__(
        self,
        properties: AopProperties | None = None,
        cache: ProxyTypeCache | None = None,
        event_logger: Any = None,
    ) -> None:
        self._properties = properties or AopProperties()
        self._cache = cache if cache is not None else ProxyTypeCache()
        self._logger = event_logger if event_logger is not None else logger

    @classmethod
    def from_config(cls, config: Config, logging_port: LoggingPort | None = None) -> ProxyFactory:
        """Create a factory bound to the ``pyweave.aop`` configuration section.

        *logging_port* (a :class:`StructlogAdapter` when omitted) is configured
        from ``pyweave.logging.*`` and supplies the factory's logger.
        """
        port = logging_port if logging_port is not None else StructlogAdapter()
        port.configure(config)
        return cls(properties=config.bind(AopProperties), event_logger=port.get_logger(ENGINE_LOGGER))

    @property
    def properties(self) -> AopProperties:
        return self._properties

    @property
    def cache(self) -> ProxyTypeCache:
        return self._cache

    def build_proxy_type(self, target: type, options: ProxyBuildOptions | None = None) -> type:
        """Synthesize a proxy type for *target* without consulting the cache.

        Returns *target* itself when it has no interceptable members.

        Raises:
            SealedTypeError: *target* cannot be subclassed.
            InvalidInterceptorDeclarationError: a declaration is not an interceptor.
            ConstructionFailedError: class creation raised.
        """
        members = analyze(target)
        if not members:
            self._logger.debug("proxy_type_passthrough", target=target.__qualname__)
            return target

        options = options or ProxyBuildOptions()
        try:
            proxy_type = self._synthesize(target, members, options)
        except ProxyConstructionError:
            raise
        except Exception as exc:
            raise ConstructionFailedError(target, exc) from exc

        self._logger.debug(
            "proxy_type_built",
            target=target.__qualname__,
            proxy=proxy_type.__qualname__,
            members=[m.name for m in members],
        )
        return proxy_type

    def get_proxy_type(self, target: type, options: ProxyBuildOptions | None = None) -> type:
        """Return the proxy type for *target*, built at most once per (target, options)."""
        if not self._properties.cache_enabled:
            return self.build_proxy_type(target, options)
        return self._cache.get_or_build(target, options, self.build_proxy_type)

    def build_proxy(self, target: type[T], /, *args: Any, **kwargs: Any) -> T:
        """Instantiate the proxy type of *target*; every argument goes to its constructor."""
        return self.get_proxy_type(target)(*args, **kwargs)

    def build_proxy_with_options(
        self,
        target: type[T],
        options: ProxyBuildOptions | None,
        /,
        *args: Any,
        **kwargs: Any,
    ) -> T:
        """Like :meth:`build_proxy`, but synthesizes (or reuses) the type built with *options*."""
        return self.get_proxy_type(target, options)(*args, **kwargs)

    def new_instance(self, cls: type[T], /, *args: Any, **kwargs: Any) -> T:
        """Construct *cls*, proxied when it opts in through :class:`AopSupport`."""
        if issubclass(cls, AopSupport) and not is_proxy_type(cls):
            return self.build_proxy(cls, *args, **kwargs)
        return cls(*args, **kwargs)

    def _type_name(self, target: type, options: ProxyBuildOptions) -> str:
        formatter = options.type_name_formatter or self._properties.type_name_format
        if callable(formatter):
            return formatter(target)
        return formatter.format(target.__name__, name=target.__name__)

    def _synthesize(
        self,
        target: type,
        members: list[InterceptableMember],
        options: ProxyBuildOptions,
    ) -> type:
        scope = options.scope or ProxyScope(name=f"pyweave.proxies.{target.__module__}")
        if options.on_scope_initialized is not None:
            options.on_scope_initialized(scope)

        name = self._type_name(target, options)
        namespace: dict[str, Any] = {
            "__module__": scope.name,
            "__qualname__": name,
            "__doc__": target.__doc__,
            "__init__": _build_initializer(target),
            "__pyweave_proxy__": True,
            "__pyweave_target__": target,
            "__pyweave_members__": types.MappingProxyType({m.name: m for m in members}),
        }
        for member in members:
            namespace[member.name] = _build_member(member)

        def exec_body(ns: dict[str, Any]) -> None:
            ns.update(namespace)
            if options.on_type_initialized is not None:
                options.on_type_initialized(ns, target)

        proxy_type = types.new_class(name, (target,), exec_body=exec_body)
        scope.register(proxy_type)
        return proxy_type


def _build_member(member: InterceptableMember) -> Any:
    if member.kind is MemberKind.PROPERTY:
        return build_property(member)
    if member.is_async:
        return build_async_method(member)
    return build_method(member)


def _build_initializer(target: type) -> Callable[..., None]:
    base_init = target.__init__

    if base_init is object.__init__:
        # Constructor arguments belong to the target's __new__, if it has one.
        takes_arguments = target.__new__ is not object.__new__

        def __init__(self: Any, *args: Any, **kwargs: Any) -> None:
            if (args or kwargs) and not takes_arguments:
                raise TypeError(f"{target.__name__}() takes no arguments")
            prepare_instance(self)

        __init__.__qualname__ = f"{target.__qualname__}.__init__"
        return __init__

    @functools.wraps(base_init)
    def __init__(self: Any, *args: Any, **kwargs: Any) -> None:
        # Marks must exist before the base constructor touches intercepted members.
        prepare_instance(self)
        base_init(self, *args, **kwargs)

    return __init__


# ---------------------------------------------------------------------------
# Module-level API backed by a default factory
# ---------------------------------------------------------------------------

_default_factory = ProxyFactory()


def default_factory() -> ProxyFactory:
    return _default_factory


def build_proxy_type(target: type, options: ProxyBuildOptions | None = None) -> type:
    """Synthesize an uncached proxy type for *target*."""
    return _default_factory.build_proxy_type(target, options)


def get_proxy_type(target: type, options: ProxyBuildOptions | None = None) -> type:
    """Return the cached proxy type for *target*."""
    return _default_factory.get_proxy_type(target, options)


def build_proxy(target: type[T], /, *args: Any, **kwargs: Any) -> T:
    """Return an instance of the proxy type of *target*.

    Every argument after *target* is passed to the constructor. When
    *target* has no interceptable members, this is a plain instance of
    *target*.
    """
    return _default_factory.build_proxy(target, *args, **kwargs)


def build_proxy_with_options(
    target: type[T],
    options: ProxyBuildOptions | None,
    /,
    *args: Any,
    **kwargs: Any,
) -> T:
    """Return an instance of the proxy type of *target* built with *options*."""
    return _default_factory.build_proxy_with_options(target, options, *args, **kwargs)


def new_instance(cls: type[T], /, *args: Any, **kwargs: Any) -> T:
    """Construct *cls*, proxying it when it derives from :class:`AopSupport`."""
    return _default_factory.new_instance(cls, *args, **kwargs)
