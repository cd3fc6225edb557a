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
"""AOP decorators — @intercept declarations and the AopSupport marker."""

from __future__ import annotations

from collections.abc import Callable
from typing import Any, TypeVar

from pyweave.aop.types import InterceptorDeclaration

T = TypeVar("T")

_DECLARATIONS_ATTR = "__pyweave_interceptors__"


# ---------------------------------------------------------------------------
# @intercept — attaches an InterceptorDeclaration to a class or member
# ---------------------------------------------------------------------------


def intercept(
    interceptor: type | InterceptorDeclaration,
    allow_throw: bool = True,
) -> Callable[[T], T]:
    """Declare an interceptor on a class, method or property.

    Accepts either an interceptor class (plus *allow_throw*) or a ready
    :class:`InterceptorDeclaration`, which may be a subclass carrying extra
    settings. Stacked decorators keep source order, top first::

        @intercept(AuditInterceptor)              # global: every member
        class OrderService:
            @intercept(LoggingInterceptor, allow_throw=False)
            @intercept(TimingInterceptor)
            def place(self, order): ...

            @intercept(ValidationInterceptor)
            @property
            def status(self): ...

    On a ``property`` the declaration is stored on its getter (or setter
    when there is no getter). The declared class is validated when the
    proxy type is built, not here.
    """
    if isinstance(interceptor, InterceptorDeclaration):
        declaration = interceptor
    else:
        declaration = InterceptorDeclaration(interceptor_type=interceptor, allow_throw=allow_throw)

    def decorator(obj: T) -> T:
        holder: Any = obj
        if isinstance(obj, property):
            holder = obj.fget if obj.fget is not None else obj.fset
        if holder is None or isinstance(obj, (staticmethod, classmethod)) or not callable(holder):
            raise TypeError("@intercept can only decorate classes, methods and properties")

        # Read the holder's own declarations only; classes must not copy a base's list.
        own = getattr(holder, "__dict__", {}).get(_DECLARATIONS_ATTR, ())
        setattr(holder, _DECLARATIONS_ATTR, (declaration, *own))
        return obj

    return decorator


def get_declarations(member: Any) -> tuple[InterceptorDeclaration, ...]:
    """Return declarations attached directly to a function, property or class."""
    if isinstance(member, property):
        found: list[InterceptorDeclaration] = []
        for accessor in (member.fget, member.fset):
            for declaration in getattr(accessor, _DECLARATIONS_ATTR, ()):
                if declaration not in found:
                    found.append(declaration)
        return tuple(found)
    if isinstance(member, type):
        return tuple(member.__dict__.get(_DECLARATIONS_ATTR, ()))
    return tuple(getattr(member, _DECLARATIONS_ATTR, ()))


def get_class_declarations(cls: type) -> tuple[InterceptorDeclaration, ...]:
    """Return class-level (global) declarations along the MRO, most-derived first."""
    found: list[InterceptorDeclaration] = []
    for klass in cls.__mro__:
        for declaration in get_declarations(klass):
            if declaration not in found:
                found.append(declaration)
    return tuple(found)


# ---------------------------------------------------------------------------
# AopSupport — opt-in marker for automatic proxying
# ---------------------------------------------------------------------------


class AopSupport:
    """Marker base for classes that :func:`new_instance` should always proxy.

    Usage::

        @intercept(AuditInterceptor)
        class OrderService(AopSupport):
            def place(self, order): ...

        service = new_instance(OrderService)  # a proxy instance
    """

    __slots__ = ()
