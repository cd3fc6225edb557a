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
"""Eligibility analysis — decides which members of a class may be wrapped."""

from __future__ import annotations

import builtins
import collections.abc
import inspect
import typing
from typing import Any

from pyweave.aop.decorators import get_class_declarations, get_declarations
from pyweave.aop.interceptor import is_interceptor_type
from pyweave.aop.types import InterceptableMember, InterceptorDeclaration, MemberKind
from pyweave.kernel.exceptions import InvalidInterceptorDeclarationError, SealedTypeError

# Prefix reserved for attributes the engine synthesizes on proxies.
SYNTHETIC_PREFIX = "_pyweave_"

# CPython type flag cleared on classes that refuse subclassing (bool, NoneType, ...).
_TPFLAGS_BASETYPE = 1 << 10


def is_sealed(cls: type) -> bool:
    """Return True if *cls* is marked ``@typing.final`` or cannot be subclassed."""
    if getattr(cls, "__final__", False):
        return True
    return not (cls.__flags__ & _TPFLAGS_BASETYPE)


def is_final(func: Any) -> bool:
    return bool(getattr(func, "__final__", False))


def analyze(target: type, throughout: bool | None = None) -> list[InterceptableMember]:
    """Return the interceptable members declared directly on *target*.

    *throughout* selects every overridable member instead of only the
    explicitly decorated ones; it defaults to "the class carries
    class-level declarations".

    Raises:
        SealedTypeError: *target* cannot be subclassed.
        InvalidInterceptorDeclarationError: a declaration names something
            that is not an interceptor class.
    """
    if not isinstance(target, type):
        raise TypeError(f"Expected a class, got {target!r}")
    if is_sealed(target):
        raise SealedTypeError(target)

    global_declarations = get_class_declarations(target)
    if throughout is None:
        throughout = bool(global_declarations)

    members: list[InterceptableMember] = []
    for name, attr in target.__dict__.items():
        if _is_reserved_name(name):
            continue

        if isinstance(attr, property):
            if not _is_overridable_property(attr):
                continue
            kind = MemberKind.PROPERTY
        elif inspect.isfunction(attr):
            if is_final(attr):
                continue
            kind = MemberKind.METHOD
        else:
            # staticmethod, classmethod, nested classes and plain data are not instance-virtual
            continue

        own = get_declarations(attr)
        if not (throughout or own):
            continue

        declarations = _merge(own, global_declarations)
        for declaration in declarations:
            _validate(target, name, declaration)

        members.append(_describe(target, name, attr, kind, declarations))

    return members


def _is_reserved_name(name: str) -> bool:
    return (name.startswith("__") and name.endswith("__")) or name.startswith(SYNTHETIC_PREFIX)


def _is_overridable_property(prop: property) -> bool:
    accessors = [a for a in (prop.fget, prop.fset) if a is not None]
    return any(not is_final(a) for a in accessors)


def _merge(
    own: tuple[InterceptorDeclaration, ...],
    global_declarations: tuple[InterceptorDeclaration, ...],
) -> tuple[InterceptorDeclaration, ...]:
    merged = list(own)
    for declaration in global_declarations:
        if declaration not in merged:
            merged.append(declaration)
    return tuple(merged)


def _validate(target: type, member: str, declaration: object) -> None:
    if not isinstance(declaration, InterceptorDeclaration):
        raise InvalidInterceptorDeclarationError(target, member, declaration)
    if not is_interceptor_type(declaration.interceptor_type):
        raise InvalidInterceptorDeclarationError(target, member, declaration.interceptor_type)


def _describe(
    target: type,
    name: str,
    attr: Any,
    kind: MemberKind,
    declarations: tuple[InterceptorDeclaration, ...],
) -> InterceptableMember:
    if kind is MemberKind.PROPERTY:
        return InterceptableMember(
            name=name,
            kind=kind,
            defined_type=target,
            original=attr,
            declarations=declarations,
            is_abstract=bool(getattr(attr, "__isabstractmethod__", False)),
            return_type=_return_annotation(attr.fget) if attr.fget is not None else None,
        )

    return_type = _return_annotation(attr)
    is_async = inspect.iscoroutinefunction(attr)
    if not is_async:
        awaited = _awaited_type(return_type)
        if awaited is not _NOT_AWAITABLE:
            is_async, return_type = True, awaited

    return InterceptableMember(
        name=name,
        kind=kind,
        defined_type=target,
        original=attr,
        declarations=declarations,
        is_async=is_async,
        is_abstract=bool(getattr(attr, "__isabstractmethod__", False)),
        return_type=return_type,
    )


_NOT_AWAITABLE = object()


def _return_annotation(func: Any) -> Any:
    """Resolve a function's return annotation, tolerating unresolvable names."""
    try:
        hints = typing.get_type_hints(func)
    except (NameError, TypeError):
        raw = getattr(func, "__annotations__", {}).get("return")
        if isinstance(raw, str):
            # Postponed annotations referring to local names: only builtins can be recovered.
            recovered = getattr(builtins, raw, None) if raw.isidentifier() else None
            return recovered if isinstance(recovered, type) else None
        return raw
    return hints.get("return")


def _awaited_type(annotation: Any) -> Any:
    """Return the result type of an awaitable annotation, or ``_NOT_AWAITABLE``."""
    origin = typing.get_origin(annotation) or annotation
    if not isinstance(origin, type) or not issubclass(origin, collections.abc.Awaitable):
        return _NOT_AWAITABLE
    args = typing.get_args(annotation)
    if origin is collections.abc.Coroutine:
        return args[2] if len(args) == 3 else None
    return args[0] if args else None
