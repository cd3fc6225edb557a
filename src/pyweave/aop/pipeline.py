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
"""Pipeline generator — wraps synchronous methods and properties with the phase protocol.

Every intercepted call follows the same shape::

    interceptors = [declaration.interceptor_type() for each declaration]
    try:
        initialize (first call on this instance only)
        BEFORE_*            (skipped remainder on call.break_)
        original member     (unless call.cancel)
        AFTER_*
    except Exception:
        CATCHING            (re-raise iff any declaration allows it)
    finally:
        FINALLY
    return call.return_value or the return type's default
"""

from __future__ import annotations

import functools
import threading
from collections.abc import Callable
from typing import Any

import structlog

from pyweave.aop.analyzer import SYNTHETIC_PREFIX
from pyweave.aop.types import (
    CallContext,
    InterceptableMember,
    InterceptContext,
    InterceptionPhase,
)
from pyweave.logging.port import ENGINE_LOGGER

logger = structlog.get_logger(ENGINE_LOGGER)

_MARKS_ATTR = f"{SYNTHETIC_PREFIX}initialized"
_LOCK_ATTR = f"{SYNTHETIC_PREFIX}lock"

# Guards lazy creation of per-instance state for instances built without the proxy __init__.
_state_lock = threading.Lock()

_VALUE_TYPES: tuple[type, ...] = (bool, int, float, complex)


# ---------------------------------------------------------------------------
# Per-instance state — initialization marks
# ---------------------------------------------------------------------------


def prepare_instance(instance: Any) -> None:
    """Attach a fresh initialization-mark set and its lock to *instance*."""
    object.__setattr__(instance, _MARKS_ATTR, set())
    object.__setattr__(instance, _LOCK_ATTR, threading.RLock())


def _instance_state(instance: Any) -> tuple[set[str], threading.RLock]:
    state = instance.__dict__
    if _MARKS_ATTR not in state:
        with _state_lock:
            if _MARKS_ATTR not in state:
                prepare_instance(instance)
    return state[_MARKS_ATTR], state[_LOCK_ATTR]


def ensure_initialized(target: Any, member: InterceptableMember, interceptors: list[Any]) -> None:
    """Call ``initialize`` on each interceptor the first time *member* runs on *target*."""
    marks, lock = _instance_state(target)
    if member.name in marks:
        return
    with lock:
        if member.name in marks:
            return
        for interceptor, declaration in zip(interceptors, member.declarations):
            interceptor.initialize(InterceptContext(member=member, target=target, declaration=declaration))
        marks.add(member.name)


def initialized_members(instance: Any) -> frozenset[str]:
    """Names of the members whose interceptors were initialized on *instance*."""
    return frozenset(instance.__dict__.get(_MARKS_ATTR, ()))


# ---------------------------------------------------------------------------
# Phase protocol helpers (shared with the async continuation)
# ---------------------------------------------------------------------------


def create_interceptors(member: InterceptableMember) -> list[Any]:
    return [declaration.interceptor_type() for declaration in member.declarations]


def new_call(target: Any, member: InterceptableMember, args: tuple, kwargs: dict) -> CallContext:
    return CallContext(
        defined_type=member.defined_type,
        member=member,
        target=target,
        return_type=member.return_type,
        arguments=list(args),
        keywords=dict(kwargs),
    )


def run_phase(interceptors: list[Any], call: CallContext, phase: InterceptionPhase) -> None:
    """Dispatch *phase* to every interceptor in order until one sets ``break_``."""
    call.phase = phase
    call.break_ = False
    for interceptor in interceptors:
        interceptor.intercept(call)
        if call.break_:
            break


def catch(interceptors: list[Any], call: CallContext, exc: Exception) -> BaseException | None:
    """Run the ``CATCHING`` phase for *exc*; return the exception to re-raise, if any."""
    call.exception = exc
    run_phase(interceptors, call, InterceptionPhase.CATCHING)
    if call.member.allow_throw and call.exception is not None:
        return call.exception
    logger.debug(
        "invocation_exception_swallowed",
        member=call.member.qualified_name,
        error=repr(exc),
    )
    return None


def default_value(return_type: Any) -> Any:
    """Zero for numeric/bool annotations, ``None`` for everything else."""
    if return_type in _VALUE_TYPES:
        return return_type()
    return None


def resolve_return(call: CallContext) -> Any:
    """Compute the value handed back to the caller.

    A ``None`` return value, whether set explicitly or never set, yields the
    declared type's default.
    """
    value = call.return_value
    if value is None:
        return default_value(call.return_type)
    if call.return_type in _VALUE_TYPES and not isinstance(value, call.return_type):
        return call.return_type(value)
    return value


def invoke(
    target: Any,
    member: InterceptableMember,
    args: tuple,
    kwargs: dict,
    proceed: Callable[[CallContext], None],
    before: InterceptionPhase,
    after: InterceptionPhase,
) -> Any:
    """Run one synchronous intercepted call.

    *proceed* performs the original operation and stores any result in
    ``call.return_value``; it is skipped when an interceptor cancels.
    """
    interceptors = create_interceptors(member)
    call = new_call(target, member, args, kwargs)
    try:
        ensure_initialized(target, member, interceptors)
        run_phase(interceptors, call, before)
        if not call.cancel:
            proceed(call)
        run_phase(interceptors, call, after)
    except Exception as exc:
        error = catch(interceptors, call, exc)
        if error is not None:
            raise error
    finally:
        run_phase(interceptors, call, InterceptionPhase.FINALLY)
    return resolve_return(call)


# ---------------------------------------------------------------------------
# Member wrappers
# ---------------------------------------------------------------------------


def wraps_override(original: Callable[..., Any]) -> Callable[[Callable[..., Any]], Callable[..., Any]]:
    def decorator(wrapper: Callable[..., Any]) -> Callable[..., Any]:
        functools.wraps(original)(wrapper)
        # The override provides the implementation, so it is never abstract.
        wrapper.__isabstractmethod__ = False  # type: ignore[attr-defined]
        return wrapper

    return decorator


def build_method(member: InterceptableMember) -> Callable[..., Any]:
    """Build the overriding function for a synchronous method."""
    original = member.original

    @wraps_override(original)
    def wrapper(self: Any, *args: Any, **kwargs: Any) -> Any:
        def proceed(call: CallContext) -> None:
            if not member.is_abstract:
                call.return_value = original(self, *args, **kwargs)

        return invoke(
            self,
            member,
            args,
            kwargs,
            proceed,
            InterceptionPhase.BEFORE_METHOD_CALL,
            InterceptionPhase.AFTER_METHOD_CALL,
        )

    return wrapper


def backing_field(member: InterceptableMember) -> str:
    """Attribute storing the value of an abstract property."""
    return f"{SYNTHETIC_PREFIX}{member.name}_value"


def build_property(member: InterceptableMember) -> property:
    """Build the overriding property; abstract accessors use a backing field."""
    prop: property = member.original
    field_name = backing_field(member)
    fget, fset = prop.fget, prop.fset

    def _abstract(accessor: Any) -> bool:
        return accessor is None or bool(getattr(accessor, "__isabstractmethod__", False))

    get_from_field = member.is_abstract and _abstract(fget)
    set_to_field = member.is_abstract and _abstract(fset)

    new_fget = None
    if fget is not None or get_from_field:

        def getter(self: Any) -> Any:
            def proceed(call: CallContext) -> None:
                if get_from_field:
                    call.return_value = self.__dict__.get(field_name)
                else:
                    call.return_value = fget(self)

            return invoke(
                self,
                member,
                (),
                {},
                proceed,
                InterceptionPhase.BEFORE_GET_VALUE,
                InterceptionPhase.AFTER_GET_VALUE,
            )

        new_fget = wraps_override(fget)(getter) if fget is not None else getter

    new_fset = None
    if fset is not None or set_to_field:

        def setter(self: Any, value: Any) -> None:
            def proceed(call: CallContext) -> None:
                # Interceptors may replace the assigned value during BEFORE_SET_VALUE.
                if set_to_field:
                    self.__dict__[field_name] = call.arguments[0]
                else:
                    fset(self, call.arguments[0])

            invoke(
                self,
                member,
                (value,),
                {},
                proceed,
                InterceptionPhase.BEFORE_SET_VALUE,
                InterceptionPhase.AFTER_SET_VALUE,
            )

        new_fset = wraps_override(fset)(setter) if fset is not None else setter

    return property(new_fget, new_fset, prop.fdel, prop.__doc__)
