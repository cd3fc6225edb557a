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
"""Interceptor contract and a phase-dispatching base class."""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from pyweave.aop.types import CallContext, InterceptContext


@runtime_checkable
class Interceptor(Protocol):
    """A stateful pipeline stage.

    A fresh instance is created for every intercepted call. ``initialize``
    runs once per member per proxy instance (on the first call), and
    ``intercept`` once per phase of every call.
    """

    def initialize(self, context: InterceptContext) -> None: ...
    def intercept(self, call: CallContext) -> None: ...


def is_interceptor_type(obj: object) -> bool:
    """Return True if *obj* is a class satisfying :class:`Interceptor`."""
    return isinstance(obj, type) and issubclass(obj, Interceptor)


class BaseInterceptor:
    """Convenience base routing each phase to an ``on_<phase>`` hook.

    Usage::

        class AuditInterceptor(BaseInterceptor):
            def on_before_method_call(self, call):
                audit.record(call.member.name, call.arguments)

            def on_catching(self, call):
                audit.failure(call.member.name, call.exception)
    """

    def initialize(self, context: InterceptContext) -> None:
        pass

    def intercept(self, call: CallContext) -> None:
        if call.phase is None:
            return
        handler = getattr(self, f"on_{call.phase.value}", None)
        if handler is not None:
            handler(call)

    def on_before_method_call(self, call: CallContext) -> None:
        pass

    def on_after_method_call(self, call: CallContext) -> None:
        pass

    def on_before_get_value(self, call: CallContext) -> None:
        pass

    def on_after_get_value(self, call: CallContext) -> None:
        pass

    def on_before_set_value(self, call: CallContext) -> None:
        pass

    def on_after_set_value(self, call: CallContext) -> None:
        pass

    def on_catching(self, call: CallContext) -> None:
        pass

    def on_finally(self, call: CallContext) -> None:
        pass
