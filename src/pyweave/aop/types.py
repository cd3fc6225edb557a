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
"""AOP core types — declarations, member descriptors and call contexts."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class InterceptionPhase(str, Enum):
    """Named points in a member's lifecycle where interceptors run."""

    BEFORE_METHOD_CALL = "before_method_call"
    AFTER_METHOD_CALL = "after_method_call"
    BEFORE_GET_VALUE = "before_get_value"
    AFTER_GET_VALUE = "after_get_value"
    BEFORE_SET_VALUE = "before_set_value"
    AFTER_SET_VALUE = "after_set_value"
    CATCHING = "catching"
    FINALLY = "finally"


class MemberKind(str, Enum):
    METHOD = "method"
    PROPERTY = "property"


@dataclass(frozen=True)
class InterceptorDeclaration:
    """Associates an interceptor class with a class, method or property.

    Subclass it (as another frozen dataclass) to hand extra settings to
    the interceptor; the declaration is available in
    :meth:`Interceptor.initialize` as ``context.declaration``.

    Attributes:
        interceptor_type: Class instantiated with no arguments on every
            intercepted call.
        allow_throw: Whether an exception left in ``call.exception`` after
            the ``CATCHING`` phase is re-raised to the caller.
    """

    interceptor_type: type
    allow_throw: bool = True


@dataclass(frozen=True)
class InterceptableMember:
    """A method or property of a target class eligible for interception.

    Attributes:
        name: Attribute name on the target class.
        kind: Method or property.
        defined_type: The analyzed class that declares the member.
        original: The original function or ``property`` object.
        declarations: Member-level declarations (source order) followed by
            class-level ones.
        is_async: The member returns an awaitable.
        is_abstract: The member has no implementation to fall back to.
        return_type: Type of the value carried in ``call.return_value``
            (the awaited result type for async members), or ``None``.
    """

    name: str
    kind: MemberKind
    defined_type: type
    original: Any
    declarations: tuple[InterceptorDeclaration, ...]
    is_async: bool = False
    is_abstract: bool = False
    return_type: Any = None

    @property
    def qualified_name(self) -> str:
        return f"{self.defined_type.__qualname__}.{self.name}"

    @property
    def allow_throw(self) -> bool:
        """True when any applicable declaration opts in to re-raising."""
        return any(d.allow_throw for d in self.declarations)


@dataclass
class InterceptContext:
    """Passed to :meth:`Interceptor.initialize` once per member per instance."""

    member: InterceptableMember
    target: Any
    declaration: InterceptorDeclaration


@dataclass
class CallContext:
    """Mutable per-invocation record threaded through every phase.

    Attributes:
        defined_type: Class declaring the intercepted member.
        member: Descriptor of the intercepted member.
        target: The proxy instance being called.
        return_type: Declared type of ``return_value``.
        phase: Phase currently being dispatched.
        arguments: Positional arguments (for setters, ``[value]``).
        keywords: Keyword arguments.
        return_value: Result of the original member, or a value supplied
            by an interceptor. ``None`` means "use the type default".
        exception: Exception captured before the ``CATCHING`` phase.
        cancel: Skip the original member for this call.
        break_: Skip the remaining interceptors of the current phase.
    """

    defined_type: type
    member: InterceptableMember
    target: Any
    return_type: Any = None
    phase: InterceptionPhase | None = None
    arguments: list[Any] = field(default_factory=list)
    keywords: dict[str, Any] = field(default_factory=dict)
    return_value: Any = None
    exception: BaseException | None = None
    cancel: bool = False
    break_: bool = False
