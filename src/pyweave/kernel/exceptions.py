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
"""Unified exception hierarchy for PyWeave.

All framework exceptions inherit from PyWeaveException, enabling unified
error handling across modules.

Categories:
- ProxyConstructionError: failures while synthesizing a proxy type
  (sealed targets, invalid interceptor declarations, synthesis errors)

Exceptions raised by intercepted members at call time are never wrapped;
they travel through the ``CATCHING`` phase unchanged.
"""

from __future__ import annotations

from enum import Enum

# =============================================================================
# Base Exception
# =============================================================================


class PyWeaveException(Exception):
    """Base exception for all PyWeave errors.

    Carries an optional error code and context dict for structured error data.

    Args:
        message: Human-readable error description.
        code: Machine-readable error code (e.g. "SEALED_TYPE").
        context: Arbitrary key-value pairs for error context and debugging.
    """

    def __init__(
        self,
        message: str,
        code: str | None = None,
        context: dict | None = None,
    ) -> None:
        super().__init__(message)
        self.code = code
        self.context: dict = context if context is not None else {}


# =============================================================================
# Proxy Construction Exceptions
# =============================================================================


class ProxyErrorKind(str, Enum):
    """Build-time failure categories."""

    SEALED_TYPE = "SEALED_TYPE"
    CONSTRUCTION_FAILED = "CONSTRUCTION_FAILED"
    INVALID_INTERCEPTOR_DECLARATION = "INVALID_INTERCEPTOR_DECLARATION"


class ProxyConstructionError(PyWeaveException):
    """A proxy type could not be built for the requested target.

    The :attr:`kind` mirrors :attr:`code` as a typed enum member.
    """

    def __init__(
        self,
        message: str,
        kind: ProxyErrorKind = ProxyErrorKind.CONSTRUCTION_FAILED,
        context: dict | None = None,
    ) -> None:
        super().__init__(message, code=kind.value, context=context)
        self.kind = kind


class SealedTypeError(ProxyConstructionError):
    """The target type cannot be subclassed."""

    def __init__(self, target: type) -> None:
        super().__init__(
            f"Cannot create a proxy for sealed type '{target.__qualname__}'",
            kind=ProxyErrorKind.SEALED_TYPE,
            context={"target": f"{target.__module__}.{target.__qualname__}"},
        )


class ConstructionFailedError(ProxyConstructionError):
    """Type synthesis raised; the original error is chained as ``__cause__``."""

    def __init__(self, target: type, cause: BaseException) -> None:
        super().__init__(
            f"Failed to create a proxy for type '{target.__qualname__}': {cause}",
            kind=ProxyErrorKind.CONSTRUCTION_FAILED,
            context={
                "target": f"{target.__module__}.{target.__qualname__}",
                "cause": type(cause).__name__,
            },
        )


class InvalidInterceptorDeclarationError(ProxyConstructionError):
    """A declared interceptor type does not satisfy the Interceptor contract."""

    def __init__(self, target: type, member: str, interceptor_type: object) -> None:
        name = getattr(interceptor_type, "__qualname__", repr(interceptor_type))
        super().__init__(
            f"Interceptor '{name}' declared on '{target.__qualname__}.{member}' "
            "must be a class providing initialize() and intercept()",
            kind=ProxyErrorKind.INVALID_INTERCEPTOR_DECLARATION,
            context={"target": target.__qualname__, "member": member, "interceptor": name},
        )
