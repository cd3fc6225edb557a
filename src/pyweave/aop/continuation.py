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
"""Async continuation builder — interception of members that return a future.

The override of an async member is a plain function: it runs the
``BEFORE_METHOD_CALL`` phase synchronously, starts the original operation
and hands the caller an unresolved :class:`asyncio.Future` straight away.
An :class:`AsyncContinuation` then resumes once, when the inner future
settles, runs ``AFTER_METHOD_CALL`` or ``CATCHING`` followed by ``FINALLY``,
and only then settles the caller's future.

State transitions::

    NOT_STARTED --(cancel / sync failure / inner already done)--> COMPLETED | FAULTED
    NOT_STARTED --(inner pending)--> SUSPENDED --(inner settles)--> COMPLETED | FAULTED
"""

from __future__ import annotations

import asyncio
import inspect
from collections.abc import Callable
from enum import Enum
from typing import Any

import structlog

from pyweave.aop.pipeline import (
    catch,
    create_interceptors,
    ensure_initialized,
    new_call,
    resolve_return,
    run_phase,
    wraps_override,
)
from pyweave.aop.types import CallContext, InterceptableMember, InterceptionPhase
from pyweave.logging.port import ENGINE_LOGGER

logger = structlog.get_logger(ENGINE_LOGGER)


class ContinuationState(str, Enum):
    NOT_STARTED = "not_started"
    SUSPENDED = "suspended"
    COMPLETED = "completed"
    FAULTED = "faulted"


class AsyncContinuation:
    """Resumable stand-in for one in-flight call of an async member.

    Holds the target, the interceptor list and the call context for that
    single logical call; the same :class:`CallContext` is used before and
    after the suspension point.

    Args:
        target: The proxy instance being called.
        member: Descriptor of the intercepted async member.
        args: Positional arguments of the call.
        kwargs: Keyword arguments of the call.
        proceed: Starts the original operation and returns its awaitable
            (or a plain value, or ``None`` when there is no implementation).

    Raises:
        RuntimeError: No event loop is running in this thread.
    """

    def __init__(
        self,
        target: Any,
        member: InterceptableMember,
        args: tuple,
        kwargs: dict,
        proceed: Callable[[CallContext], Any],
    ) -> None:
        self._loop = asyncio.get_running_loop()
        self.target = target
        self.member = member
        self.interceptors = create_interceptors(member)
        self.call = new_call(target, member, args, kwargs)
        self.state = ContinuationState.NOT_STARTED
        self.future: asyncio.Future[Any] = self._loop.create_future()
        self._proceed = proceed
        self._inner: asyncio.Future[Any] | None = None

    def start(self) -> asyncio.Future[Any]:
        """Run up to the suspension point and return the caller's future.

        When a ``BEFORE_METHOD_CALL`` interceptor sets ``cancel``, the inner
        member is skipped and ``AFTER_METHOD_CALL`` then ``FINALLY`` run at
        once, as on the synchronous path; the future is already resolved
        and the continuation never suspends.
        """
        try:
            ensure_initialized(self.target, self.member, self.interceptors)
            run_phase(self.interceptors, self.call, InterceptionPhase.BEFORE_METHOD_CALL)
            if self.call.cancel:
                self._after()
                return self.future
            result = self._proceed(self.call)
            if inspect.isawaitable(result):
                self._inner = asyncio.ensure_future(result)
            elif result is not None:
                self.call.return_value = result
        except Exception as exc:
            self._fault(exc)
            return self.future

        if self._inner is None:
            self._after()
        elif self._inner.done():
            self._resume(self._inner)
        else:
            self.state = ContinuationState.SUSPENDED
            self._inner.add_done_callback(self._resume)
            self.future.add_done_callback(self._on_outer_done)
        return self.future

    def _resume(self, inner: asyncio.Future[Any]) -> None:
        if inner.cancelled():
            self._finish_cancelled()
            return
        exc = inner.exception()
        if exc is not None:
            self._fault(exc)  # type: ignore[arg-type]
            return
        self.call.return_value = inner.result()
        self._after()

    def _after(self) -> None:
        try:
            run_phase(self.interceptors, self.call, InterceptionPhase.AFTER_METHOD_CALL)
        except Exception as exc:
            self._fault(exc)
            return
        self._finish(None)

    def _fault(self, exc: Exception) -> None:
        error: BaseException | None
        try:
            error = catch(self.interceptors, self.call, exc)
        except Exception as catch_error:
            error = catch_error
        self._finish(error)

    def _finish(self, error: BaseException | None) -> None:
        try:
            run_phase(self.interceptors, self.call, InterceptionPhase.FINALLY)
        except Exception as finally_error:
            error = finally_error

        if self.future.done():
            return
        if error is not None:
            self.state = ContinuationState.FAULTED
            self.future.set_exception(error)
            return
        try:
            value = resolve_return(self.call)
        except Exception as coerce_error:
            self.state = ContinuationState.FAULTED
            self.future.set_exception(coerce_error)
            return
        self.state = ContinuationState.COMPLETED
        self.future.set_result(value)

    def _finish_cancelled(self) -> None:
        try:
            run_phase(self.interceptors, self.call, InterceptionPhase.FINALLY)
        finally:
            self.state = ContinuationState.FAULTED
            if not self.future.done():
                self.future.cancel()

    def _on_outer_done(self, future: asyncio.Future[Any]) -> None:
        if future.cancelled() and self._inner is not None and not self._inner.done():
            logger.debug("continuation_cancelled", member=self.member.qualified_name)
            self._inner.cancel()


def build_async_method(member: InterceptableMember) -> Callable[..., Any]:
    """Build the overriding function for a method returning an awaitable."""
    original = member.original

    @wraps_override(original)
    def wrapper(self: Any, *args: Any, **kwargs: Any) -> asyncio.Future[Any]:
        def proceed(call: CallContext) -> Any:
            if member.is_abstract:
                return None
            return original(self, *args, **kwargs)

        return AsyncContinuation(self, member, args, kwargs, proceed).start()

    return wrapper
