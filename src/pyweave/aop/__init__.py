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
"""Interception engine — proxy types that run interceptor pipelines around members."""

from pyweave.aop.analyzer import analyze, is_sealed
from pyweave.aop.cache import ProxyTypeCache
from pyweave.aop.continuation import AsyncContinuation, ContinuationState
from pyweave.aop.decorators import AopSupport, get_class_declarations, get_declarations, intercept
from pyweave.aop.factory import (
    ProxyBuildOptions,
    ProxyFactory,
    ProxyScope,
    build_proxy,
    build_proxy_type,
    build_proxy_with_options,
    default_factory,
    get_proxy_type,
    get_target_type,
    is_proxy_type,
    new_instance,
)
from pyweave.aop.interceptor import BaseInterceptor, Interceptor, is_interceptor_type
from pyweave.aop.pipeline import initialized_members
from pyweave.aop.types import (
    CallContext,
    InterceptableMember,
    InterceptContext,
    InterceptionPhase,
    InterceptorDeclaration,
    MemberKind,
)

__all__ = [
    "AopSupport",
    "AsyncContinuation",
    "BaseInterceptor",
    "CallContext",
    "ContinuationState",
    "InterceptContext",
    "InterceptableMember",
    "InterceptionPhase",
    "Interceptor",
    "InterceptorDeclaration",
    "MemberKind",
    "ProxyBuildOptions",
    "ProxyFactory",
    "ProxyScope",
    "ProxyTypeCache",
    "analyze",
    "build_proxy",
    "build_proxy_type",
    "build_proxy_with_options",
    "default_factory",
    "get_class_declarations",
    "get_declarations",
    "get_proxy_type",
    "get_target_type",
    "initialized_members",
    "intercept",
    "is_interceptor_type",
    "is_proxy_type",
    "is_sealed",
    "new_instance",
]
