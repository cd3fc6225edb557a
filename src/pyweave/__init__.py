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
"""PyWeave — runtime interception of class members through generated proxy types."""

from pyweave.aop import (
    BaseInterceptor,
    CallContext,
    InterceptionPhase,
    InterceptorDeclaration,
    ProxyBuildOptions,
    build_proxy,
    build_proxy_with_options,
    get_proxy_type,
    intercept,
    new_instance,
)
from pyweave.kernel.exceptions import ProxyConstructionError, PyWeaveException

__version__ = "0.1.0"

__all__ = [
    "BaseInterceptor",
    "CallContext",
    "InterceptionPhase",
    "InterceptorDeclaration",
    "ProxyBuildOptions",
    "ProxyConstructionError",
    "PyWeaveException",
    "__version__",
    "build_proxy",
    "build_proxy_with_options",
    "get_proxy_type",
    "intercept",
    "new_instance",
]
