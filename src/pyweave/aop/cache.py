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
"""ProxyTypeCache — memoizes generated proxy types per (target, options)."""

from __future__ import annotations

import threading
from collections.abc import Callable, Hashable
from typing import Any

import structlog

from pyweave.logging.port import ENGINE_LOGGER

logger = structlog.get_logger(ENGINE_LOGGER)

CacheKey = tuple[type, Hashable]


class ProxyTypeCache:
    """Write-once registry of synthesized proxy types.

    Construction is serialized under a re-entrant lock, so concurrent misses
    for the same key build the type once and every caller receives the same
    class object. Pass-through results (the target itself) are cached too.

    Usage::

        cache = ProxyTypeCache()
        proxy_type = cache.get_or_build(OrderService, None, synthesize)
    """

    def __init__(self) -> None:
        self._entries: dict[CacheKey, type] = {}
        self._lock = threading.RLock()

    def get(self, target: type, options: Hashable = None) -> type | None:
        """Return the cached type for the key, or ``None``."""
        return self._entries.get((target, options))

    def get_or_build(
        self,
        target: type,
        options: Any,
        builder: Callable[[type, Any], type],
    ) -> type:
        """Return the cached type for the key, building and storing it on a miss."""
        key = (target, options)
        entry = self._entries.get(key)
        if entry is not None:
            logger.debug("proxy_type_cache_hit", target=target.__qualname__)
            return entry

        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                entry = builder(target, options)
                self._entries[key] = entry
        return entry

    def evict(self, target: type, options: Hashable = None) -> bool:
        """Drop one entry. Returns True if it was present."""
        with self._lock:
            return self._entries.pop((target, options), None) is not None

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __contains__(self, key: object) -> bool:
        return key in self._entries

    def __len__(self) -> int:
        return len(self._entries)
