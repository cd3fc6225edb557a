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
"""StructlogAdapter — renders engine events through structlog and stdlib logging."""

from __future__ import annotations

import logging
import sys
from typing import Any

import structlog

from pyweave.config.properties.logging import LoggingProperties
from pyweave.core.config import Config
from pyweave.logging.port import ENGINE_LOGGER


class StructlogAdapter:
    """Default :class:`~pyweave.logging.port.LoggingPort`.

    Engine modules hold lazy ``structlog.get_logger(ENGINE_LOGGER)`` proxies,
    so loggers are not cached on first use: a later ``configure`` (or
    ``structlog.testing.capture_logs``) still reaches them.
    """

    def __init__(self) -> None:
        self._properties = LoggingProperties()
        self._configured = False

    @property
    def configured(self) -> bool:
        return self._configured

    @property
    def format(self) -> str:
        return str(self._properties.format).lower()

    @property
    def root_level(self) -> str:
        return str((self._properties.level or {}).get("root", "INFO")).upper()

    @property
    def module_levels(self) -> dict[str, str]:
        levels = self._properties.level or {}
        return {name: str(level).upper() for name, level in levels.items() if name != "root"}

    def configure(self, config: Config) -> None:
        """Apply ``pyweave.logging.*``: renderer, root level and per-logger levels."""
        self._properties = config.bind(LoggingProperties)

        structlog.configure(
            processors=self._processors(),
            logger_factory=structlog.stdlib.LoggerFactory(),
            wrapper_class=structlog.stdlib.BoundLogger,
            cache_logger_on_first_use=False,
        )
        logging.basicConfig(
            format="%(message)s",
            stream=sys.stdout,
            level=_level(self.root_level),
            force=True,
        )
        for name, level in self.module_levels.items():
            self.set_level(name, level)
        self._configured = True

    def get_logger(self, name: str = ENGINE_LOGGER) -> Any:
        return structlog.get_logger(name)

    def set_level(self, name: str, level: str) -> None:
        """Set the threshold of the stdlib logger *name* (unknown levels mean INFO)."""
        logging.getLogger(name).setLevel(_level(level))

    def _processors(self) -> list[structlog.types.Processor]:
        processors: list[structlog.types.Processor] = [
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
        ]
        if self.format == "json":
            processors += [structlog.processors.format_exc_info, structlog.processors.JSONRenderer()]
        else:
            processors.append(structlog.dev.ConsoleRenderer())
        return processors


def _level(name: str) -> int:
    level = logging.getLevelName(name.upper())
    return level if isinstance(level, int) else logging.INFO
