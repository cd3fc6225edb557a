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
"""Tests for LoggingPort — the contract ProxyFactory.from_config wires into."""

from __future__ import annotations

from typing import Any

from pyweave.aop import BaseInterceptor, ProxyFactory, intercept
from pyweave.core.config import Config
from pyweave.logging import ENGINE_LOGGER, LoggingPort, StructlogAdapter


class RecordingLogger:
    def __init__(self) -> None:
        self.events: list[tuple[str, dict]] = []

    def debug(self, event: str, **fields: Any) -> None:
        self.events.append((event, fields))


class RecordingPort:
    def __init__(self) -> None:
        self.logger = RecordingLogger()
        self.configured_with: Config | None = None
        self.requested: list[str] = []

    def configure(self, config: Config) -> None:
        self.configured_with = config

    def get_logger(self, name: str = ENGINE_LOGGER) -> Any:
        self.requested.append(name)
        return self.logger

    def set_level(self, name: str, level: str) -> None:
        pass


class Audited:
    @intercept(BaseInterceptor)
    def work(self) -> str:
        return "done"


class Untouched:
    def work(self) -> str:
        return "done"


class TestLoggingPortProtocol:
    def test_engine_logger_name(self):
        assert ENGINE_LOGGER == "pyweave.aop"

    def test_structlog_adapter_is_a_port(self):
        assert isinstance(StructlogAdapter(), LoggingPort)

    def test_recording_port_is_a_port(self):
        assert isinstance(RecordingPort(), LoggingPort)

    def test_class_missing_configure_is_not_a_port(self):
        class Incomplete:
            def get_logger(self, name: str = ENGINE_LOGGER) -> Any:
                return None

            def set_level(self, name: str, level: str) -> None:
                pass

        assert not isinstance(Incomplete(), LoggingPort)


class TestFactoryWiring:
    def test_from_config_configures_port_with_whole_config(self):
        port = RecordingPort()
        config = Config({"pyweave": {"logging": {"format": "json"}}})

        ProxyFactory.from_config(config, logging_port=port)

        assert port.configured_with is config
        assert port.requested == [ENGINE_LOGGER]

    def test_factory_emits_build_events_through_port_logger(self):
        port = RecordingPort()
        factory = ProxyFactory.from_config(Config({}), logging_port=port)

        factory.build_proxy_type(Audited)
        factory.build_proxy_type(Untouched)

        assert [event for event, _ in port.logger.events] == [
            "proxy_type_built",
            "proxy_type_passthrough",
        ]
        built = port.logger.events[0][1]
        assert built["target"] == "Audited"
        assert built["proxy"] == "Aspect_Audited"
        assert built["members"] == ["work"]

    def test_event_logger_can_be_injected_directly(self):
        recorder = RecordingLogger()

        ProxyFactory(event_logger=recorder).build_proxy_type(Untouched)

        assert recorder.events == [("proxy_type_passthrough", {"target": "Untouched"})]
