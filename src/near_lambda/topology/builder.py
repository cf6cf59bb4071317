# Copyright 2025 iGenius S.p.A
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

from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
import time
from types import MappingProxyType

from near_lambda.helpers.logger import setup_logger
from near_lambda.platform.protocols import OrchestrationPlatform, ServiceHandle
from near_lambda.platform.readiness import (
    exec_probe,
    exit_code_is_success,
    poll_until_ready,
    raw_output,
)
from near_lambda.topology.spec import ServiceInfo, ServiceSpec

logger = setup_logger(__name__)


@dataclass(frozen=True)
class AddedService:
    handle: ServiceHandle
    readiness_output: str | None = None


def add_service(
    platform: OrchestrationPlatform,
    spec: ServiceSpec,
    prior_outputs: Mapping[str, ServiceInfo],
    *,
    sleep: Callable[[float], None] = time.sleep,
) -> AddedService:
    """Create one service and, if it declares one, wait for its readiness check.

    Platform failures propagate as ServiceCreationError without retry; a
    readiness budget running out propagates as ReadinessTimeoutError.
    Nothing created here is ever torn down on failure.
    """
    env = spec.resolve_env(prior_outputs)
    logger.info(f"Adding service [cyan]{spec.name}[/cyan] ({spec.image})…")
    handle = platform.create_service(
        spec.name,
        spec.image,
        spec.ports,
        env,
        entrypoint=spec.entrypoint,
        command=spec.command,
    )

    if spec.readiness is None:
        return AddedService(handle=handle)

    logger.info(
        f"Waiting for [cyan]{spec.name}[/cyan] to become ready "
        f"(up to {spec.readiness.policy.max_attempts} attempts)…"
    )
    output = poll_until_ready(
        exec_probe(platform, handle, spec.readiness.command),
        exit_code_is_success,
        raw_output,
        spec.readiness.policy,
        target=spec.name,
        sleep=sleep,
    )
    return AddedService(handle=handle, readiness_output=output)


TopologyStep = Callable[[OrchestrationPlatform, Mapping[str, ServiceInfo]], ServiceInfo]


@dataclass
class TopologyBuilder:
    """Runs named service steps in the order they were added.

    Each step sees a read-only view of the outputs of the steps before it.
    The first failing step stops the build; earlier services are left
    running for the surrounding sandbox to clean up.

    >>> builder = TopologyBuilder(platform)
    >>> builder.add_step("db", add_db)
    >>> builder.add_step("indexer", add_indexer)
    >>> outputs = builder.build()
    """

    platform: OrchestrationPlatform
    _steps: list[tuple[str, TopologyStep]] = field(default_factory=list)

    def add_step(self, name: str, step: TopologyStep) -> "TopologyBuilder":
        if any(existing == name for existing, _ in self._steps):
            raise ValueError(f"Duplicate topology step '{name}'")
        self._steps.append((name, step))
        return self

    @property
    def step_names(self) -> list[str]:
        return [name for name, _ in self._steps]

    def build(self) -> dict[str, ServiceInfo]:
        outputs: dict[str, ServiceInfo] = {}
        for name, step in self._steps:
            outputs[name] = step(self.platform, MappingProxyType(dict(outputs)))
        return outputs
