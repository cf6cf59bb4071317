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
from types import MappingProxyType

from near_lambda.platform.protocols import PortSpec, ServiceHandle
from near_lambda.platform.readiness import ReadinessCheck


@dataclass(frozen=True)
class ServiceInfo:
    """Read-only output of a created service, consumed by later services.

    Attributes
    ----------
    handle: ServiceHandle
        The platform handle the service was created with.
    maybe_host_machine_url: str | None
        URL reachable from outside the sandbox. Only set when the
        platform publishes the service's port.
    """

    handle: ServiceHandle
    maybe_host_machine_url: str | None = None

    @property
    def network_internal_hostname(self) -> str:
        return self.handle.hostname

    def network_internal_port_num(self, port_id: str) -> int:
        return self.handle.port_num(port_id)


EnvFn = Callable[[Mapping[str, ServiceInfo], str], Mapping[str, str]]


@dataclass(frozen=True)
class ServiceSpec:
    """Everything needed to ask the platform for one service.

    `env_fn` receives the outputs of the services created so far and the
    internal hostname this service will get; its result is merged over
    `static_env`.
    """

    name: str
    image: str
    ports: Mapping[str, PortSpec] = field(default_factory=dict)
    static_env: Mapping[str, str] = field(default_factory=dict)
    env_fn: EnvFn | None = None
    entrypoint: tuple[str, ...] | None = None
    command: tuple[str, ...] | None = None
    readiness: ReadinessCheck | None = None

    def __post_init__(self):
        object.__setattr__(self, "ports", MappingProxyType(dict(self.ports)))
        object.__setattr__(self, "static_env", MappingProxyType(dict(self.static_env)))

    def resolve_env(self, prior_outputs: Mapping[str, ServiceInfo]) -> dict[str, str]:
        env = dict(self.static_env)
        if self.env_fn is not None:
            env.update(self.env_fn(prior_outputs, self.name))
        return env
