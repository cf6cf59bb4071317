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

from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Protocol, runtime_checkable

EXEC_COMMAND_SUCCESS_EXIT_CODE = 0


class PortProtocol(str, Enum):
    """Transport protocols a service port can be declared with."""

    TCP = "tcp"
    UDP = "udp"
    SCTP = "sctp"


@dataclass(frozen=True)
class PortSpec:
    number: int
    protocol: PortProtocol = PortProtocol.TCP

    def docker_key(self) -> str:
        """Port descriptor in the `<num>/<proto>` form used by container engines."""
        return f"{self.number}/{self.protocol.value}"


@dataclass(frozen=True)
class PortBinding:
    """A port published on the host machine."""

    interface_ip: str
    port: int


@dataclass(frozen=True)
class ExecResult:
    exit_code: int
    output: str


@dataclass(frozen=True)
class ServiceHandle:
    """Opaque handle for a service started on the platform.

    Attributes
    ----------
    name: str
        Service name; doubles as the hostname inside the sandbox network.
    container_id: str
        Platform-specific identifier of the running container.
    ports: Mapping[str, PortSpec]
        Declared ports, keyed by port id (e.g. "rpc").
    maybe_public_ip: str | None
        Host interface the published ports are bound to. None when the
        platform does not publish ports.
    public_ports: Mapping[str, PortBinding]
        Host-machine bindings per port id. Empty when not publishing.
    """

    name: str
    container_id: str
    ports: Mapping[str, PortSpec] = field(default_factory=dict)
    maybe_public_ip: str | None = None
    public_ports: Mapping[str, PortBinding] = field(default_factory=dict)

    def __post_init__(self):
        # read-only copies so a handle cannot change under later services
        object.__setattr__(self, "ports", MappingProxyType(dict(self.ports)))
        object.__setattr__(self, "public_ports", MappingProxyType(dict(self.public_ports)))

    @property
    def hostname(self) -> str:
        return self.name

    def port_num(self, port_id: str) -> int:
        try:
            return self.ports[port_id].number
        except KeyError:
            raise KeyError(f"Service '{self.name}' declares no port '{port_id}'") from None


@runtime_checkable
class OrchestrationPlatform(Protocol):
    """Create services, run commands inside them and look up published ports."""

    def create_service(
        self,
        name: str,
        image: str,
        ports: Mapping[str, PortSpec],
        env: Mapping[str, str],
        *,
        entrypoint: Sequence[str] | None = None,
        command: Sequence[str] | None = None,
    ) -> ServiceHandle: ...

    def exec_in_service(self, handle: ServiceHandle, command: Sequence[str]) -> ExecResult: ...

    def get_external_binding(self, handle: ServiceHandle, port_id: str) -> PortBinding | None: ...
