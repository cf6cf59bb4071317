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
from typing import TYPE_CHECKING, Any

import docker
from docker.errors import DockerException, ImageNotFound
from requests.exceptions import RequestException

from near_lambda.exceptions import PlatformError, ServiceCreationError
from near_lambda.helpers.logger import setup_logger
from near_lambda.platform.protocols import (
    ExecResult,
    OrchestrationPlatform,
    PortBinding,
    PortSpec,
    ServiceHandle,
)

if TYPE_CHECKING:
    from docker import DockerClient
    from docker.models.containers import Container
    from docker.models.networks import Network

logger = setup_logger(__name__)

SANDBOX_LABEL = "near-lambda.sandbox"

# docker-py leaves daemon socket failures as plain requests errors
DOCKER_ERRORS = (DockerException, RequestException)


@dataclass
class DockerPlatform(OrchestrationPlatform):  # type: ignore[misc]
    """Sandbox platform on a local Docker Engine.

    Every service runs in its own container attached to one labelled bridge
    network, reachable by its service name. With `publish_ports` enabled,
    declared ports are bound to random host ports and reported as
    `PortBinding`s on `public_ip`.

    >>> platform = DockerPlatform(network_name="near-lambda", publish_ports=True)
    >>> handle = platform.create_service("db", "postgres:13.4-alpine", ports, env)
    >>> platform.exec_in_service(handle, ["pg_isready"])
    """

    network_name: str = "near-lambda"
    publish_ports: bool = False
    public_ip: str = "127.0.0.1"
    client: "DockerClient | None" = None

    _network: "Network | None" = field(default=None, init=False, repr=False)

    def _client(self) -> "DockerClient":
        if self.client is None:
            try:
                self.client = docker.from_env()
            except DOCKER_ERRORS as e:
                raise PlatformError(f"Docker daemon is not available: {e}") from e
        return self.client

    def _labels(self) -> dict[str, str]:
        return {SANDBOX_LABEL: self.network_name}

    def _ensure_network(self) -> "Network":
        if self._network is not None:
            return self._network
        client = self._client()
        existing = client.networks.list(names=[self.network_name])
        if existing:
            self._network = existing[0]
        else:
            logger.info(f"Creating sandbox network [cyan]{self.network_name}[/cyan]")
            self._network = client.networks.create(
                self.network_name, driver="bridge", labels=self._labels()
            )
        return self._network

    def _ensure_image(self, image: str) -> None:
        client = self._client()
        try:
            client.images.get(image)
        except ImageNotFound:
            logger.info(f"Pulling image [cyan]{image}[/cyan]…")
            client.images.pull(image)

    def container_name(self, service_name: str) -> str:
        return f"{self.network_name}--{service_name}"

    def create_service(
        self,
        name: str,
        image: str,
        ports: Mapping[str, PortSpec],
        env: Mapping[str, str],
        *,
        entrypoint: Sequence[str] | None = None,
        command: Sequence[str] | None = None,
    ) -> ServiceHandle:
        try:
            network = self._ensure_network()
            self._ensure_image(image)
            container: "Container" = self._client().containers.create(
                image,
                name=self.container_name(name),
                hostname=name,
                environment=dict(env),
                ports=self._port_requests(ports),
                entrypoint=list(entrypoint) if entrypoint else None,
                command=list(command) if command else None,
                labels=self._labels(),
            )
            network.connect(container, aliases=[name])
            container.start()
            container.reload()
        except (PlatformError, *DOCKER_ERRORS) as e:
            raise ServiceCreationError(name, str(e)) from e

        public_ports = self._public_ports(container.attrs, ports) if self.publish_ports else {}
        logger.debug(f"Service {name} started as container {container.short_id}")
        return ServiceHandle(
            name=name,
            container_id=container.id,
            ports=dict(ports),
            maybe_public_ip=self.public_ip if self.publish_ports else None,
            public_ports=public_ports,
        )

    def _port_requests(self, ports: Mapping[str, PortSpec]) -> dict[str, None] | None:
        # None as host port lets the engine pick a free one
        if not self.publish_ports:
            return None
        return {p.docker_key(): None for p in ports.values()}

    def _public_ports(
        self, attrs: dict[str, Any], ports: Mapping[str, PortSpec]
    ) -> dict[str, PortBinding]:
        published = (attrs.get("NetworkSettings") or {}).get("Ports") or {}
        out: dict[str, PortBinding] = {}
        for port_id, spec in ports.items():
            bindings = published.get(spec.docker_key()) or []
            if bindings:
                out[port_id] = PortBinding(
                    interface_ip=self.public_ip, port=int(bindings[0]["HostPort"])
                )
        return out

    def exec_in_service(self, handle: ServiceHandle, command: Sequence[str]) -> ExecResult:
        try:
            container = self._client().containers.get(handle.container_id)
            res = container.exec_run(list(command), stdout=True, stderr=False)
        except DOCKER_ERRORS as e:
            raise PlatformError(
                f"Exec {list(command)} in service '{handle.name}' failed: {e}"
            ) from e
        output = res.output.decode("utf-8", errors="replace") if res.output else ""
        return ExecResult(exit_code=res.exit_code, output=output)

    def get_external_binding(self, handle: ServiceHandle, port_id: str) -> PortBinding | None:
        return handle.public_ports.get(port_id)

    def teardown(self) -> int:
        """Remove every container of this sandbox and its network.

        Returns the number of containers removed.
        """
        client = self._client()
        try:
            containers = client.containers.list(
                all=True, filters={"label": f"{SANDBOX_LABEL}={self.network_name}"}
            )
            for c in containers:
                logger.info(f"Removing container [cyan]{c.name}[/cyan]")
                c.remove(force=True)
            for net in client.networks.list(names=[self.network_name]):
                net.remove()
        except DOCKER_ERRORS as e:
            raise PlatformError(f"Tearing down sandbox '{self.network_name}' failed: {e}") from e
        self._network = None
        return len(containers)
