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

from typing import Callable

from near_lambda.platform.protocols import (
    OrchestrationPlatform,
    PortBinding,
    ServiceHandle,
)

UrlFormatter = Callable[[str, int], str]


def http_url(ip: str, port: int) -> str:
    return f"http://{ip}:{port}"


def ws_url(ip: str, port: int) -> str:
    return f"ws://{ip}:{port}/ws"


def try_form_external_url(
    maybe_interface_ip: str | None,
    maybe_port_binding: PortBinding | None,
    formatter: UrlFormatter,
) -> str | None:
    """Return a host-machine URL, or None when the port isn't published.

    None is the expected outcome whenever port publishing is disabled.
    """
    if maybe_interface_ip is None or maybe_port_binding is None:
        return None
    return formatter(maybe_interface_ip, maybe_port_binding.port)


def host_machine_url(
    platform: OrchestrationPlatform,
    handle: ServiceHandle,
    port_id: str,
    formatter: UrlFormatter = http_url,
) -> str | None:
    """Host-machine URL for one of the service's ports, if it was published."""
    return try_form_external_url(
        handle.maybe_public_ip,
        platform.get_external_binding(handle, port_id),
        formatter,
    )
