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

"""Block explorer stack: WAMP router, backend and frontend.

The backend talks to the frontend through the WAMP router. The frontend
also needs a WAMP URL reachable from the user's browser, which only exists
when the router's port is published on the host machine.
"""

from collections.abc import Mapping
from dataclasses import dataclass

from near_lambda.config.topology import ServiceConfig
from near_lambda.platform.protocols import OrchestrationPlatform
from near_lambda.platform.urls import host_machine_url, http_url, ws_url
from near_lambda.services.common import (
    EXPLORER_WAMP,
    require_output,
    spec_from_config,
)
from near_lambda.topology.builder import add_service
from near_lambda.topology.spec import ServiceInfo

WAMP_PORT_ID = "ws"
FRONTEND_PORT_ID = "http"

WAMP_PORT_ENVVAR = "WAMP_NEAR_EXPLORER_PORT"
WAMP_SECRET_ENVVAR = "WAMP_NEAR_EXPLORER_BACKEND_SECRET"
WAMP_URL_ENVVAR = "WAMP_NEAR_EXPLORER_URL"
WAMP_INTERNAL_URL_ENVVAR = "WAMP_NEAR_EXPLORER_INTERNAL_URL"


@dataclass(frozen=True, kw_only=True)
class WampInfo(ServiceInfo):
    backend_secret: str

    @property
    def internal_url(self) -> str:
        return ws_url(
            self.network_internal_hostname, self.network_internal_port_num(WAMP_PORT_ID)
        )


@dataclass(frozen=True)
class ExplorerBackendInfo(ServiceInfo):
    pass


@dataclass(frozen=True)
class ExplorerFrontendInfo(ServiceInfo):
    pass


def add_explorer_wamp(
    platform: OrchestrationPlatform,
    prior_outputs: Mapping[str, ServiceInfo],
    *,
    config: ServiceConfig,
) -> WampInfo:
    secret = config.param("backend_secret")
    extra = {WAMP_SECRET_ENVVAR: secret}
    port = config.ports.get(WAMP_PORT_ID)
    if port is not None:
        extra[WAMP_PORT_ENVVAR] = str(port.number)

    added = add_service(platform, spec_from_config(config, extra_env=extra), prior_outputs)
    return WampInfo(
        handle=added.handle,
        maybe_host_machine_url=host_machine_url(platform, added.handle, WAMP_PORT_ID, ws_url),
        backend_secret=secret,
    )


def _backend_env(prior_outputs: Mapping[str, ServiceInfo], _hostname: str) -> dict[str, str]:
    wamp = require_output(prior_outputs, EXPLORER_WAMP, WampInfo)
    return {
        WAMP_URL_ENVVAR: wamp.internal_url,
        WAMP_SECRET_ENVVAR: wamp.backend_secret,
    }


def add_explorer_backend(
    platform: OrchestrationPlatform,
    prior_outputs: Mapping[str, ServiceInfo],
    *,
    config: ServiceConfig,
) -> ExplorerBackendInfo:
    added = add_service(platform, spec_from_config(config, env_fn=_backend_env), prior_outputs)
    return ExplorerBackendInfo(handle=added.handle)


def _frontend_env(prior_outputs: Mapping[str, ServiceInfo], _hostname: str) -> dict[str, str]:
    wamp = require_output(prior_outputs, EXPLORER_WAMP, WampInfo)
    env = {WAMP_INTERNAL_URL_ENVVAR: wamp.internal_url}
    if wamp.maybe_host_machine_url is not None:
        env[WAMP_URL_ENVVAR] = wamp.maybe_host_machine_url
    return env


def add_explorer_frontend(
    platform: OrchestrationPlatform,
    prior_outputs: Mapping[str, ServiceInfo],
    *,
    config: ServiceConfig,
) -> ExplorerFrontendInfo:
    added = add_service(platform, spec_from_config(config, env_fn=_frontend_env), prior_outputs)
    return ExplorerFrontendInfo(
        handle=added.handle,
        maybe_host_machine_url=host_machine_url(
            platform, added.handle, FRONTEND_PORT_ID, http_url
        ),
    )
