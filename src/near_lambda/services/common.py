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

from collections.abc import Mapping
from typing import TypeVar

from near_lambda.config.topology import ServiceConfig
from near_lambda.exceptions import TopologyConfigError
from near_lambda.topology.spec import EnvFn, ServiceInfo, ServiceSpec

# Step names, also the keys of the topology file's `services` mapping
CONTRACT_HELPER_DB = "contract_helper_db"
INDEXER = "indexer"
CONTRACT_HELPER = "contract_helper"
WALLET = "wallet"
EXPLORER_WAMP = "explorer_wamp"
EXPLORER_BACKEND = "explorer_backend"
EXPLORER_FRONTEND = "explorer_frontend"

InfoT = TypeVar("InfoT", bound=ServiceInfo)


def spec_from_config(
    config: ServiceConfig,
    *,
    env_fn: EnvFn | None = None,
    extra_env: Mapping[str, str] | None = None,
) -> ServiceSpec:
    return ServiceSpec(
        name=config.name,
        image=config.image,
        ports=config.port_specs(),
        static_env={**config.env, **(extra_env or {})},
        env_fn=env_fn,
        entrypoint=tuple(config.entrypoint) if config.entrypoint else None,
        command=tuple(config.command) if config.command else None,
        readiness=config.readiness.to_check() if config.readiness else None,
    )


def require_output(
    prior_outputs: Mapping[str, ServiceInfo], step: str, kind: type[InfoT]
) -> InfoT:
    """Fetch an earlier step's output, checking it is there and of the right kind."""
    info = prior_outputs.get(step)
    if info is None:
        raise TopologyConfigError(f"Step '{step}' must run before its dependents")
    if not isinstance(info, kind):
        raise TopologyConfigError(
            f"Step '{step}' produced {type(info).__name__}, expected {kind.__name__}"
        )
    return info


def postgres_url(username: str, password: str, hostname: str, port: int, db_name: str) -> str:
    return f"postgres://{username}:{password}@{hostname}:{port}/{db_name}"
