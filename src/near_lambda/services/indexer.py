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
from dataclasses import dataclass
import json
from typing import Any

from near_lambda.config.topology import ServiceConfig
from near_lambda.exceptions import TopologyConfigError, ValidatorKeyDecodeError
from near_lambda.helpers.logger import setup_logger
from near_lambda.platform.protocols import OrchestrationPlatform
from near_lambda.platform.urls import host_machine_url, http_url
from near_lambda.services.common import (
    CONTRACT_HELPER_DB,
    require_output,
    spec_from_config,
)
from near_lambda.services.contract_helper_db import ContractHelperDbInfo
from near_lambda.topology.builder import add_service
from near_lambda.topology.spec import ServiceInfo

logger = setup_logger(__name__)

RPC_PORT_ID = "rpc"
DATABASE_URL_ENVVAR = "DATABASE_URL"


@dataclass(frozen=True, kw_only=True)
class IndexerInfo(ServiceInfo):
    validator_key: Mapping[str, Any]

    @property
    def rpc_port_num(self) -> int:
        return self.network_internal_port_num(RPC_PORT_ID)

    @property
    def internal_rpc_url(self) -> str:
        return http_url(self.network_internal_hostname, self.rpc_port_num)


def parse_validator_key(raw: str) -> dict[str, Any]:
    try:
        key = json.loads(raw)
    except json.JSONDecodeError as e:
        raise ValidatorKeyDecodeError(raw, str(e)) from e
    if not isinstance(key, dict):
        raise ValidatorKeyDecodeError(raw, "expected a JSON object")
    return key


def _indexer_env(prior_outputs: Mapping[str, ServiceInfo], _hostname: str) -> dict[str, str]:
    db = require_output(prior_outputs, CONTRACT_HELPER_DB, ContractHelperDbInfo)
    return {DATABASE_URL_ENVVAR: db.connection_url()}


def add_indexer(
    platform: OrchestrationPlatform,
    prior_outputs: Mapping[str, ServiceInfo],
    *,
    config: ServiceConfig,
) -> IndexerInfo:
    """Start the indexer node and read back the validator key it generates."""
    if config.readiness is None:
        raise TopologyConfigError(
            f"Service '{config.name}' needs a readiness command to read its validator key"
        )

    spec = spec_from_config(config, env_fn=_indexer_env)
    added = add_service(platform, spec, prior_outputs)
    validator_key = parse_validator_key(added.readiness_output or "")
    logger.info(f"Indexer validator key read for account {validator_key.get('account_id')!r}")

    return IndexerInfo(
        handle=added.handle,
        maybe_host_machine_url=host_machine_url(platform, added.handle, RPC_PORT_ID),
        validator_key=validator_key,
    )
