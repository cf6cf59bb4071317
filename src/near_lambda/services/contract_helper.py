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

from near_lambda.config.topology import ServiceConfig
from near_lambda.platform.protocols import OrchestrationPlatform
from near_lambda.platform.urls import host_machine_url
from near_lambda.services.common import (
    CONTRACT_HELPER_DB,
    INDEXER,
    require_output,
    spec_from_config,
)
from near_lambda.services.contract_helper_db import ContractHelperDbInfo
from near_lambda.services.indexer import IndexerInfo
from near_lambda.topology.builder import add_service
from near_lambda.topology.spec import ServiceInfo

REST_PORT_ID = "rest"

INDEXER_DB_CONNECTION_ENVVAR = "INDEXER_DB_CONNECTION"
NODE_URL_ENVVAR = "NODE_URL"
ACCOUNT_CREATOR_KEY_ENVVAR = "ACCOUNT_CREATOR_KEY"


@dataclass(frozen=True)
class ContractHelperInfo(ServiceInfo):
    pass


def _contract_helper_env(
    prior_outputs: Mapping[str, ServiceInfo], _hostname: str
) -> dict[str, str]:
    db = require_output(prior_outputs, CONTRACT_HELPER_DB, ContractHelperDbInfo)
    indexer = require_output(prior_outputs, INDEXER, IndexerInfo)
    return {
        INDEXER_DB_CONNECTION_ENVVAR: db.connection_url(),
        NODE_URL_ENVVAR: indexer.internal_rpc_url,
        ACCOUNT_CREATOR_KEY_ENVVAR: json.dumps(dict(indexer.validator_key)),
    }


def add_contract_helper(
    platform: OrchestrationPlatform,
    prior_outputs: Mapping[str, ServiceInfo],
    *,
    config: ServiceConfig,
) -> ContractHelperInfo:
    spec = spec_from_config(config, env_fn=_contract_helper_env)
    added = add_service(platform, spec, prior_outputs)
    return ContractHelperInfo(
        handle=added.handle,
        maybe_host_machine_url=host_machine_url(platform, added.handle, REST_PORT_ID),
    )
