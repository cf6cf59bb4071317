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

from near_lambda.config.topology import ServiceConfig
from near_lambda.platform.protocols import OrchestrationPlatform
from near_lambda.platform.urls import host_machine_url
from near_lambda.services.common import (
    CONTRACT_HELPER,
    EXPLORER_FRONTEND,
    INDEXER,
    require_output,
    spec_from_config,
)
from near_lambda.services.contract_helper import ContractHelperInfo
from near_lambda.services.explorer import ExplorerFrontendInfo
from near_lambda.services.indexer import IndexerInfo
from near_lambda.topology.builder import add_service
from near_lambda.topology.spec import ServiceInfo

HTTP_PORT_ID = "http"

NODE_URL_ENVVAR = "NODE_URL"
ACCOUNT_HELPER_URL_ENVVAR = "ACCOUNT_HELPER_URL"
EXPLORER_URL_ENVVAR = "EXPLORER_URL"


@dataclass(frozen=True)
class WalletInfo(ServiceInfo):
    pass


def _wallet_env(prior_outputs: Mapping[str, ServiceInfo], _hostname: str) -> dict[str, str]:
    # The wallet runs in the user's browser, so it only gets URLs that are
    # reachable from the host machine; unpublished upstreams are left out.
    indexer = require_output(prior_outputs, INDEXER, IndexerInfo)
    contract_helper = require_output(prior_outputs, CONTRACT_HELPER, ContractHelperInfo)
    explorer = prior_outputs.get(EXPLORER_FRONTEND)

    candidates = {
        NODE_URL_ENVVAR: indexer.maybe_host_machine_url,
        ACCOUNT_HELPER_URL_ENVVAR: contract_helper.maybe_host_machine_url,
        EXPLORER_URL_ENVVAR: (
            explorer.maybe_host_machine_url
            if isinstance(explorer, ExplorerFrontendInfo)
            else None
        ),
    }
    return {k: v for k, v in candidates.items() if v is not None}


def add_wallet(
    platform: OrchestrationPlatform,
    prior_outputs: Mapping[str, ServiceInfo],
    *,
    config: ServiceConfig,
) -> WalletInfo:
    spec = spec_from_config(config, env_fn=_wallet_env)
    added = add_service(platform, spec, prior_outputs)
    return WalletInfo(
        handle=added.handle,
        maybe_host_machine_url=host_machine_url(platform, added.handle, HTTP_PORT_ID),
    )
