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

from functools import partial

from pydantic import BaseModel, ConfigDict, Field, ValidationError
from pydantic_core import PydanticSerializationError

from near_lambda.config.topology import TopologyConfig, load_topology
from near_lambda.exceptions import RequestDecodeError, ResultEncodeError
from near_lambda.helpers.logger import setup_logger
from near_lambda.platform.protocols import OrchestrationPlatform
from near_lambda.services.common import (
    CONTRACT_HELPER,
    CONTRACT_HELPER_DB,
    EXPLORER_BACKEND,
    EXPLORER_FRONTEND,
    EXPLORER_WAMP,
    INDEXER,
    WALLET,
)
from near_lambda.services.contract_helper import add_contract_helper
from near_lambda.services.contract_helper_db import add_contract_helper_db
from near_lambda.services.explorer import (
    add_explorer_backend,
    add_explorer_frontend,
    add_explorer_wamp,
)
from near_lambda.services.indexer import add_indexer
from near_lambda.services.wallet import add_wallet
from near_lambda.topology.builder import TopologyBuilder
from near_lambda.topology.spec import ServiceInfo

logger = setup_logger(__name__)

EXPLORER_STEPS = (EXPLORER_WAMP, EXPLORER_BACKEND, EXPLORER_FRONTEND)


class ExecuteArgs(BaseModel):
    """Request accepted by the lambda. Unknown keys are ignored."""

    model_config = ConfigDict(extra="ignore")

    enable_explorer: bool = False


class NearLambdaResult(BaseModel):
    """Host-machine URLs of the sandbox. Each is None unless ports are published."""

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    maybe_host_machine_explorer_url: str | None = Field(
        default=None, alias="maybeHostMachineExplorerUrl"
    )
    maybe_host_machine_near_node_url: str | None = Field(
        default=None, alias="maybeHostMachineNearNodeUrl"
    )
    maybe_host_machine_contract_helper_url: str | None = Field(
        default=None, alias="maybeHostMachineContractHelperUrl"
    )
    maybe_host_machine_wallet_url: str | None = Field(
        default=None, alias="maybeHostMachineWalletUrl"
    )


def _url_of(outputs: dict[str, ServiceInfo], step: str) -> str | None:
    info = outputs.get(step)
    return info.maybe_host_machine_url if info is not None else None


class NearLambda:
    """Provision the explorer test network on an orchestration platform.

    Services are started in a fixed order, each one seeing the outputs of
    those before it:

    contract-helper DB → indexer → contract helper → [explorer] → wallet

    The explorer stack (WAMP, backend, frontend) runs only when enabled in
    the topology or by the request; it comes before the wallet so the wallet
    can be pointed at it.
    """

    def __init__(self, topology: TopologyConfig | None = None):
        self.topology = topology

    def plan(self, platform: OrchestrationPlatform, args: ExecuteArgs) -> TopologyBuilder:
        topology = self.topology or load_topology()
        steps = {
            CONTRACT_HELPER_DB: add_contract_helper_db,
            INDEXER: add_indexer,
            CONTRACT_HELPER: add_contract_helper,
            EXPLORER_WAMP: add_explorer_wamp,
            EXPLORER_BACKEND: add_explorer_backend,
            EXPLORER_FRONTEND: add_explorer_frontend,
            WALLET: add_wallet,
        }

        builder = TopologyBuilder(platform)
        for step, add_fn in steps.items():
            if step in EXPLORER_STEPS:
                if step not in topology.services:
                    continue
                if not (args.enable_explorer or topology.is_enabled(step)):
                    continue
            elif not topology.service(step).enabled:
                logger.warning(f"Service step [yellow]{step}[/yellow] disabled in topology")
                continue
            builder.add_step(step, partial(add_fn, config=topology.service(step)))
        return builder

    def execute(self, platform: OrchestrationPlatform, serialized_params: str) -> str:
        """Run the lambda and return the serialized `NearLambdaResult`.

        Raises:
            RequestDecodeError: `serialized_params` is not a valid request.
            ResultEncodeError: the result cannot be serialized.
            NearLambdaError: any failure from a service step, unchanged.
        """
        logger.info(f"Near Lambda receives serializedParams '{serialized_params}'")
        try:
            args = ExecuteArgs.model_validate_json(serialized_params)
        except ValidationError as e:
            raise RequestDecodeError(serialized_params, str(e)) from e

        builder = self.plan(platform, args)
        logger.debug(f"Topology steps: {builder.step_names}")
        outputs = builder.build()

        result = NearLambdaResult(
            maybe_host_machine_explorer_url=_url_of(outputs, EXPLORER_FRONTEND),
            maybe_host_machine_near_node_url=_url_of(outputs, INDEXER),
            maybe_host_machine_contract_helper_url=_url_of(outputs, CONTRACT_HELPER),
            maybe_host_machine_wallet_url=_url_of(outputs, WALLET),
        )
        try:
            serialized = result.model_dump_json(by_alias=True)
        except PydanticSerializationError as e:
            raise ResultEncodeError(result, str(e)) from e

        logger.info("Near Lambda executed successfully")
        return serialized
