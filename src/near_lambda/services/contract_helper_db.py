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
from near_lambda.services.common import postgres_url, spec_from_config
from near_lambda.topology.builder import add_service
from near_lambda.topology.spec import ServiceInfo

POSTGRES_PORT_ID = "postgres"

POSTGRES_USER_ENVVAR = "POSTGRES_USER"
POSTGRES_PASSWORD_ENVVAR = "POSTGRES_PASSWORD"
POSTGRES_DB_ENVVAR = "POSTGRES_DB"


@dataclass(frozen=True, kw_only=True)
class ContractHelperDbInfo(ServiceInfo):
    db_username: str
    db_password: str
    indexer_db: str

    @property
    def port_num(self) -> int:
        return self.network_internal_port_num(POSTGRES_PORT_ID)

    def connection_url(self, db_name: str | None = None) -> str:
        return postgres_url(
            self.db_username,
            self.db_password,
            self.network_internal_hostname,
            self.port_num,
            db_name or self.indexer_db,
        )


def add_contract_helper_db(
    platform: OrchestrationPlatform,
    prior_outputs: Mapping[str, ServiceInfo],
    *,
    config: ServiceConfig,
) -> ContractHelperDbInfo:
    username = config.param("username")
    password = config.param("password")
    indexer_db = config.param("indexer_db")

    spec = spec_from_config(
        config,
        extra_env={
            POSTGRES_USER_ENVVAR: username,
            POSTGRES_PASSWORD_ENVVAR: password,
            POSTGRES_DB_ENVVAR: indexer_db,
        },
    )
    added = add_service(platform, spec, prior_outputs)
    return ContractHelperDbInfo(
        handle=added.handle,
        db_username=username,
        db_password=password,
        indexer_db=indexer_db,
    )
