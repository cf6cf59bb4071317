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

from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field, ValidationError, field_validator
import yaml

from near_lambda.config.settings import get_settings
from near_lambda.exceptions import TopologyConfigError
from near_lambda.helpers.logger import setup_logger
from near_lambda.platform.protocols import PortProtocol, PortSpec
from near_lambda.platform.readiness import ReadinessCheck, RetryPolicy

logger = setup_logger(__name__)

BUNDLED_TOPOLOGY = Path(__file__).resolve().parent / "topology.yaml"


class PortConfig(BaseModel):
    number: int = Field(ge=1, le=65535)
    protocol: PortProtocol = PortProtocol.TCP

    def to_spec(self) -> PortSpec:
        return PortSpec(self.number, self.protocol)


class ReadinessConfig(BaseModel):
    command: list[str] = Field(min_length=1)
    max_attempts: int = Field(default=20, ge=1)
    delay_s: float = Field(default=0.5, ge=0)

    def to_check(self) -> ReadinessCheck:
        """Build the check, applying NEAR_LAMBDA_READINESS_* overrides if set."""
        s = get_settings()
        policy = RetryPolicy(
            max_attempts=s.readiness_max_attempts or self.max_attempts,
            delay_s=self.delay_s if s.readiness_delay_s is None else s.readiness_delay_s,
        )
        return ReadinessCheck(command=tuple(self.command), policy=policy)


class ServiceConfig(BaseModel):
    """One service entry of the topology file."""

    name: str = Field(min_length=1)
    image: str = Field(min_length=1)
    enabled: bool = True
    ports: dict[str, PortConfig] = Field(default_factory=dict)
    env: dict[str, str] = Field(default_factory=dict)
    entrypoint: list[str] | None = None
    command: list[str] | None = None
    readiness: ReadinessConfig | None = None
    params: dict[str, str] = Field(default_factory=dict)

    @field_validator("env", "params", mode="before")
    @classmethod
    def _stringify_scalars(cls, v: Any) -> Any:
        # YAML turns `PORT: 3000` into an int; containers only take strings
        if isinstance(v, dict):
            return {k: val if isinstance(val, str) else str(val) for k, val in v.items()}
        return v

    def port_specs(self) -> dict[str, PortSpec]:
        return {port_id: p.to_spec() for port_id, p in self.ports.items()}

    def param(self, key: str) -> str:
        try:
            return self.params[key]
        except KeyError:
            raise TopologyConfigError(
                f"Service '{self.name}' is missing required param '{key}'"
            ) from None


class TopologyConfig(BaseModel):
    services: dict[str, ServiceConfig]

    def service(self, role: str) -> ServiceConfig:
        try:
            return self.services[role]
        except KeyError:
            raise TopologyConfigError(f"Topology has no '{role}' service") from None

    def is_enabled(self, role: str) -> bool:
        svc = self.services.get(role)
        return svc is not None and svc.enabled

    @classmethod
    def read(cls, path: str | Path) -> "TopologyConfig":
        p = Path(path).expanduser()
        try:
            text = p.read_text()
        except OSError as e:
            raise TopologyConfigError(f"Cannot read topology file {p}: {e}") from e
        return cls.parse_yaml(text, source=str(p))

    @classmethod
    def parse_yaml(cls, text: str, source: str = "<string>") -> "TopologyConfig":
        try:
            data = yaml.safe_load(text)
        except yaml.YAMLError as e:
            raise TopologyConfigError(f"Topology {source} is not valid YAML: {e}") from e
        if not isinstance(data, dict):
            raise TopologyConfigError(f"Topology {source} must be a mapping")
        try:
            return cls.model_validate(data)
        except ValidationError as e:
            raise TopologyConfigError(f"Topology {source} is invalid: {e}") from e


def load_topology(path: str | Path | None = None) -> TopologyConfig:
    """Load the topology from `path`, NEAR_LAMBDA_TOPOLOGY_FILE, or the bundled default."""
    chosen = path or get_settings().topology_file or BUNDLED_TOPOLOGY
    logger.debug(f"Using topology file: {chosen}")
    return TopologyConfig.read(chosen)
