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

from functools import lru_cache
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Centralized environment configuration for near-lambda.

    Env var naming: NEAR_LAMBDA_<FIELD_NAME>.
    A .env file in CWD or ~/.near_lambda/.env is read automatically.
    """

    model_config = SettingsConfigDict(
        env_prefix="NEAR_LAMBDA_",
        env_file=(".env", "~/.near_lambda/.env"),
        env_file_encoding="utf-8",
        extra="ignore",
        case_sensitive=False,
    )

    # --- General -------------------------------------------------------------
    log_level: str = "INFO"
    topology_file: Path | None = Field(
        default=None,
        description="YAML topology to use instead of the bundled one",
    )

    # --- Sandbox -------------------------------------------------------------
    network_name: str = Field(
        default="near-lambda",
        description="Docker network the sandbox services join",
    )
    publish_ports: bool = Field(
        default=False,
        description="Publish service ports on the host machine (debug mode)",
    )  # NEAR_LAMBDA_PUBLISH_PORTS
    public_ip: str = Field(
        default="127.0.0.1",
        description="Host interface reported for published ports",
    )

    # --- Readiness overrides -------------------------------------------------
    readiness_max_attempts: int | None = Field(default=None, ge=1)
    readiness_delay_s: float | None = Field(default=None, ge=0)


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """
    Cached accessor. Call this wherever you need settings.
    Tests can `cache_clear()` before reading to pick up monkeypatched env.
    """
    return Settings()


def reload_settings_cache() -> None:
    get_settings.cache_clear()  # type: ignore[attr-defined]
