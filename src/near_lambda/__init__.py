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

from importlib.metadata import PackageNotFoundError, version
from typing import TYPE_CHECKING

try:
    __version__ = version("near-lambda")
except PackageNotFoundError:  # during dev
    __version__ = "0.0.0"

__all__ = ["DockerPlatform", "NearLambda", "TopologyBuilder", "poll_until_ready"]


def __getattr__(name: str):
    if name == "NearLambda":
        from .core.near_lambda import NearLambda

        return NearLambda
    if name == "DockerPlatform":
        from .backends.docker_platform import DockerPlatform

        return DockerPlatform
    if name == "TopologyBuilder":
        from .topology.builder import TopologyBuilder

        return TopologyBuilder
    if name == "poll_until_ready":
        from .platform.readiness import poll_until_ready

        return poll_until_ready
    raise AttributeError(name)


if TYPE_CHECKING:
    from .backends.docker_platform import DockerPlatform
    from .core.near_lambda import NearLambda
    from .platform.readiness import poll_until_ready
    from .topology.builder import TopologyBuilder
