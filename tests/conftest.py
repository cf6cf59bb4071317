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

import json

import pytest

from near_lambda.exceptions import ServiceCreationError
from near_lambda.platform.protocols import ExecResult, PortBinding, ServiceHandle

VALIDATOR_KEY = {
    "account_id": "test.near",
    "public_key": "ed25519:8Fqv3hrbNdRpHpKCosZMhhqDjEzyFfNGhVyJUd6DQUdo",
    "secret_key": "ed25519:2Cx1nTH8vLdUQn7YAafG3kSWhzVTo8rRfuXFDVbdwQYjw",
}


class FakePlatform:
    """In-memory OrchestrationPlatform recording every call.

    exec_script maps a service name to the results its exec calls return in
    order; the last item repeats once the list is exhausted. Exceptions in
    the script are raised instead of returned.
    """

    def __init__(
        self,
        *,
        publish_ports: bool = False,
        public_ip: str = "10.1.2.3",
        exec_script: dict | None = None,
        fail_on: set[str] | None = None,
    ):
        self.publish_ports = publish_ports
        self.public_ip = public_ip
        self.exec_script = {k: list(v) for k, v in (exec_script or {}).items()}
        self.fail_on = set(fail_on or ())
        self.calls: list[tuple] = []
        self.envs: dict[str, dict[str, str]] = {}
        self.images: dict[str, str] = {}
        self.entrypoints: dict[str, object] = {}
        self._next_port = 40000

    def create_service(self, name, image, ports, env, *, entrypoint=None, command=None):
        self.calls.append(("create", name))
        self.envs[name] = dict(env)
        self.images[name] = image
        self.entrypoints[name] = entrypoint
        if name in self.fail_on:
            raise ServiceCreationError(name, "port already allocated")
        public = {}
        if self.publish_ports:
            for port_id in ports:
                public[port_id] = PortBinding(self.public_ip, self._next_port)
                self._next_port += 1
        return ServiceHandle(
            name=name,
            container_id=f"cid-{name}",
            ports=dict(ports),
            maybe_public_ip=self.public_ip if self.publish_ports else None,
            public_ports=public,
        )

    def exec_in_service(self, handle, command):
        self.calls.append(("exec", handle.name, tuple(command)))
        script = self.exec_script.get(handle.name)
        if not script:
            return ExecResult(0, "")
        item = script.pop(0) if len(script) > 1 else script[0]
        if isinstance(item, Exception):
            raise item
        return item

    def get_external_binding(self, handle, port_id):
        return handle.public_ports.get(port_id)

    def created(self) -> list[str]:
        return [c[1] for c in self.calls if c[0] == "create"]


@pytest.fixture(autouse=True)
def clear_settings_cache_between_tests():
    from near_lambda.config.settings import reload_settings_cache

    reload_settings_cache()
    yield
    reload_settings_cache()


@pytest.fixture
def make_platform():
    def _make(**kwargs) -> FakePlatform:
        kwargs.setdefault(
            "exec_script", {"indexer-node": [ExecResult(0, json.dumps(VALIDATOR_KEY))]}
        )
        return FakePlatform(**kwargs)

    return _make


@pytest.fixture
def validator_key():
    return dict(VALIDATOR_KEY)


@pytest.fixture
def topology():
    """Bundled topology with the indexer poll interval set to zero."""
    from near_lambda.config.topology import BUNDLED_TOPOLOGY, TopologyConfig

    cfg = TopologyConfig.read(BUNDLED_TOPOLOGY)
    cfg.services["indexer"].readiness.delay_s = 0
    return cfg
