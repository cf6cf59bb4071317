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

import pytest

from near_lambda.platform.protocols import PortBinding, PortSpec, ServiceHandle


def test_handle_mappings_are_read_only_copies():
    ports = {"rpc": PortSpec(3030)}
    public = {"rpc": PortBinding("127.0.0.1", 49153)}
    handle = ServiceHandle(name="indexer-node", container_id="c", ports=ports, public_ports=public)

    ports["gossip"] = PortSpec(24567)
    public.clear()

    assert list(handle.ports) == ["rpc"]
    assert handle.public_ports["rpc"].port == 49153
    with pytest.raises(TypeError):
        handle.ports["rpc"] = PortSpec(1)
    with pytest.raises(TypeError):
        handle.public_ports["rpc"] = None


def test_handles_compare_by_content():
    a = ServiceHandle(name="db", container_id="c", ports={"pg": PortSpec(5432)})
    b = ServiceHandle(name="db", container_id="c", ports={"pg": PortSpec(5432)})

    assert a == b
    assert a.port_num("pg") == 5432
    with pytest.raises(KeyError, match="declares no port 'rpc'"):
        a.port_num("rpc")
