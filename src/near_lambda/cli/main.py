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
from typing import Annotated, Optional

from rich.console import Console
from rich.table import Table
import typer

from ..backends.docker_platform import DockerPlatform
from ..config.settings import get_settings
from ..config.topology import TopologyConfig, load_topology
from ..core.near_lambda import NearLambda
from ..exceptions import NearLambdaError
from ..helpers.logger import setup_logger
from ..utils.version import get_version

app = typer.Typer(name="near-lambda CLI", no_args_is_help=True)

console = Console()
logger = setup_logger("near_lambda.cli", to_stderr=True)

TopologyOption = Annotated[
    Optional[Path],
    typer.Option(
        "--topology",
        "-t",
        exists=True,
        dir_okay=False,
        help="YAML topology file. Defaults to NEAR_LAMBDA_TOPOLOGY_FILE or the bundled one.",
    ),
]
NetworkOption = Annotated[
    Optional[str],
    typer.Option(
        "--network", "-n", help="Sandbox network name. Defaults to NEAR_LAMBDA_NETWORK_NAME."
    ),
]


def _load_topology_or_exit(topology: Path | None) -> TopologyConfig:
    try:
        return load_topology(topology)
    except NearLambdaError as e:
        logger.error(str(e))
        raise typer.Exit(code=1)


@app.command("version", short_help="Show the version of the near-lambda CLI")
def version(short: bool = False):
    v = get_version()
    print(v if short else f"near-lambda CLI Version: {v}")
    raise typer.Exit()


@app.command("run", short_help="Provision the sandbox network and print its URLs")
def run(
    params: Annotated[
        str,
        typer.Argument(help="Serialized (JSON) request for the lambda."),
    ] = "{}",
    topology: TopologyOption = None,
    network: NetworkOption = None,
    publish_ports: Annotated[
        Optional[bool],
        typer.Option(
            "--publish-ports/--no-publish-ports",
            help="Bind service ports on the host machine. Defaults to NEAR_LAMBDA_PUBLISH_PORTS.",
        ),
    ] = None,
):
    """
    Start every service of the topology in order and print the lambda result.

    The result JSON goes to stdout. When stdout is piped every log record
    goes to stderr, so the output stays parseable; on a terminal INFO
    records are printed on stdout above the result. Services already
    started are left running if a later step fails; use `down` to clean up.
    """
    settings = get_settings()
    cfg = _load_topology_or_exit(topology)
    platform = DockerPlatform(
        network_name=network or settings.network_name,
        publish_ports=settings.publish_ports if publish_ports is None else publish_ports,
        public_ip=settings.public_ip,
    )
    try:
        result = NearLambda(topology=cfg).execute(platform, params)
    except NearLambdaError as e:
        logger.error(f"Near Lambda failed: {e}")
        raise typer.Exit(code=1)
    typer.echo(result)


@app.command("down", short_help="Remove every container and the network of a sandbox")
def down(network: NetworkOption = None):
    platform = DockerPlatform(network_name=network or get_settings().network_name)
    try:
        removed = platform.teardown()
    except NearLambdaError as e:
        logger.error(str(e))
        raise typer.Exit(code=1)
    typer.echo(f"✅ Sandbox {platform.network_name} removed ({removed} containers).")


@app.command("topology", short_help="Show the services of a topology file")
def show_topology(topology: TopologyOption = None):
    cfg = _load_topology_or_exit(topology)
    table = Table(title="Sandbox topology")
    table.add_column("Step", style="bold")
    table.add_column("Service")
    table.add_column("Image", overflow="fold")
    table.add_column("Ports")
    table.add_column("Enabled")
    for step, svc in cfg.services.items():
        ports = ", ".join(f"{pid}={p.number}/{p.protocol.value}" for pid, p in svc.ports.items())
        table.add_row(step, svc.name, svc.image, ports or "-", "yes" if svc.enabled else "no")
    console.print(table)


if __name__ == "__main__":
    app()
