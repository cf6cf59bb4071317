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
from rich.console import Console
from typer.testing import CliRunner

import near_lambda.cli.main as main
from near_lambda.cli.main import app
from near_lambda.exceptions import PlatformError, ServiceCreationError

runner = CliRunner()


def _last_line(text: str) -> str:
    # log records may share the stream with the result on older click
    return text.strip().splitlines()[-1]


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch):
    for var in (
        "NEAR_LAMBDA_PUBLISH_PORTS",
        "NEAR_LAMBDA_NETWORK_NAME",
        "NEAR_LAMBDA_PUBLIC_IP",
        "NEAR_LAMBDA_TOPOLOGY_FILE",
    ):
        monkeypatch.delenv(var, raising=False)


def test_cli_version(monkeypatch):
    monkeypatch.setattr("near_lambda.cli.main.get_version", lambda: "1.2.3")

    result = runner.invoke(app, ["version"])

    assert result.exit_code == 0
    assert "near-lambda CLI Version: 1.2.3" in result.stdout


def test_cli_version_short(monkeypatch):
    monkeypatch.setattr("near_lambda.cli.main.get_version", lambda: "1.2.3")

    result = runner.invoke(app, ["version", "--short"])

    assert result.exit_code == 0
    assert result.stdout.strip() == "1.2.3"


def test_run_prints_result_json(mocker):
    platform_cls = mocker.patch.object(main, "DockerPlatform")
    lambda_cls = mocker.patch.object(main, "NearLambda")
    lambda_cls.return_value.execute.return_value = '{"maybeHostMachineWalletUrl": null}'

    result = runner.invoke(app, ["run", '{"enable_explorer": true}', "--network", "sbx"])

    assert result.exit_code == 0, result.output
    assert json.loads(_last_line(result.stdout)) == {"maybeHostMachineWalletUrl": None}
    platform_cls.assert_called_once_with(
        network_name="sbx", publish_ports=False, public_ip="127.0.0.1"
    )
    lambda_cls.return_value.execute.assert_called_once_with(
        platform_cls.return_value, '{"enable_explorer": true}'
    )


def test_run_publish_flag_overrides_settings(mocker, monkeypatch):
    monkeypatch.setenv("NEAR_LAMBDA_PUBLISH_PORTS", "true")
    platform_cls = mocker.patch.object(main, "DockerPlatform")
    mocker.patch.object(main, "NearLambda").return_value.execute.return_value = "{}"

    result = runner.invoke(app, ["run", "--no-publish-ports"])

    assert result.exit_code == 0, result.output
    assert platform_cls.call_args.kwargs["publish_ports"] is False
    assert platform_cls.call_args.kwargs["network_name"] == "near-lambda"


def test_run_against_fake_platform_end_to_end(mocker, make_platform):
    platform = make_platform(publish_ports=True, public_ip="127.0.0.1")
    mocker.patch.object(main, "DockerPlatform", return_value=platform)

    result = runner.invoke(app, ["run"])

    assert result.exit_code == 0, result.output
    data = json.loads(_last_line(result.stdout))
    assert data["maybeHostMachineNearNodeUrl"].startswith("http://127.0.0.1:")
    assert data["maybeHostMachineExplorerUrl"] is None
    assert platform.created()[-1] == "wallet"


def test_run_failure_exits_with_code_1(mocker):
    mocker.patch.object(main, "DockerPlatform")
    lambda_cls = mocker.patch.object(main, "NearLambda")
    lambda_cls.return_value.execute.side_effect = ServiceCreationError("wallet", "boom")

    result = runner.invoke(app, ["run"])

    assert result.exit_code == 1
    assert "maybeHost" not in result.stdout


def test_run_with_broken_topology_exits_with_code_1(mocker, tmp_path):
    bad = tmp_path / "topology.yaml"
    bad.write_text("services: [unclosed")
    platform_cls = mocker.patch.object(main, "DockerPlatform")

    result = runner.invoke(app, ["run", "--topology", str(bad)])

    assert result.exit_code == 1
    platform_cls.assert_not_called()


def test_run_with_missing_topology_file_is_a_usage_error(tmp_path):
    result = runner.invoke(app, ["run", "--topology", str(tmp_path / "nope.yaml")])

    assert result.exit_code == 2


def test_down_tears_down_the_sandbox(mocker):
    teardown = mocker.patch.object(main.DockerPlatform, "teardown", return_value=3)

    result = runner.invoke(app, ["down", "-n", "sbx"])

    assert result.exit_code == 0, result.output
    teardown.assert_called_once_with()
    assert "Sandbox sbx removed (3 containers)" in result.stdout


def test_down_failure_exits_with_code_1(mocker):
    mocker.patch.object(
        main.DockerPlatform, "teardown", side_effect=PlatformError("daemon gone")
    )

    result = runner.invoke(app, ["down"])

    assert result.exit_code == 1


def test_topology_lists_bundled_services(mocker):
    mocker.patch.object(main, "console", Console(width=200))

    result = runner.invoke(app, ["topology"])

    assert result.exit_code == 0, result.output
    for step in ("contract_helper_db", "indexer", "wallet", "explorer_frontend"):
        assert step in result.stdout
    assert "rpc=3030/tcp" in result.stdout
