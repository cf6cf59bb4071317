from importlib.metadata import PackageNotFoundError
import sys

import pytest

import near_lambda.utils.version as mod


def _raise(_: str) -> str:
    """Raise as if the package is not installed."""
    raise PackageNotFoundError("missing")


def _fake_checkout(monkeypatch, tmp_path, pyproject_text: str) -> None:
    module_file = tmp_path / "src" / "near_lambda" / "utils" / "version.py"
    module_file.parent.mkdir(parents=True)
    (tmp_path / "pyproject.toml").write_text(pyproject_text)
    monkeypatch.setattr(mod, "__file__", str(module_file))
    monkeypatch.setattr(mod, "version", _raise)


def test_get_version_from_installed(monkeypatch):
    """Returns the package version when importlib.metadata resolves it.

    Args:
        monkeypatch: Pytest monkeypatch fixture.
    """
    monkeypatch.setattr(mod, "version", lambda _: "1.2.3")
    assert mod.get_version() == "1.2.3"


@pytest.mark.skipif(sys.version_info < (3, 11), reason="tomllib needs Python 3.11")
def test_get_version_from_source_checkout(monkeypatch, tmp_path):
    """Falls back to pyproject.toml when the package is not installed.

    Args:
        monkeypatch: Pytest monkeypatch fixture.
        tmp_path: Temporary directory fixture.
    """
    _fake_checkout(monkeypatch, tmp_path, '[project]\nversion = "9.9.9"\n')
    assert mod.get_version() == "9.9.9"


def test_get_version_missing_key_returns_unknown(monkeypatch, tmp_path):
    """Returns the default when pyproject lacks a version entry.

    Args:
        monkeypatch: Pytest monkeypatch fixture.
        tmp_path: Temporary directory fixture.
    """
    _fake_checkout(monkeypatch, tmp_path, "[project]\nname = 'near-lambda'\n")
    assert mod.get_version() == "0.0.0+unknown"
