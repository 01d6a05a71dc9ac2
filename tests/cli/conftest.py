"""Pytest configuration and fixtures for CLI tests."""

import pytest
from click.testing import CliRunner

from recdao.cli.main import cli


class Runner:
    """CliRunner bound to the recdao command group."""

    def __init__(self):
        self.runner = CliRunner()

    def invoke(self, args, **kwargs):
        return self.runner.invoke(cli, ["--no-color", *args], **kwargs)


@pytest.fixture
def cli_runner(monkeypatch, temp_dir):
    """Runner isolated from user configuration files."""
    monkeypatch.setenv("XDG_CONFIG_HOME", str(temp_dir / "config"))
    monkeypatch.chdir(temp_dir)
    for variable in (
        "RECDAO_SEPARATOR",
        "RECDAO_LAYOUT",
        "RECDAO_IDENTIFIER",
        "RECDAO_RECORD",
    ):
        monkeypatch.delenv(variable, raising=False)
    return Runner()


@pytest.fixture
def people_csv(temp_dir):
    path = temp_dir / "people.csv"
    path.write_text("id,name,age\n1,Ann,30\n2,Bo,41\n3,Cy,22\n")
    return path


@pytest.fixture
def csv_args(people_csv):
    """Global options selecting the people file."""
    return ["--csv", str(people_csv), "--record", "sample_records:Person", "--id", "id"]
