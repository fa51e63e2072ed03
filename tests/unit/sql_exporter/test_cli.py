"""Tests for the command line entry point."""

from pathlib import Path
from unittest.mock import MagicMock

import pytest

from sql_exporter import cli
from sql_exporter.adapters.mysql import MySqlClient
from sql_exporter.adapters.simulated import SimulatedDbClient

VALID_CONFIG = """
db:
  host: localhost
  port: 3306
  user: root
  pass: secret
  databases: [testschema]
queries:
  - name: mx_test
    intervalSecs: 1
    statement: SELECT 1 AS count
    valueColumns: [count]
"""


@pytest.fixture(autouse=True)
def quiet_logging(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep the process-wide structlog configuration untouched."""
    monkeypatch.setattr(cli, "configure_logging", lambda *args, **kwargs: None)


@pytest.fixture
def uvicorn_run(monkeypatch: pytest.MonkeyPatch) -> MagicMock:
    run = MagicMock()
    monkeypatch.setattr(cli.uvicorn, "run", run)
    return run


@pytest.mark.parametrize("path", ["exporter.yaml", "conf/EXPORTER.YML", "a.b.yml"])
def test_yaml_paths_are_accepted(path: str) -> None:
    assert cli.build_parser().parse_args(["--config", path]).config == path


@pytest.mark.parametrize("path", ["exporter.json", "exporter", ".yaml", "exporter.yaml.bak"])
def test_non_yaml_path_prints_usage_and_exits(
    path: str, capsys: pytest.CaptureFixture[str]
) -> None:
    with pytest.raises(SystemExit) as excinfo:
        cli.main(["--config", path])

    assert excinfo.value.code != 0
    assert "usage:" in capsys.readouterr().err


def test_missing_config_flag_prints_usage_and_exits(capsys: pytest.CaptureFixture[str]) -> None:
    with pytest.raises(SystemExit) as excinfo:
        cli.main([])

    assert excinfo.value.code != 0
    assert "--config" in capsys.readouterr().err


def test_invalid_config_returns_one(tmp_path: Path, uvicorn_run: MagicMock) -> None:
    path = tmp_path / "exporter.yaml"
    path.write_text("db:\n  host: localhost\n")

    assert cli.main(["--config", str(path)]) == 1
    uvicorn_run.assert_not_called()


def test_missing_config_file_returns_one(tmp_path: Path, uvicorn_run: MagicMock) -> None:
    assert cli.main(["--config", str(tmp_path / "absent.yaml")]) == 1
    uvicorn_run.assert_not_called()


def test_valid_config_serves_with_mysql_client(tmp_path: Path, uvicorn_run: MagicMock) -> None:
    path = tmp_path / "exporter.yml"
    path.write_text(VALID_CONFIG)

    assert cli.main(["--config", str(path), "--host", "127.0.0.1", "--port", "9999"]) == 0

    app = uvicorn_run.call_args.args[0]
    assert uvicorn_run.call_args.kwargs["host"] == "127.0.0.1"
    assert uvicorn_run.call_args.kwargs["port"] == 9999
    assert isinstance(app.state.exporter.db_client, MySqlClient)


def test_simulate_flag_uses_simulated_client(tmp_path: Path, uvicorn_run: MagicMock) -> None:
    path = tmp_path / "exporter.yaml"
    path.write_text(VALID_CONFIG)

    assert cli.main(["--config", str(path), "--simulate"]) == 0

    app = uvicorn_run.call_args.args[0]
    assert isinstance(app.state.exporter.db_client, SimulatedDbClient)
