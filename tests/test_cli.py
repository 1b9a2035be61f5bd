"""
Tests for the command-line interface and the server runner.
"""

import json
from unittest.mock import patch

import pytest
from click.testing import CliRunner

from steamcity_platform.cli import cli
from steamcity_platform.config import get_config
from steamcity_platform.server import run_server


@pytest.fixture(autouse=True)
def mock_setup_logging():
    """Keep log handlers off the captured CLI output."""
    with patch('steamcity_platform.cli.setup_logging') as mock_setup:
        yield mock_setup


@pytest.fixture
def runner(monkeypatch, data_dir):
    for name in ("HOST", "PORT", "DEFAULT_PAGE_SIZE", "GENERATOR_SEED", "LOG_LEVEL", "LOG_FILE", "LOG_FORMAT"):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("STEAMCITY_DATA_DIR", str(data_dir))
    return CliRunner()


class TestGroupOptions:
    """Test configuration handling of the command group."""

    def test_environment_configuration(self, runner, data_dir):
        result = runner.invoke(cli, ['status'])

        assert result.exit_code == 0
        assert "=== SteamCity Status ===" in result.output
        assert f"Data directory: {data_dir}" in result.output
        assert "  protocols: 8" in result.output
        assert "  measurements: 8" in result.output

    def test_config_file(self, runner, tmp_path, data_dir):
        config_file = tmp_path / "cli-config.json"
        config_file.write_text(json.dumps({
            "storage": {"data_dir": str(data_dir)},
            "logging": {"level": "WARNING"}
        }), encoding="utf-8")

        result = runner.invoke(cli, ['--config', str(config_file), 'status'])

        assert result.exit_code == 0
        assert "Log level: WARNING" in result.output
        assert get_config().logging.level == "WARNING"

    def test_verbose_sets_debug(self, runner, mock_setup_logging):
        result = runner.invoke(cli, ['--verbose', 'status'])

        assert result.exit_code == 0
        assert mock_setup_logging.call_args[0][0].level == "DEBUG"

    def test_missing_config_file(self, runner):
        result = runner.invoke(cli, ['--config', 'does-not-exist.json', 'status'])
        assert result.exit_code == 2

    def test_invalid_environment_reports_configuration_error(self, runner, monkeypatch, mock_setup_logging):
        monkeypatch.setenv("PORT", "not-a-port")

        result = runner.invoke(cli, ['status'])

        assert result.exit_code == 1
        assert "Configuration error: Environment variable PORT must be an integer" in result.output
        mock_setup_logging.assert_not_called()


class TestBrowsingCommands:
    """Test protocol and experiment listings."""

    def test_protocols_table(self, runner):
        result = runner.invoke(cli, ['protocols', '--cluster', '3'])

        assert result.exit_code == 0
        assert "decibel-detectives" in result.output
        assert "city-detective" in result.output
        assert "2 protocol(s)" in result.output

    def test_protocols_json(self, runner):
        result = runner.invoke(cli, ['protocols', '--difficulty', 'advanced', '--format', 'json'])

        assert result.exit_code == 0
        assert [p["id"] for p in json.loads(result.output)] == ["warm-walls", "waste-sorting-ai"]

    def test_search(self, runner):
        result = runner.invoke(cli, ['search', 'noise', '--format', 'json'])

        data = json.loads(result.output)
        assert [p["id"] for p in data] == ["decibel-detectives"]
        assert data[0]["primaryClusterData"]["name"] == "Sound"

    def test_search_blank_query_fails(self, runner):
        result = runner.invoke(cli, ['search', '   '])

        assert result.exit_code == 1
        assert "Search failed:" in result.output

    def test_experiments(self, runner):
        public = runner.invoke(cli, ['experiments', '--format', 'json'])
        everything = runner.invoke(cli, ['experiments', '--include-private', '--status', 'active'])

        assert len(json.loads(public.output)) == 3
        assert "2 experiment(s)" in everything.output
        assert "Giulia Bianchi" in everything.output


class TestDataCommands:
    """Test generation, validation and export."""

    def test_generate_requires_confirmation(self, runner, store):
        result = runner.invoke(cli, ['generate'], input="n\n")

        assert result.exit_code == 1
        assert store.counts()["experiments"] == 4

    def test_generate(self, runner, store):
        result = runner.invoke(cli, ['generate', '--yes', '--seed', '5', '--days', '1',
                                     '--experiments-per-protocol', '1'])

        assert result.exit_code == 0
        assert "=== Generation Results ===" in result.output
        assert "Experiments: 8" in result.output
        assert "Sensors: 16" in result.output
        # one reading every 2 hours for a day on each sensor
        assert "Measurements: 192" in result.output
        assert store.counts()["clusters"] == 5
        assert store.counts()["measurements"] == 192

    def test_validate_sample_data(self, runner):
        result = runner.invoke(cli, ['validate'])

        assert result.exit_code == 0
        assert "All collections are valid." in result.output

    def test_validate_dangling_cluster(self, runner, data_dir):
        protocols = json.loads((data_dir / "protocols.json").read_text(encoding="utf-8"))
        protocols[0]["primaryCluster"] = 42
        protocols[1]["secondaryClusters"] = [43]
        (data_dir / "protocols.json").write_text(json.dumps(protocols), encoding="utf-8")

        result = runner.invoke(cli, ['validate'])

        assert result.exit_code == 1
        assert "unknown primary cluster 42" in result.output
        assert "WARNING: Protocol outdoor-air-particles references unknown secondary cluster 43" in result.output

    def test_export_to_file(self, runner, tmp_path):
        target = tmp_path / "co2.csv"

        result = runner.invoke(cli, ['export', '--format', 'csv', '--sensor-type', 'co2', '-o', str(target)])

        assert result.exit_code == 0
        assert f"Exported 3 measurements to {target}" in result.output
        assert len(target.read_text(encoding="utf-8").strip().splitlines()) == 4

    def test_export_to_stdout(self, runner):
        result = runner.invoke(cli, ['export', '--experiment', 'exp_1760000000001_f5g6h7i8j'])

        assert result.exit_code == 0
        assert [m["value"] for m in json.loads(result.output)] == [12.1, 8.7]

    def test_export_value_range(self, runner):
        result = runner.invoke(cli, ['export', '--sensor-type', 'co2', '--min-value', '800'])

        assert result.exit_code == 0
        assert [m["value"] for m in json.loads(result.output)] == [1045, 812]

    def test_export_inverted_value_range_fails(self, runner):
        result = runner.invoke(cli, ['export', '--min-value', '10', '--max-value', '1'])

        assert result.exit_code == 1
        assert "Export failed:" in result.output


class TestServe:
    """Test server startup wiring."""

    def test_serve_passes_options(self, runner):
        with patch('steamcity_platform.server.run_server') as mock_run:
            result = runner.invoke(cli, ['serve', '--port', '8081'])

        assert result.exit_code == 0
        assert "Port: 8081" in result.output
        mock_run.assert_called_once_with(host="0.0.0.0", port=8081, reload=False, workers=None)

    def test_run_server_uses_configuration(self, test_config):
        with patch('steamcity_platform.server.uvicorn.run') as mock_uvicorn, \
             patch('steamcity_platform.server.setup_logging') as mock_setup:
            run_server(port=9000)

        mock_setup.assert_called_once_with(test_config.logging)
        args, kwargs = mock_uvicorn.call_args
        assert args[0] == "steamcity_platform.api.rest_api:app"
        assert kwargs["host"] == "127.0.0.1"
        assert kwargs["port"] == 9000
        assert kwargs["workers"] == 1
        assert kwargs["log_level"] == "debug"
