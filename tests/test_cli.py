"""Tests for CLI module."""

from unittest.mock import AsyncMock, patch

import pytest
from click.testing import CliRunner

from fakes import FakeResolver, FakeServiceManager, write_wg_config
from wgddns import __version__
from wgddns.cli import main
from wgddns.errors import ServiceManagerError


@pytest.fixture
def runner():
    """Create a CLI test runner."""
    return CliRunner()


@pytest.fixture
def no_config_file(tmp_path):
    return ["-c", str(tmp_path / "missing.yaml")]


class TestCLIHelp:
    """Test CLI help output."""

    def test_cli_help(self, runner):
        result = runner.invoke(main, ["--help"])

        assert result.exit_code == 0
        assert "WireGuard DDNS" in result.output
        assert "run" in result.output
        assert "interfaces" in result.output

    def test_run_help_lists_options(self, runner):
        result = runner.invoke(main, ["run", "--help"])

        assert result.exit_code == 0
        assert "bare number is read as seconds" in " ".join(result.output.split())
        for option in (
            "--single-interface",
            "--listen-address",
            "--listen-port",
            "--api-key",
            "--log-level",
            "--check-interval",
        ):
            assert option in result.output

    def test_version(self, runner):
        result = runner.invoke(main, ["version"])

        assert result.exit_code == 0
        assert result.output.strip() == f"wg-ddns version {__version__}"


class TestRunValidation:
    """Invalid settings exit with status 1 before the monitor starts."""

    @pytest.mark.parametrize("interval", ["500ms", "0", "0.5"])
    def test_interval_below_one_second(self, runner, no_config_file, interval):
        with patch("wgddns.daemon.Daemon") as mock_daemon:
            result = runner.invoke(
                main, no_config_file + ["run", "--check-interval", interval]
            )

        assert result.exit_code == 1
        assert "at least 1 second" in result.output
        mock_daemon.assert_not_called()

    def test_malformed_interval(self, runner, no_config_file):
        result = runner.invoke(main, no_config_file + ["run", "--check-interval", "soon"])

        assert result.exit_code == 1
        assert "Invalid duration" in result.output

    def test_invalid_log_level(self, runner, no_config_file):
        result = runner.invoke(main, no_config_file + ["run", "--log-level", "loud"])

        assert result.exit_code == 1
        assert "Invalid log level" in result.output

    def test_interval_from_environment(self, runner, no_config_file):
        result = runner.invoke(
            main, no_config_file + ["run"], env={"WG_DDNS_CHECK_INTERVAL": "100ms"}
        )

        assert result.exit_code == 1
        assert "at least 1 second" in result.output

    def test_non_string_value_in_config_file(self, runner, tmp_path):
        config_file = tmp_path / "config.yaml"
        config_file.write_text("log_level: 10\n")

        result = runner.invoke(main, ["-c", str(config_file), "run"])

        assert result.exit_code == 1
        assert "Error: Invalid log_level" in result.output
        assert "Traceback" not in result.output

    def test_unparseable_config_file(self, runner, tmp_path):
        config_file = tmp_path / "config.yaml"
        config_file.write_text("single_interface: wg0\n  api: [\n")

        with patch("wgddns.daemon.Daemon") as mock_daemon:
            result = runner.invoke(main, ["-c", str(config_file), "run"])

        assert result.exit_code == 1
        assert "Invalid YAML" in result.output
        mock_daemon.assert_not_called()

    def test_invalid_config_file(self, runner, tmp_path):
        config_file = tmp_path / "config.yaml"
        config_file.write_text("check_interval: soon\n")

        result = runner.invoke(main, ["-c", str(config_file), "version"])

        assert result.exit_code == 1
        assert "Invalid duration" in result.output


class TestRunCommand:
    """Tests for `wg-ddns run` with the daemon mocked out."""

    def test_run_starts_daemon(self, runner, no_config_file):
        with patch("wgddns.daemon.Daemon") as mock_daemon_class:
            mock_daemon = AsyncMock()
            mock_daemon_class.return_value = mock_daemon

            result = runner.invoke(
                main,
                no_config_file
                + ["run", "--check-interval", "30s", "--single-interface", "wg0"],
            )

        assert result.exit_code == 0
        config = mock_daemon_class.call_args.kwargs["config"]
        assert config.check_interval == 30.0
        assert config.single_interface == "wg0"
        mock_daemon.start.assert_awaited_once()
        mock_daemon.run_forever.assert_awaited_once()

    def test_bare_number_interval_is_seconds(self, runner, no_config_file):
        with patch("wgddns.daemon.Daemon") as mock_daemon_class:
            mock_daemon_class.return_value = AsyncMock()

            result = runner.invoke(main, no_config_file + ["run", "--check-interval", "45"])

        assert result.exit_code == 0
        assert mock_daemon_class.call_args.kwargs["config"].check_interval == 45.0

    def test_run_api_options(self, runner, no_config_file):
        with patch("wgddns.daemon.Daemon") as mock_daemon_class:
            mock_daemon_class.return_value = AsyncMock()

            runner.invoke(
                main,
                env={
                    "WG_DDNS_LISTEN_ADDRESS": "127.0.0.1",
                    "WG_DDNS_LISTEN_PORT": "8080",
                    "WG_DDNS_API_KEY": "secret",
                },
                args=no_config_file + ["run"],
            )

        config = mock_daemon_class.call_args.kwargs["config"]
        assert config.api.enabled is True
        assert config.api.listen_port == 8080

    def test_startup_error_exits_1(self, runner, no_config_file):
        from wgddns.daemon import StartupError

        with patch("wgddns.daemon.Daemon") as mock_daemon_class:
            mock_daemon = AsyncMock()
            mock_daemon.start.side_effect = StartupError(
                "Failed to initialize monitor: failed to list systemd units"
            )
            mock_daemon_class.return_value = mock_daemon

            result = runner.invoke(main, no_config_file + ["run"])

        assert result.exit_code == 1
        assert "Failed to initialize monitor" in result.output
        mock_daemon.run_forever.assert_not_awaited()

    def test_keyboard_interrupt_exits_cleanly(self, runner, no_config_file):
        with patch("wgddns.daemon.Daemon") as mock_daemon_class:
            mock_daemon = AsyncMock()
            mock_daemon.run_forever.side_effect = KeyboardInterrupt
            mock_daemon_class.return_value = mock_daemon

            result = runner.invoke(main, no_config_file + ["run"])

        assert result.exit_code == 0


class TestInterfacesCommand:
    """Tests for `wg-ddns interfaces`."""

    def test_lists_endpoints(self, runner, no_config_file, tmp_path):
        write_wg_config(tmp_path, "wg0", "vpn.example.com:51820")
        write_wg_config(tmp_path, "wg1", "192.0.2.10:51820")
        manager = FakeServiceManager(
            units=[("wg-quick@wg0.service", "active"), ("wg-quick@wg1.service", "active")]
        )

        with patch("wgddns.systemd.SystemdManager", return_value=manager), patch(
            "wgddns.resolver.Resolver",
            return_value=FakeResolver({"vpn.example.com": "1.2.3.4"}),
        ):
            result = runner.invoke(
                main, no_config_file + ["interfaces", "--config-dir", str(tmp_path)]
            )

        assert result.exit_code == 0
        assert "vpn.example.com:51820" in result.output
        assert "1.2.3.4" in result.output
        assert "wg1" not in result.output
        assert manager.closed is True

    def test_no_endpoints(self, runner, no_config_file, tmp_path):
        with patch("wgddns.systemd.SystemdManager", return_value=FakeServiceManager()):
            result = runner.invoke(
                main, no_config_file + ["interfaces", "--config-dir", str(tmp_path)]
            )

        assert result.exit_code == 0
        assert "No WireGuard interfaces with domain endpoints found." in result.output

    def test_discovery_failure(self, runner, no_config_file, tmp_path):
        manager = FakeServiceManager()
        manager.list_error = ServiceManagerError("failed to list systemd units")

        with patch("wgddns.systemd.SystemdManager", return_value=manager):
            result = runner.invoke(
                main, no_config_file + ["interfaces", "--config-dir", str(tmp_path)]
            )

        assert result.exit_code == 1
        assert "failed to list systemd units" in result.output
