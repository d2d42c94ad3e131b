"""Tests for the vpnctl CLI entry point (vpnctl.cli.main).

``main()`` imports subcommand handlers lazily, so patches target the
handler's own module (e.g. ``vpnctl.cli.commands.db.run_db``).
"""

from __future__ import annotations

from unittest.mock import patch

import pytest
import yaml

from vpnctl.cli.main import _build_parser, main


@pytest.fixture
def parser():
    return _build_parser()


@pytest.fixture
def config_path(tmp_path, full_config_data):
    path = tmp_path / "config.yaml"
    path.write_text(yaml.safe_dump(full_config_data, sort_keys=False), encoding="utf-8")
    return str(path)


# ---------------------------------------------------------------------------
# Parser
# ---------------------------------------------------------------------------


class TestParser:
    def test_config_required(self, parser):
        with pytest.raises(SystemExit):
            parser.parse_args([])

    def test_defaults(self, parser):
        args = parser.parse_args(["-c", "x.yaml"])
        assert args.command is None
        assert args.debug is False
        assert args.validate_only is False

    def test_fleet_kill(self, parser):
        args = parser.parse_args(["-c", "x.yaml", "fleet", "kill", "cn-alice"])
        assert (args.command, args.fleet_command, args.common_name) == ("fleet", "kill", "cn-alice")

    def test_log_find(self, parser):
        args = parser.parse_args(["-c", "x.yaml", "log", "find", "10.0.0.2", "2026-03-01T12:00:00Z"])
        assert (args.ip, args.at) == ("10.0.0.2", "2026-03-01T12:00:00Z")

    def test_log_purge_requires_days(self, parser):
        with pytest.raises(SystemExit):
            parser.parse_args(["-c", "x.yaml", "log", "purge"])
        assert parser.parse_args(["-c", "x.yaml", "log", "purge", "--days", "7"]).days == 7

    def test_version(self, parser, capsys):
        with pytest.raises(SystemExit) as exc_info:
            parser.parse_args(["--version"])
        assert exc_info.value.code == 0
        assert "vpnctl" in capsys.readouterr().out


# ---------------------------------------------------------------------------
# main()
# ---------------------------------------------------------------------------


class TestMain:
    def test_missing_config_file(self, tmp_path, capsys):
        with pytest.raises(SystemExit) as exc_info:
            main(["-c", str(tmp_path / "nope.yaml")])
        assert exc_info.value.code == 1
        assert "configuration file not found" in capsys.readouterr().err

    def test_invalid_config(self, tmp_path, capsys):
        path = tmp_path / "bad.yaml"
        path.write_text(yaml.safe_dump({"server": {"port": 8041}}), encoding="utf-8")
        with pytest.raises(SystemExit) as exc_info:
            main(["-c", str(path)])
        assert exc_info.value.code == 1
        assert capsys.readouterr().err.startswith("vpnctl: error:")

    def test_validate_only(self, config_path, capsys):
        with pytest.raises(SystemExit) as exc_info:
            main(["-c", config_path, "--validate-only"])
        assert exc_info.value.code == 0
        out = capsys.readouterr().out
        assert "profiles:   employees, admins" in out
        assert "api:        2 client(s)" in out
        assert "(not configured)" in out

    @pytest.mark.parametrize(
        ("argv", "target"),
        [
            (["db", "status"], "vpnctl.cli.commands.db.run_db"),
            (["fleet", "list"], "vpnctl.cli.commands.fleet.run_fleet"),
            (["log", "purge", "--days", "3"], "vpnctl.cli.commands.log.run_log"),
            (["serve"], "vpnctl.cli.commands.serve.run_serve"),
            ([], "vpnctl.cli.commands.serve.run_serve"),
        ],
    )
    def test_dispatch(self, config_path, argv, target):
        with patch(target) as handler:
            main(["-c", config_path, *argv])
        handler.assert_called_once()
        config, args = handler.call_args.args
        assert config.settings.profiles[0].id == "employees"

    def test_serve_failure_exits_1(self, config_path, capsys):
        with patch("vpnctl.cli.commands.serve.run_serve", side_effect=RuntimeError("port in use")):
            with pytest.raises(SystemExit) as exc_info:
                main(["-c", config_path])
        assert exc_info.value.code == 1
        assert "server startup failed: port in use" in capsys.readouterr().err

    def test_serve_failure_reraised_with_debug(self, config_path):
        with patch("vpnctl.cli.commands.serve.run_serve", side_effect=RuntimeError("port in use")):
            with pytest.raises(RuntimeError):
                main(["-c", config_path, "--debug"])
