"""Tests for the tlterm command-line entry point."""

from __future__ import annotations

import json
import unittest.mock as mock

import pytest
import yaml

from tlterm.cli import _build_parser, main


@pytest.fixture
def roots(tmp_path):
    """Global flags pointing both stores under tmp_path."""
    return ["--fs-root", str(tmp_path / "fs"), "--nvs-root", str(tmp_path / "nvs")]


@pytest.fixture
def initialised(roots, capsys):
    assert main(roots + ["init"]) == 0
    capsys.readouterr()
    return roots


class TestParser:
    def test_wifi_password_optional(self):
        args = _build_parser().parse_args(["wifi", "Open"])
        assert args.ssid == "Open"
        assert args.password == ""

    def test_global_flags(self):
        args = _build_parser().parse_args(["--profile", "lan", "--last-profile", "config"])
        assert args.profile == "lan"
        assert args.last_profile is True
        assert args.config_path == "/config/tlterm_config.yml"

    def test_logs_defaults(self):
        args = _build_parser().parse_args(["logs"])
        assert args.lines == 50

    def test_no_command_prints_help(self, capsys):
        assert main([]) == 1
        assert "usage: tlterm" in capsys.readouterr().out


class TestInit:
    def test_writes_documents(self, roots, tmp_path, capsys):
        assert main(roots + ["init"]) == 0
        out = capsys.readouterr().out
        assert "wrote /config/tlterm_config.yml" in out
        assert "wrote /config/profiles/lan.yml" in out
        assert (tmp_path / "fs" / "config" / "keymaps" / "us_qwerty.yml").is_file()

    def test_second_run_writes_nothing(self, initialised, capsys):
        assert main(initialised + ["init"]) == 0
        assert "Documents already present" in capsys.readouterr().out


class TestConfigCommands:
    def test_config_on_empty_filesystem(self, roots, capsys):
        assert main(roots + ["config"]) == 0
        captured = capsys.readouterr()
        assert "Gateway: ws://192.168.1.100:7681/ws" in captured.out
        assert "not found" in captured.err

    def test_config_after_init_is_clean(self, initialised, capsys):
        assert main(initialised + ["config"]) == 0
        captured = capsys.readouterr()
        assert "Theme: nasa_minimal" in captured.out
        assert captured.err == ""

    def test_profiles(self, initialised, capsys):
        assert main(initialised + ["profiles"]) == 0
        assert capsys.readouterr().out.splitlines() == ["  lan", "  tailscale"]

    def test_profiles_none(self, roots, capsys):
        assert main(roots + ["profiles"]) == 0
        assert capsys.readouterr().out.strip() == "No profiles found"

    def test_profile_is_remembered(self, initialised, capsys):
        assert main(initialised + ["profile", "tailscale"]) == 0
        assert "wss://gateway.tailnet.example:443/ws" in capsys.readouterr().out

        assert main(initialised + ["profiles"]) == 0
        assert "  tailscale (last used)" in capsys.readouterr().out

        assert main(initialised + ["--last-profile", "config"]) == 0
        assert "Gateway: wss://gateway.tailnet.example:443/ws" in capsys.readouterr().out

    def test_profile_flag_at_boot(self, initialised, capsys):
        assert main(initialised + ["--profile", "tailscale", "config"]) == 0
        assert "SNI: gateway.tailnet.example" in capsys.readouterr().out

    def test_missing_profile(self, initialised, capsys):
        assert main(initialised + ["profile", "office"]) == 1
        assert "profile 'office' not found" in capsys.readouterr().err

    def test_wifi_credentials(self, initialised, capsys):
        assert main(initialised + ["wifi", "HomeNet", "secret"]) == 0
        assert "saved" in capsys.readouterr().out
        assert main(initialised + ["config"]) == 0
        out = capsys.readouterr().out
        assert "Wi-Fi SSID: HomeNet" in out
        assert "Wi-Fi Pass: ****" in out
        assert "secret" not in out

    def test_reload(self, initialised, capsys):
        assert main(initialised + ["reload"]) == 0
        assert capsys.readouterr().out.strip() == "Config reloaded (0 warnings)"


class TestSettingsCommands:
    def test_first_boot_then_ok(self, roots, capsys):
        assert main(roots + ["settings"]) == 0
        first = yaml.safe_load(capsys.readouterr().out)
        assert first["load_status"] == "size_mismatch"
        assert first["display"]["brightness"] == 200

        assert main(roots + ["settings"]) == 0
        second = yaml.safe_load(capsys.readouterr().out)
        assert second["load_status"] == "ok"

    def test_passwords_masked(self, roots, capsys):
        main(roots + ["settings"])
        data = yaml.safe_load(capsys.readouterr().out)
        assert data["wifi_networks"][0]["password"] == "****"

    def test_reset(self, roots, tmp_path, capsys):
        blob = tmp_path / "nvs" / "tlterm" / "settings"
        main(roots + ["settings"])
        data = bytearray(blob.read_bytes())
        data[5] ^= 0xFF
        blob.write_bytes(bytes(data))

        assert main(roots + ["reset-settings"]) == 0
        assert "Settings reset to factory defaults" in capsys.readouterr().out
        main(roots + ["settings"])
        assert yaml.safe_load(capsys.readouterr().out)["load_status"] == "ok"


class TestLogsCommand:
    def test_missing_log(self, tmp_path, capsys):
        log_file = str(tmp_path / "none.log")
        assert main(["logs", "--log-file", log_file]) == 0
        assert "No log entries" in capsys.readouterr().out

    def test_formats_json_and_plain_lines(self, tmp_path, capsys):
        log_file = tmp_path / "device.log"
        entry = {"timestamp": "2026-01-01T00:00:00.000", "level": "WARNING",
                 "logger": "tlterm.settings", "message": "Settings reset",
                 "context": {"reason": "checksum_mismatch"}}
        log_file.write_text(json.dumps(entry) + "\nplain text line\n")
        assert main(["logs", "--log-file", str(log_file), "-n", "5"]) == 0
        out = capsys.readouterr().out.splitlines()
        assert out[0].startswith("2026-01-01T00:00:00.000 WARNING tlterm.settings: Settings reset")
        assert "checksum_mismatch" in out[0]
        assert out[1] == "plain text line"


class TestInteractive:
    def test_shell_session(self, initialised, capsys):
        with mock.patch("builtins.input", side_effect=["profiles", "", "bogus", "exit"]):
            assert main(initialised + ["shell"]) == 0
        out = capsys.readouterr().out
        assert "  - lan" in out
        assert "Unknown command 'bogus'" in out

    def test_shell_eof(self, initialised, capsys):
        with mock.patch("builtins.input", side_effect=EOFError):
            assert main(initialised + ["shell"]) == 0

    def test_menu_launches_app(self, initialised):
        with mock.patch("tlterm.tui.app.MenuSimulatorApp.run") as run:
            assert main(initialised + ["menu", "--ephemeral"]) == 0
        run.assert_called_once()
