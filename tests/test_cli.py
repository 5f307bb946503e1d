"""
Tests for CLI commands — bundle operations, listing, config, global options.
"""

import json
import textwrap

import yaml
from click.testing import CliRunner

from devsetup import __version__
from devsetup.main import cli


class TestCLIGlobal:
    def test_help(self):
        result = CliRunner().invoke(cli, ["--help"])
        assert result.exit_code == 0
        assert "provision developer tool bundles" in result.output

    def test_version(self):
        result = CliRunner().invoke(cli, ["--version"])
        assert result.exit_code == 0
        assert __version__ in result.output

    def test_corrupt_config_exits_1(self, tmp_path):
        bad = tmp_path / "bad.yml"
        bad.write_text("machine: [oops\n")
        result = CliRunner().invoke(cli, ["--config", str(bad), "bundles"])
        assert result.exit_code == 1
        assert "Invalid YAML" in result.output

    def test_undecodable_config_exits_1(self, tmp_path):
        bad = tmp_path / "bad.yml"
        bad.write_bytes(b"machine:\n  os: \xff\xfe\n")
        result = CliRunner().invoke(cli, ["--config", str(bad), "bundles"])
        assert result.exit_code == 1
        assert "Cannot read" in result.output


class TestCommandAliases:
    def test_install_alias(self, config_file, forbidden_runner):
        result = CliRunner().invoke(cli, ["i", "projektwoche", "-n"])
        assert result.exit_code == 0, result.output
        assert "INSTALLATION (DRY-RUN): Projektwoche" in result.output

    def test_uninstall_alias(self, config_file, forbidden_runner):
        result = CliRunner().invoke(cli, ["u", "projektwoche", "-n"])
        assert result.exit_code == 0, result.output
        assert "UNINSTALLATION (DRY-RUN): Projektwoche" in result.output

    def test_config_alias(self, config_file):
        result = CliRunner().invoke(cli, ["cfg", "loglevel"])
        assert result.exit_code == 0
        assert result.output.strip() == "debug"

    def test_aliases_hidden_from_help(self):
        result = CliRunner().invoke(cli, ["--help"])
        listing = result.output.split("Commands:")[1]
        commands = [line.split()[0] for line in listing.splitlines() if line.strip()]
        assert "install" in commands
        assert not {"i", "u", "cfg"} & set(commands)


class TestBundlesCommand:
    def test_lists_catalog(self, config_file):
        result = CliRunner().invoke(cli, ["bundles"])
        assert result.exit_code == 0
        assert "Projektwoche" in result.output
        assert "Visual Studio Code" in result.output

    def test_marks_unsupported_packages(self, config_file):
        config_file.write_text("machine:\n  os: Arch\n  arch: x86_64\n")
        result = CliRunner().invoke(cli, ["bundles"])
        assert "Google Chrome  (not available on Arch)" in result.output

    def test_includes_user_bundles(self, config_file):
        user_dir = config_file.parent / "bundles"
        user_dir.mkdir()
        (user_dir / "mine.yml").write_text("name: Mine\ndescription: my tools\npackages: []\n")
        result = CliRunner().invoke(cli, ["bundles"])
        assert "Mine" in result.output


class TestInstallCommand:
    def test_dry_run(self, config_file, forbidden_runner):
        result = CliRunner().invoke(cli, ["install", "projektwoche", "--dry-run"])
        assert result.exit_code == 0, result.output
        assert "INSTALLATION (DRY-RUN): Projektwoche" in result.output
        assert "[dry-run]" in result.output
        assert "Install of Projektwoche complete" in result.output

    def test_log_level_option_filters(self, config_file, forbidden_runner):
        result = CliRunner().invoke(
            cli, ["--log-level", "warning", "install", "projektwoche", "-n"]
        )
        assert result.exit_code == 0
        assert "[dry-run]" not in result.output

    def test_unknown_bundle(self, config_file):
        result = CliRunner().invoke(cli, ["install", "nonexistent"])
        assert result.exit_code == 2
        assert "Unknown bundle" in result.output
        assert "projektwoche" in result.output

    def test_bundle_file(self, config_file, tmp_path, forbidden_runner):
        path = tmp_path / "tools.yml"
        path.write_text(
            textwrap.dedent("""\
                name: Tools
                packages:
                  - name: ripgrep
                    mappings:
                      - categories: [DebianBased]
                        install:
                          - {kind: install_application, package_name: ripgrep}
            """)
        )
        result = CliRunner().invoke(cli, ["install", str(path), "--dry-run"])
        assert result.exit_code == 0, result.output
        assert "install application ripgrep" in result.output

    def test_invalid_bundle_file(self, config_file, tmp_path):
        path = tmp_path / "broken.yml"
        path.write_text("name: [")
        result = CliRunner().invoke(cli, ["install", str(path)])
        assert result.exit_code == 2

    def test_undecodable_bundle_file(self, config_file, tmp_path):
        path = tmp_path / "broken.yml"
        path.write_bytes(b"name: \xff\xfe\n")
        result = CliRunner().invoke(cli, ["install", str(path)])
        assert result.exit_code == 2
        assert "Cannot read" in result.output

    def test_failures_still_exit_0(self, config_file, fake_runner):
        fake_runner.respond("", 1)
        result = CliRunner().invoke(cli, ["install", "projektwoche"])
        assert result.exit_code == 0, result.output
        assert "failed:" in result.output

    def test_log_file(self, config_file, tmp_path, forbidden_runner):
        log_file = tmp_path / "run.log"
        result = CliRunner().invoke(
            cli, ["--log-file", str(log_file), "uninstall", "projektwoche", "--dry-run"]
        )
        assert result.exit_code == 0
        assert "UNINSTALLATION (DRY-RUN)" in log_file.read_text()


class TestConfigCommands:
    def test_show_json(self, config_file):
        result = CliRunner().invoke(cli, ["config", "show", "--json"])
        assert result.exit_code == 0
        data = json.loads(result.output)
        assert data["machine"] == {"os": "Ubuntu", "arch": "x86_64"}
        assert data["log_level"] == "debug"
        assert data["path"] == str(config_file)

    def test_show(self, config_file):
        result = CliRunner().invoke(cli, ["config", "show"])
        assert "Ubuntu (x86_64)" in result.output

    def test_loglevel_get(self, config_file):
        result = CliRunner().invoke(cli, ["config", "loglevel"])
        assert result.output.strip() == "debug"

    def test_loglevel_set(self, config_file):
        result = CliRunner().invoke(cli, ["config", "loglevel", "WARNING"])
        assert result.exit_code == 0
        assert yaml.safe_load(config_file.read_text())["log_level"] == "warning"

    def test_loglevel_rejects_unknown(self, config_file):
        result = CliRunner().invoke(cli, ["config", "loglevel", "loud"])
        assert result.exit_code == 2

    def test_detect(self, config_file, monkeypatch):
        from devsetup.core.detection import machine as detection

        monkeypatch.setattr(detection.platform, "system", lambda: "Windows")
        monkeypatch.setattr(detection.platform, "machine", lambda: "AMD64")
        result = CliRunner().invoke(cli, ["config", "detect"])
        assert result.exit_code == 0
        assert "Windows (x86_64)" in result.output
        assert yaml.safe_load(config_file.read_text())["machine"]["os"] == "Windows"

    def test_first_run_creates_config(self, tmp_path):
        result = CliRunner().invoke(cli, ["config", "show"])
        assert result.exit_code == 0
        assert (tmp_path / "appdir" / "config.yml").is_file()
