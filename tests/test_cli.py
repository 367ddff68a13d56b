"""Tests for the rpinode CLI."""
from unittest.mock import patch

import pytest
from typer.testing import CliRunner

from rpinode.cli import app
from rpinode.core.boot_config import MARKER

runner = CliRunner()


def flat(output: str) -> str:
    """Undo Rich line wrapping so long messages can be matched."""
    return " ".join(output.split())


@pytest.fixture
def cli_env(monkeypatch, global_config, tmp_path):
    """Mock-mode CLI against the fake host tree."""
    monkeypatch.setenv("RPINODE_MOCK", "1")
    monkeypatch.delenv("RPINODE_PROFILE", raising=False)
    monkeypatch.chdir(tmp_path)
    return global_config


@pytest.fixture
def as_root(monkeypatch):
    monkeypatch.setattr("rpinode.core.provisioner.os.geteuid", lambda: 0)


@pytest.fixture
def as_user(monkeypatch):
    monkeypatch.setattr("rpinode.core.provisioner.os.geteuid", lambda: 1000)


class TestHelp:
    """Test CLI help output."""

    def test_main_help(self):
        result = runner.invoke(app, ["--help"])

        assert result.exit_code == 0
        assert "Raspberry Pi compute node provisioning" in result.stdout
        for command in ("apply", "config", "restore", "status", "version"):
            assert command in result.stdout

    def test_apply_help(self):
        result = runner.invoke(app, ["apply", "--help"])

        assert result.exit_code == 0
        assert "--skip" in result.stdout
        assert "--profile" in result.stdout

    def test_version(self):
        result = runner.invoke(app, ["version"])

        assert result.exit_code == 0
        assert "rpinode v0.1.0" in result.stdout


class TestApply:
    """Test the apply command."""

    def test_requires_root(self, cli_env, as_user, tmp_path):
        result = runner.invoke(app, ["apply", "--log-file", str(tmp_path / "run.log")])

        assert result.exit_code == 1
        assert "must be run as root" in flat(result.stdout)
        assert MARKER not in cli_env.boot_config_path.read_text()

    def test_mock_run(self, cli_env, as_root, tmp_path):
        result = runner.invoke(app, ["apply", "--log-file", str(tmp_path / "run.log")])

        assert result.exit_code == 0, result.stdout
        assert "Script completed successfully!" in result.stdout
        assert MARKER in cli_env.boot_config_path.read_text()
        assert cli_env.boot_backup_path.exists()

    def test_rerun_converges(self, cli_env, as_root, tmp_path):
        args = ["apply", "--skip", "install_docker", "--log-file", str(tmp_path / "run.log")]
        runner.invoke(app, args)
        first = cli_env.boot_config_path.read_bytes()

        result = runner.invoke(app, args)

        assert result.exit_code == 0, result.stdout
        assert cli_env.boot_config_path.read_bytes() == first

    def test_backup_inconsistency_exits_nonzero(self, cli_env, as_root, tmp_path):
        cli_env.boot_config_path.write_text(f"gpu_mem=16\n{MARKER}\n")

        result = runner.invoke(app, ["apply", "--log-file", str(tmp_path / "run.log")])

        assert result.exit_code == 1
        assert "Cannot restore original configuration" in flat(result.stdout)
        assert cli_env.boot_config_path.read_text() == f"gpu_mem=16\n{MARKER}\n"

    def test_unknown_skip(self, cli_env, as_root, tmp_path):
        result = runner.invoke(app, ["apply", "--skip", "nope", "--log-file", str(tmp_path / "run.log")])

        assert result.exit_code == 1
        assert "Unknown step" in flat(result.stdout)

    def test_invalid_profile(self, cli_env, as_root, tmp_path):
        profile = tmp_path / "bad.yml"
        profile.write_text("boot_settings:\n  - gpu_mem=16\n  - gpu_mem=32\n")

        result = runner.invoke(
            app, ["apply", "--profile", str(profile), "--log-file", str(tmp_path / "run.log")]
        )

        assert result.exit_code == 1
        assert "Invalid profile" in flat(result.stdout)


class TestConfigAndRestore:
    """Test the boot-config-only commands."""

    def test_config_then_restore(self, cli_env, as_root, tmp_path):
        pristine = cli_env.boot_config_path.read_text()
        profile = tmp_path / "rpinode.yml"
        profile.write_text("boot_settings:\n  - gpu_mem=16\n")
        log = str(tmp_path / "run.log")

        result = runner.invoke(app, ["config", "--profile", str(profile), "--log-file", log])
        assert result.exit_code == 0, result.stdout
        assert cli_env.boot_config_path.read_text().endswith(f"[all]\n{MARKER}\ngpu_mem=16\n")

        result = runner.invoke(app, ["restore", "--log-file", log])
        assert result.exit_code == 0, result.stdout
        assert "Restored" in result.stdout
        assert cli_env.boot_config_path.read_text() == pristine

    def test_restore_pristine_is_noop(self, cli_env, as_root, tmp_path):
        result = runner.invoke(app, ["restore", "--log-file", str(tmp_path / "run.log")])

        assert result.exit_code == 0
        assert "nothing to restore" in result.stdout

    def test_config_value_error_exits_cleanly(self, cli_env, as_root, tmp_path):
        with patch(
            "rpinode.core.provisioner.Provisioner.update_config",
            side_effect=ValueError("bad setting"),
        ):
            result = runner.invoke(app, ["config", "--log-file", str(tmp_path / "run.log")])

        assert result.exit_code == 1
        assert "Error: bad setting" in flat(result.stdout)

    def test_restore_value_error_exits_cleanly(self, cli_env, as_root, tmp_path):
        with patch(
            "rpinode.core.boot_config.BootConfigReconciler.restore",
            side_effect=ValueError("unreadable"),
        ):
            result = runner.invoke(app, ["restore", "--log-file", str(tmp_path / "run.log")])

        assert result.exit_code == 1
        assert "Error: unreadable" in flat(result.stdout)

    def test_config_requires_root(self, cli_env, as_user, tmp_path):
        result = runner.invoke(app, ["config", "--log-file", str(tmp_path / "run.log")])

        assert result.exit_code == 1
        assert MARKER not in cli_env.boot_config_path.read_text()


class TestStatus:
    """Test the read-only status command."""

    def test_status_without_root(self, cli_env, as_user):
        result = runner.invoke(app, ["status"])

        assert result.exit_code == 0
        assert "Node Status" in result.stdout
        assert "pending" in result.stdout
