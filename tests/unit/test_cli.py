#
# tests/unit/test_cli.py
#
"""
Tests for the electrsd command line.
"""

import logging
import sys
from pathlib import Path
from unittest.mock import MagicMock

import pytest
from click.testing import CliRunner

from electrsd.cli.main import cli


@pytest.fixture
def runner() -> CliRunner:
    return CliRunner()


class TestMainCLI:
    """Test main CLI entry point."""

    def test_cli_help(self, runner: CliRunner) -> None:
        result = runner.invoke(cli, ["--help"])

        assert result.exit_code == 0
        assert "electrs" in result.output.lower()
        for command in ("run", "download", "exe-path", "versions", "config"):
            assert command in result.output

    def test_cli_version(self, runner: CliRunner) -> None:
        result = runner.invoke(cli, ["--version"])

        assert result.exit_code == 0
        assert "0.29.0" in result.output

    def test_invalid_log_level(self, runner: CliRunner) -> None:
        result = runner.invoke(cli, ["--log-level", "INVALID", "versions"])
        assert result.exit_code != 0


class TestExeCommands:
    """versions, exe-path and download."""

    def test_versions_table(self, runner: CliRunner) -> None:
        result = runner.invoke(cli, ["versions"], env={"COLUMNS": "200"})

        assert result.exit_code == 0
        assert "electrs_0_8_10" in result.output
        assert "electrs_0_9_11 (default)" in result.output
        assert "--jsonrpc-import" in result.output

    def test_exe_path_not_found(self, runner: CliRunner, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setattr("electrsd.resolver.shutil.which", lambda name: None)
        result = runner.invoke(cli, ["exe-path"])

        assert result.exit_code == 1
        assert "[resolve]" in result.output

    def test_exe_path_from_environment(self, runner: CliRunner, fake_electrs: Path) -> None:
        result = runner.invoke(cli, ["exe-path"], env={"ELECTRS_EXEC": str(fake_electrs)})

        assert result.exit_code == 0
        assert str(fake_electrs) in result.output

    def test_download_without_manifest(self, runner: CliRunner) -> None:
        result = runner.invoke(cli, ["download", "electrs_0_9_11"])

        assert result.exit_code == 1
        assert "[download]" in result.output

    def test_download_unknown_version(self, runner: CliRunner) -> None:
        result = runner.invoke(cli, ["download", "electrs_9_9_9"])
        assert result.exit_code == 2


class TestConfigCommands:
    """config show."""

    def test_show(self, runner: CliRunner, tmp_path: Path) -> None:
        path = tmp_path / "electrsd.toml"
        path.write_text('[electrs]\nversion = "electrs_0_9_1"\n')

        result = runner.invoke(cli, ["config", "show", "-c", str(path)])

        assert result.exit_code == 0
        assert "ELECTRS_0_9_1" in result.output

    @pytest.mark.parametrize(
        ("group_args", "sub_args", "expected"),
        [
            ([], [], logging.DEBUG),
            (["--log-level", "ERROR"], [], logging.ERROR),
            ([], ["--log-level", "INFO"], logging.INFO),
        ],
    )
    def test_log_level_precedence(
        self, runner: CliRunner, tmp_path: Path, group_args: list[str], sub_args: list[str], expected: int
    ) -> None:
        """The command line beats [global] log_level, which beats the default."""
        path = tmp_path / "electrsd.toml"
        path.write_text('[global]\nlog_level = "DEBUG"\n')

        result = runner.invoke(cli, [*group_args, "config", "show", "-c", str(path), *sub_args])

        assert result.exit_code == 0, result.output
        assert logging.getLogger().level == expected

    def test_show_invalid(self, runner: CliRunner, tmp_path: Path) -> None:
        path = tmp_path / "electrsd.toml"
        path.write_text("[electrs]\nbogus = 1\n")

        result = runner.invoke(cli, ["config", "show", "-c", str(path)])

        assert result.exit_code == 1
        assert "Configuration problem" in result.output


@pytest.mark.skipif(sys.platform == "win32", reason="fake electrs relies on a shebang and SIGINT")
class TestRunCommand:
    """run launches, reports addresses and tears down on CTRL-C."""

    def test_missing_p2p_address(self, runner: CliRunner, cookie_file: Path, fake_electrs: Path) -> None:
        result = runner.invoke(
            cli,
            ["run", "--rpc-addr", "127.0.0.1:18443", "--cookie-file", str(cookie_file), "--exe", str(fake_electrs)],
        )

        assert result.exit_code == 1
        assert "[config]" in result.output

    def test_run_until_interrupted(
        self,
        runner: CliRunner,
        cookie_file: Path,
        fake_electrs: Path,
        fake_node,
        isolated_env: Path,
        monkeypatch: pytest.MonkeyPatch,
    ) -> None:
        monkeypatch.setattr("electrsd.cli.run_cmds.BitcoindNode", lambda **kwargs: fake_node)
        fake_time = MagicMock()
        fake_time.sleep.side_effect = KeyboardInterrupt
        monkeypatch.setattr("electrsd.cli.run_cmds.time", fake_time)

        result = runner.invoke(
            cli,
            [
                "run",
                "--rpc-addr",
                "127.0.0.1:18443",
                "--p2p-addr",
                "127.0.0.1:18444",
                "--cookie-file",
                str(cookie_file),
                "--exe",
                str(fake_electrs),
                "--http",
            ],
        )

        assert result.exit_code == 0, result.output
        assert "electrum: 127.0.0.1:" in result.output
        assert "esplora: 127.0.0.1:" in result.output
        assert "workdir:" in result.output
        assert fake_node.closed
        assert list(isolated_env.iterdir()) == []
