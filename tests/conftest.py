import stat
import sys
from pathlib import Path
from typing import Any

import pytest
from attrs import define, field

from electrsd.config import ElectrsConf

FAKE_ELECTRS_SOURCE = Path(__file__).parent / "fake_electrs.py"


@define
class FakeNode:
    """A NodeHandle that records RPC calls instead of talking to bitcoind."""

    cookie_file: Path | None
    rpc_socket: str | None = "127.0.0.1:18443"
    p2p_socket: str | None = "127.0.0.1:18444"
    data_dir: Path | None = None
    initial_block_download: bool = False
    calls: list[tuple[str, list[Any]]] = field(factory=list)
    closed: bool = False

    def call(self, method: str, params: list[Any] | None = None) -> Any:
        self.calls.append((method, params or []))
        if method == "getblockchaininfo":
            return {"chain": "regtest", "initialblockdownload": self.initial_block_download}
        if method == "getnewaddress":
            return "bcrt1qfakeaddress"
        if method == "generatetoaddress":
            return ["00" * 32]
        raise AssertionError(f"unexpected RPC {method}")

    def close(self) -> None:
        self.closed = True


@pytest.fixture(autouse=True)
def isolated_env(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> Path:
    """Keeps tests independent of the developer's electrs setup."""
    for var in (
        "ELECTRS_EXEC",
        "ELECTRS_EXE",
        "ELECTRSD_VERSION",
        "ELECTRSD_SKIP_DOWNLOAD",
        "ELECTRSD_DOWNLOAD_ENDPOINT",
        "ELECTRSD_SHA256_FILE",
        "ELECTRSD_NETWORK",
        "ELECTRSD_LEGACY",
        "ELECTRSD_VIEW_STDERR",
        "ELECTRSD_HTTP_ENABLED",
        "ELECTRSD_CONF",
        "ELECTRSD_LOG_LEVEL",
        "ELECTRSD_LOG_FILE",
        "ELECTRSD_JSON_LOGS",
    ):
        monkeypatch.delenv(var, raising=False)
    tmp_root = tmp_path / "tmproot"
    monkeypatch.setenv("TEMPDIR_ROOT", str(tmp_root))
    monkeypatch.setenv("ELECTRSD_CACHE_DIR", str(tmp_path / "cache"))
    return tmp_root


@pytest.fixture
def cookie_file(tmp_path: Path) -> Path:
    path = tmp_path / "regtest" / ".cookie"
    path.parent.mkdir()
    path.write_text("__cookie__:s3cret\n")
    return path


@pytest.fixture
def fake_node(cookie_file: Path) -> FakeNode:
    return FakeNode(cookie_file=cookie_file, data_dir=cookie_file.parent)


@pytest.fixture
def fake_electrs(tmp_path: Path) -> Path:
    """An executable script that behaves like electrs for the harness."""
    exe = tmp_path / "bin" / "electrs"
    exe.parent.mkdir()
    exe.write_text(f"#!{sys.executable}\n" + FAKE_ELECTRS_SOURCE.read_text())
    exe.chmod(exe.stat().st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
    return exe


@pytest.fixture
def fast_conf() -> ElectrsConf:
    """Launch options with short budgets so failures surface quickly."""
    return ElectrsConf(readiness_attempts=100, readiness_interval=0.1, termination_grace=2.0)
