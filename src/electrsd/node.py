#
# src/electrsd/node.py
#
"""
The companion bitcoind node, as seen by the harness.

electrsd never starts or stops the node. It only needs the node's addresses,
its cookie file and a JSON-RPC `call` for the pre-launch sync check.
"""

import itertools
from pathlib import Path
from typing import Any, Protocol, runtime_checkable

import httpx
import structlog
from attrs import define, field

from electrsd.exceptions import NodeError

log = structlog.get_logger("node")

DEFAULT_RPC_TIMEOUT = 30.0  # seconds


@runtime_checkable
class NodeHandle(Protocol):
    """A running bitcoind the electrs instance will index."""

    @property
    def rpc_socket(self) -> str | None:
        """`host:port` of the JSON-RPC interface."""
        ...

    @property
    def p2p_socket(self) -> str | None:
        """`host:port` of the P2P interface, or None when P2P is disabled."""
        ...

    @property
    def cookie_file(self) -> Path | None: ...

    @property
    def data_dir(self) -> Path | None: ...

    def call(self, method: str, params: list[Any] | None = None) -> Any:
        """Issues a JSON-RPC request and returns its `result`."""
        ...


def read_cookie(cookie_file: Path) -> str:
    """Returns the `user:password` cookie bitcoind writes for RPC auth."""
    try:
        return cookie_file.read_text(encoding="utf-8").strip()
    except OSError as e:
        raise NodeError(f"Cannot read node cookie file '{cookie_file}'", details=e) from e


def leave_initial_block_download(node: NodeHandle) -> bool:
    """
    Mines one block when the node still reports initial block download.

    electrs stays idle while bitcoind is in IBD, and a fresh regtest node
    stays there until it sees a recent block. Returns True if a block was mined.
    """
    info = node.call("getblockchaininfo")
    if not (isinstance(info, dict) and info.get("initialblockdownload", False)):
        return False
    address = node.call("getnewaddress")
    node.call("generatetoaddress", [1, address])
    log.info("Mined a block to leave initial block download", address=address)
    return True


@define(slots=True)
class BitcoindNode:
    """NodeHandle for a bitcoind started elsewhere, speaking JSON-RPC over httpx."""

    rpc_socket: str | None
    cookie_file: Path | None = field(default=None, converter=lambda v: None if v is None else Path(v))
    p2p_socket: str | None = None
    data_dir: Path | None = field(default=None, converter=lambda v: None if v is None else Path(v))
    timeout: float = DEFAULT_RPC_TIMEOUT
    wallet: str | None = None
    _client: httpx.Client | None = field(default=None, repr=False)
    _ids: itertools.count = field(factory=itertools.count, init=False, repr=False)

    def _http(self) -> httpx.Client:
        if self._client is None:
            auth = None
            if self.cookie_file is not None:
                user, _, password = read_cookie(self.cookie_file).partition(":")
                auth = (user, password)
            self._client = httpx.Client(auth=auth, timeout=self.timeout)
        return self._client

    @property
    def url(self) -> str:
        if not self.rpc_socket:
            raise NodeError("Node has no RPC address")
        base = f"http://{self.rpc_socket}"
        return f"{base}/wallet/{self.wallet}" if self.wallet else base

    def call(self, method: str, params: list[Any] | None = None) -> Any:
        payload = {"jsonrpc": "1.0", "id": next(self._ids), "method": method, "params": params or []}
        try:
            response = self._http().post(self.url, json=payload)
            body = response.json()
        except (httpx.HTTPError, ValueError) as e:
            raise NodeError(f"RPC '{method}' to {self.rpc_socket} failed", details=e) from e
        # bitcoind answers RPC errors with HTTP 500 and a JSON error body
        if body.get("error"):
            raise NodeError(f"RPC '{method}' returned error: {body['error']}")
        return body.get("result")

    def close(self) -> None:
        if self._client is not None:
            self._client.close()
            self._client = None


# 🔼⚙️
