#
# src/electrsd/electrum.py
#
"""
Minimal Electrum protocol client: newline-delimited JSON-RPC over plain TCP.

Only the calls the harness and its helpers need are wrapped; anything else
can go through `request`.
"""

import hashlib
import itertools
import json
import socket
from typing import Any

import structlog

log = structlog.get_logger("electrum")

DEFAULT_TIMEOUT = 10.0  # seconds


class ElectrumError(Exception):
    """The server answered a request with an error object."""

    def __init__(self, method: str, error: Any):
        self.method = method
        self.error = error
        super().__init__(f"Electrum call '{method}' failed: {error}")


def split_address(address: str) -> tuple[str, int]:
    host, sep, port = address.rpartition(":")
    if not sep or not port.isdigit():
        raise ValueError(f"Expected 'host:port', got '{address}'")
    return host.strip("[]") or "127.0.0.1", int(port)


def script_hash(script_pubkey: bytes) -> str:
    """Electrum script hash: reversed sha256 of the script, hex encoded."""
    return hashlib.sha256(script_pubkey).digest()[::-1].hex()


def _read_varint(raw: bytes, pos: int) -> tuple[int, int]:
    prefix = raw[pos]
    if prefix < 0xFD:
        return prefix, pos + 1
    width = {0xFD: 2, 0xFE: 4, 0xFF: 8}[prefix]
    return int.from_bytes(raw[pos + 1 : pos + 1 + width], "little"), pos + 1 + width


def first_output_script(raw_tx: bytes) -> bytes | None:
    """Returns the script_pubkey of the first output of a serialized transaction."""
    pos = 4  # version
    if raw_tx[pos] == 0 and raw_tx[pos + 1] != 0:
        pos += 2  # segwit marker and flag
    n_inputs, pos = _read_varint(raw_tx, pos)
    for _ in range(n_inputs):
        pos += 36  # outpoint
        script_len, pos = _read_varint(raw_tx, pos)
        pos += script_len + 4  # script_sig, sequence
    n_outputs, pos = _read_varint(raw_tx, pos)
    if n_outputs == 0:
        return None
    pos += 8  # value
    script_len, pos = _read_varint(raw_tx, pos)
    return raw_tx[pos : pos + script_len]


class ElectrumClient:
    """Blocking Electrum client bound to a single TCP connection."""

    def __init__(self, address: str, timeout: float = DEFAULT_TIMEOUT):
        self.address = address
        host, port = split_address(address)
        self._sock = socket.create_connection((host, port), timeout=timeout)
        self._reader = self._sock.makefile("rb")
        self._ids = itertools.count()
        self._closed = False

    def __enter__(self) -> "ElectrumClient":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        self._reader.close()
        self._sock.close()

    def settimeout(self, timeout: float | None) -> None:
        """Sets the timeout of every later request on this connection."""
        self._sock.settimeout(timeout)

    def request(self, method: str, params: list[Any] | None = None) -> Any:
        request_id = next(self._ids)
        line = json.dumps({"jsonrpc": "2.0", "id": request_id, "method": method, "params": params or []})
        self._sock.sendall(line.encode("utf-8") + b"\n")
        while True:
            try:
                raw = self._reader.readline()
            except TimeoutError:
                # a timed out socket file cannot be read again
                self.close()
                raise
            if not raw:
                raise ConnectionError(f"Electrum server at {self.address} closed the connection")
            message = json.loads(raw)
            if not isinstance(message, dict):
                raise ValueError(f"Unexpected Electrum message from {self.address}: {message!r}")
            # subscription notifications carry no id
            if message.get("id") != request_id:
                continue
            if message.get("error") is not None:
                raise ElectrumError(method, message["error"])
            return message.get("result")

    def ping(self) -> None:
        self.request("server.ping")

    def server_version(self, client_name: str = "electrsd", protocol: str = "1.4") -> list[str]:
        return self.request("server.version", [client_name, protocol])

    def block_headers_subscribe(self) -> dict[str, Any]:
        """The current tip as `{"height": int, "hex": str}`."""
        return self.request("blockchain.headers.subscribe")

    def block_header_raw(self, height: int) -> bytes:
        return bytes.fromhex(self.request("blockchain.block.header", [height]))

    def transaction_get(self, txid: str) -> bytes:
        return bytes.fromhex(self.request("blockchain.transaction.get", [txid]))

    def script_get_history(self, script_pubkey: bytes) -> list[dict[str, Any]]:
        return self.request("blockchain.scripthash.get_history", [script_hash(script_pubkey)])


def connect(address: str, timeout: float = DEFAULT_TIMEOUT) -> ElectrumClient:
    return ElectrumClient(address, timeout=timeout)


# 🔼⚙️
