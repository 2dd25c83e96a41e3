#
# tests/unit/test_resources.py
#
"""
Tests for directory and port allocation.
"""

import socket
from pathlib import Path
from unittest.mock import patch

import pytest

from electrsd.config import ElectrsConf
from electrsd.exceptions import ResourceError
from electrsd.resources import (
    allocate,
    allocate_free_port,
    allocate_temp_dir,
    claimed_ports,
    release_port,
)


class TestPorts:
    """Free port allocation and the claim registry."""

    def test_port_is_bindable(self) -> None:
        port = allocate_free_port()
        try:
            with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
                s.bind(("127.0.0.1", port))
        finally:
            release_port(port)

    def test_ports_are_unique_while_claimed(self) -> None:
        ports = [allocate_free_port() for _ in range(20)]
        try:
            assert len(set(ports)) == len(ports)
            assert set(ports) <= claimed_ports()
        finally:
            for port in ports:
                release_port(port)
        assert not set(ports) & claimed_ports()

    def test_bind_failure_is_resource_error(self) -> None:
        with pytest.raises(ResourceError) as excinfo:
            allocate_free_port("256.0.0.1")
        assert excinfo.value.stage == "resources"


class TestTempDir:
    """Temporary directory creation."""

    def test_uses_tempdir_root_env(self, isolated_env: Path) -> None:
        path = allocate_temp_dir()
        assert path.is_dir()
        assert path.parent == isolated_env
        assert path.name.startswith("electrsd-")

    def test_explicit_root_wins(self, tmp_path: Path) -> None:
        root = tmp_path / "explicit"
        path = allocate_temp_dir(root)
        assert path.parent == root

    def test_creation_failure_is_resource_error(self, tmp_path: Path) -> None:
        blocker = tmp_path / "file"
        blocker.write_text("not a directory")
        with pytest.raises(ResourceError):
            allocate_temp_dir(blocker)


class TestAllocate:
    """Allocation of the full resource set."""

    def test_allocates_dir_and_two_ports(self) -> None:
        resources = allocate(ElectrsConf())
        try:
            assert resources.data_dir.temporary
            assert resources.data_dir.path.is_dir()
            assert resources.http_port is None
            assert len(set(resources.ports)) == 2
        finally:
            resources.release()
        assert not resources.data_dir.path.exists()

    def test_http_enabled_adds_port(self) -> None:
        resources = allocate(ElectrsConf(http_enabled=True))
        try:
            assert resources.http_port is not None
            assert len(set(resources.ports)) == 3
        finally:
            resources.release()

    def test_static_dir_is_kept(self, tmp_path: Path) -> None:
        static = tmp_path / "static" / "electrs"
        resources = allocate(ElectrsConf(staticdir=static))
        assert not resources.data_dir.temporary
        assert resources.data_dir.path == static
        assert resources.release() == []
        assert static.is_dir()

    def test_release_is_idempotent(self) -> None:
        resources = allocate(ElectrsConf())
        ports = resources.ports
        assert resources.release() == []
        assert resources.release() == []
        assert resources.released
        assert not set(ports) & claimed_ports()

    def test_release_tolerates_missing_dir(self) -> None:
        resources = allocate(ElectrsConf())
        resources.data_dir.path.rmdir()
        assert resources.release() == []

    def test_port_failure_cleans_up_directory(self, isolated_env: Path) -> None:
        real = allocate_free_port
        calls = []

        def flaky(host: str = "127.0.0.1") -> int:
            calls.append(host)
            if len(calls) == 2:
                raise ResourceError("no ports left")
            return real(host)

        before = claimed_ports()
        with patch("electrsd.resources.allocate_free_port", side_effect=flaky):
            with pytest.raises(ResourceError):
                allocate(ElectrsConf())

        assert list(isolated_env.iterdir()) == []
        assert claimed_ports() == before
