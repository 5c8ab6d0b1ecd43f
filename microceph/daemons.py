"""Set-up of the monitor, manager and metadata server daemons."""

from __future__ import annotations

import os
import tempfile
from contextlib import contextmanager
from typing import Iterator

from microceph.state import Runner, ceph_run


@contextmanager
def _wrapped(message: str) -> Iterator[None]:
    try:
        yield
    except Exception as err:
        raise RuntimeError(f"{message}: {err}") from err


def gen_monmap(runner: Runner, path: str, fsid: str) -> None:
    """Create a new monitor map at ``path`` for the cluster ``fsid``."""
    runner.run_command("monmaptool", "--create", "--fsid", fsid, path)


def add_monmap(runner: Runner, path: str, name: str, address: str) -> None:
    """Add the monitor ``name`` at ``address`` to the map at ``path``."""
    runner.run_command("monmaptool", "--add", name, address, path)


def bootstrap_mon(
    runner: Runner, hostname: str, path: str, monmap: str, keyring: str
) -> None:
    """Create the data store of a monitor from a monitor map and keyring."""
    runner.run_command(
        "ceph-mon",
        "--mkfs",
        "-i", hostname,
        "--mon-data", path,
        "--monmap", monmap,
        "--keyring", keyring,
    )


def join_mon(runner: Runner, hostname: str, path: str) -> None:
    """Set up a monitor from the running cluster's monitor map and key."""
    with tempfile.TemporaryDirectory() as tmp:
        monmap = os.path.join(tmp, "mon.map")
        with _wrapped("Failed to retrieve monmap"):
            ceph_run(runner, "mon", "getmap", "-o", monmap)

        keyring = os.path.join(tmp, "mon.keyring")
        with _wrapped("Failed to retrieve mon keyring"):
            ceph_run(runner, "auth", "get", "mon.", "-o", keyring)

        bootstrap_mon(runner, hostname, path, monmap, keyring)


def bootstrap_mgr(runner: Runner, hostname: str, path: str) -> None:
    """Create the manager key for ``hostname`` in ``path``."""
    ceph_run(
        runner,
        "auth",
        "get-or-create",
        f"mgr.{hostname}",
        "mon", "allow profile mgr",
        "osd", "allow *",
        "mds", "allow *",
        "-o", os.path.join(path, "keyring"),
    )


def join_mgr(runner: Runner, hostname: str, path: str) -> None:
    bootstrap_mgr(runner, hostname, path)


def bootstrap_mds(runner: Runner, hostname: str, path: str) -> None:
    """Create the metadata server key for ``hostname`` in ``path``."""
    ceph_run(
        runner,
        "auth",
        "get-or-create",
        f"mds.{hostname}",
        "mon", "allow profile mds",
        "mgr", "allow profile mds",
        "mds", "allow *",
        "osd", "allow *",
        "-o", os.path.join(path, "keyring"),
    )


def join_mds(runner: Runner, hostname: str, path: str) -> None:
    bootstrap_mds(runner, hostname, path)