"""Cluster state, command runners and service control helpers."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Protocol, Sequence, runtime_checkable

if TYPE_CHECKING:
    from microceph.db.schema import Database


@runtime_checkable
class Runner(Protocol):
    """Something that runs an external tool and returns its output."""

    def run_command(self, name: str, *args: str) -> str:
        """Run ``name`` with ``args`` and return its standard output."""
        ...


class CommandError(RuntimeError):
    """Raised by a runner when a command fails."""

    def __init__(self, name: str, argv: Sequence[str], message: str = "") -> None:
        self.name = name
        self.argv = tuple(argv)
        self.message = message
        text = f"Failed to run: {name} {' '.join(self.argv)}".rstrip()
        if message:
            text = f"{text}: {message}"
        super().__init__(text)


@dataclass(frozen=True)
class SnapPaths:
    """The configuration, runtime, data and log directories of a node."""

    conf: str
    run: str
    data: str
    logs: str

    @classmethod
    def from_env(cls) -> SnapPaths:
        snap_data = os.environ.get("SNAP_DATA", "")
        snap_common = os.environ.get("SNAP_COMMON", "")
        return cls(
            conf=os.path.join(snap_data, "conf"),
            run=os.path.join(snap_data, "run"),
            data=os.path.join(snap_common, "data"),
            logs=os.path.join(snap_common, "logs"),
        )

    def create(self) -> None:
        """Create every directory with its permissions, keeping existing ones."""
        for path, mode in (
            (self.conf, 0o755),
            (self.run, 0o700),
            (self.data, 0o700),
            (self.logs, 0o700),
        ):
            try:
                os.makedirs(path, mode, exist_ok=True)
            except OSError as err:
                raise OSError(f'Unable to create "{path}": {err}') from err


@dataclass(frozen=True)
class StoragePartition:
    """A partition of a local disk; ``device`` is ``major:minor``."""

    device: str
    partition: int


@dataclass(frozen=True)
class StorageDisk:
    """A local block device as seen by the system."""

    device: str
    device_id: str
    model: str = ""
    size: int = 0
    type: str = ""
    partitions: tuple[StoragePartition, ...] = ()


@dataclass
class CephState:
    """What a node knows about itself and the cluster it belongs to."""

    name: str
    address: str
    runner: Runner
    database: Database | None = None
    remotes: dict[str, str] = field(default_factory=dict)
    disks: list[StorageDisk] = field(default_factory=list)
    paths: SnapPaths = field(default_factory=SnapPaths.from_env)


def ceph_run(runner: Runner, *args: str) -> str:
    """Run the ``ceph`` tool and return its output."""
    return runner.run_command("ceph", *args)


def snap_start(runner: Runner, service: str, enable: bool) -> None:
    """Start a snap service, enabling it at boot when asked."""
    args = ["start", f"microceph.{service}"]
    if enable:
        args.append("--enable")
    runner.run_command("snapctl", *args)


def snap_reload(runner: Runner, service: str) -> None:
    """Restart a snap service, reloading it."""
    runner.run_command("snapctl", "restart", "--reload", f"microceph.{service}")